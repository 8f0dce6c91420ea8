"""Command-line entrypoint: start sync and print a kitchen summary."""

import asyncio

from kitchen_inventory.config import Settings
from kitchen_inventory.containers import build_container


async def _run(settings: Settings | None = None) -> None:
    container = build_container(settings)
    try:
        await container.kitchen_sync_service.start()
        coordinator = container.sync_coordinator
        store = container.inventory_store
        stats = store.stats()
        print(f"Kitchen Inventory [{coordinator.service_name}: {coordinator.status.label}]")
        print(
            f"Ingredients: {stats.ingredient_count}  "
            f"Ready dishes: {stats.available_dishes}  "
            f"Missing ingredients: {stats.missing_dishes}"
        )
        for entry in store.day_menu(store.today()):
            print(f"- {entry.dish_name}: {entry.status}")
    finally:
        await container.close_resources()


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()

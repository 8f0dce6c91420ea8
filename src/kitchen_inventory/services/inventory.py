"""Inventory store: stock, dish catalog, weekly menu, and the cooked log."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from uuid import uuid4

from kitchen_inventory.domain.calendar import format_date_key
from kitchen_inventory.domain.errors import (
    DishNotFoundError,
    DuplicateDishError,
    IngredientNotFoundError,
    InsufficientIngredientsError,
    InvalidInputError,
    TransactionAbortedError,
)
from kitchen_inventory.domain.models import (
    BUILTIN_DISHES,
    CUSTOM_DISH_PREFIX,
    CookedEntry,
    Dish,
    Ingredient,
    IngredientType,
    KitchenStats,
    MenuEntry,
    MenuEntryStatus,
    MissingIngredient,
    RequiredIngredient,
    SyncSnapshot,
)
from kitchen_inventory.domain.recognition import IngredientDelta
from kitchen_inventory.services.storage import KeyValueStorage

INGREDIENTS_KEY = "fridgeIngredients"
CUSTOM_DISHES_KEY = "customDishes"
WEEKLY_MENU_KEY = "weeklyMenu"
COOKED_DISHES_KEY = "cookedDishes"

Confirm = Callable[[str], bool]
SnapshotListener = Callable[[SyncSnapshot], None]

_logger = logging.getLogger(__name__)


def always_confirm(_message: str) -> bool:
    """Confirmation that accepts every prompt."""
    return True


@dataclass
class InventoryStore:
    """Owns the four persisted collections and the rules tying them together.

    Every mutation is applied synchronously, persisted to local storage, and
    then announced through ``on_saved`` so a sync layer can push it. The store
    itself knows nothing about remote backends.
    """

    storage: KeyValueStorage
    on_saved: SnapshotListener | None = None
    clock: Callable[[], datetime] = datetime.now
    builtin_dishes: tuple[Dish, ...] = BUILTIN_DISHES
    ingredients: list[Ingredient] = field(default_factory=list)
    custom_dishes: list[Dish] = field(default_factory=list)
    weekly_menu: dict[str, list[str]] = field(default_factory=dict)
    cooked_dishes: dict[str, list[CookedEntry]] = field(default_factory=dict)

    # --- Persistence -------------------------------------------------------

    def load(self) -> None:
        """Load the collections from local storage; missing keys are empty."""
        snapshot = SyncSnapshot.model_validate(
            {
                "ingredients": self.storage.get(INGREDIENTS_KEY),
                "customDishes": self.storage.get(CUSTOM_DISHES_KEY),
                "weeklyMenu": self.storage.get(WEEKLY_MENU_KEY),
                "cookedDishes": self.storage.get(COOKED_DISHES_KEY),
            }
        )
        self._assign(snapshot)
        _logger.info(
            "Loaded local data: ingredients=%s custom_dishes=%s",
            len(self.ingredients),
            len(self.custom_dishes),
        )

    def save(self) -> None:
        """Persist locally and notify the save listener."""
        snapshot = self._persist()
        if self.on_saved is not None:
            self.on_saved(snapshot)

    def snapshot(self) -> SyncSnapshot:
        """Return a detached copy of the current collections."""
        return SyncSnapshot(
            ingredients=self.ingredients,
            custom_dishes=self.custom_dishes,
            weekly_menu=self.weekly_menu,
            cooked_dishes=self.cooked_dishes,
        ).model_copy(deep=True)

    def replace_snapshot(self, snapshot: SyncSnapshot) -> None:
        """Replace all collections with an inbound snapshot.

        The replacement is persisted locally but not announced, so applying a
        remote update never triggers another push.
        """
        self._assign(snapshot.model_copy(deep=True))
        self._persist()

    def _assign(self, snapshot: SyncSnapshot) -> None:
        self.ingredients = snapshot.ingredients
        self.custom_dishes = snapshot.custom_dishes
        self.weekly_menu = snapshot.weekly_menu
        self.cooked_dishes = snapshot.cooked_dishes

    def _persist(self) -> SyncSnapshot:
        snapshot = self.snapshot()
        payload = snapshot.to_payload()
        self.storage.set(INGREDIENTS_KEY, payload["ingredients"])
        self.storage.set(CUSTOM_DISHES_KEY, payload["customDishes"])
        self.storage.set(WEEKLY_MENU_KEY, payload["weeklyMenu"])
        self.storage.set(COOKED_DISHES_KEY, payload["cookedDishes"])
        return snapshot

    def today(self) -> date:
        return self.clock().date()

    # --- Ingredients -------------------------------------------------------

    def add_ingredient(
        self,
        name: str,
        ingredient_type: IngredientType | str,
        quantity: float,
        unit: str,
    ) -> Ingredient:
        """Add a new stock record."""
        cleaned = name.strip()
        if not cleaned or quantity is None or quantity <= 0:
            raise InvalidInputError("请填写完整的食材信息")
        ingredient = Ingredient(
            id=uuid4().hex,
            name=cleaned,
            type=IngredientType.coerce(ingredient_type),
            quantity=quantity,
            unit=unit,
        )
        self.ingredients.append(ingredient)
        self.save()
        return ingredient

    def get_ingredient(self, ingredient_id: str | int | float) -> Ingredient:
        """Return the stock record with the given id."""
        for ingredient in self.ingredients:
            if ingredient.id == ingredient_id:
                return ingredient
        raise IngredientNotFoundError(f"Ingredient {ingredient_id} not found")

    def update_ingredient_name(
        self, ingredient_id: str | int | float, new_name: str
    ) -> bool:
        """Rename a stock record; blank names are ignored."""
        ingredient = self.get_ingredient(ingredient_id)
        cleaned = new_name.strip()
        if not cleaned:
            return False
        ingredient.name = cleaned
        self.save()
        return True

    def remove_ingredient(
        self, ingredient_id: str | int | float, confirm: Confirm = always_confirm
    ) -> None:
        """Delete a stock record after confirmation."""
        self.get_ingredient(ingredient_id)
        if not confirm("确定删除?"):
            raise TransactionAbortedError("Ingredient removal cancelled")
        self.ingredients = [i for i in self.ingredients if i.id != ingredient_id]
        self.save()

    def clear_ingredients(self, confirm: Confirm = always_confirm) -> None:
        """Delete every stock record after confirmation."""
        if not confirm("确定清空所有食材?"):
            raise TransactionAbortedError("Clearing ingredients cancelled")
        self.ingredients = []
        self.save()

    def adjust_quantity(
        self,
        ingredient_id: str | int | float,
        delta: float,
        confirm: Confirm = always_confirm,
    ) -> Ingredient | None:
        """Apply a quantity delta.

        When the result drops to zero or below the user is asked whether to
        delete the record. Declining resets the quantity to exactly 1. Returns
        the record, or None when it was removed.
        """
        ingredient = self.get_ingredient(ingredient_id)
        ingredient.quantity += delta
        result: Ingredient | None = ingredient
        if ingredient.quantity <= 0:
            if confirm("数量为0,是否删除该食材?"):
                self.ingredients = [
                    i for i in self.ingredients if i.id != ingredient_id
                ]
                result = None
            else:
                ingredient.quantity = 1
        self.save()
        return result

    def ingredients_by_type(self) -> dict[IngredientType, list[Ingredient]]:
        """Group stock records by category in display order."""
        grouped: dict[IngredientType, list[Ingredient]] = {
            category: [] for category in IngredientType
        }
        for ingredient in self.ingredients:
            grouped[ingredient.type].append(ingredient)
        return grouped

    def merge_recognized(self, deltas: Iterable[IngredientDelta]) -> int:
        """Add recognized ingredients to stock, topping up existing records."""
        merged = 0
        for delta in deltas:
            existing = self._first_match(delta.name, delta.unit)
            if existing is not None:
                existing.quantity += delta.quantity
            else:
                self.ingredients.append(
                    Ingredient(
                        id=uuid4().hex,
                        name=delta.name,
                        type=delta.type,
                        quantity=delta.quantity,
                        unit=delta.unit,
                    )
                )
            merged += 1
        if merged:
            self.save()
        return merged

    def _first_match(
        self, name: str, unit: str, stock: list[Ingredient] | None = None
    ) -> Ingredient | None:
        for ingredient in self.ingredients if stock is None else stock:
            if ingredient.matches(name, unit):
                return ingredient
        return None

    # --- Dishes ------------------------------------------------------------

    def all_dishes(self) -> list[Dish]:
        """Return built-in dishes followed by custom dishes."""
        return [*self.builtin_dishes, *self.custom_dishes]

    def find_dish(self, name: str) -> Dish | None:
        for dish in self.all_dishes():
            if dish.name == name:
                return dish
        return None

    def save_dish(
        self,
        name: str,
        description: str,
        ingredients: Iterable[RequiredIngredient | dict[str, object]],
    ) -> Dish:
        """Create a custom dish with a globally unique name."""
        cleaned = name.strip()
        if not cleaned:
            raise InvalidInputError("请输入菜品名称")
        requirements = [
            RequiredIngredient.model_validate(item)
            if isinstance(item, dict)
            else item
            for item in ingredients
        ]
        if not requirements:
            raise InvalidInputError("请至少添加一个食材")
        for requirement in requirements:
            if not requirement.name.strip() or requirement.quantity <= 0:
                raise InvalidInputError("请填写完整的食材信息")
        if self.find_dish(cleaned) is not None:
            raise DuplicateDishError("菜品名称已存在，请使用其他名称")
        dish = Dish(
            id=f"{CUSTOM_DISH_PREFIX}{uuid4().hex}",
            name=cleaned,
            description=description.strip(),
            ingredients=requirements,
        )
        self.custom_dishes.append(dish)
        self.save()
        return dish

    def delete_dish(self, dish_id: str, confirm: Confirm = always_confirm) -> Dish:
        """Delete a custom dish; built-in dishes are never found here."""
        dish = next((d for d in self.custom_dishes if d.id == dish_id), None)
        if dish is None:
            raise DishNotFoundError(f"Custom dish {dish_id} not found")
        if not confirm(f'确定要删除菜品"{dish.name}"吗？'):
            raise TransactionAbortedError("Dish deletion cancelled")
        self.custom_dishes = [d for d in self.custom_dishes if d.id != dish_id]
        self.save()
        return dish

    def can_make_dish(self, dish: Dish) -> bool:
        """Return True when stock covers every requirement of the dish."""
        for required in dish.ingredients:
            available = self._first_match(required.name, required.unit)
            if available is None or available.quantity < required.quantity:
                return False
        return True

    def get_missing_ingredients(self, dish: Dish | None) -> list[MissingIngredient]:
        """Return the shortfall for each unsatisfied requirement."""
        if dish is None:
            return []
        missing: list[MissingIngredient] = []
        for required in dish.ingredients:
            available = self._first_match(required.name, required.unit)
            if available is None:
                needed = required.quantity
            elif available.quantity < required.quantity:
                needed = required.quantity - available.quantity
            else:
                continue
            missing.append(
                MissingIngredient(name=required.name, needed=needed, unit=required.unit)
            )
        return missing

    def cook_dish(self, name: str, confirm: Confirm = always_confirm) -> Dish:
        """Consume a dish's ingredients and log it as cooked today.

        Stock deduction is all-or-nothing: the new stock list is computed on
        copies and swapped in only after confirmation.
        """
        dish = self.find_dish(name)
        if dish is None:
            raise DishNotFoundError(f"菜品不存在: {name}")
        missing = self.get_missing_ingredients(dish)
        if missing:
            raise InsufficientIngredientsError(dish.name, missing)

        deductions = "\n".join(
            f"{item.name} {item.quantity:g}{item.unit}" for item in dish.ingredients
        )
        if not confirm(f"确定制作 {name}?\n\n将扣除以下食材：\n{deductions}"):
            raise TransactionAbortedError(f"Cooking {name} cancelled")

        stock = [ingredient.model_copy() for ingredient in self.ingredients]
        for required in dish.ingredients:
            available = self._first_match(required.name, required.unit, stock)
            if available is None:
                continue
            available.quantity -= required.quantity
            if available.quantity <= 0:
                stock = [item for item in stock if item is not available]
        self.ingredients = stock

        now = self.clock()
        date_key = format_date_key(now)
        entries = self.cooked_dishes.setdefault(date_key, [])
        if not any(entry.name == name for entry in entries):
            entries.append(
                CookedEntry(name=name, timestamp=int(now.timestamp() * 1000))
            )
        self.save()
        _logger.info("Cooked dish %s", name)
        return dish

    def unmark_dish_as_cooked(
        self, name: str, confirm: Confirm = always_confirm
    ) -> bool:
        """Remove today's cooked-log entry; consumed stock is not restored."""
        if not confirm(f'确定要撤销"{name}"的完成状态吗？\n\n注意：食材不会恢复'):
            raise TransactionAbortedError(f"Unmarking {name} cancelled")
        date_key = format_date_key(self.today())
        entries = self.cooked_dishes.get(date_key)
        if not entries or not any(entry.name == name for entry in entries):
            return False
        remaining = [entry for entry in entries if entry.name != name]
        if remaining:
            self.cooked_dishes[date_key] = remaining
        else:
            del self.cooked_dishes[date_key]
        self.save()
        return True

    def is_cooked(self, day: date, name: str) -> bool:
        entries = self.cooked_dishes.get(format_date_key(day), [])
        return any(entry.name == name for entry in entries)

    def stats(self) -> KitchenStats:
        """Return ingredient and dish feasibility counters."""
        dishes = self.all_dishes()
        available = sum(1 for dish in dishes if self.can_make_dish(dish))
        return KitchenStats(
            ingredient_count=len(self.ingredients),
            available_dishes=available,
            missing_dishes=len(dishes) - available,
        )

    # --- Weekly menu -------------------------------------------------------

    def quick_add_dish(self, day: date, name: str) -> bool:
        """Schedule a dish on a day; returns False if it is already there."""
        cleaned = name.strip()
        if not cleaned:
            raise InvalidInputError("请选择日期和菜品")
        date_key = format_date_key(day)
        dishes = self.weekly_menu.setdefault(date_key, [])
        if cleaned in dishes:
            return False
        dishes.append(cleaned)
        self.save()
        return True

    def remove_dish_from_menu(self, day: date, name: str) -> bool:
        """Unschedule a dish, dropping the day when it becomes empty."""
        date_key = format_date_key(day)
        dishes = self.weekly_menu.get(date_key)
        if dishes is None:
            return False
        remaining = [dish for dish in dishes if dish != name]
        if len(remaining) == len(dishes):
            return False
        if remaining:
            self.weekly_menu[date_key] = remaining
        else:
            del self.weekly_menu[date_key]
        self.save()
        return True

    def day_menu(self, day: date) -> list[MenuEntry]:
        """Return the scheduled dishes for a day with their current state."""
        date_key = format_date_key(day)
        cooked = {entry.name: entry for entry in self.cooked_dishes.get(date_key, [])}
        entries: list[MenuEntry] = []
        for dish_name in self.weekly_menu.get(date_key, []):
            dish = self.find_dish(dish_name)
            if dish is None:
                entries.append(
                    MenuEntry(dish_name=dish_name, status=MenuEntryStatus.DANGLING)
                )
            elif dish_name in cooked:
                entries.append(
                    MenuEntry(
                        dish_name=dish_name,
                        status=MenuEntryStatus.COOKED,
                        dish=dish,
                        cooked_at=cooked[dish_name].timestamp,
                    )
                )
            else:
                missing = self.get_missing_ingredients(dish)
                entries.append(
                    MenuEntry(
                        dish_name=dish_name,
                        status=(
                            MenuEntryStatus.MISSING_INGREDIENTS
                            if missing
                            else MenuEntryStatus.READY
                        ),
                        dish=dish,
                        missing=missing,
                    )
                )
        return entries

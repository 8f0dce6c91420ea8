"""Tests for the JSON file storage adapter."""

from kitchen_inventory.adapters.json_file_storage import JsonFileStorage


def test_set_get_delete_round_trip(tmp_path) -> None:
    storage = JsonFileStorage.create(tmp_path / "nested" / "data")

    storage.set("weeklyMenu", {"2026-10-14": ["葱油焖鸡"]})

    assert storage.get("weeklyMenu") == {"2026-10-14": ["葱油焖鸡"]}
    raw = (tmp_path / "nested" / "data" / "weeklyMenu.json").read_text(encoding="utf-8")
    assert "葱油焖鸡" in raw
    storage.delete("weeklyMenu")
    assert storage.get("weeklyMenu") is None
    storage.delete("weeklyMenu")


def test_unreadable_value_is_treated_as_missing(tmp_path) -> None:
    storage = JsonFileStorage.create(tmp_path)
    (tmp_path / "fridgeIngredients.json").write_text("{broken", encoding="utf-8")

    assert storage.get("fridgeIngredients") is None


def test_keys_are_sanitized(tmp_path) -> None:
    storage = JsonFileStorage.create(tmp_path)

    storage.set("../escape", 1)

    assert storage.get("../escape") == 1
    assert not (tmp_path.parent / "escape.json").exists()

"""Tests for snapshot and recognition models."""

import pytest
from pydantic import ValidationError

from kitchen_inventory.domain.models import IngredientType, SyncSnapshot
from kitchen_inventory.domain.recognition import IngredientDelta
from kitchen_inventory.domain.sync import (
    PairingFailure,
    PairingResult,
    SyncConfig,
    SyncStatus,
    generate_pairing_code,
    is_valid_pairing_code,
)


def test_snapshot_accepts_wire_names_and_ignores_extras() -> None:
    snapshot = SyncSnapshot.model_validate(
        {
            "ingredients": None,
            "customDishes": [
                {
                    "id": "custom_1",
                    "name": "炸鸡",
                    "ingredients": [{"name": "鸡块", "quantity": 1, "unit": "份"}],
                }
            ],
            "weeklyMenu": {"2026-10-14": ["炸鸡"]},
            "cookedDishes": {"2026-10-14": [{"name": "炸鸡", "timestamp": 1}]},
            "lastSync": "2026-10-14T10:00:00Z",
            "userId": "user_1",
        }
    )

    payload = snapshot.to_payload()

    assert snapshot.ingredients == []
    assert set(payload) == {"ingredients", "customDishes", "weeklyMenu", "cookedDishes"}
    assert payload["customDishes"][0]["description"] == ""


def test_unknown_ingredient_type_becomes_other() -> None:
    snapshot = SyncSnapshot.model_validate(
        {"ingredients": [{"id": 5, "name": "x", "type": "???", "quantity": 1, "unit": "个"}]}
    )

    assert snapshot.ingredients[0].type is IngredientType.OTHER


def test_ingredient_delta_validates_unit_and_defaults_quantity() -> None:
    delta = IngredientDelta.model_validate({"name": "鸡蛋", "quantity": None, "unit": "个"})

    assert delta.quantity == 1
    assert delta.type is IngredientType.OTHER
    with pytest.raises(ValidationError):
        IngredientDelta.model_validate({"name": "鸡蛋", "quantity": 1, "unit": "kg"})


def test_pairing_helpers() -> None:
    code = generate_pairing_code()

    assert 100000 <= int(code) <= 999999
    assert is_valid_pairing_code(code)
    assert not is_valid_pairing_code("12345")
    failure = PairingResult.fail(PairingFailure.CODE_NOT_FOUND)
    assert failure.success is False
    assert failure.message == "同步码不存在"


def test_sync_config_and_status_labels() -> None:
    config = SyncConfig(default_sync="auto", enabled=frozenset({"leancloud"}))

    assert config.is_enabled("leancloud")
    assert not config.is_enabled("firebase")
    assert SyncStatus.ERROR.label == "同步失败"

"""Domain models for the kitchen inventory."""

from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IngredientType(StrEnum):
    """Ingredient category, stored with the labels existing snapshots use."""

    VEGETABLE = "蔬菜"
    MEAT = "肉类"
    SEASONING = "调料"
    OTHER = "其他"

    @classmethod
    def coerce(cls, value: object) -> "IngredientType":
        """Return the matching category, falling back to OTHER."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class Ingredient(BaseModel):
    """A stock record in the fridge."""

    id: str | int | float
    name: str
    type: IngredientType = IngredientType.OTHER
    quantity: float
    unit: str

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: object) -> IngredientType:
        return IngredientType.coerce(value)

    def matches(self, name: str, unit: str) -> bool:
        """Return True when this record is the stock for a (name, unit) pair."""
        return self.name == name and self.unit == unit


class RequiredIngredient(BaseModel):
    """An ingredient a dish consumes when cooked."""

    name: str
    quantity: float
    unit: str


class Dish(BaseModel):
    """A dish from the built-in or custom catalog."""

    id: str
    name: str
    description: str = ""
    ingredients: list[RequiredIngredient] = Field(default_factory=list)

    @property
    def is_builtin(self) -> bool:
        return self.id.startswith(BUILTIN_DISH_PREFIX)


class CookedEntry(BaseModel):
    """A cooked-log record for one dish on one day."""

    name: str
    timestamp: int = 0


def _normalize_cooked_entries(value: object) -> object:
    # Early app versions logged bare dish names.
    if not isinstance(value, dict):
        return value
    return {
        date_key: [
            {"name": entry, "timestamp": 0} if isinstance(entry, str) else entry
            for entry in entries or []
        ]
        for date_key, entries in value.items()
    }


class SyncSnapshot(BaseModel):
    """The four collections transferred to and from a sync backend."""

    model_config = ConfigDict(populate_by_name=True)

    ingredients: list[Ingredient] = Field(default_factory=list)
    custom_dishes: list[Dish] = Field(default_factory=list, alias="customDishes")
    weekly_menu: dict[str, list[str]] = Field(default_factory=dict, alias="weeklyMenu")
    cooked_dishes: dict[str, list[CookedEntry]] = Field(
        default_factory=dict, alias="cookedDishes"
    )

    @field_validator("ingredients", "custom_dishes", mode="before")
    @classmethod
    def _default_list(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("weekly_menu", mode="before")
    @classmethod
    def _default_dict(cls, value: object) -> object:
        return {} if value is None else value

    @field_validator("cooked_dishes", mode="before")
    @classmethod
    def _default_cooked(cls, value: object) -> object:
        return {} if value is None else _normalize_cooked_entries(value)

    def to_payload(self) -> dict[str, object]:
        """Return the JSON-compatible payload with the wire field names."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class MissingIngredient:
    """Shortfall of one required ingredient."""

    name: str
    needed: float
    unit: str


class MenuEntryStatus(StrEnum):
    """State of a dish scheduled on a given day."""

    DANGLING = "dangling"
    COOKED = "cooked"
    READY = "ready"
    MISSING_INGREDIENTS = "missing_ingredients"


@dataclass(frozen=True)
class MenuEntry:
    """A scheduled dish together with its feasibility on that day."""

    dish_name: str
    status: MenuEntryStatus
    dish: Dish | None = None
    cooked_at: int | None = None
    missing: list[MissingIngredient] = field(default_factory=list)


@dataclass(frozen=True)
class KitchenStats:
    """Counters shown on the dashboard."""

    ingredient_count: int
    available_dishes: int
    missing_dishes: int


BUILTIN_DISH_PREFIX = "default_"
CUSTOM_DISH_PREFIX = "custom_"

BUILTIN_DISHES: tuple[Dish, ...] = (
    Dish(
        id="default_1",
        name="葱油焖鸡",
        description="1. 鸡块提前腌制\n2. 倒入鸡块翻炒\n3. 加入调料翻炒均匀出锅",
        ingredients=[
            RequiredIngredient(name="鸡块", quantity=1, unit="份"),
            RequiredIngredient(name="葱", quantity=1, unit="根"),
        ],
    ),
    Dish(
        id="default_2",
        name="秋葵炒素肚",
        description="1. 秋葵切片清洗\n2. 素肚切片\n3. 热锅炒青椒\n4. 加秋葵素肚炒匀",
        ingredients=[
            RequiredIngredient(name="秋葵", quantity=1, unit="份"),
            RequiredIngredient(name="素肚", quantity=1, unit="份"),
            RequiredIngredient(name="青椒", quantity=1, unit="个"),
        ],
    ),
)

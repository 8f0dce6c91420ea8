"""Models for ingredient recognition results."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from kitchen_inventory.domain.models import IngredientType

RecognizedUnit = Literal["个", "根", "片", "袋", "盒", "份", "g", "颗", "块", "桶"]


class IngredientDelta(BaseModel):
    """Single ingredient detected in a fridge photo."""

    name: str = Field(min_length=1)
    quantity: float = Field(default=1, gt=0)
    unit: RecognizedUnit
    type: IngredientType = IngredientType.OTHER

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: object) -> IngredientType:
        return IngredientType.coerce(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _default_quantity(cls, value: object) -> object:
        return 1 if value is None else value

"""Pydantic models for Calorie Vision backend payloads."""

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from calorie_vision.domain.meals import Macros, MealRecord
from calorie_vision.domain.models import User


class LoginPayload(BaseModel):
    """Identity returned by ``POST /auth/login``."""

    user_id: str = Field(min_length=1)
    name: str = ""
    email: str = ""

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("name", "email", mode="before")
    @classmethod
    def _lenient_text(cls, value: object) -> object:
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)):
            return str(value)
        return ""

    def to_user(self) -> User:
        """Convert the payload to a domain user."""
        return User(user_id=self.user_id, name=self.name, email=self.email)


class MacrosPayload(BaseModel):
    """Macronutrient breakdown payload."""

    carbs_g: float = 0.0
    protein_g: float = 0.0
    fat_g: float = 0.0

    @field_validator("carbs_g", "protein_g", "fat_g", mode="before")
    @classmethod
    def _none_to_zero(cls, value: object) -> object:
        return 0.0 if value is None else value


class MealPayload(BaseModel):
    """Meal row from ``GET /meals`` or the body of ``POST /analyze``."""

    id: str = Field(default="", validation_alias=AliasChoices("meal_id", "_id", "id"))
    dish_name: str = "Meal"
    calories: float = 0.0
    macros: MacrosPayload | None = None
    ingredients: list[str] | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> object:
        if value is None:
            return ""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("dish_name", mode="before")
    @classmethod
    def _default_dish_name(cls, value: object) -> object:
        return value or "Meal"

    @field_validator("calories", mode="before")
    @classmethod
    def _none_to_zero(cls, value: object) -> object:
        return 0.0 if value is None else value

    @field_validator("ingredients", mode="before")
    @classmethod
    def _drop_non_list(cls, value: object) -> object:
        return value if isinstance(value, list) else None

    def to_record(self) -> MealRecord:
        """Convert the payload to an immutable meal record."""
        macros = (
            Macros(
                carbs_g=self.macros.carbs_g,
                protein_g=self.macros.protein_g,
                fat_g=self.macros.fat_g,
            )
            if self.macros is not None
            else None
        )
        ingredients = tuple(self.ingredients) if self.ingredients is not None else None
        return MealRecord(
            id=self.id,
            dish_name=self.dish_name,
            calories=self.calories,
            macros=macros,
            ingredients=ingredients,
        )


class ErrorPayload(BaseModel):
    """Error body returned by the backend on rejection."""

    detail: Any = None

    def message(self) -> str | None:
        """Return the detail text when it is a non-empty string."""
        if isinstance(self.detail, str) and self.detail.strip():
            return self.detail
        return None


def meal_to_payload(record: MealRecord) -> dict[str, object]:
    """Serialize a meal record into a JSON-compatible dict."""
    return {
        "id": record.id,
        "dish_name": record.dish_name,
        "calories": record.calories,
        "macros": (
            {
                "carbs_g": record.macros.carbs_g,
                "protein_g": record.macros.protein_g,
                "fat_g": record.macros.fat_g,
            }
            if record.macros is not None
            else None
        ),
        "ingredients": (
            list(record.ingredients) if record.ingredients is not None else None
        ),
    }

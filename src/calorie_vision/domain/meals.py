"""Domain models for analysed meals."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Macros:
    """Macronutrient breakdown of a meal in grams."""

    carbs_g: float
    protein_g: float
    fat_g: float


@dataclass(frozen=True)
class MealRecord:
    """A single analysed meal as shown in the history list."""

    id: str
    dish_name: str
    calories: float
    macros: Macros | None = None
    ingredients: tuple[str, ...] | None = None


@dataclass(frozen=True)
class AnalysisSnapshot:
    """The most recent successful analysis for a user."""

    user_id: str
    record: MealRecord
    analyzed_at: str


@dataclass(frozen=True)
class RefreshOutcome:
    """Result of a history refresh; callers may inspect or ignore it."""

    ok: bool
    meals: list[MealRecord] = field(default_factory=list)
    error: str | None = None

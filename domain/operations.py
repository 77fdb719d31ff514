"""Document transforms.

Each operation turns whatever the current document is into the next one. They
read the document only when called, so re-applying one to a fresher document
after a version conflict is always valid. Keeping them as small objects
rather than lambdas means they show up readably in the logs.
"""

import datetime
from typing import Callable, Iterable

from domain.models import AppSettings, DayPlan, Document, Recipe


type Transform = Callable[[Document], Document]


def today_iso() -> str:
    return datetime.date.today().isoformat()


def upsert_day(calendar: list[DayPlan], day: DayPlan) -> list[DayPlan]:
    """New calendar with `day` replacing the entry for its date, or appended."""
    replaced = False
    result: list[DayPlan] = []
    for existing in calendar:
        if existing.date == day.date:
            result.append(day)
            replaced = True
        else:
            result.append(existing)
    if not replaced:
        result.append(day)
    return result


def map_recipe(
    recipes: list[Recipe],
    recipe_id: str,
    change: Callable[[Recipe], Recipe],
) -> list[Recipe]:
    return [change(r) if r.id == recipe_id else r for r in recipes]


class Operation:
    def __call__(self, doc: Document) -> Document:
        raise NotImplementedError

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"<{type(self).__name__}({args})>"


class AddRecipes(Operation):
    """Append recipes. A recipe whose id already exists replaces that one."""

    def __init__(self, recipes: Iterable[Recipe]) -> None:
        self.recipes = list(recipes)

    def __call__(self, doc: Document) -> Document:
        incoming = {r.id: r for r in self.recipes}
        recipes = [incoming.pop(r.id, r) for r in doc.recipes]
        recipes.extend(incoming.pop(r.id) for r in self.recipes if r.id in incoming)
        return doc.replace(recipes=recipes)


class RemoveRecipe(Operation):
    def __init__(self, recipe_id: str) -> None:
        self.recipe_id = recipe_id

    def __call__(self, doc: Document) -> Document:
        return doc.replace(
            recipes=[r for r in doc.recipes if r.id != self.recipe_id],
            calendar=[
                d.replace(recipe_id=None) if d.recipe_id == self.recipe_id else d
                for d in doc.calendar
            ],
        )


class ToggleFavorite(Operation):
    def __init__(self, recipe_id: str) -> None:
        self.recipe_id = recipe_id

    def __call__(self, doc: Document) -> Document:
        recipes = map_recipe(
            doc.recipes,
            self.recipe_id,
            lambda r: r.replace(is_favorite=not r.is_favorite),
        )
        return doc.replace(recipes=recipes)


class SetLastUsed(Operation):
    def __init__(self, recipe_id: str, date: str | None = None) -> None:
        self.recipe_id = recipe_id
        self.date = today_iso() if date is None else date

    def __call__(self, doc: Document) -> Document:
        recipes = map_recipe(
            doc.recipes,
            self.recipe_id,
            lambda r: r.replace(last_used_at=self.date),
        )
        return doc.replace(recipes=recipes)


class AssignRecipe(Operation):
    def __init__(self, date: str, recipe_id: str) -> None:
        self.date = date
        self.recipe_id = recipe_id

    def __call__(self, doc: Document) -> Document:
        day = doc.day(self.date) or DayPlan(date=self.date)
        return doc.replace(
            calendar=upsert_day(doc.calendar, day.replace(recipe_id=self.recipe_id))
        )


class ClearDay(Operation):
    """Null out a date's recipe. The day plan itself is kept."""

    def __init__(self, date: str) -> None:
        self.date = date

    def __call__(self, doc: Document) -> Document:
        return doc.replace(
            calendar=[
                d.replace(recipe_id=None) if d.date == self.date else d
                for d in doc.calendar
            ]
        )


class SwapRecipes(Operation):
    def __init__(self, first: str, second: str) -> None:
        self.first = first
        self.second = second

    def __call__(self, doc: Document) -> Document:
        first = doc.day(self.first) or DayPlan(date=self.first)
        second = doc.day(self.second) or DayPlan(date=self.second)
        calendar = upsert_day(doc.calendar, first.replace(recipe_id=second.recipe_id))
        calendar = upsert_day(calendar, second.replace(recipe_id=first.recipe_id))
        return doc.replace(calendar=calendar)


class ToggleGroceriesPurchased(Operation):
    """Flip a date's purchased flag.

    Marking a day purchased also stamps `lastUsedAt` on its recipe.
    """

    def __init__(self, date: str, today: str | None = None) -> None:
        self.date = date
        self.today = today_iso() if today is None else today

    def __call__(self, doc: Document) -> Document:
        day = doc.day(self.date) or DayPlan(date=self.date)
        purchased = not day.groceries_purchased
        recipes = doc.recipes
        if purchased and day.recipe_id is not None:
            recipes = map_recipe(
                recipes,
                day.recipe_id,
                lambda r: r.replace(last_used_at=self.today),
            )
        return doc.replace(
            recipes=recipes,
            calendar=upsert_day(
                doc.calendar, day.replace(groceries_purchased=purchased)
            ),
        )


class ApplyMealPlan(Operation):
    """Insert a generated plan's recipes and assign each to its date at once."""

    def __init__(self, plan: Iterable[tuple[str, Recipe]]) -> None:
        self.plan = list(plan)

    def __call__(self, doc: Document) -> Document:
        doc = AddRecipes(recipe for _, recipe in self.plan)(doc)
        for date, recipe in self.plan:
            doc = AssignRecipe(date, recipe.id)(doc)
        return doc


class ReplaceSettings(Operation):
    def __init__(self, settings: AppSettings) -> None:
        self.settings = settings

    def __call__(self, doc: Document) -> Document:
        return doc.replace(
            settings=AppSettings(
                recipe_decay_days=self.settings.recipe_decay_days,
                suggested_recipe_decay_days=self.settings.suggested_recipe_decay_days,
            )
        )

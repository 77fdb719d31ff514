"""Read-only views derived from a document.

Nothing here is cached; recompute whenever the document changes. A day plan
pointing at a recipe that no longer exists is just an empty slot.
"""

import datetime
from typing import Iterable

from domain.models import Document, Recipe


SECTION_ORDER = (
    "produce",
    "meat",
    "pantry",
    "dairy-free",
    "frozen",
    "bakery",
    "other",
)


SECTION_LABELS = {
    "produce": "Produce",
    "meat": "Meat & Seafood",
    "pantry": "Pantry",
    "dairy-free": "Dairy-Free",
    "frozen": "Frozen",
    "bakery": "Bakery",
    "other": "Other",
}


class GroceryItem:
    def __init__(self, *, name: str, total_amount: float, unit: str, section: str) -> None:
        self.name = name
        self.total_amount = total_amount
        self.unit = unit
        self.section = section
        self.recipes: list[str] = []

    def __repr__(self) -> str:
        return (
            f"<GroceryItem(name={self.name}, total_amount={self.total_amount}, "
            f"unit={self.unit})>"
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "totalAmount": self.total_amount,
            "unit": self.unit,
            "section": self.section,
            "recipes": list(self.recipes),
        }


def parse_date(value: object) -> datetime.date | None:
    # Tolerates full ISO timestamps such as createdAt. None when unreadable.
    if not isinstance(value, str):
        return None
    try:
        return datetime.date.fromisoformat(value[:10])
    except ValueError:
        return None


def upcoming_days(today: datetime.date | None = None, n: int = 5) -> list[str]:
    today = datetime.date.today() if today is None else today
    return [(today + datetime.timedelta(days=i)).isoformat() for i in range(n)]


def calendar_occupancy(doc: Document) -> dict[str, Recipe | None]:
    """Date to recipe for every day plan in the document."""
    return {day.date: doc.recipe(day.recipe_id) for day in doc.calendar}


def recipes_for_dates(doc: Document, dates: Iterable[str]) -> list[Recipe]:
    occupancy = calendar_occupancy(doc)
    recipes: list[Recipe] = []
    for date in dates:
        recipe = occupancy.get(date)
        if recipe is not None:
            recipes.append(recipe)
    return recipes


def grocery_list(
    doc: Document,
    dates: Iterable[str] | None = None,
    *,
    today: datetime.date | None = None,
) -> dict[str, list[GroceryItem]]:
    """Ingredients for the selected dates grouped by store section.

    Ingredients are merged on lower-cased name plus unit with their amounts
    summed. With no dates selected, the next five days are used. Sections come
    back in shopping order and empty ones are left out.
    """
    selected = list(dates) if dates else upcoming_days(today)

    items: dict[str, GroceryItem] = {}
    for recipe in recipes_for_dates(doc, selected):
        for ing in recipe.ingredients:
            key = f"{ing.name.lower()}-{ing.unit}"
            item = items.get(key)
            if item is None:
                section = ing.section if ing.section in SECTION_LABELS else "other"
                item = GroceryItem(
                    name=ing.name,
                    total_amount=0,
                    unit=ing.unit,
                    section=section,
                )
                items[key] = item
            item.total_amount += ing.amount
            if recipe.name not in item.recipes:
                item.recipes.append(recipe.name)

    grouped: dict[str, list[GroceryItem]] = {}
    for section in SECTION_ORDER:
        in_section = [i for i in items.values() if i.section == section]
        if in_section:
            grouped[section] = in_section
    return grouped


def days_since(value: object, today: datetime.date | None = None) -> int | None:
    date = parse_date(value)
    if date is None:
        return None
    today = datetime.date.today() if today is None else today
    return (today - date).days


def decayed_recipes(
    doc: Document,
    *,
    today: datetime.date | None = None,
    dismissed: Iterable[str] = (),
) -> list[Recipe]:
    """Recipes that have gone unused for longer than the settings allow.

    Used recipes are measured from `lastUsedAt` against `recipeDecayDays`,
    never-used ones from `createdAt` against `suggestedRecipeDecayDays`.
    """
    skip = set(dismissed)
    settings = doc.settings
    stale: list[Recipe] = []
    for recipe in doc.recipes:
        if recipe.id in skip:
            continue
        if recipe.last_used_at:
            age = days_since(recipe.last_used_at, today)
            limit = settings.recipe_decay_days
        elif recipe.created_at:
            age = days_since(recipe.created_at, today)
            limit = settings.suggested_recipe_decay_days
        else:
            continue
        if age is not None and age > limit:
            stale.append(recipe)
    return stale

from typing import Any


DEFAULT_RECIPE_DECAY_DAYS = 60
DEFAULT_SUGGESTED_RECIPE_DECAY_DAYS = 30


class DocumentError(ValueError):
    pass


class AppSettings:
    def __init__(
        self,
        *,
        recipe_decay_days: int = DEFAULT_RECIPE_DECAY_DAYS,
        suggested_recipe_decay_days: int = DEFAULT_SUGGESTED_RECIPE_DECAY_DAYS,
    ) -> None:
        self.recipe_decay_days = recipe_decay_days
        self.suggested_recipe_decay_days = suggested_recipe_decay_days

    def __repr__(self) -> str:
        return (
            f"<AppSettings(recipe_decay_days={self.recipe_decay_days}, "
            f"suggested_recipe_decay_days={self.suggested_recipe_decay_days})>"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AppSettings):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @classmethod
    def from_dict(cls, data: Any) -> "AppSettings":
        if not isinstance(data, dict):
            return cls()
        try:
            return cls(
                recipe_decay_days=int(
                    data.get("recipeDecayDays", DEFAULT_RECIPE_DECAY_DAYS)
                ),
                suggested_recipe_decay_days=int(
                    data.get(
                        "suggestedRecipeDecayDays",
                        DEFAULT_SUGGESTED_RECIPE_DECAY_DAYS,
                    )
                ),
            )
        except (TypeError, ValueError) as e:
            raise DocumentError(f"Invalid settings: {data!r}") from e

    def to_dict(self) -> dict[str, int]:
        return {
            "recipeDecayDays": self.recipe_decay_days,
            "suggestedRecipeDecayDays": self.suggested_recipe_decay_days,
        }


def parse_amount(value: Any) -> float:
    # Opaque recipe data, so "a pinch" counts as nothing.
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class Ingredient:
    def __init__(self, *, name: str, amount: float, unit: str, section: str) -> None:
        self.name = name
        self.amount = amount
        self.unit = unit
        self.section = section

    def __repr__(self) -> str:
        return f"<Ingredient(name={self.name}, amount={self.amount}, unit={self.unit})>"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Ingredient":
        return cls(
            name=str(data.get("name", "")),
            amount=parse_amount(data.get("amount")),
            unit=str(data.get("unit", "")),
            section=str(data.get("section", "other")),
        )


class Recipe:
    """A recipe as far as syncing is concerned.

    Only `id`, `lastUsedAt` and `isFavorite` are interpreted. Everything else
    (name, ingredients, steps, tags, ...) is carried in `fields` untouched.
    """

    def __init__(
        self,
        *,
        id: str,
        last_used_at: str | None = None,
        is_favorite: bool = False,
        fields: dict[str, Any] | None = None,
    ) -> None:
        self.id = id
        self.last_used_at = last_used_at
        self.is_favorite = is_favorite
        self.fields = {} if fields is None else dict(fields)

    def __repr__(self) -> str:
        return f"<Recipe(id={self.id}, name={self.name})>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Recipe):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def name(self) -> str:
        return str(self.fields.get("name", ""))

    @property
    def created_at(self) -> str | None:
        return self.fields.get("createdAt")

    @property
    def ingredients(self) -> list[Ingredient]:
        raw = self.fields.get("ingredients") or []
        return [Ingredient.from_dict(i) for i in raw if isinstance(i, dict)]

    def replace(self, **changes: Any) -> "Recipe":
        attrs: dict[str, Any] = {
            "id": self.id,
            "last_used_at": self.last_used_at,
            "is_favorite": self.is_favorite,
            "fields": self.fields,
        }
        attrs.update(changes)
        return Recipe(**attrs)

    @classmethod
    def from_dict(cls, data: Any) -> "Recipe":
        if not isinstance(data, dict) or not data.get("id"):
            raise DocumentError(f"Recipe without an id: {data!r}")
        fields = {
            k: v
            for k, v in data.items()
            if k not in ("id", "lastUsedAt", "isFavorite")
        }
        return cls(
            id=str(data["id"]),
            last_used_at=data.get("lastUsedAt"),
            is_favorite=data.get("isFavorite") is True,
            fields=fields,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, **self.fields}
        if self.last_used_at is not None:
            data["lastUsedAt"] = self.last_used_at
        data["isFavorite"] = self.is_favorite
        return data


class DayPlan:
    def __init__(
        self,
        *,
        date: str,
        recipe_id: str | None = None,
        groceries_purchased: bool = False,
    ) -> None:
        self.date = date
        self.recipe_id = recipe_id
        self.groceries_purchased = groceries_purchased

    def __repr__(self) -> str:
        return f"<DayPlan(date={self.date}, recipe_id={self.recipe_id})>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DayPlan):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def replace(self, **changes: Any) -> "DayPlan":
        attrs: dict[str, Any] = {
            "date": self.date,
            "recipe_id": self.recipe_id,
            "groceries_purchased": self.groceries_purchased,
        }
        attrs.update(changes)
        return DayPlan(**attrs)

    @classmethod
    def from_dict(cls, data: Any) -> "DayPlan":
        if not isinstance(data, dict) or not data.get("date"):
            raise DocumentError(f"Day plan without a date: {data!r}")
        recipe_id = data.get("recipeId")
        return cls(
            date=str(data["date"]),
            recipe_id=None if recipe_id is None else str(recipe_id),
            groceries_purchased=data.get("groceriesPurchased") is True,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "recipeId": self.recipe_id,
            "groceriesPurchased": self.groceries_purchased,
        }


class Document:
    """The one synchronised unit: recipes, calendar, settings and version.

    Treated as immutable. Operations build a new `Document` rather than
    editing lists in place, so a document handed to the UI or to the gate
    never changes underneath it.
    """

    def __init__(
        self,
        *,
        recipes: list[Recipe] | None = None,
        calendar: list[DayPlan] | None = None,
        settings: AppSettings | None = None,
        version: int = 0,
    ) -> None:
        self.recipes = [] if recipes is None else list(recipes)
        self.calendar = [] if calendar is None else list(calendar)
        self.settings = AppSettings() if settings is None else settings
        self.version = version

    def __repr__(self) -> str:
        return (
            f"<Document(version={self.version}, recipes={len(self.recipes)}, "
            f"calendar={len(self.calendar)})>"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def replace(self, **changes: Any) -> "Document":
        attrs: dict[str, Any] = {
            "recipes": self.recipes,
            "calendar": self.calendar,
            "settings": self.settings,
            "version": self.version,
        }
        attrs.update(changes)
        return Document(**attrs)

    def recipe(self, recipe_id: str | None) -> Recipe | None:
        if recipe_id is None:
            return None
        for recipe in self.recipes:
            if recipe.id == recipe_id:
                return recipe
        return None

    def day(self, date: str) -> DayPlan | None:
        for day in self.calendar:
            if day.date == date:
                return day
        return None

    @classmethod
    def default(cls) -> "Document":
        return cls()

    @classmethod
    def from_dict(cls, data: Any, *, version: int | None = None) -> "Document":
        if not isinstance(data, dict):
            raise DocumentError(f"Document must be an object, got {type(data)}.")
        raw_version = data.get("version", 0) if version is None else version
        if isinstance(raw_version, bool) or not isinstance(raw_version, int):
            raise DocumentError(f"Invalid version: {raw_version!r}")
        if raw_version < 0:
            raise DocumentError(f"Negative version: {raw_version}")
        recipes = data.get("recipes") or []
        calendar = data.get("calendar") or []
        if not isinstance(recipes, list) or not isinstance(calendar, list):
            raise DocumentError("recipes and calendar must be lists.")
        return cls(
            recipes=[Recipe.from_dict(r) for r in recipes],
            calendar=[DayPlan.from_dict(d) for d in calendar],
            settings=AppSettings.from_dict(data.get("settings")),
            version=raw_version,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipes": [r.to_dict() for r in self.recipes],
            "calendar": [d.to_dict() for d in self.calendar],
            "settings": self.settings.to_dict(),
            "version": self.version,
        }

class RecipeError(Exception):
    """Base class for recipe service errors."""


class RecipeNotFound(RecipeError):
    def __init__(self, recipe_id: str):
        super().__init__(f"Recipe {recipe_id} not found")
        self.recipe_id = recipe_id


class TaxonomyNotFound(RecipeError):
    def __init__(self, kind: str, missing: list[int]):
        super().__init__(f"Unknown {kind} id(s): {sorted(missing)}")
        self.kind = kind
        self.missing = missing


class StaleRecipeVersion(RecipeError):
    def __init__(self, recipe_id: str, expected: int, actual: int):
        super().__init__(
            f"Recipe {recipe_id} is at version {actual}, expected {expected}"
        )
        self.recipe_id = recipe_id
        self.expected = expected
        self.actual = actual


class ImageStateError(RecipeError):
    """Main image tag and sub-records disagree."""


class RecipeParseError(RecipeError):
    pass


class StorageUnavailable(RecipeError):
    """Object storage could not issue a signed upload."""

"""Static class → category membership table."""

from collections.abc import Iterable, Sequence

__all__ = ["DEFAULT_CATEGORY", "DEFAULT_CLASS_CATEGORIES", "CategoryCatalog", "category_for", "default_catalog"]

DEFAULT_CATEGORY = "Others"

DEFAULT_CLASS_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Pathology", ("cavity", "lesion", "calculus")),
    ("Non-Pathology", ("rootcanal", "filling", "crown", "sinus", "collimation", "implant")),
    ("Tooth Parts", ("tooth mask", "enamel", "dentin", "pulp", "tooth number", "bone")),
    ("Others", ("impacted tooth", "attrition", "root canal")),
)


class CategoryCatalog:
    """Ordered category table; a class belongs to the first category listing it."""

    def __init__(
        self,
        categories: Sequence[tuple[str, Iterable[str]]] = DEFAULT_CLASS_CATEGORIES,
        default: str = DEFAULT_CATEGORY,
    ) -> None:
        self._categories = tuple((name, frozenset(classes)) for name, classes in categories)
        self.default = default

    @property
    def names(self) -> list[str]:
        """Category names in table order, including the default if not listed."""
        names = [name for name, _ in self._categories]
        if self.default not in names:
            names.append(self.default)
        return names

    def category_for(self, class_name: str) -> str:
        """Return the category of a class, or the default category."""
        for name, classes in self._categories:
            if class_name in classes:
                return name
        return self.default

    def classes_of(self, category: str) -> frozenset[str]:
        """Return the classes statically listed under a category."""
        for name, classes in self._categories:
            if name == category:
                return classes
        return frozenset()


default_catalog = CategoryCatalog()


def category_for(class_name: str) -> str:
    """Return the category of a class using the default table."""
    return default_catalog.category_for(class_name)

"""Category filtering and fuzzy search over file type records."""

from collections.abc import Callable, Iterable
from enum import Enum

from .models import FileTypeRecord, HandlerApp

ConformsTo = Callable[[str, str], bool]


class Category(str, Enum):
    """Sidebar categories a catalog view can be restricted to."""

    ALL = "all"
    NO_DEFAULT = "no_default"
    DOCUMENTS = "documents"
    CODE = "code"
    IMAGES = "images"
    AUDIO = "audio"
    VIDEO = "video"
    ARCHIVES = "archives"

    @property
    def label(self) -> str:
        """Human readable name."""
        return self.value.replace("_", " ").title()

    @property
    def parent_types(self) -> tuple[str, ...]:
        """Type families a record must conform to, empty for structural categories."""
        return _PARENT_TYPES.get(self, ())

    @property
    def is_structural(self) -> bool:
        """Whether the category ignores the record's type."""
        return self in (Category.ALL, Category.NO_DEFAULT)

    @classmethod
    def parse(cls, text: str) -> "Category":
        """Look a category up by value or label, case-insensitively.

        Raises:
            ValueError: If no category matches
        """
        key = text.strip().lower().replace(" ", "_").replace("-", "_")
        for category in cls:
            if category.value == key:
                return category
        choices = ", ".join(c.value for c in cls)
        raise ValueError(f"Unknown category: {text}. Supported categories: {choices}")


_PARENT_TYPES: dict[Category, tuple[str, ...]] = {
    Category.DOCUMENTS: (
        "com.adobe.pdf",
        "public.presentation",
        "public.spreadsheet",
        "public.text",
    ),
    Category.CODE: ("public.source-code",),
    Category.IMAGES: ("public.image",),
    Category.AUDIO: ("public.audio",),
    Category.VIDEO: ("public.movie", "public.video"),
    Category.ARCHIVES: ("public.archive",),
}


def _same_type(uti: str, parent: str) -> bool:
    return uti == parent


def fuzzy_match(candidate: str, query: str) -> bool:
    """Check whether the query's characters appear in order in the candidate.

    Characters need not be contiguous: ``"pdf"`` matches ``"com.adobe.pdf"``
    and ``"tt"`` matches ``"txt"``, but ``"lef"`` does not match ``"file"``.
    An empty query matches everything.
    """
    if not query:
        return True
    position = 0
    for char in candidate:
        if char == query[position]:
            position += 1
            if position == len(query):
                return True
    return False


def normalize_query(query: str) -> str:
    """Lowercase a search query and drop one leading dot."""
    query = query.lower()
    if query.startswith("."):
        query = query[1:]
    return query


def matches_category(
    record: FileTypeRecord, category: Category, conforms_to: ConformsTo | None = None
) -> bool:
    """Check whether a record belongs to a category.

    Records whose type could not be resolved only ever match the structural
    categories.
    """
    if category.is_structural:
        return category is Category.ALL or record.default_handler is None
    if not record.resolved:
        return False
    check = conforms_to or _same_type
    return any(check(record.uti, parent) for parent in category.parent_types)


def matches_search(record: FileTypeRecord, query: str) -> bool:
    """Fuzzy-match a record's extension, type identifier or handler name."""
    query = normalize_query(query)
    if not query:
        return True
    if fuzzy_match(record.extension.lower(), query):
        return True
    if fuzzy_match(record.uti.lower(), query):
        return True
    handler = record.default_handler
    return handler is not None and fuzzy_match(handler.name.lower(), query)


def filter_records(
    records: Iterable[FileTypeRecord],
    category: Category = Category.ALL,
    query: str = "",
    bundle_id: str | None = None,
    conforms_to: ConformsTo | None = None,
) -> list[FileTypeRecord]:
    """Assemble a view of the catalog without modifying it.

    Args:
        records: Catalog records in display order
        category: Category restriction
        query: Fuzzy search text
        bundle_id: Optional default-handler restriction
        conforms_to: Type conformance test for family categories

    Returns:
        Matching records in their original order
    """
    result = []
    for record in records:
        if not matches_category(record, category, conforms_to):
            continue
        if bundle_id is not None and (
            record.default_handler is None or record.default_handler.bundle_id != bundle_id
        ):
            continue
        if not matches_search(record, query):
            continue
        result.append(record)
    return result


def unique_default_handlers(records: Iterable[FileTypeRecord]) -> list[HandlerApp]:
    """List the distinct default handlers of the records, sorted by name."""
    seen: set[str] = set()
    apps: list[HandlerApp] = []
    for record in records:
        handler = record.default_handler
        if handler is not None and handler.bundle_id not in seen:
            seen.add(handler.bundle_id)
            apps.append(handler)
    return sorted(apps, key=lambda app: app.name.casefold())

"""Extension catalog for OpenWith."""

import threading
from collections.abc import Callable
from datetime import datetime

from .filters import Category, filter_records, unique_default_handlers
from .handler_cache import HandlerCache
from .models import CatalogSnapshot, FileTypeRecord, HandlerApp, SetHandlerResult
from .registry.base import HandlerRegistry
from .utils.logging import setup_logger
from .utils.validation import normalize_extension, validate_extension

logger = setup_logger(__name__)

SnapshotObserver = Callable[[CatalogSnapshot], None]


class ExtensionCatalog:
    """Working set of file type records, kept in step with the registry.

    State is published as immutable :class:`CatalogSnapshot` objects. A
    refresh rebuilds the whole record list on a background thread and
    replaces the current snapshot in one step; every other command runs on
    the caller's thread and publishes a patched snapshot.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        handler_cache: HandlerCache | None = None,
    ) -> None:
        """Initialize the catalog.

        Args:
            registry: Registry client used for every read and write
            handler_cache: Optional shared handler cache
        """
        self.registry = registry
        self.handler_cache = handler_cache or HandlerCache(registry)
        self._snapshot = CatalogSnapshot()
        self._lock = threading.Lock()
        self._observers: list[SnapshotObserver] = []

    @property
    def snapshot(self) -> CatalogSnapshot:
        """The most recently published snapshot."""
        return self._snapshot

    @property
    def records(self) -> tuple[FileTypeRecord, ...]:
        """Records of the current snapshot, sorted by extension."""
        return self._snapshot.records

    @property
    def is_loading(self) -> bool:
        """Whether a refresh is in flight."""
        return self._snapshot.is_loading

    def get(self, extension: str) -> FileTypeRecord | None:
        """Find the record for an extension (leading dot and case ignored)."""
        return self._snapshot.get(normalize_extension(extension))

    def subscribe(self, observer: SnapshotObserver) -> Callable[[], None]:
        """Register a callback invoked with every published snapshot.

        Args:
            observer: Callback receiving the new snapshot

        Returns:
            Function that removes the observer
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def refresh(self) -> threading.Thread:
        """Rebuild the catalog from the registry in the background.

        The previous records stay visible, with ``is_loading`` set, until the
        rebuilt list is published. Records added meanwhile are discarded.

        Returns:
            The started refresh thread
        """
        self._update(lambda s: s.model_copy(update={"is_loading": True}))

        thread = threading.Thread(target=self._run_refresh, name="openwith-refresh", daemon=True)
        thread.start()
        logger.info("Catalog refresh started")
        return thread

    def add_custom_extension(self, extension: str) -> FileTypeRecord | None:
        """Add an extension the registry did not report.

        Args:
            extension: Extension, with or without leading dot

        Returns:
            The new record, or None if the extension is invalid or present
        """
        ext = normalize_extension(extension)
        valid, error = validate_extension(ext)
        if not valid:
            logger.warning(f"Rejected custom extension {extension!r}: {error}")
            return None

        if self._snapshot.get(ext) is not None:
            logger.info(f"Extension .{ext} is already in the catalog")
            return None

        record = self._build_record(ext)
        self.handler_cache.handlers_for(record.uti)

        added = False

        def insert(snapshot: CatalogSnapshot) -> CatalogSnapshot | None:
            nonlocal added
            if snapshot.get(ext) is not None:
                return None
            added = True
            records = sorted((*snapshot.records, record), key=lambda r: r.extension)
            return snapshot.model_copy(update={"records": tuple(records)})

        self._update(insert)
        if not added:
            return None

        logger.info(f"Added custom extension .{ext} ({record.uti})")
        return record

    def set_handler(self, app: HandlerApp, extension: str) -> SetHandlerResult:
        """Make an application the default handler for an extension.

        The registry is written first; the catalog record is only patched
        once the registry acknowledges the change.

        Args:
            app: Application to make default
            extension: Target extension

        Returns:
            Outcome of the change
        """
        ext = normalize_extension(extension)

        if not self.registry.set_default_handler(app.bundle_id, ext):
            return SetHandlerResult(
                extension=ext,
                bundle_id=app.bundle_id,
                success=False,
                message=f"Registry rejected {app.name} as default for .{ext}",
            )

        def patch(snapshot: CatalogSnapshot) -> CatalogSnapshot | None:
            if snapshot.get(ext) is None:
                return None
            records = tuple(
                r.with_default_handler(app) if r.extension == ext else r
                for r in snapshot.records
            )
            return snapshot.model_copy(update={"records": records})

        self._update(patch)
        return SetHandlerResult(
            extension=ext,
            bundle_id=app.bundle_id,
            success=True,
            message=f"{app.name} is now the default for .{ext}",
        )

    def handlers_for(self, uti: str) -> list[HandlerApp]:
        """Get the applications able to open a type (cached)."""
        return self.handler_cache.handlers_for(uti)

    def view(
        self,
        category: Category = Category.ALL,
        query: str = "",
        bundle_id: str | None = None,
    ) -> list[FileTypeRecord]:
        """Filter the current records by category, search text and handler."""
        return filter_records(
            self.records,
            category=category,
            query=query,
            bundle_id=bundle_id,
            conforms_to=self.registry.conforms_to,
        )

    def applications(self) -> list[HandlerApp]:
        """List the distinct default handlers across the catalog."""
        return unique_default_handlers(self.records)

    def _build_record(self, extension: str) -> FileTypeRecord:
        return FileTypeRecord.for_extension(
            extension,
            uti=self.registry.resolve_type(extension),
            default_handler=self.registry.default_handler(extension),
        )

    def _load_records(self) -> tuple[FileTypeRecord, ...]:
        extensions = sorted(self.registry.discover_all_extensions())
        return tuple(self._build_record(ext) for ext in extensions)

    def _run_refresh(self) -> None:
        try:
            records = self._load_records()
        except Exception as e:
            logger.error(f"Catalog refresh failed: {e}")
            self._update(lambda s: s.model_copy(update={"is_loading": False}))
            return

        self._update(
            lambda s: s.model_copy(
                update={
                    "records": records,
                    "is_loading": False,
                    "refreshed_at": datetime.now(),
                }
            )
        )
        logger.info(f"Catalog refresh complete: {len(records)} file types")

    def _update(
        self, change: Callable[[CatalogSnapshot], CatalogSnapshot | None]
    ) -> CatalogSnapshot:
        """Apply a change to the current snapshot and publish the result.

        Args:
            change: Function returning the new snapshot, or None for no change

        Returns:
            The snapshot current after the update
        """
        with self._lock:
            updated = change(self._snapshot)
            if updated is None:
                return self._snapshot
            updated = updated.model_copy(update={"generation": self._snapshot.generation + 1})
            self._snapshot = updated

        for observer in list(self._observers):
            try:
                observer(updated)
            except Exception as e:
                logger.error(f"Catalog observer failed: {e}")
        return updated

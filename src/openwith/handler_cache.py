"""Lazily populated cache of handlers per type identifier."""

from .models import HandlerApp
from .registry.base import HandlerRegistry
from .utils.logging import setup_logger

logger = setup_logger(__name__)


class HandlerCache:
    """Cache-aside map from type identifier to capable applications.

    An entry is filled at most once and never invalidated, so a registry
    change after the first lookup stays invisible for the process lifetime.
    """

    def __init__(self, registry: HandlerRegistry) -> None:
        """Initialize the cache.

        Args:
            registry: Registry queried on a cache miss
        """
        self.registry = registry
        self._entries: dict[str, list[HandlerApp]] = {}

    def handlers_for(self, uti: str) -> list[HandlerApp]:
        """Get the applications able to open a type.

        Args:
            uti: Type identifier

        Returns:
            Cached or freshly queried handler list
        """
        if uti in self._entries:
            return list(self._entries[uti])

        handlers = self.registry.all_handlers(uti)
        self._entries[uti] = list(handlers)
        logger.debug(f"Cached {len(handlers)} handlers for {uti}")
        return list(handlers)

    def is_cached(self, uti: str) -> bool:
        """Check whether a type has already been queried."""
        return uti in self._entries

    def __len__(self) -> int:
        return len(self._entries)

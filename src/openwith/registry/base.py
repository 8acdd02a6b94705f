"""Base handler registry interface."""

from abc import ABC, abstractmethod

from ..models import HandlerApp


class HandlerRegistry(ABC):
    """Boundary between OpenWith and the host's handler registry.

    Every operation degrades to an absent, empty or False result instead of
    raising: an unresolvable extension, a rejected write or a failed
    discovery are ordinary outcomes.
    """

    @abstractmethod
    def resolve_type(self, extension: str) -> str | None:
        """Map an extension to its canonical type identifier.

        Args:
            extension: Lowercase extension without leading dot

        Returns:
            Type identifier, or None if the platform has no mapping
        """
        pass

    @abstractmethod
    def conforms_to(self, uti: str, parent: str) -> bool:
        """Check whether a type is, or conforms to, a parent type.

        Args:
            uti: Type identifier to test
            parent: Parent type identifier

        Returns:
            True if ``uti`` conforms to ``parent``
        """
        pass

    @abstractmethod
    def default_handler(self, extension: str) -> HandlerApp | None:
        """Get the default handler (all roles) for an extension.

        Args:
            extension: Lowercase extension without leading dot

        Returns:
            Default application, or None if unresolvable or unassigned
        """
        pass

    @abstractmethod
    def all_handlers(self, uti: str) -> list[HandlerApp]:
        """List every application registered for any role on a type.

        Args:
            uti: Type identifier

        Returns:
            Registered applications, empty if none
        """
        pass

    @abstractmethod
    def set_default_handler(self, bundle_id: str, extension: str) -> bool:
        """Make an application the default handler (all roles) for an extension.

        Args:
            bundle_id: Bundle identifier of the application
            extension: Lowercase extension without leading dot

        Returns:
            True only if the registry acknowledged the change
        """
        pass

    @abstractmethod
    def discover_all_extensions(self) -> set[str]:
        """Enumerate every extension the registry knows about.

        Returns:
            Lowercase extensions, empty if discovery failed
        """
        pass

"""Host handler registry clients."""

from ..models import OpenWithConfig
from .base import HandlerRegistry
from .dump_parser import TypeTable, extract_extensions, parse_type_table
from .launchservices import LaunchServicesRegistry

__all__ = [
    "HandlerRegistry",
    "LaunchServicesRegistry",
    "TypeTable",
    "extract_extensions",
    "parse_type_table",
    "create_default_registry",
]


def create_default_registry(config: OpenWithConfig | None = None) -> HandlerRegistry:
    """Create the registry client for the host platform.

    Args:
        config: Optional runtime configuration

    Returns:
        LaunchServices-backed registry
    """
    return LaunchServicesRegistry(config or OpenWithConfig())

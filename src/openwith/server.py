"""MCP server implementation for OpenWith."""

from typing import Any

from fastmcp import FastMCP

from .catalog import ExtensionCatalog
from .filters import Category
from .models import FileTypeRecord, HandlerApp, OpenWithConfig
from .registry import create_default_registry
from .registry.base import HandlerRegistry
from .utils.logging import setup_logger
from .utils.validation import validate_command_available

logger = setup_logger(__name__)

# Initialize server
mcp = FastMCP("OpenWith")

# Global state (initialized in main)
config: OpenWithConfig
registry: HandlerRegistry
catalog: ExtensionCatalog


def initialize_managers(
    server_config: OpenWithConfig | None = None,
    handler_registry: HandlerRegistry | None = None,
    refresh: bool = True,
) -> ExtensionCatalog:
    """Initialize the registry client and the catalog.

    Args:
        server_config: Optional runtime configuration
        handler_registry: Optional registry client, the LaunchServices one by default
        refresh: Start the initial catalog refresh

    Returns:
        The initialized catalog
    """
    global config, registry, catalog

    config = server_config or OpenWithConfig()

    if handler_registry is None:
        for tool in (config.lsregister_path, config.duti_path, config.mdfind_path):
            available, error = validate_command_available(str(tool))
            if not available:
                logger.warning(error)
        handler_registry = create_default_registry(config)

    registry = handler_registry
    catalog = ExtensionCatalog(registry)

    if refresh:
        catalog.refresh()

    logger.info("OpenWith MCP server initialized")
    return catalog


def _record_dict(record: FileTypeRecord) -> dict[str, Any]:
    return record.model_dump(mode="json")


def _require_record(extension: str) -> FileTypeRecord:
    record = catalog.get(extension)
    if record is None:
        raise KeyError(f"Extension '{extension}' is not in the catalog")
    return record


# Browsing Tools


@mcp.tool()
def list_file_types(
    category: str = "all",
    query: str = "",
    bundle_id: str | None = None,
) -> list[dict[str, Any]]:
    """List known file types with their default applications.

    Args:
        category: One of all, no_default, documents, code, images, audio,
            video, archives
        query: Fuzzy search over extension, type identifier and app name
            (e.g. "pdf", ".md", "vsc")
        bundle_id: Only list types whose default app has this bundle id

    Returns:
        Matching file types sorted by extension

    Examples:
        >>> list_file_types(category="code", query="py")
        >>> list_file_types(category="no_default")
    """
    records = catalog.view(Category.parse(category), query, bundle_id)
    return [_record_dict(r) for r in records]


@mcp.tool()
def get_file_type(extension: str) -> dict[str, Any]:
    """Get one file type by extension.

    Args:
        extension: Extension with or without leading dot

    Returns:
        File type details
    """
    return _record_dict(_require_record(extension))


@mcp.tool()
def list_categories() -> list[dict[str, Any]]:
    """List the categories accepted by list_file_types.

    Returns:
        Category names, labels and the type families they cover
    """
    return [
        {"name": c.value, "label": c.label, "parent_types": list(c.parent_types)}
        for c in Category
    ]


@mcp.tool()
def list_applications() -> list[dict[str, Any]]:
    """List every application that is currently a default handler.

    Returns:
        Applications sorted by name, with the number of types each one opens
    """
    counts: dict[str, int] = {}
    for record in catalog.records:
        if record.default_handler is not None:
            bundle = record.default_handler.bundle_id
            counts[bundle] = counts.get(bundle, 0) + 1

    return [
        {**app.model_dump(mode="json"), "file_type_count": counts.get(app.bundle_id, 0)}
        for app in catalog.applications()
    ]


@mcp.tool()
def get_handlers(extension: str) -> list[dict[str, Any]]:
    """List the applications registered to open a file type.

    Args:
        extension: Extension with or without leading dot

    Returns:
        Candidate applications, flagged when they are the current default
    """
    record = _require_record(extension)
    current = record.default_handler
    return [
        {**app.model_dump(mode="json"), "is_default": current is not None and app == current}
        for app in catalog.handlers_for(record.uti)
    ]


@mcp.tool()
def catalog_status() -> dict[str, Any]:
    """Report whether the catalog is loading and how large it is.

    Returns:
        Loading flag, record count, generation and last refresh time
    """
    return _status()


def _status() -> dict[str, Any]:
    snapshot = catalog.snapshot
    return {
        "is_loading": snapshot.is_loading,
        "file_type_count": len(snapshot.records),
        "generation": snapshot.generation,
        "refreshed_at": snapshot.refreshed_at.isoformat() if snapshot.refreshed_at else None,
    }


# Change Tools


@mcp.tool()
def refresh_file_types(wait: bool = False) -> dict[str, Any]:
    """Re-read every file type from the system registry.

    Records added with add_extension are dropped unless the registry
    reports them.

    Args:
        wait: Block until the refresh has finished

    Returns:
        Catalog status
    """
    thread = catalog.refresh()
    if wait:
        thread.join()
    return _status()


@mcp.tool()
def add_extension(extension: str) -> dict[str, Any]:
    """Add a file extension the registry did not report.

    Args:
        extension: Extension with or without leading dot (e.g. "log", ".nfo")

    Returns:
        The added file type
    """
    record = catalog.add_custom_extension(extension)
    if record is None:
        if catalog.get(extension) is not None:
            raise ValueError(f"Extension '{extension}' is already in the catalog")
        raise ValueError(f"Invalid extension: '{extension}'")
    return _record_dict(record)


@mcp.tool()
def set_default_handler(extension: str, bundle_id: str) -> dict[str, Any]:
    """Change the application that opens a file type by default.

    Args:
        extension: Extension with or without leading dot
        bundle_id: Bundle identifier of the new default (see get_handlers)

    Returns:
        Outcome of the change
    """
    record = _require_record(extension)
    app = next(
        (h for h in catalog.handlers_for(record.uti) if h.bundle_id == bundle_id),
        None,
    ) or HandlerApp.from_bundle_id(bundle_id)

    result = catalog.set_handler(app, record.extension)
    if not result.success:
        logger.warning(result.message)
    return result.model_dump()

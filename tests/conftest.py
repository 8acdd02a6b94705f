"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from openwith.catalog import ExtensionCatalog
from openwith.handler_cache import HandlerCache
from openwith.models import HandlerApp, OpenWithConfig
from openwith.registry.base import HandlerRegistry
from openwith.registry.dump_parser import TypeTable

TEXT_EDIT = HandlerApp.from_bundle_id(
    "com.apple.TextEdit", path="/System/Applications/TextEdit.app"
)
PREVIEW = HandlerApp.from_bundle_id("com.apple.Preview", path="/System/Applications/Preview.app")
VS_CODE = HandlerApp.from_bundle_id(
    "com.microsoft.VSCode", path="/Applications/Visual Studio Code.app"
)


class FakeRegistry(HandlerRegistry):
    """In-memory registry standing in for LaunchServices."""

    def __init__(self) -> None:
        self.types = TypeTable()
        self.types.add_type("public.data", [], [])
        self.types.add_type("public.text", ["public.data"], [])
        self.types.add_type("public.plain-text", ["public.text"], ["txt"])
        self.types.add_type("public.source-code", ["public.plain-text"], [])
        self.types.add_type("public.python-script", ["public.source-code"], ["py"])
        self.types.add_type("com.adobe.pdf", ["public.data"], ["pdf"])
        self.types.add_type("public.image", ["public.data"], [])
        self.types.add_type("public.png", ["public.image"], ["png"])
        self.types.add_type("public.zip-archive", ["public.archive"], ["zip"])
        self.extensions: set[str] = {"pdf", "txt", "py", "png"}
        self.defaults: dict[str, HandlerApp] = {"txt": TEXT_EDIT, "png": PREVIEW}
        self.handlers: dict[str, list[HandlerApp]] = {
            "public.plain-text": [TEXT_EDIT, VS_CODE],
            "com.adobe.pdf": [PREVIEW],
        }
        self.accept_writes = True
        self.discovery_calls = 0
        self.all_handlers_calls: list[str] = []
        self.set_calls: list[tuple[str, str]] = []

    def resolve_type(self, extension: str) -> str | None:
        return self.types.resolve(extension)

    def conforms_to(self, uti: str, parent: str) -> bool:
        return self.types.conforms_to(uti, parent)

    def default_handler(self, extension: str) -> HandlerApp | None:
        if self.resolve_type(extension) is None:
            return None
        return self.defaults.get(extension)

    def all_handlers(self, uti: str) -> list[HandlerApp]:
        self.all_handlers_calls.append(uti)
        return list(self.handlers.get(uti, []))

    def set_default_handler(self, bundle_id: str, extension: str) -> bool:
        self.set_calls.append((bundle_id, extension))
        if not self.accept_writes or self.resolve_type(extension) is None:
            return False
        self.defaults[extension] = HandlerApp.from_bundle_id(bundle_id)
        return True

    def discover_all_extensions(self) -> set[str]:
        self.discovery_calls += 1
        return set(self.extensions)


@pytest.fixture
def fixtures_dir() -> Path:
    """Get the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def dump_text(fixtures_dir: Path) -> str:
    """Captured ``lsregister -dump`` output."""
    return (fixtures_dir / "lsregister_dump.txt").read_text(encoding="utf-8")


@pytest.fixture
def fake_registry() -> FakeRegistry:
    """Create an in-memory registry."""
    return FakeRegistry()


@pytest.fixture
def handler_cache(fake_registry: FakeRegistry) -> HandlerCache:
    """Create a handler cache over the fake registry."""
    return HandlerCache(fake_registry)


@pytest.fixture
def catalog(fake_registry: FakeRegistry) -> ExtensionCatalog:
    """Create an empty catalog over the fake registry."""
    return ExtensionCatalog(fake_registry)


@pytest.fixture
def loaded_catalog(catalog: ExtensionCatalog) -> ExtensionCatalog:
    """Create a catalog that has completed one refresh."""
    catalog.refresh().join(timeout=5)
    return catalog


@pytest.fixture
def server_config(tmp_path: Path) -> OpenWithConfig:
    """Create a configuration pointing at fake tool paths."""
    return OpenWithConfig(
        lsregister_path=tmp_path / "lsregister",
        duti_path=tmp_path / "duti",
        mdfind_path=tmp_path / "mdfind",
        command_timeout=5,
    )

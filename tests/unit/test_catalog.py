"""Tests for the extension catalog."""

import threading

import pytest

from openwith.catalog import ExtensionCatalog
from openwith.filters import Category
from openwith.models import CatalogSnapshot, HandlerApp

VS_CODE = HandlerApp.from_bundle_id("com.microsoft.VSCode", path="/Applications/Visual Studio Code.app")


class TestRefresh:
    """Tests for ExtensionCatalog.refresh."""

    def test_refresh_builds_sorted_records(self, loaded_catalog: ExtensionCatalog):
        """Test that refresh publishes one record per discovered extension."""
        assert [r.extension for r in loaded_catalog.records] == ["pdf", "png", "py", "txt"]
        assert not loaded_catalog.is_loading
        assert loaded_catalog.snapshot.refreshed_at is not None

    def test_refresh_resolves_types_and_defaults(self, loaded_catalog: ExtensionCatalog):
        """Test per-extension resolution."""
        txt = loaded_catalog.get("txt")
        assert txt.uti == "public.plain-text"
        assert txt.default_handler.bundle_id == "com.apple.TextEdit"
        assert loaded_catalog.get("pdf").default_handler is None
        assert loaded_catalog.get(".PY").uti == "public.python-script"

    def test_loading_flag_while_in_flight(self, catalog: ExtensionCatalog, fake_registry):
        """Test that previous contents stay visible with is_loading set."""
        release = threading.Event()
        original = fake_registry.discover_all_extensions

        def blocking_discovery() -> set[str]:
            release.wait(timeout=5)
            return original()

        fake_registry.discover_all_extensions = blocking_discovery
        thread = catalog.refresh()
        try:
            assert catalog.is_loading
            assert catalog.records == ()
        finally:
            release.set()
            thread.join(timeout=5)

        assert not catalog.is_loading
        assert len(catalog.records) == 4

    def test_refresh_replaces_custom_extensions(self, loaded_catalog: ExtensionCatalog):
        """Test that refresh is a destructive rebuild."""
        loaded_catalog.add_custom_extension("log")
        assert loaded_catalog.get("log") is not None

        loaded_catalog.refresh().join(timeout=5)

        assert loaded_catalog.get("log") is None

    def test_refresh_failure_keeps_records(self, loaded_catalog: ExtensionCatalog, fake_registry):
        """Test that an unexpected registry error does not wipe the catalog."""

        def broken_discovery() -> set[str]:
            raise RuntimeError("registry unavailable")

        fake_registry.discover_all_extensions = broken_discovery
        loaded_catalog.refresh().join(timeout=5)

        assert len(loaded_catalog.records) == 4
        assert not loaded_catalog.is_loading

    def test_empty_discovery(self, catalog: ExtensionCatalog, fake_registry):
        """Test that failed discovery shows an empty catalog."""
        fake_registry.extensions = set()
        catalog.refresh().join(timeout=5)
        assert catalog.records == ()
        assert not catalog.is_loading

    def test_set_handler_patch_overwritten_by_refresh(
        self, loaded_catalog: ExtensionCatalog, fake_registry
    ):
        """Test that a completed refresh wins over an earlier patch."""
        loaded_catalog.set_handler(VS_CODE, "txt")
        assert loaded_catalog.get("txt").default_handler == VS_CODE

        fake_registry.defaults["txt"] = HandlerApp.from_bundle_id("com.example.Other")
        loaded_catalog.refresh().join(timeout=5)

        assert loaded_catalog.get("txt").default_handler.bundle_id == "com.example.Other"


class TestAddCustomExtension:
    """Tests for ExtensionCatalog.add_custom_extension."""

    def test_add_unresolvable_extension(self, loaded_catalog: ExtensionCatalog):
        """Test adding an extension unknown to the registry."""
        record = loaded_catalog.add_custom_extension(".log")
        assert record is not None
        assert record.extension == "log"
        assert record.uti == "dyn.log"
        assert not record.resolved
        assert record.default_handler is None
        assert [r.extension for r in loaded_catalog.records] == ["log", "pdf", "png", "py", "txt"]

    def test_add_resolvable_extension(self, catalog: ExtensionCatalog, fake_registry):
        """Test adding a known type the discovery missed."""
        record = catalog.add_custom_extension("zip")
        assert record.uti == "public.zip-archive"
        assert record.resolved

    def test_add_primes_handler_cache(self, catalog: ExtensionCatalog, fake_registry):
        """Test that adding loads the candidate handlers once."""
        catalog.add_custom_extension("txt")
        assert catalog.handler_cache.is_cached("public.plain-text")
        catalog.handlers_for("public.plain-text")
        assert fake_registry.all_handlers_calls == ["public.plain-text"]

    def test_duplicate_after_normalization(self, loaded_catalog: ExtensionCatalog):
        """Test that txt and .txt are the same extension."""
        size = len(loaded_catalog.records)
        assert loaded_catalog.add_custom_extension("txt") is None
        assert loaded_catalog.add_custom_extension(".txt") is None
        assert loaded_catalog.add_custom_extension(" .TXT ") is None
        assert len(loaded_catalog.records) == size

    def test_add_twice(self, catalog: ExtensionCatalog):
        """Test that a custom extension cannot be added twice."""
        assert catalog.add_custom_extension("txt") is not None
        assert catalog.add_custom_extension(".txt") is None
        assert len(catalog.records) == 1

    @pytest.mark.parametrize("extension", ["", ".", "   ", "tar.gz", "a b"])
    def test_invalid_extensions_rejected(self, catalog: ExtensionCatalog, extension: str):
        """Test that empty or malformed extensions are rejected."""
        assert catalog.add_custom_extension(extension) is None
        assert catalog.records == ()

    def test_extensions_stay_unique(self, catalog: ExtensionCatalog):
        """Test uniqueness across mixed adds and refreshes."""
        catalog.add_custom_extension("md")
        catalog.refresh().join(timeout=5)
        catalog.add_custom_extension("PDF")
        catalog.add_custom_extension("md")
        catalog.add_custom_extension(".md")

        extensions = [r.extension for r in catalog.records]
        assert len(extensions) == len(set(extensions))
        assert extensions == sorted(extensions)


class TestSetHandler:
    """Tests for ExtensionCatalog.set_handler."""

    def test_success_patches_record(self, loaded_catalog: ExtensionCatalog, fake_registry):
        """Test that an acknowledged write updates the record."""
        result = loaded_catalog.set_handler(VS_CODE, ".txt")

        assert result.success
        assert result.extension == "txt"
        assert fake_registry.set_calls == [("com.microsoft.VSCode", "txt")]
        record = loaded_catalog.get("txt")
        assert record.default_handler == VS_CODE
        assert record.default_handler.name == "Visual Studio Code"
        assert record.uti == "public.plain-text"

    def test_failure_leaves_record_unchanged(
        self, loaded_catalog: ExtensionCatalog, fake_registry
    ):
        """Test that a rejected write changes nothing."""
        fake_registry.accept_writes = False
        before = loaded_catalog.get("txt")
        snapshot = loaded_catalog.snapshot

        result = loaded_catalog.set_handler(VS_CODE, "txt")

        assert not result.success
        assert "rejected" in result.message
        assert loaded_catalog.get("txt") is before
        assert loaded_catalog.get("txt").model_dump() == before.model_dump()
        assert loaded_catalog.snapshot is snapshot

    def test_unresolvable_extension_fails(self, loaded_catalog: ExtensionCatalog):
        """Test that a dyn placeholder cannot be assigned."""
        loaded_catalog.add_custom_extension("log")
        result = loaded_catalog.set_handler(VS_CODE, "log")
        assert not result.success
        assert loaded_catalog.get("log").default_handler is None

    def test_success_for_extension_not_in_catalog(
        self, catalog: ExtensionCatalog, fake_registry
    ):
        """Test that the registry is written even without a local record."""
        result = catalog.set_handler(VS_CODE, "txt")
        assert result.success
        assert catalog.records == ()
        assert fake_registry.defaults["txt"].bundle_id == "com.microsoft.VSCode"


class TestObservers:
    """Tests for snapshot publication."""

    def test_observer_receives_snapshots(self, catalog: ExtensionCatalog):
        """Test that every publish reaches subscribers in order."""
        received: list[CatalogSnapshot] = []
        catalog.subscribe(received.append)

        catalog.refresh().join(timeout=5)

        assert received[0].is_loading
        assert not received[-1].is_loading
        assert len(received[-1].records) == 4
        generations = [s.generation for s in received]
        assert generations == sorted(generations)
        assert received[-1] is catalog.snapshot

    def test_unsubscribe(self, catalog: ExtensionCatalog):
        """Test that unsubscribed observers stop receiving snapshots."""
        received: list[CatalogSnapshot] = []
        unsubscribe = catalog.subscribe(received.append)
        catalog.add_custom_extension("txt")
        unsubscribe()
        catalog.add_custom_extension("pdf")
        assert len(received) == 1

    def test_failing_observer_does_not_block_others(self, catalog: ExtensionCatalog):
        """Test that one broken observer does not stop publication."""
        received: list[CatalogSnapshot] = []

        def broken(snapshot: CatalogSnapshot) -> None:
            raise RuntimeError("boom")

        catalog.subscribe(broken)
        catalog.subscribe(received.append)
        catalog.add_custom_extension("txt")

        assert len(received) == 1
        assert catalog.get("txt") is not None


class TestViews:
    """Tests for filtered views over the catalog."""

    def test_code_category_uses_registry_conformance(self, loaded_catalog: ExtensionCatalog):
        """Test that categories resolve through the registry's type taxonomy."""
        assert [r.extension for r in loaded_catalog.view(Category.CODE)] == ["py"]
        assert [r.extension for r in loaded_catalog.view(Category.DOCUMENTS)] == ["pdf", "py", "txt"]
        assert [r.extension for r in loaded_catalog.view(Category.IMAGES)] == ["png"]

    def test_no_default_view(self, loaded_catalog: ExtensionCatalog):
        """Test the no_default view."""
        assert [r.extension for r in loaded_catalog.view(Category.NO_DEFAULT)] == ["pdf", "py"]

    def test_search_view(self, loaded_catalog: ExtensionCatalog):
        """Test searching by handler name."""
        assert [r.extension for r in loaded_catalog.view(query="preview")] == ["png"]

    def test_view_does_not_mutate(self, loaded_catalog: ExtensionCatalog):
        """Test that views leave the catalog whole."""
        loaded_catalog.view(Category.CODE, "zzz")
        assert len(loaded_catalog.records) == 4

    def test_applications(self, loaded_catalog: ExtensionCatalog):
        """Test the distinct default handlers."""
        assert [a.name for a in loaded_catalog.applications()] == ["Preview", "TextEdit"]

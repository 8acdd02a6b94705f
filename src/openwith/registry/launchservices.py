"""LaunchServices handler registry for macOS."""

import subprocess
import threading
import time

from ..models import CommandResult, HandlerApp, OpenWithConfig
from ..utils.logging import setup_logger
from .base import HandlerRegistry
from .dump_parser import TypeTable, extract_extensions, parse_type_table

logger = setup_logger(__name__)

ALL_ROLES = "all"


class LaunchServicesRegistry(HandlerRegistry):
    """Handler registry backed by the macOS LaunchServices database.

    Reads and writes go through command-line tools:

    - ``lsregister -dump`` for discovery and the extension/type table
    - ``duti`` to read and set role handlers
    - ``mdfind`` to locate an application bundle from its identifier
    """

    def __init__(self, config: OpenWithConfig) -> None:
        """Initialize the registry.

        Args:
            config: Runtime configuration holding tool paths and timeouts
        """
        self.config = config
        self._types: TypeTable | None = None
        self._types_lock = threading.Lock()
        self._app_paths: dict[str, str | None] = {}

    # Type resolution

    def resolve_type(self, extension: str) -> str | None:
        return self._type_table().resolve(extension)

    def conforms_to(self, uti: str, parent: str) -> bool:
        return self._type_table().conforms_to(uti, parent)

    # Role handlers

    def default_handler(self, extension: str) -> HandlerApp | None:
        uti = self.resolve_type(extension)
        if uti is None:
            return None

        result = self._run([str(self.config.duti_path), "-d", uti])
        if not result.ok:
            logger.debug(f"No default handler for .{extension} ({uti}): {result.stderr.strip()}")
            return None

        bundle_id = next((line.strip() for line in result.stdout.splitlines() if line.strip()), "")
        if not bundle_id:
            return None
        return self._app(bundle_id)

    def all_handlers(self, uti: str) -> list[HandlerApp]:
        result = self._run([str(self.config.duti_path), "-l", uti])
        if not result.ok:
            logger.debug(f"No handlers registered for {uti}: {result.stderr.strip()}")
            return []

        handlers: list[HandlerApp] = []
        seen: set[str] = set()
        for line in result.stdout.splitlines():
            bundle_id = line.strip()
            if bundle_id and bundle_id not in seen:
                seen.add(bundle_id)
                handlers.append(self._app(bundle_id))
        return handlers

    def set_default_handler(self, bundle_id: str, extension: str) -> bool:
        uti = self.resolve_type(extension)
        if uti is None:
            logger.warning(f"Cannot set handler for .{extension}: no type mapping")
            return False

        result = self._run([str(self.config.duti_path), "-s", bundle_id, uti, ALL_ROLES])
        if not result.ok:
            logger.warning(
                f"Registry rejected {bundle_id} for {uti} "
                f"(exit {result.exit_code}): {result.stderr.strip()}"
            )
            return False

        logger.info(f"Set {bundle_id} as default handler for .{extension} ({uti})")
        return True

    # Discovery

    def discover_all_extensions(self) -> set[str]:
        result = self._run([str(self.config.lsregister_path), "-dump"])
        if not result.ok:
            logger.warning(
                f"Extension discovery failed (exit {result.exit_code}): {result.stderr.strip()}"
            )
            return set()

        table = parse_type_table(result.stdout)
        with self._types_lock:
            self._types = table

        extensions = extract_extensions(result.stdout, self.config.max_extension_length)
        logger.info(f"Discovered {len(extensions)} extensions and {len(table)} types")
        return extensions

    # Private

    def _type_table(self) -> TypeTable:
        """Get the type table, dumping the registry on first use."""
        with self._types_lock:
            if self._types is None:
                result = self._run([str(self.config.lsregister_path), "-dump"])
                if result.ok:
                    self._types = parse_type_table(result.stdout)
                else:
                    logger.warning("Registry dump failed, extensions will not resolve to types")
                    self._types = TypeTable()
            return self._types

    def _app(self, bundle_id: str) -> HandlerApp:
        """Build a HandlerApp, locating its bundle once per identifier."""
        if bundle_id not in self._app_paths:
            self._app_paths[bundle_id] = self._locate_app(bundle_id)
        return HandlerApp.from_bundle_id(bundle_id, path=self._app_paths[bundle_id])

    def _locate_app(self, bundle_id: str) -> str | None:
        """Find the application bundle path for a bundle identifier."""
        if "'" in bundle_id or '"' in bundle_id:
            return None

        query = f"kMDItemCFBundleIdentifier == '{bundle_id}'"
        result = self._run([str(self.config.mdfind_path), query])
        if not result.ok:
            return None

        for line in result.stdout.splitlines():
            path = line.strip()
            if path.endswith(".app"):
                return path
        return None

    def _run(self, args: list[str]) -> CommandResult:
        """Run a registry tool and capture its output.

        Args:
            args: Command and arguments

        Returns:
            Command result; failures to launch or timeouts are reported as a
            negative exit code. Output that is not valid UTF-8 is decoded
            with replacement characters.
        """
        start_time = time.time()

        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.config.command_timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"Command timed out after {self.config.command_timeout}s: {args[0]}")
            return CommandResult(
                exit_code=-1,
                stdout="",
                stderr=f"Command timeout ({self.config.command_timeout} seconds)",
                duration_seconds=time.time() - start_time,
            )
        except OSError as e:
            logger.warning(f"Failed to run {args[0]}: {e}")
            return CommandResult(
                exit_code=-1,
                stdout="",
                stderr=str(e),
                duration_seconds=time.time() - start_time,
            )

        return CommandResult(
            exit_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            duration_seconds=time.time() - start_time,
        )

"""Core data models for OpenWith."""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

LSREGISTER_PATH = Path(
    "/System/Library/Frameworks/CoreServices.framework/Frameworks/"
    "LaunchServices.framework/Support/lsregister"
)
HOMEBREW_DUTI_PATH = Path("/opt/homebrew/bin/duti")
MDFIND_PATH = Path("/usr/bin/mdfind")

DYNAMIC_UTI_PREFIX = "dyn."


def _default_duti_path() -> Path:
    found = shutil.which("duti")
    return Path(found) if found else HOMEBREW_DUTI_PATH


class HandlerApp(BaseModel):
    """An installed application capable of opening files.

    Two instances with the same bundle identifier are the same application,
    whatever their name or path say.
    """

    model_config = ConfigDict(frozen=True)

    bundle_id: str = Field(description="Stable bundle identifier")
    name: str = Field(description="Display name")
    path: Path | None = Field(default=None, description="Application bundle path, if resolvable")

    @classmethod
    def from_bundle_id(
        cls, bundle_id: str, path: Path | str | None = None, name: str | None = None
    ) -> "HandlerApp":
        """Build an application record from its bundle identifier.

        The display name comes from the bundle path when known
        (``/Applications/Safari.app`` -> ``Safari``), otherwise from the last
        component of the bundle identifier (``com.apple.Safari`` -> ``Safari``).

        Args:
            bundle_id: Bundle identifier
            path: Optional application path
            name: Optional explicit display name

        Returns:
            HandlerApp instance
        """
        app_path = Path(path) if path is not None else None
        if name is None:
            if app_path is not None:
                name = app_path.name.removesuffix(".app")
            else:
                name = bundle_id.split(".")[-1] or bundle_id
        return cls(bundle_id=bundle_id, name=name, path=app_path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HandlerApp):
            return NotImplemented
        return self.bundle_id == other.bundle_id

    def __hash__(self) -> int:
        return hash(self.bundle_id)


class FileTypeRecord(BaseModel):
    """One file extension known to the system."""

    model_config = ConfigDict(frozen=True)

    extension: str = Field(description="Lowercase extension without leading dot")
    uti: str = Field(description="Canonical type identifier or dyn.<extension> placeholder")
    resolved: bool = Field(default=True, description="Whether uti came from the platform")
    display_name: str = Field(default="", description="Human readable name")
    default_handler: HandlerApp | None = Field(default=None, description="Current default app")

    @model_validator(mode="before")
    @classmethod
    def fill_defaults(cls, data: Any) -> Any:
        """Normalize the extension and derive uti and display name when omitted."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        extension = data.get("extension")
        if isinstance(extension, str):
            extension = extension.strip().removeprefix(".").lower()
            data["extension"] = extension
            if not data.get("uti"):
                data["uti"] = f"{DYNAMIC_UTI_PREFIX}{extension}"
                data["resolved"] = False
            if not data.get("display_name"):
                data["display_name"] = extension.upper()
        return data

    @field_validator("extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        """Reject empty extensions."""
        if not v:
            raise ValueError("Extension must not be empty")
        return v

    @classmethod
    def for_extension(
        cls,
        extension: str,
        uti: str | None = None,
        display_name: str | None = None,
        default_handler: HandlerApp | None = None,
    ) -> "FileTypeRecord":
        """Create a record, using the dyn.<extension> placeholder when uti is None."""
        return cls(
            extension=extension,
            uti=uti or "",
            resolved=uti is not None,
            display_name=display_name or "",
            default_handler=default_handler,
        )

    def with_default_handler(self, handler: HandlerApp | None) -> "FileTypeRecord":
        """Return a copy of this record with a different default handler."""
        return self.model_copy(update={"default_handler": handler})


class CatalogSnapshot(BaseModel):
    """Immutable published state of the extension catalog."""

    model_config = ConfigDict(frozen=True)

    records: tuple[FileTypeRecord, ...] = ()
    is_loading: bool = False
    generation: int = 0
    refreshed_at: datetime | None = None

    def get(self, extension: str) -> FileTypeRecord | None:
        """Find the record for an extension."""
        return next((r for r in self.records if r.extension == extension), None)


class CommandResult(BaseModel):
    """Result of a registry tool invocation."""

    exit_code: int
    stdout: str
    stderr: str
    duration_seconds: float

    @property
    def ok(self) -> bool:
        """Whether the tool exited successfully."""
        return self.exit_code == 0


class SetHandlerResult(BaseModel):
    """Result of reassigning the default handler of an extension."""

    extension: str
    bundle_id: str
    success: bool
    message: str


class OpenWithConfig(BaseModel):
    """Runtime configuration."""

    lsregister_path: Path = Field(default=LSREGISTER_PATH)
    duti_path: Path = Field(default_factory=_default_duti_path)
    mdfind_path: Path = Field(default=MDFIND_PATH)
    command_timeout: int = Field(default=60, ge=1, description="Tool timeout in seconds")
    max_extension_length: int = Field(default=10, ge=1)

    @field_validator("lsregister_path", "duti_path", "mdfind_path", mode="before")
    @classmethod
    def validate_tool_path(cls, v: str | Path) -> Path:
        """Convert string to Path."""
        return Path(v) if isinstance(v, str) else v

"""Validation utilities for OpenWith."""

import os
import shutil
from pathlib import Path


def normalize_extension(extension: str) -> str:
    """Normalize a user-supplied extension.

    Surrounding whitespace and a single leading dot are removed and the
    result is lowercased, so ``".TXT"`` and ``"txt"`` name the same type.

    Args:
        extension: Raw extension text

    Returns:
        Normalized extension (possibly empty)
    """
    cleaned = extension.strip()
    if cleaned.startswith("."):
        cleaned = cleaned[1:]
    return cleaned.lower()


def validate_extension(extension: str) -> tuple[bool, str | None]:
    """Validate that an already-normalized extension can name a file type.

    Args:
        extension: Normalized extension

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not extension:
        return False, "Extension is empty"

    if "." in extension or "/" in extension:
        return False, f"Improper extension: {extension}"

    if any(ch.isspace() for ch in extension):
        return False, f"Extension must not contain whitespace: {extension}"

    return True, None


def validate_command_available(command: str) -> tuple[bool, str | None]:
    """Validate that a registry tool is available.

    Absolute paths are checked for an executable file, bare names are looked
    up in PATH.

    Args:
        command: Tool path or name (e.g., '/opt/homebrew/bin/duti', 'mdfind')

    Returns:
        Tuple of (is_available, error_message)
    """
    if not command:
        return False, "Empty command"

    path = Path(command)
    if path.is_absolute():
        if not path.is_file():
            return False, f"Command not found: {command}"
        if not os.access(path, os.X_OK):
            return False, f"Command is not executable: {command}"
        return True, None

    if shutil.which(command) is None:
        return (
            False,
            f"Command '{command}' not found in PATH. Please install it first.",
        )

    return True, None

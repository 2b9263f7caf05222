"""File helpers shared by config, credential and policy storage.

Features:
- OS-appropriate config directory (platformdirs)
- Secure file permissions (0o700 for directories, 0o600 for files)
- Atomic text writes (temp file + rename)
- JSON loading with detailed pydantic validation messages
"""

from __future__ import annotations

__all__ = [
    "atomic_write_text",
    "get_app_dir",
    "load_validated_json",
    "require_file_exists",
    "set_secure_permissions",
]

import json
import os
import tempfile
from pathlib import Path
from typing import TypeVar

from platformdirs import user_config_dir
from pydantic import BaseModel, ValidationError

from abac_console.constants import APP_NAME

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_app_dir() -> Path:
    """Get the OS-appropriate config directory for abac-console.

    - macOS: ~/Library/Application Support/abac-console
    - Linux: ~/.config/abac-console (XDG compliant)
    - Windows: C:\\Users\\<user>\\AppData\\Local\\abac-console

    Returns:
        Path to the config directory (may not exist yet).
    """
    return Path(user_config_dir(APP_NAME))


def set_secure_permissions(path: Path, *, is_directory: bool = False) -> None:
    """Restrict a file or directory to the current user.

    Args:
        path: Path to update.
        is_directory: True for 0o700, False for 0o600.
    """
    try:
        path.chmod(0o700 if is_directory else 0o600)
    except OSError:
        # Windows and some network filesystems don't support chmod
        pass


def require_file_exists(path: Path, *, file_type: str, recovery_hint: str = "") -> None:
    """Raise FileNotFoundError with a helpful message if path is missing.

    Args:
        path: File that must exist.
        file_type: Human-readable type used in the message.
        recovery_hint: Optional hint appended to the message.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    if not path.exists():
        message = f"{file_type.capitalize()} file not found at {path}."
        if recovery_hint:
            message += f"\n{recovery_hint}"
        raise FileNotFoundError(message)


def load_validated_json(
    path: Path,
    model: type[ModelT],
    *,
    file_type: str,
    recovery_hint: str = "",
    encoding: str = "utf-8",
) -> ModelT:
    """Load a JSON file and validate it against a pydantic model.

    Args:
        path: JSON file to load.
        model: Pydantic model class.
        file_type: Human-readable type used in error messages.
        recovery_hint: Optional hint appended to error messages.
        encoding: File encoding.

    Returns:
        Validated model instance.

    Raises:
        ValueError: If the file is not valid JSON or fails validation.
    """
    try:
        with path.open(encoding=encoding) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_type} file {path}: {e}") from e
    except OSError as e:
        raise ValueError(f"Could not read {file_type} file {path}: {e}") from e

    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"  - {loc}: {error['msg']}")

        message = f"Invalid {file_type} in {path}:\n" + "\n".join(errors)
        if recovery_hint:
            message += f"\n\n{recovery_hint}"
        raise ValueError(message) from e


def atomic_write_text(path: Path, content: str, *, prefix: str = ".tmp_", secure: bool = False) -> None:
    """Write text to path atomically.

    Writes to a temp file in the same directory, then renames it over the
    target. If anything fails midway the temp file is removed and the
    target is left untouched.

    Args:
        path: Destination file.
        content: Text content to write (UTF-8).
        prefix: Temp file name prefix.
        secure: Apply 0o600 permissions to the written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory ensures rename is atomic (same filesystem)
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=prefix, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        if secure:
            os.chmod(temp_path, 0o600)

        os.replace(temp_path, path)

    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise

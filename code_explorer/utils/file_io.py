"""
JSON file I/O utilities.

Readers never observe a half-written file: writes go to a temporary file in
the target directory which then replaces the target in one rename.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def ensure_directory(path: Path) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path

    Returns:
        The path (for chaining)
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def read_json(path: Path, default: Any = None) -> Any:
    """
    Load a JSON document.

    Args:
        path: File to read
        default: Value returned when the file does not exist

    Returns:
        Parsed document, or ``default`` for a missing file

    Raises:
        OSError: If the file exists but cannot be read
        json.JSONDecodeError: If the file is not valid JSON
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError:
        return default


def atomic_write_json(path: Path, payload: Any, indent: int = 2) -> None:
    """
    Atomically write JSON to the target path.

    Args:
        path: Destination file
        payload: JSON-serializable document
        indent: Indentation passed to json.dump
    """
    ensure_directory(path.parent)
    fd, temp_name = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tf:
            json.dump(payload, tf, indent=indent, ensure_ascii=False)
            tf.flush()
            os.fsync(tf.fileno())
        os.replace(temp_path, path)
    except BaseException:
        if temp_path.exists():
            temp_path.unlink()
        raise

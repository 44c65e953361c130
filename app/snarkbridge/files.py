# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import json
import os
import tempfile

from pathlib import Path
from typing import Any

from snarkbridge.errors import CodecError


def save_string(path: str | Path, string: str) -> None:
    """
    Write a UTF-8 string to a file, creating parent directories if needed.

    Args:
        path: Destination file path (string or `Path`).
        string: Text content to write.

    Side effects:
        - Creates `path.parent` directories if they do not exist.
        - Overwrites the file if it already exists.

    Raises:
        OSError: If the file cannot be created or written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        f.write(string)


def save_json(path: str | Path, data: Any) -> None:
    """
    Serialize data as pretty-printed JSON and write it to a file.

    The JSON is written with:
    - `indent=2` for readability
    - `sort_keys=True` for deterministic output

    Args:
        path: Destination file path (string or `Path`).
        data: Any JSON-serializable Python object (dict/list/str/int/etc.).

    Raises:
        TypeError: If `data` contains non-JSON-serializable objects.
        OSError: If the file cannot be created or written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True)
        f.write("\n")


def load_json(path: str | Path) -> Any:
    """
    Load and parse a JSON file.

    Args:
        path: Path to the JSON file (string or `Path`).

    Returns:
        The parsed JSON value (commonly a dict or list), typed as `Any`.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        OSError: If the file cannot be opened/read.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_exclusive(path: str | Path, data: bytes) -> None:
    """
    Atomically publish `data` at `path`, failing if `path` already exists.

    The bytes are written and flushed to a temporary sibling which is then
    hard-linked into place. A reader therefore sees either no file or the
    complete file, never a partial write.

    Raises:
        FileExistsError: If `path` already exists.
        OSError: If the file cannot be created or written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.link(tmp, path)
    finally:
        os.unlink(tmp)


def load_external_json(path: str | Path) -> Any:
    """
    `load_json` for files written by other tools.

    Raises:
        CodecError: If the file is not valid UTF-8 JSON.
        OSError: If the file cannot be opened/read.
    """
    try:
        return load_json(path)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CodecError(f"{path} is not valid JSON: {e}") from e

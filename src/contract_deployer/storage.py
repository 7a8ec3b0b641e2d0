"""Durable JSON file I/O for contract-deployer library."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict


def load_json(path: Path, default: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
    """
    Load a JSON record, creating it from ``default`` when the file is missing.

    Args:
        path: File to read
        default: Factory for the initial record

    Returns:
        Parsed record

    Raises:
        json.JSONDecodeError: If the file exists but is corrupted
    """
    if not path.exists():
        data = default()
        save_json(data, path)
        return data

    with open(path) as f:
        return json.load(f)


def save_json(data: Dict[str, Any], path: Path) -> None:
    """
    Write a JSON record in full, replacing the previous file atomically.

    Readers either see the old file or the new one, never a partial write.
    Creates parent directories if they don't exist.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

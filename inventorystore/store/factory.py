"""
store/factory.py - Build a ProductStore from a backend name.
"""
from pathlib import Path
from typing import Optional, Union

from ..errors import ConfigError
from .adapter import ProductStore
from .file import FileStore
from .memory import MemoryStore


def new_store(kind: str, path: Optional[Union[str, Path]] = None) -> ProductStore:
    """
    Construct a store by backend name.

    Args:
        kind: "memory" (or "mem") or "file"
        path: Store file for the "file" backend; ignored for "memory"

    Raises:
        ConfigError: If ``kind`` is unknown or the file backend has no path
        StorageError: If the file backend cannot load ``path``
    """
    if kind in ("memory", "mem"):
        return MemoryStore()
    if kind == "file":
        # Path("") is truthy but names the current directory
        if path is None or not Path(path).parts:
            raise ConfigError("file path required for file store")
        return FileStore(path)
    raise ConfigError(f"unknown store kind: {kind}")

"""Product store backends and the factory that selects one."""
from .adapter import ProductStore
from .bulk import MAX_IMPORT_WORKERS
from .factory import new_store
from .file import FileStore
from .memory import MemoryStore

__all__ = ["MAX_IMPORT_WORKERS", "FileStore", "MemoryStore", "ProductStore", "new_store"]

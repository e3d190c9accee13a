# Key-Value Store Adapters Package
from .http_store import HttpKeyValueStore
from .json_file import JsonFileStore
from .memory import MemoryStore

__all__ = ["MemoryStore", "JsonFileStore", "HttpKeyValueStore"]

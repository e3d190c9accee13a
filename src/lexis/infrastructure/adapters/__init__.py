# Infrastructure Adapters Package
from .sinks import LoggingGamificationSink, StoreAnalyticsSink
from .stores import HttpKeyValueStore, JsonFileStore, MemoryStore
from .word_repository import KeyValueWordRepository, generate_word_id

__all__ = [
    "KeyValueWordRepository",
    "generate_word_id",
    "MemoryStore",
    "JsonFileStore",
    "HttpKeyValueStore",
    "StoreAnalyticsSink",
    "LoggingGamificationSink",
]

"""Long-term memory: Mem0 store, pattern extraction, and context assembly."""

from mnemochat.memory.assembler import (
    ContextAssembler,
    EnhancedContextOptions,
    EnhancedContextWindow,
    MemoryStats,
    build_memory_context,
)
from mnemochat.memory.models import MemoryEntry, MemoryMetadata, MemoryType
from mnemochat.memory.patterns import MEMORY_MATCHERS, extract_memories_from_message
from mnemochat.memory.store import MemoryConfig, MemoryService, MemoryStore

__all__ = [
    "MEMORY_MATCHERS",
    "ContextAssembler",
    "EnhancedContextOptions",
    "EnhancedContextWindow",
    "MemoryConfig",
    "MemoryEntry",
    "MemoryMetadata",
    "MemoryService",
    "MemoryStats",
    "MemoryStore",
    "MemoryType",
    "build_memory_context",
    "extract_memories_from_message",
]

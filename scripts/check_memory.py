#!/usr/bin/env python3
"""Diagnostic script to check Mem0 connectivity and the memory pipeline.

Run against a real Mem0 account to isolate memory issues from the chat flow:

    uv run python scripts/check_memory.py --user-id diagnostic-user
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from mnemochat.chat.models import Turn
from mnemochat.config import settings
from mnemochat.memory.assembler import ContextAssembler
from mnemochat.memory.store import MemoryStore, simplify_user_id

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)


def banner(msg: str) -> None:
    print(f"\n{'=' * 60}")
    print(f"  {msg}")
    print(f"{'=' * 60}")


async def main(user_id: str, query: str) -> None:
    banner("Mem0 Diagnostic")

    print(f"\nMEM0_API_KEY set: {bool(settings.mem0_api_key)}")
    if not settings.mem0_api_key:
        print("FATAL: MEM0_API_KEY is empty. Set it in .env")
        sys.exit(1)
    print(f"Mem0 user id: {simplify_user_id(user_id)}")

    store = MemoryStore.from_settings(settings)
    assembler = ContextAssembler.from_settings(store, settings)
    print(f"store.available(): {store.available()}")
    if not store.available():
        print("FAIL: store is not available despite API key being set")
        sys.exit(1)

    banner("Step 1: Extract and store")
    turn = Turn(id="diagnostic-1", role="user", content="I prefer diagnostic runs in the morning")
    added = await assembler.process_new_message(turn, user_id, "diagnostic-chat")
    print(f"Stored {len(added)} memories: {[m.id for m in added]}")

    banner("Step 2: Search")
    entries = await store.search(query, user_id, limit=5)
    print(f"search() returned {len(entries)} entries")
    for entry in entries:
        print(f"    - [{entry.metadata.type}] {entry.content[:80]} ({entry.relevance_score:.2f})")

    banner("Step 3: Assemble context")
    window = await assembler.assemble([turn], user_id, "diagnostic-chat")
    print(f"Memories attached: {len(window.memories)} ({window.memory_tokens} tokens)")
    if window.memory_context:
        print(window.memory_context)

    banner("Step 4: Stats")
    stats = await assembler.memory_stats(user_id)
    print(f"Total memories: {stats.total_memories}")
    for memory_type, count in stats.memories_by_type.items():
        print(f"    {memory_type}: {count}")

    banner("Step 5: Clean up diagnostic memories")
    for memory in added:
        if memory.id:
            print(f"delete({memory.id}): {await store.delete(memory.id)}")

    banner("Done")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--user-id", default="diagnostic-user")
    parser.add_argument("--query", default="When do I like to work?")
    args = parser.parse_args()
    asyncio.run(main(args.user_id, args.query))

#!/usr/bin/env python3
"""Reset brainstore's demo state.

Usage examples:
    # Forget everything learned, keep the starter knowledge
    python scripts/reset.py --memories --keep-basic

    # Wipe the whole vector collection
    python scripts/reset.py --memories

    # Delete every conversation log entry
    python scripts/reset.py --logs
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from brainstore.conversations.store import ConversationLog
from brainstore.errors import BrainstoreError
from brainstore.memory.store import MemoryStore


async def reset_memories(keep_basic: bool) -> int:
    store = MemoryStore.get()
    await store.initialize()
    if keep_basic:
        return await store.clear_except_basic()
    return await store.clear_all()


async def reset_logs() -> int:
    return await ConversationLog.get().clear()


async def run(args: argparse.Namespace) -> None:
    if args.memories:
        removed = await reset_memories(args.keep_basic)
        kept = " (starter knowledge kept)" if args.keep_basic else ""
        print(f"Deleted {removed} memories{kept}.")
    if args.logs:
        removed = await reset_logs()
        print(f"Deleted {removed} conversation log entries.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Reset brainstore memories and logs")
    parser.add_argument("--memories", action="store_true", help="Clear the memory collection")
    parser.add_argument(
        "--keep-basic", action="store_true", help="With --memories, keep starter knowledge"
    )
    parser.add_argument("--logs", action="store_true", help="Delete all conversation logs")
    args = parser.parse_args()

    if not (args.memories or args.logs):
        parser.error("nothing to do: pass --memories and/or --logs")
    if args.keep_basic and not args.memories:
        parser.error("--keep-basic only applies with --memories")

    try:
        asyncio.run(run(args))
    except BrainstoreError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

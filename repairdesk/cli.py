"""CLI for RepairDesk: maintenance tasks against the configured stores."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys


async def _open_stores():
    from repairdesk.config import get_settings
    from repairdesk.db.engine import async_session_factory, create_tables
    from repairdesk.services.blob_store import build_blob_store
    from repairdesk.storage.facade import build_storage

    settings = get_settings()
    await create_tables()
    return build_storage(settings, async_session_factory), build_blob_store(settings)


async def _close_stores(storage, blobs):
    from repairdesk.db.engine import engine

    await storage.close()
    await blobs.close()
    await engine.dispose()


async def cmd_sweep(args):
    """Clear image references that point at missing or malformed blobs."""
    from repairdesk.services.image_sweep import sweep_dangling_images

    storage, blobs = await _open_stores()
    try:
        result = await sweep_dangling_images(storage, blobs)
    finally:
        await _close_stores(storage, blobs)

    print(f"Entries checked: {result.checked}")
    print(f"Valid images found: {result.valid_images}")
    print(f"Image references cleaned: {result.repaired}")


async def cmd_summary(args):
    """Print entry counts and image totals as JSON."""
    from repairdesk.services.summary import build_data_summary

    storage, blobs = await _open_stores()
    try:
        summary = await build_data_summary(storage, blobs, args.user_id or None)
    finally:
        await _close_stores(storage, blobs)

    print(json.dumps(summary, indent=2, ensure_ascii=False))


async def cmd_storage_info(args):
    """Show which backend and fallback chain the configuration selects."""
    from repairdesk.config import get_settings

    storage, blobs = await _open_stores()
    try:
        print(f"Backend: {storage.backend} ({storage.backend_label})")
        print(f"Fallbacks: {', '.join(s.name for s in storage.fallbacks) or 'none'}")
        print(f"Change notification: {'push' if storage.primary.push_capable else 'poll'}"
              f" (poll interval {storage.poll_interval}s)")
        print(f"Image store: {get_settings().image_store.backend}")
    finally:
        await _close_stores(storage, blobs)


def main():
    from repairdesk.config import get_settings

    parser = argparse.ArgumentParser(description="RepairDesk CLI")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("sweep", help="Clear dangling image references from entries")

    p_summary = subparsers.add_parser("summary", help="Show a data summary")
    p_summary.add_argument("--user-id", default="", help="Include entry counts for this user")

    subparsers.add_parser("storage-info", help="Show the active storage backend")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "sweep":
        asyncio.run(cmd_sweep(args))
    elif args.command == "summary":
        asyncio.run(cmd_summary(args))
    elif args.command == "storage-info":
        asyncio.run(cmd_storage_info(args))


if __name__ == "__main__":
    main()

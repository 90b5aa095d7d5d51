"""Maintenance command line for the local inspection draft store."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # pragma: no cover

from inspection_drafts import __version__
from inspection_drafts.app import AppContext, get_app_context
from inspection_drafts.domain.models import DraftStatus, HistoryAction, RoomCondition
from inspection_drafts.errors import DraftNotFoundError
from inspection_drafts.logging_utils import configure_logging
from inspection_drafts.utils.serialization import json_default

logger = logging.getLogger(__name__)


def _print_json(value: Any) -> None:
    print(json.dumps(value, ensure_ascii=False, indent=2, default=json_default))


def _cmd_list(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.status:
        drafts = ctx.store.list_by_status(DraftStatus(args.status))
    else:
        drafts = ctx.store.list_all()
    current_id = ctx.store.get_current_id()
    for draft in drafts:
        marker = "*" if draft.id == current_id else " "
        code = draft.property_data.get("code") or "-"
        print(
            f"{marker} {draft.id}  {draft.status.value:<11}  step {draft.current_step}  "
            f"rooms {len(draft.rooms):>2}  code {code}  updated {draft.updated_at.isoformat()}"
        )
    return 0


def _cmd_show(ctx: AppContext, args: argparse.Namespace) -> int:
    draft = ctx.store.get(args.id)
    if draft is None:
        print(f"Inspection not found: {args.id}", file=sys.stderr)
        return 1
    _print_json(draft.to_json())
    return 0


def _cmd_summary(ctx: AppContext, args: argparse.Namespace) -> int:
    draft = ctx.store.get(args.id)
    if draft is None:
        print(f"Inspection not found: {args.id}", file=sys.stderr)
        return 1
    form = ctx.form
    print(f"{draft.id}  {draft.status.value}  code {draft.property_data.get('code') or '-'}")
    worst: RoomCondition | None = None
    for room in draft.rooms:
        name = room.name or form.label_for_room_type(room.type.value)
        condition = form.label_for_condition(room.condition.value) if room.condition else "-"
        print(f"  {name}: {condition}  photos {len(room.photos)}  audios {len(room.audios)}")
        if room.condition is not None and (worst is None or room.condition.is_worse_than(worst)):
            worst = room.condition
    if worst is not None:
        print(f"Worst condition: {form.label_for_condition(worst.value)}")
    for action in HistoryAction:
        count = draft.history_count(action)
        if count:
            print(f"{form.label_for_action(action.value)}: {count}")
    return 0


def _cmd_sweep(ctx: AppContext, args: argparse.Namespace) -> int:
    removed = ctx.engine.ghost_sweep()
    print(f"Removed {len(removed)} deleted inspections")
    return 0


def _cmd_compact(ctx: AppContext, args: argparse.Namespace) -> int:
    stripped = ctx.store.compact_media()
    print(f"Stripped {stripped} inline media payloads")
    return 0


async def _pull(ctx: AppContext) -> int:
    report = await ctx.engine.pull_remote()
    await ctx.sync.drain()
    if not report.available:
        print("Remote backend unavailable or not authenticated", file=sys.stderr)
        return 1
    print(
        f"Inserted {len(report.inserted)}, updated {len(report.updated)}, "
        f"removed {len(report.remote_ghosts)} remote copies of deleted inspections"
    )
    return 0


def _cmd_pull(ctx: AppContext, args: argparse.Namespace) -> int:
    return asyncio.run(_pull(ctx))


def _cmd_migrate(ctx: AppContext, args: argparse.Namespace) -> int:
    result = asyncio.run(ctx.engine.migrate_to_remote())
    print(result.message)
    return 0 if result.success else 1


def _cmd_export(ctx: AppContext, args: argparse.Namespace) -> int:
    try:
        record = ctx.controller.export_draft(args.id)
    except DraftNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(f"{record.location}  sha256={record.checksum}")
    return 0


def _cmd_import(ctx: AppContext, args: argparse.Namespace) -> int:
    try:
        payload = ctx.exports.read_json(args.path)
    except (OSError, ValueError) as exc:
        print(f"Cannot read export: {exc}", file=sys.stderr)
        return 1
    draft = ctx.controller.import_draft(payload)
    print(draft.id)
    return 0


async def _delete(ctx: AppContext, draft_id: str) -> bool:
    removed = ctx.controller.delete(draft_id, confirmed=True)
    await ctx.sync.drain()
    return removed


def _cmd_delete(ctx: AppContext, args: argparse.Namespace) -> int:
    if not args.yes:
        print("Refusing to delete without --yes", file=sys.stderr)
        return 2
    removed = asyncio.run(_delete(ctx, args.id))
    print(f"Deleted {args.id}" if removed else f"{args.id} was not stored; tombstone recorded")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inspection-drafts",
        description="Inspect and maintain the local inspection draft store.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Override LOG_LEVEL for this run",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List stored inspections")
    p.add_argument("--status", choices=[status.value for status in DraftStatus])
    p.set_defaults(handler=_cmd_list)

    p = sub.add_parser("show", help="Print one inspection as JSON")
    p.add_argument("id")
    p.set_defaults(handler=_cmd_show)

    p = sub.add_parser("summary", help="Print rooms, conditions and history with form labels")
    p.add_argument("id")
    p.set_defaults(handler=_cmd_summary)

    p = sub.add_parser("sweep", help="Remove live records of deleted inspections")
    p.set_defaults(handler=_cmd_sweep)

    p = sub.add_parser("compact", help="Drop inline media already uploaded")
    p.set_defaults(handler=_cmd_compact)

    p = sub.add_parser("pull", help="Merge inspections from the remote backend")
    p.set_defaults(handler=_cmd_pull)

    p = sub.add_parser("migrate", help="Upload local inspections to the remote backend once")
    p.set_defaults(handler=_cmd_migrate)

    p = sub.add_parser("export", help="Write an inspection to a JSON export file")
    p.add_argument("id")
    p.set_defaults(handler=_cmd_export)

    p = sub.add_parser("import", help="Store an exported inspection under a new ID")
    p.add_argument("path")
    p.set_defaults(handler=_cmd_import)

    p = sub.add_parser("delete", help="Delete an inspection locally and remotely")
    p.add_argument("id")
    p.add_argument("--yes", action="store_true", help="Confirm the deletion")
    p.set_defaults(handler=_cmd_delete)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    ctx = get_app_context()
    report = ctx.engine.startup()
    logger.info(
        "Startup: legacy migrated=%s imported=%s ghosts removed=%d media stripped=%d",
        report.migrated_legacy,
        report.imported_draft_id,
        len(report.ghosts_removed),
        report.media_stripped,
    )
    try:
        return args.handler(ctx, args)
    finally:
        ctx.backend.close()


def run_entrypoint() -> None:
    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover
    run_entrypoint()

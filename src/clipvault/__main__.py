import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from clipvault import __version__
from clipvault.commands import (
    CheckStorage,
    ClearAll,
    Command,
    Delete,
    ExportData,
    GetStats,
    ImportData,
    MergeClips,
    Query,
    Save,
    TogglePin,
    dispatch,
)
from clipvault.config import DB_PATH, LOG_PATH, PREVIEW_LENGTH
from clipvault.engine import HistoryEngine
from clipvault.errors import ClipVaultError
from clipvault.models import Clip, ClipData, ClipSource, ContentType, HistoryFilter
from clipvault.storage import StorageManager
from clipvault.transfer import read_import_file, write_export_file
from clipvault.utils import ensure_dirs

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    ensure_dirs()
    console = logging.StreamHandler(sys.stderr)
    # Keep command output readable; the log file gets everything
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            console,
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipvault",
        description="ClipVault - clipboard history engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  clipvault add "some text" --source github.com
  clipvault list --search token --limit 5
  clipvault merge clip_1 clip_2 --separator ", "
  clipvault export backup.json
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", type=Path, default=None, help="Path to the store database")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Save a clip")
    add.add_argument("text")
    add.add_argument("--source", default="unknown", help="Source hostname")

    ls = sub.add_parser("list", help="List clips, newest first")
    ls.add_argument("--search")
    ls.add_argument("--type", choices=[t.value for t in ContentType])
    ls.add_argument("--pinned", action="store_true")
    ls.add_argument("--workspace", default="all")
    ls.add_argument("--limit", type=int, default=20)

    pin = sub.add_parser("pin", help="Toggle a clip's pin")
    pin.add_argument("id")

    delete = sub.add_parser("delete", help="Delete a clip")
    delete.add_argument("id")

    sub.add_parser("clear", help="Delete every clip, pinned included")

    merge = sub.add_parser("merge", help="Join clips into a new clip")
    merge.add_argument("ids", nargs="+")
    merge.add_argument("--separator", default="\n")

    sub.add_parser("stats", help="Show lifetime counters")
    sub.add_parser("status", help="Show store usage")

    export = sub.add_parser("export", help="Write a backup document")
    export.add_argument("path", nargs="?", type=Path)

    imp = sub.add_parser("import", help="Replace state from a backup document")
    imp.add_argument("path", type=Path)

    return parser


def build_command(args: argparse.Namespace) -> Command:
    if args.command == "add":
        return Save(ClipData(content=args.text, source=ClipSource(hostname=args.source)))
    if args.command == "list":
        return Query(HistoryFilter(
            workspace=args.workspace,
            type=ContentType(args.type) if args.type else None,
            pinned=args.pinned or None,
            search=args.search,
        ))
    if args.command == "pin":
        return TogglePin(args.id)
    if args.command == "delete":
        return Delete(args.id)
    if args.command == "clear":
        return ClearAll()
    if args.command == "merge":
        return MergeClips(tuple(args.ids), args.separator)
    if args.command == "stats":
        return GetStats()
    if args.command == "status":
        return CheckStorage()
    if args.command == "export":
        return ExportData()
    if args.command == "import":
        return ImportData(read_import_file(args.path))
    raise ValueError(f"unknown command: {args.command}")


def format_clip(clip: Clip) -> str:
    marker = "📌 " if clip.pinned else ""
    lock = "🔒 " if clip.is_sensitive else ""
    return f"{clip.id}  [{clip.type.value}] {marker}{lock}{clip.preview(PREVIEW_LENGTH)}"


def render(args: argparse.Namespace, data) -> None:
    if args.command == "list":
        clips = [Clip.from_dict(item) for item in data][: args.limit]
        if not clips:
            print("(No clipboard history)")
        for clip in clips:
            print(format_clip(clip))
    elif args.command in ("add", "merge"):
        if data.get("excluded"):
            print("Skipped: source is excluded")
        else:
            clip = Clip.from_dict(data["clip"])
            prefix = "Promoted" if data.get("duplicate") else "Saved"
            print(f"{prefix}: {format_clip(clip)}")
    elif args.command == "pin":
        print("Pinned" if data["pinned"] else "Unpinned")
    elif args.command == "clear":
        print(f"Removed {data['removed']} clips")
    elif args.command == "export":
        target = write_export_file(data, args.path)
        print(f"Exported {len(data['history'])} clips to {target}")
    elif args.command == "import":
        print(f"Imported {data['importedCount']} clips")
    elif args.command == "status":
        print(f"{data['bytesInUse'] / 1024:.1f} KB of {data['quota'] / 1024 / 1024:.0f} MB ({data['percentUsed']}%)")
        if data["nearFull"]:
            print("Warning: storage is nearly full")
    elif data is not None:
        print(json.dumps(data, indent=2, ensure_ascii=False))


async def run(args: argparse.Namespace) -> int:
    with StorageManager(args.db or DB_PATH) as store:
        engine = await HistoryEngine.open(store)
        try:
            command = build_command(args)
        except ClipVaultError as exc:
            print(f"Error: {exc}")
            return 1
        response = await dispatch(engine, command)
        if not response.ok:
            print(f"Error ({response.error}): {response.message}")
            return 1
        render(args, response.data)
        return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    try:
        return asyncio.run(run(args))
    except ClipVaultError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Main CLI entry point for the collection core.
"""

import argparse
import sys
import logging
from pathlib import Path

from .config import DEFAULT_DB_FILENAME, DEFAULT_SYNC_INTERVAL_SECONDS
from .database.manager import DatabaseManager
from .models.file_types import FileType, ItemType
from .commands.ingest import cmd_prepare, cmd_import
from .commands.export import cmd_export
from .commands.delete import cmd_delete_file_set
from .commands.sync import cmd_sync
from .commands.settings import cmd_settings
from .commands.stats import cmd_show_stats
from .jsonio import enable_json_logging


def setup_logging(verbose: bool):
    """Configure logging for the CLI tool."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    # boto and PIL are chatty at DEBUG
    for name in ("botocore", "boto3", "urllib3", "PIL"):
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.debug("Verbose logging enabled (DEBUG level).")


def _file_type(value: str) -> FileType:
    try:
        return FileType.from_name(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _item_type(value: str) -> ItemType:
    try:
        return ItemType[value.strip().upper()]
    except KeyError:
        raise argparse.ArgumentTypeError(f"Unknown item type: {value}")


def create_parser():
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="Collection core - content-addressed file set storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Examples:
  # See what is new in an input file
  %(prog)s prepare --input game.zip --file-type rom

  # Import it, creating a release for it
  %(prog)s import --input game.zip --file-type rom --system-id 1 --release "Game (USA)"

  # Materialize a file set for an emulator
  %(prog)s export --file-set-id 12 --out /tmp/play --json

  # Cloud sync
  %(prog)s settings --bucket my-bucket --endpoint https://s3.example.com --sync-enabled
  %(prog)s sync --watch --interval 600
        """
    )

    # Global options
    parser.add_argument("--db", default=DEFAULT_DB_FILENAME,
                        help=f"SQLite database path (default: {DEFAULT_DB_FILENAME})")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose (DEBUG) output")
    parser.add_argument("--json", action="store_true",
                        help="Output results as JSON instead of human-readable text")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    _add_ingest_parsers(subparsers)
    _add_export_parser(subparsers)
    _add_delete_parser(subparsers)
    _add_sync_parser(subparsers)
    _add_settings_parser(subparsers)
    _add_stats_parser(subparsers)

    return parser


def _add_ingest_parsers(subparsers):
    """Add prepare and import command parsers."""
    prepare_parser = subparsers.add_parser("prepare", help="Classify the entries of an input file as new or stored")
    prepare_parser.add_argument("--input", required=True, help="Input file, ZIP archive or directory")
    prepare_parser.add_argument("--file-type", type=_file_type, required=True,
                                help="File type (rom, disk, tape, screenshot, manual, cover, memory_snapshot)")
    prepare_parser.add_argument("--json", action="store_true", help="Output as JSON")

    import_parser = subparsers.add_parser("import", help="Import an input file as a new file set")
    import_parser.add_argument("--input", required=True, help="Input file or ZIP archive")
    import_parser.add_argument("--file-type", type=_file_type, required=True, help="File type")
    import_parser.add_argument("--system-id", type=int, action="append", default=[],
                               help="System to link (repeatable)")
    import_parser.add_argument("--source", default="", help="Provenance of the files (e.g. DAT name and version)")
    import_parser.add_argument("--name", help="File set name (default: input file name without extension)")
    import_parser.add_argument("--release", help="Create a release with this name for the file set")
    import_parser.add_argument("--software-title", default="",
                               help="Software title for the new release (default: derived from the release name)")
    import_parser.add_argument("--item-id", type=int, action="append", default=[],
                               help="Release item to link (repeatable)")
    import_parser.add_argument("--item-type", type=_item_type, action="append", default=[],
                               help="Item type recorded on the file set (repeatable)")
    import_parser.add_argument("--dat-file-id", type=int, help="DAT file to link the file set to")
    import_parser.add_argument("--only", action="append",
                               help="Import only this entry of the input (repeatable)")
    import_parser.add_argument("--json", action="store_true", help="Output as JSON")


def _add_export_parser(subparsers):
    """Add export command parser."""
    export_parser = subparsers.add_parser("export", help="Materialize a file set into a directory")
    export_parser.add_argument("--file-set-id", type=int, required=True, help="File set ID")
    export_parser.add_argument("--out", required=True, help="Target directory")
    export_parser.add_argument("--pack", action="store_true",
                               help="Pack multi-file sets into one ZIP instead of extracting")
    export_parser.add_argument("--entry", help="Entry point file name for multi-file sets")
    export_parser.add_argument("--json", action="store_true", help="Output as JSON")


def _add_delete_parser(subparsers):
    """Add delete-file-set command parser."""
    delete_parser = subparsers.add_parser("delete-file-set", help="Delete a file set and its unshared files")
    delete_parser.add_argument("--file-set-id", type=int, required=True, help="File set ID")
    delete_parser.add_argument("--json", action="store_true", help="Output as JSON")


def _add_sync_parser(subparsers):
    """Add sync command parser."""
    sync_parser = subparsers.add_parser("sync", help="Upload stored files to the object store")
    sync_parser.add_argument("--watch", action="store_true", help="Keep syncing until interrupted")
    sync_parser.add_argument("--interval", type=float, default=DEFAULT_SYNC_INTERVAL_SECONDS,
                             help=f"Seconds between passes with --watch (default: {DEFAULT_SYNC_INTERVAL_SECONDS})")
    sync_parser.add_argument("--json", action="store_true", help="Output as JSON")


def _add_settings_parser(subparsers):
    """Add settings command parser."""
    settings_parser = subparsers.add_parser("settings", help="Show or change settings")
    settings_parser.add_argument("--collection-root", help="Collection root directory")
    settings_parser.add_argument("--endpoint", help="S3 endpoint URL")
    settings_parser.add_argument("--region", help="S3 region")
    settings_parser.add_argument("--bucket", help="S3 bucket")
    sync_group = settings_parser.add_mutually_exclusive_group()
    sync_group.add_argument("--sync-enabled", dest="sync_enabled", action="store_const", const=True,
                            help="Enable cloud sync")
    sync_group.add_argument("--sync-disabled", dest="sync_enabled", action="store_const", const=False,
                            help="Disable cloud sync")
    settings_parser.add_argument("--access-key-id", default="", help="S3 access key id (stored in the keyring)")
    settings_parser.add_argument("--secret-access-key", default="",
                                 help="S3 secret access key (stored in the keyring)")
    settings_parser.add_argument("--delete-credentials", action="store_true",
                                 help="Remove stored credentials from the keyring")
    settings_parser.add_argument("--json", action="store_true", help="Output as JSON")


def _add_stats_parser(subparsers):
    """Add stats command parser."""
    stats_parser = subparsers.add_parser("stats", help="Show catalog statistics")
    stats_parser.add_argument("--detailed", action="store_true",
                              help="Show detailed breakdown")
    stats_parser.add_argument("--json", action="store_true",
                              help="Output statistics as JSON")


def run_command(args, db_manager: DatabaseManager) -> int:
    as_json = getattr(args, 'json', False)

    if args.command == "prepare":
        logging.info("Preparing %s", args.input)
        return cmd_prepare(db_manager, Path(args.input), args.file_type, as_json)

    if args.command == "import":
        logging.info("Importing %s as %s", args.input, args.file_type.dir_name)
        return cmd_import(
            db_manager, Path(args.input), args.file_type,
            system_ids=args.system_id,
            source=args.source,
            file_set_name=args.name,
            release_name=args.release,
            software_title_name=args.software_title,
            item_ids=args.item_id,
            item_types=args.item_type,
            dat_file_id=args.dat_file_id,
            only_files=args.only,
            as_json=as_json,
        )

    if args.command == "export":
        logging.info("Exporting file set %d to %s", args.file_set_id, args.out)
        return cmd_export(db_manager, args.file_set_id, Path(args.out),
                          extract_files=not args.pack, file_name=args.entry, as_json=as_json)

    if args.command == "delete-file-set":
        logging.info("Deleting file set %d", args.file_set_id)
        return cmd_delete_file_set(db_manager, args.file_set_id, as_json)

    if args.command == "sync":
        logging.info("Starting cloud sync (watch=%s)", args.watch)
        return cmd_sync(db_manager, args.watch, args.interval, as_json)

    if args.command == "settings":
        return cmd_settings(
            db_manager,
            collection_root=Path(args.collection_root) if args.collection_root else None,
            endpoint=args.endpoint,
            region=args.region,
            bucket=args.bucket,
            sync_enabled=args.sync_enabled,
            access_key_id=args.access_key_id,
            secret_access_key=args.secret_access_key,
            delete_credentials=args.delete_credentials,
            as_json=as_json,
        )

    if args.command == "stats":
        logging.info("Showing catalog stats (detailed=%s)", args.detailed)
        cmd_show_stats(db_manager, args.detailed, as_json)
        return 0

    return 2


def main(argv=None):
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging based on --verbose (but suppress if JSON output requested)
    if getattr(args, 'json', False):
        enable_json_logging()
    else:
        setup_logging(args.verbose)

    logging.debug("Parsed arguments: %s", args)

    db_path = Path(args.db)
    logging.info("Using database: %s", db_path)
    db_manager = DatabaseManager(db_path)
    logging.debug("Database manager initialized.")

    try:
        return run_command(args, db_manager)
    except KeyboardInterrupt:
        if getattr(args, 'json', False):
            from .jsonio import error
            return error(args.command, "Operation interrupted by user", code=130)
        logging.warning("Operation interrupted by user.")
        return 130
    except Exception as e:
        if getattr(args, 'json', False):
            from .jsonio import error
            debug_info = {"exception_type": type(e).__name__} if args.verbose else None
            return error(args.command, str(e), debug=debug_info, code=1)
        logging.error("Error occurred: %s", e, exc_info=args.verbose)
        return 1
    finally:
        db_manager.close()


if __name__ == "__main__":
    sys.exit(main())

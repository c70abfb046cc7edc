# habitflow/cli.py
"""
Command line maintenance tasks.

    python -m habitflow.cli export --output backup.json
    python -m habitflow.cli import backup.json
    python -m habitflow.cli migrate
    python -m habitflow.cli migration-status
    python -m habitflow.cli restore-backup
    python -m habitflow.cli serve --port 3001
"""
import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from types import SimpleNamespace

from .config import BACKENDS, Settings, get_settings
from .dependencies import open_stores
from .errors import HabitFlowError
from .migration import LocalToDatabaseMigration
from .services.backup import export_backup, import_backup
from .stores import sql_stores
from .stores.local import LocalStorage
from .utils.logger import setup_logger


def _state(settings: Settings) -> SimpleNamespace:
    state = SimpleNamespace(settings=settings, local_storage=LocalStorage(settings.data_file))
    if settings.backend == "sql":
        from .database import Base, SessionLocal, engine
        Base.metadata.create_all(bind=engine)
        state.session_factory = SessionLocal
    return state


def _print_result(result) -> int:
    print(result.message)
    for part_name, part in (("habits", result.habits), ("entries", result.entries)):
        print(f"  {part_name}: {part.success} ok, {len(part.errors)} errors")
        for error in part.errors:
            print(f"    - {error}")
    return 0 if result.success else 1


def export_data(settings: Settings, output: str = None) -> int:
    with open_stores(_state(settings)) as stores:
        data = export_backup(stores)

    text = json.dumps(data, indent=2)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Exported {len(data['habits'])} habits and {len(data['entries'])} entries to {output}.")
    else:
        print(text)
    return 0


def import_data(settings: Settings, path: str) -> int:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: Failed to read backup file {path}: {e}")
        return 1

    with open_stores(_state(settings)) as stores:
        return _print_result(import_backup(stores, data))


def _migration(settings: Settings, session):
    stores = sql_stores(session)
    return LocalToDatabaseMigration(LocalStorage(settings.data_file), stores.habits, stores.entries)


def run_migration(settings: Settings) -> int:
    from .database import Base, SessionLocal, engine

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        migration = _migration(settings, db)
        if not migration.needs_migration():
            print("Nothing to migrate.")
            return 0
        return _print_result(migration.migrate())
    finally:
        db.close()


def migration_status(settings: Settings) -> int:
    from .database import SessionLocal

    db = SessionLocal()
    try:
        status = _migration(settings, db).status()
    finally:
        db.close()
    for key, value in status.items():
        print(f"{key}: {value}")
    return 0


def restore_backup(settings: Settings) -> int:
    from .database import SessionLocal

    db = SessionLocal()
    try:
        restored = _migration(settings, db).restore_from_backup()
    finally:
        db.close()
    if not restored:
        print("Error: No migration backup found.")
        return 1
    print(f"Restored local data in {settings.data_file} from the migration backup.")
    return 0


def serve(settings: Settings, host: str = None, port: int = None) -> int:
    import uvicorn

    from .main import create_app

    uvicorn.run(
        create_app(settings=settings),
        host=host or settings.server.host,
        port=port or settings.server.port,
    )
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="HabitFlow maintenance commands.")
    parser.add_argument("--backend", choices=BACKENDS, help="Override HABITFLOW_BACKEND.")
    parser.add_argument("--data-file", help="Override HABITFLOW_DATA_FILE.")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    parser_export = subparsers.add_parser("export", help="Write a JSON backup of habits, entries and settings.")
    parser_export.add_argument("--output", "-o", help="File to write; prints to stdout when omitted.")

    parser_import = subparsers.add_parser("import", help="Restore a JSON backup into the selected backend.")
    parser_import.add_argument("file", help="Backup file produced by 'export'.")

    subparsers.add_parser("migrate", help="Copy local-file data into the database.")
    subparsers.add_parser("migration-status", help="Show whether local data has been migrated.")
    subparsers.add_parser("restore-backup", help="Restore local-file data from the migration backup.")

    parser_serve = subparsers.add_parser("serve", help="Run the API server.")
    parser_serve.add_argument("--host")
    parser_serve.add_argument("--port", type=int)

    args = parser.parse_args(argv)

    settings = get_settings()
    if args.backend:
        settings = replace(settings, backend=args.backend)
    if args.data_file:
        settings = replace(settings, data_file=Path(args.data_file))
    setup_logger(settings.log_level, settings.log_file)

    try:
        if args.command == "export":
            return export_data(settings, args.output)
        if args.command == "import":
            return import_data(settings, args.file)
        if args.command == "migrate":
            return run_migration(settings)
        if args.command == "migration-status":
            return migration_status(settings)
        if args.command == "restore-backup":
            return restore_backup(settings)
        return serve(settings, args.host, args.port)
    except HabitFlowError as e:
        print(f"Error: {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
annotrack CLI tool

Command line interface for the dashboard API server and one-shot maintenance
tasks (refresh, time-series backfill and snapshot, history merge, legacy
cache migration).
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

import uvicorn

from annotrack.config import get_data_dir, get_settings, get_storage_backend
from annotrack.exceptions import AnnotrackError


def _resolve_data_dir(data_dir: str | None) -> Path:
    return Path(data_dir) if data_dir else get_data_dir()


def _build_services(data_dir: str | None):
    from annotrack.client import LabelStudioClient
    from annotrack.services import build_services
    from annotrack.storage import create_document_store

    settings = get_settings()
    store = create_document_store(base_dir=_resolve_data_dir(data_dir))
    return build_services(store, LabelStudioClient.from_settings(settings), settings)


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def run_server(host: str = "127.0.0.1", port: int = 3141, data_dir: str | None = None, dev: bool = False) -> None:
    """
    Start the dashboard API server

    Args:
        host: Host name
        port: Port number
        data_dir: Directory holding the JSON documents
        dev: Enable development mode with auto-reload
    """
    resolved = _resolve_data_dir(data_dir)
    # Exported so reloaded workers resolve the same directory
    os.environ["ANNOTRACK_DATA_DIR"] = str(resolved)

    from annotrack.dashboard.router import configure_data_dir

    configure_data_dir(str(resolved))

    print("Starting annotrack server...")
    print(f"API available at http://{host}:{port}/api")
    print(f"Data directory: {resolved}")
    backend = get_storage_backend() or "json (default)"
    print(f"Storage backend: {backend}")
    if dev:
        print("Development mode: auto-reload enabled")

    uvicorn.run("annotrack.dashboard.main:app", host=host, port=port, reload=dev)


def run_refresh(data_dir: str | None = None) -> int:
    """Refresh every project once and print the summary."""
    services = _build_services(data_dir)
    summary = services.refresh.refresh_all_blocking()
    print(f"Refreshed {summary['successful']}/{summary['total_projects']} project(s), {summary['failed']} failed")
    return 0 if summary["failed"] == 0 else 1


def run_backfill(data_dir: str | None = None) -> int:
    """Fill missing time-series days from project history."""
    _print_json(_build_services(data_dir).time_series.backfill())
    return 0


def run_snapshot(data_dir: str | None = None) -> int:
    """Record today's time-series totals."""
    snapshot = _build_services(data_dir).time_series.store_snapshot()
    print(f"Snapshot stored for {snapshot['date']} ({len(snapshot['metrics'])} series)")
    return 0


def run_merge_history(historical: str, data_dir: str | None = None) -> int:
    """Merge a historical project-history export into the current project history."""
    from annotrack.storage import merge_history_documents
    from annotrack.storage.documents import PROJECT_HISTORY

    with open(historical, encoding="utf-8") as f:
        historical_document = json.load(f)

    store = _build_services(data_dir).store

    def mutate(current: dict) -> int:
        merged = merge_history_documents(current, historical_document)
        current.clear()
        current.update(merged)
        return sum(len(slot.get("history", [])) for slot in merged.values())

    total = store.update(PROJECT_HISTORY, {}, mutate)
    print(f"Merged history now holds {total} entries")
    return 0


def run_migrate_cache(cache_dir: str, data_dir: str | None = None) -> int:
    """Import legacy per-project cache files into the project history."""
    from annotrack.storage import migrate_legacy_cache

    imported = migrate_legacy_cache(cache_dir, _build_services(data_dir).store)
    print(f"Imported {imported} history entries")
    return 0


def main() -> None:
    """
    CLI main entry point
    """
    parser = argparse.ArgumentParser(description="annotrack - annotation metrics tracking")
    parser.add_argument("--data-dir", help="Data directory (default: ANNOTRACK_DATA_DIR or XDG_DATA_HOME/annotrack)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the dashboard API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host name (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=3141, help="Port number (default: 3141)")
    serve_parser.add_argument("--dev", action="store_true", help="Enable development mode with auto-reload")

    subparsers.add_parser("refresh", help="Refresh all projects once")
    subparsers.add_parser("backfill", help="Fill missing time-series days from project history")
    subparsers.add_parser("snapshot", help="Store today's time-series snapshot")

    merge_parser = subparsers.add_parser("merge-history", help="Merge a historical project-history export")
    merge_parser.add_argument("historical", help="Path to the historical project-history JSON file")

    migrate_parser = subparsers.add_parser("migrate-cache", help="Import legacy per-project cache files")
    migrate_parser.add_argument("cache_dir", help="Directory containing project_{id}_metrics.json files")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "serve":
            run_server(host=args.host, port=args.port, data_dir=args.data_dir, dev=args.dev)
            return
        if args.command == "refresh":
            sys.exit(run_refresh(args.data_dir))
        if args.command == "backfill":
            sys.exit(run_backfill(args.data_dir))
        if args.command == "snapshot":
            sys.exit(run_snapshot(args.data_dir))
        if args.command == "merge-history":
            sys.exit(run_merge_history(args.historical, args.data_dir))
        if args.command == "migrate-cache":
            sys.exit(run_migrate_cache(args.cache_dir, args.data_dir))
    except (AnnotrackError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

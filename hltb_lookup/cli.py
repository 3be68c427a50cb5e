"""Command-line interface for HLTB lookups."""

from __future__ import annotations

import argparse
import json
import logging
import shlex
import sys
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd

from .caches.result_cache import ResultCache
from .clients.parse import parse_int_text
from .config import load_settings
from .schema import EXPORT_COLS, HLTB_COLS, STEAM_APPID_COL
from .service import LookupResult, LookupService
from .utils.csv_io import ensure_columns, format_hours, read_csv, write_csv


def setup_logging(log_file: Path | None = None, *, debug: bool = False) -> None:
    """Configure logging to the console and, optionally, a file."""
    level = logging.DEBUG if debug else logging.INFO
    formatter = logging.Formatter(
        "%(asctime)s.%(msecs)03d - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Silence verbose HTTP debug logs unless asked for
    logging.getLogger("urllib3").setLevel(logging.DEBUG if debug else logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    if log_file is not None:
        logging.info(f"Logging to file: {log_file}")
    argv = " ".join(shlex.quote(a) for a in sys.argv)
    logging.debug(f"Invocation: {argv}")


def _build_service(args: argparse.Namespace) -> LookupService:
    settings = load_settings(args.config, cache_dir=args.cache_dir)
    user = str(getattr(args, "user", None) or settings.steam_user_id or "").strip()
    if user != settings.steam_user_id:
        settings = replace(settings, steam_user_id=user)
    return LookupService.from_settings(settings)


def _import_if_configured(service: LookupService) -> None:
    if service.acting_user_id:
        service.import_library(service.acting_user_id)


def result_row(app_id: int, result: LookupResult) -> dict[str, Any]:
    """Flatten a lookup result into the `HLTB_*` CSV columns."""
    row: dict[str, Any] = dict(HLTB_COLS)
    row["HLTB_Query"] = result.searched_name
    rec = result.data
    if rec is not None:
        row.update(
            {
                "HLTB_ID": str(rec.catalog_id),
                "HLTB_Name": rec.title,
                "HLTB_Main": format_hours(rec.main_hours),
                "HLTB_Extra": format_hours(rec.main_plus_extras_hours),
                "HLTB_Completionist": format_hours(rec.completionist_hours),
            }
        )
    return row


def _describe(app_id: int, result: LookupResult) -> str:
    rec = result.data
    source = "cache" if result.from_cache else "fetched"
    if result.pending_refresh is not None:
        source += ", refreshing"
    if rec is None:
        hint = f" (searched '{result.searched_name}')" if result.searched_name else ""
        return f"{app_id}: not found{hint} [{source}]"
    return (
        f"{app_id}: {rec.title} (HLTB {rec.catalog_id}) "
        f"main={format_hours(rec.main_hours) or '-'}h "
        f"extra={format_hours(rec.main_plus_extras_hours) or '-'}h "
        f"completionist={format_hours(rec.completionist_hours) or '-'}h [{source}]"
    )


def _command_lookup(args: argparse.Namespace) -> None:
    with _build_service(args) as service:
        _import_if_configured(service)
        for raw in args.app_ids:
            app_id = parse_int_text(raw)
            if app_id is None or app_id <= 0:
                logging.error(f"Invalid Steam app id: {raw!r}")
                continue
            result = service.resolve(app_id)
            print(_describe(app_id, result))
            if args.wait and result.pending_refresh is not None:
                refreshed = result.pending_refresh.result()
                print(
                    _describe(
                        app_id,
                        LookupResult(
                            data=refreshed,
                            from_cache=False,
                            searched_name=result.searched_name,
                        ),
                    )
                )
        logging.info(service.format_stats())


def _command_import(args: argparse.Namespace) -> None:
    with _build_service(args) as service:
        user = str(args.user_id or service.acting_user_id or "").strip()
        if not user:
            raise SystemExit("No Steam user id (pass USER_ID, --user, or set steam_user_id)")
        ok = service.import_library(user)
        summary = service.id_cache.summary()
        print(f"import {'ok' if ok else 'failed'}: {summary['count']} mappings for {summary['owner'] or '-'}")
        if not ok:
            raise SystemExit(1)


def _command_batch(args: argparse.Namespace) -> None:
    input_csv: Path = args.input
    if not input_csv.exists():
        raise SystemExit(f"Input file not found: {input_csv}")
    df = read_csv(input_csv)
    if STEAM_APPID_COL not in df.columns:
        raise SystemExit(f"Input CSV has no {STEAM_APPID_COL} column: {input_csv}")
    df = ensure_columns(df, HLTB_COLS)

    with _build_service(args) as service:
        _import_if_configured(service)
        done = 0
        for idx in df.index:
            app_id = parse_int_text(df.at[idx, STEAM_APPID_COL])
            if app_id is None or app_id <= 0:
                continue
            if args.skip_filled and str(df.at[idx, "HLTB_ID"] or "").strip():
                continue
            for col, value in result_row(app_id, service.resolve(app_id)).items():
                df.at[idx, col] = value
            done += 1
        logging.info(f"Resolved {done} rows; {service.format_stats()}")

    out = args.out or input_csv
    write_csv(df, out)
    print(f"wrote {out}")


def export_results(cache: ResultCache, out: Path) -> int:
    """Write every cached outcome to a CSV. Returns the row count."""
    rows: list[dict[str, Any]] = []
    for app_id, cached in cache.items():
        result = LookupResult(
            data=cached.game.record, from_cache=True, searched_name=cached.game.searched_name
        )
        row = {STEAM_APPID_COL: str(app_id), **result_row(app_id, result)}
        row["Cached_At"] = datetime.fromtimestamp(
            cached.written_at_ms / 1000.0, tz=timezone.utc
        ).strftime("%Y-%m-%dT%H:%M:%SZ")
        row["Stale"] = "yes" if cached.is_stale else ""
        rows.append(row)
    write_csv(pd.DataFrame(rows, columns=list(EXPORT_COLS)), out)
    return len(rows)


def _command_export(args: argparse.Namespace) -> None:
    with _build_service(args) as service:
        n = export_results(service.result_cache, args.output)
    print(f"wrote {n} rows to {args.output}")


def _command_stats(args: argparse.Namespace) -> None:
    with _build_service(args) as service:
        print(json.dumps(service.cache_stats(), indent=2))


def _command_clear_cache(args: argparse.Namespace) -> None:
    with _build_service(args) as service:
        service.clear_caches()
    print("caches cleared")


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)

    parser = argparse.ArgumentParser(description="Look up HowLongToBeat times for Steam games")
    sub = parser.add_subparsers(dest="command", required=True)

    p_common = argparse.ArgumentParser(add_help=False)
    p_common.add_argument("--config", type=Path, help="Settings YAML (all keys optional)")
    p_common.add_argument(
        "--cache-dir", type=Path, help="Cache directory (default: ~/.cache/hltb-lookup)"
    )
    p_common.add_argument("--user", help="Steam user id (64-bit) for the library import")
    p_common.add_argument("--log-file", type=Path, help="Also write logs to this file")
    p_common.add_argument(
        "--debug", action="store_true", help="Enable DEBUG logging (default: INFO)"
    )

    p_lookup = sub.add_parser("lookup", help="Resolve one or more Steam app ids", parents=[p_common])
    p_lookup.add_argument("app_ids", nargs="+", help="Steam app ids")
    p_lookup.add_argument(
        "--wait",
        action="store_true",
        help="Wait for background refreshes of stale entries and print the refreshed value",
    )
    p_lookup.set_defaults(_fn=_command_lookup)

    p_import = sub.add_parser(
        "import", help="Import the Steam library mapping from HLTB", parents=[p_common]
    )
    p_import.add_argument("user_id", nargs="?", help="Steam user id (default: --user/settings)")
    p_import.set_defaults(_fn=_command_import)

    p_batch = sub.add_parser(
        "batch",
        help=f"Fill HLTB_* columns for a CSV with a {STEAM_APPID_COL} column",
        parents=[p_common],
    )
    p_batch.add_argument("input", type=Path, help="Input CSV")
    p_batch.add_argument("--out", type=Path, help="Output CSV (default: overwrite input)")
    p_batch.add_argument(
        "--skip-filled",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Skip rows that already have an HLTB_ID (default: false)",
    )
    p_batch.set_defaults(_fn=_command_batch)

    p_export = sub.add_parser("export", help="Dump the result cache to CSV", parents=[p_common])
    p_export.add_argument("output", type=Path, help="Output CSV")
    p_export.set_defaults(_fn=_command_export)

    p_stats = sub.add_parser("stats", help="Show cache statistics", parents=[p_common])
    p_stats.set_defaults(_fn=_command_stats)

    p_clear = sub.add_parser("clear-cache", help="Delete all cached data", parents=[p_common])
    p_clear.set_defaults(_fn=_command_clear_cache)

    ns = parser.parse_args(argv)
    setup_logging(ns.log_file, debug=ns.debug)
    try:
        ns._fn(ns)
    except (FileNotFoundError, ValueError) as e:
        logging.error(str(e))
        raise SystemExit(2) from e


if __name__ == "__main__":
    main()

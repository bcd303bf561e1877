"""
Command-line entry point.

Run with:
    insumo-matcher analyze --old insumos.csv --new insumos_catalogo.xlsx
    insumo-matcher populate-config --old insumos.csv --new catalogo.csv --config anestesia_insumos.csv
    insumo-matcher preview --new catalogo.csv --name "Aguja hipodermica 20G"
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from functools import partial
from typing import Any

from insumo_matcher.catalog_io import load_catalog, load_configuration
from insumo_matcher.configuration import populate_payload, propagate_configuration
from insumo_matcher.errors import InsumoMatcherError
from insumo_matcher.matcher import analyze, analyze_payload, preview_candidates
from insumo_matcher.report import write_analysis_excel, write_configuration_excel

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command == "analyze":
        return run_analyze(args)
    if args.command == "populate-config":
        return run_populate_config(args)
    if args.command == "preview":
        return run_preview(args)

    parser.print_help()
    return 1


def _catalog_loaders(args: argparse.Namespace):
    order_by_name = not args.keep_file_order
    load_old = partial(
        load_catalog, args.old, sheet=args.old_sheet,
        id_col=args.id_col, name_col=args.name_col, order_by_name=order_by_name,
    )
    load_new = partial(
        load_catalog, args.new, sheet=args.new_sheet,
        id_col=args.id_col, name_col=args.name_col, order_by_name=order_by_name,
    )
    return load_old, load_new


def run_analyze(args: argparse.Namespace) -> int:
    load_old, load_new = _catalog_loaders(args)

    if args.output_excel:
        # The Excel writer needs the typed results, not the payload
        try:
            analysis = analyze(load_old(), load_new())
        except InsumoMatcherError as exc:
            return _emit({"success": False, "error": str(exc)}, args.output_json)
        write_analysis_excel(args.output_excel, analysis)
        payload: dict[str, Any] = {"success": True}
        payload.update(analysis.to_dict())
        payload["message"] = f"Report written to {args.output_excel}"
        return _emit(payload, args.output_json)

    return _emit(analyze_payload(load_old, load_new), args.output_json)


def run_populate_config(args: argparse.Namespace) -> int:
    load_old, load_new = _catalog_loaders(args)
    load_records = partial(load_configuration, args.config, sheet=args.config_sheet)

    if args.output_excel:
        try:
            result = propagate_configuration(load_old(), load_new(), load_records())
        except InsumoMatcherError as exc:
            return _emit({"success": False, "error": str(exc)}, args.output_json)
        write_configuration_excel(args.output_excel, result)
        payload: dict[str, Any] = {"success": True}
        payload.update(result.to_dict())
        return _emit(payload, args.output_json)

    return _emit(populate_payload(load_old, load_new, load_records), args.output_json)


def run_preview(args: argparse.Namespace) -> int:
    try:
        new_items = load_catalog(
            args.new, sheet=args.new_sheet, id_col=args.id_col, name_col=args.name_col,
            order_by_name=not args.keep_file_order,
        )
    except InsumoMatcherError as exc:
        return _emit({"success": False, "error": str(exc)}, None)

    preview = preview_candidates(args.name, new_items, limit=args.limit)
    payload = {"success": "error" not in preview}
    payload.update(preview)
    return _emit(payload, None)


def _emit(payload: dict[str, Any], output_json: str | None) -> int:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if output_json:
        with open(output_json, "w", encoding="utf-8") as f:
            f.write(text)
        logger.info("Wrote JSON payload to %s", output_json)
    else:
        print(text)
    return 0 if payload.get("success") else 1


def _add_catalog_args(parser: argparse.ArgumentParser, *, with_old: bool = True) -> None:
    if with_old:
        parser.add_argument("--old", required=True, help="Old catalog (CSV or Excel).")
        parser.add_argument("--old-sheet", default=None, help="Sheet name in the old catalog workbook.")
    parser.add_argument("--new", required=True, help="New catalog (CSV or Excel).")
    parser.add_argument("--new-sheet", default=None, help="Sheet name in the new catalog workbook.")
    parser.add_argument("--id-col", default=None, help="Id column (auto-detected if omitted).")
    parser.add_argument("--name-col", default=None, help="Name column (auto-detected if omitted).")
    parser.add_argument(
        "--keep-file-order",
        action="store_true",
        help="Do not sort catalogs by name; ties then follow file order.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="insumo-matcher",
        description="Reconcile the old supply catalog with the new master catalog.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    subparsers = parser.add_subparsers(dest="command")

    analyze_cmd = subparsers.add_parser("analyze", help="Best match and tier for every old item.")
    _add_catalog_args(analyze_cmd)
    analyze_cmd.add_argument("--output-json", default=None, help="Write the payload here instead of stdout.")
    analyze_cmd.add_argument("--output-excel", default=None, help="Also write an Excel report.")

    populate_cmd = subparsers.add_parser(
        "populate-config",
        help="Re-key anesthesia limits onto new ids using HIGH matches only.",
    )
    _add_catalog_args(populate_cmd)
    populate_cmd.add_argument("--config", required=True, help="Configuration table (CSV or Excel).")
    populate_cmd.add_argument("--config-sheet", default=None)
    populate_cmd.add_argument("--output-json", default=None)
    populate_cmd.add_argument("--output-excel", default=None)

    preview_cmd = subparsers.add_parser("preview", help="Closest new items for a single name.")
    _add_catalog_args(preview_cmd, with_old=False)
    preview_cmd.add_argument("--name", required=True)
    preview_cmd.add_argument("--limit", type=int, default=3)

    return parser


if __name__ == "__main__":
    sys.exit(main())

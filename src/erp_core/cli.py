"""Command-line access to the ERP reports.

Examples:
    $ erp-core closing DFL/2025/1234
    $ erp-core challan 12345 -v
    $ erp-core hourly 28-Jan-2026 --line L-07
    $ erp-core closing DFL/2025/1234 --excel closing.xlsx
    $ erp-core cookie --refresh
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import Any

from erp_core.clock import erp_date_str
from erp_core.config import ERPConfig
from erp_core.exceptions import ErpCoreError
from erp_core.export import closing_report_to_excel
from erp_core.metrics.closing import block_summary
from erp_core.raw.cookie import ERPCookieManager
from erp_core.reports import (
    fetch_challan_report,
    fetch_closing_report_data,
    fetch_color_wise_report,
    fetch_factory_report,
    fetch_hourly_report,
    fetch_sewing_closing_report_data,
    process_po_files,
)
from erp_core.store import open_store

logger = logging.getLogger(__name__)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _cmd_closing(args: argparse.Namespace, config: ERPConfig) -> int:
    blocks = fetch_closing_report_data(args.ref, config=config)
    if blocks is None:
        print(f"Booking {args.ref} not found in ERP", file=sys.stderr)
        return 1
    if args.excel:
        closing_report_to_excel(blocks, args.ref, args.excel)
        print(f"Wrote {args.excel}")
    else:
        _print_json([block_summary(b) for b in blocks])
    return 0


def _cmd_challan(args: argparse.Namespace, config: ERPConfig) -> int:
    result = fetch_challan_report(args.booking, config=config)
    _print_json(result.to_dict())
    return 0 if result.success else 1


def _cmd_color_wise(args: argparse.Namespace, config: ERPConfig) -> int:
    result = fetch_color_wise_report(args.booking, config=config)
    _print_json(result.to_dict())
    return 0 if result.success else 1


def _cmd_sewing(args: argparse.Namespace, config: ERPConfig) -> int:
    result = fetch_sewing_closing_report_data(args.ref, config=config)
    if result is None:
        print(f"Reference {args.ref} not found in ERP", file=sys.stderr)
        return 1
    _print_json(result.to_dict())
    return 0


def _cmd_hourly(args: argparse.Namespace, config: ERPConfig) -> int:
    result = fetch_hourly_report(args.date or erp_date_str(), args.line, config=config)
    _print_json(result.to_dict())
    return 0 if result.success else 1


def _cmd_factory(args: argparse.Namespace, config: ERPConfig) -> int:
    result = fetch_factory_report(args.date or erp_date_str(), config=config)
    _print_json(result.to_dict())
    return 0 if result.success else 1


def _cmd_po(args: argparse.Namespace, config: ERPConfig) -> int:
    files = []
    for path in args.files:
        with open(path, "rb") as f:
            files.append((path, f.read()))
    report = process_po_files(files)
    _print_json(report.to_dict())
    return 0 if report.success else 1


def _cmd_cookie(args: argparse.Namespace, config: ERPConfig) -> int:
    manager = ERPCookieManager(config, open_store(config))
    if args.refresh:
        token = manager.refresh()
        if token is None:
            print("ERP login failed", file=sys.stderr)
            return 1
        _print_json({k: v for k, v in token.to_dict().items() if k != "cookie"})
        return 0
    _print_json(manager.status())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="erp-core",
        description="Fetch production reports from the ERP and print them as JSON.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("closing", help="Closing report for an internal reference.")
    p.add_argument("ref")
    p.add_argument("--excel", help="Write an .xlsx workbook here instead of printing JSON.")
    p.set_defaults(func=_cmd_closing)

    p = sub.add_parser("challan", help="Challan-wise sewing input for a booking.")
    p.add_argument("booking")
    p.set_defaults(func=_cmd_challan)

    p = sub.add_parser("color-wise", help="Color-wise sewing input for a booking.")
    p.add_argument("booking")
    p.set_defaults(func=_cmd_color_wise)

    p = sub.add_parser("sewing", help="Sewing input/output closing report.")
    p.add_argument("ref")
    p.set_defaults(func=_cmd_sewing)

    p = sub.add_parser("hourly", help="Line-wise input for a day (DD-Mon-YYYY, default today).")
    p.add_argument("date", nargs="?")
    p.add_argument("--line", help="Only this line.")
    p.set_defaults(func=_cmd_hourly)

    p = sub.add_parser("factory", help="Buyer-wise input for a day (DD-Mon-YYYY, default today).")
    p.add_argument("date", nargs="?")
    p.set_defaults(func=_cmd_factory)

    p = sub.add_parser("po", help="Build PO size tables from PDF files.")
    p.add_argument("files", nargs="+")
    p.set_defaults(func=_cmd_po)

    p = sub.add_parser("cookie", help="Show or refresh the stored ERP cookie.")
    p.add_argument("--refresh", action="store_true", help="Log in again and store the cookie.")
    p.set_defaults(func=_cmd_cookie)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Execute the erp-core command-line tool.

    Returns:
        Process exit code: 0 on success, 1 when the report was not found or
        the ERP could not be reached, 2 on configuration errors.
    """
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    try:
        config = ERPConfig.from_env()
        logger.debug("Sweep bounds: %s", asdict(config.sweep))
        return args.func(args, config)
    except ErpCoreError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)

from __future__ import annotations

import argparse
import csv
import json
import logging
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .common import load_config
from .config_loader import PipelineConfig
from .errors import RowSourceError
from .export import contacts_frame, duplicate_groups_frame, relationships_frame
from .importer import (
    STATUS_FAILED,
    ImportReport,
    ImportSettings,
    import_rows,
    refresh_duplicate_groups,
)
from .logging_utils import configure_logging
from .row_source import read_rows
from .store import InMemoryContactStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_IMPORT_FAILED = 1
EXIT_BAD_SOURCE = 2


def build(
    args: argparse.Namespace, config: Optional[PipelineConfig] = None
) -> Tuple[Dict[str, pd.DataFrame], ImportReport]:
    config = config or load_config(args)
    rows_file = config.inputs.get("rows_file")
    if not rows_file:
        raise RowSourceError("no rows file given (--rows-file or inputs.rows_file)")

    rows = read_rows(
        rows_file,
        header_rows=config.importing.header_rows,
        sheet_name=config.importing.sheet_name,
    )
    store = InMemoryContactStore()
    report = import_rows(rows, store, ImportSettings.from_config(config))
    refresh_duplicate_groups(store)

    contacts = store.all()
    frames = {
        "contacts": contacts_frame(contacts),
        "relationships": relationships_frame(contacts),
        "duplicate_groups": duplicate_groups_frame(contacts),
    }
    return frames, report


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Import household contact rows into a contact graph."
    )
    parser.add_argument("--rows-file", type=str, default=None, help="CSV or Excel file of rows.")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--batch-size", type=int, default=None)
    parser.add_argument("--max-workers", type=int, default=None)
    parser.add_argument("--header-rows", type=int, default=None)
    parser.add_argument(
        "--sheet-name", type=str, default=None, help="Excel sheet name or 0-based index."
    )
    parser.add_argument(
        "--email-check-deliverability",
        dest="email_check_deliverability",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Look up email domains in DNS when validating (default: off).",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    args = parser.parse_args(argv)

    config = load_config(args)
    configure_logging(config, level_override=args.log_level)
    try:
        frames, report = build(args, config=config)
    except RowSourceError as exc:
        logger.error("Cannot import rows: %s", exc)
        return EXIT_BAD_SOURCE

    out_dir = config.outputs.dir
    out_dir.mkdir(parents=True, exist_ok=True)
    for name, frame in frames.items():
        path = out_dir / f"{name}.csv"
        frame.to_csv(str(path), index=False, encoding="utf-8", quoting=csv.QUOTE_ALL)
        logger.info("Saved: %s", path)

    report_path = out_dir / "import_report.json"
    with report_path.open("w", encoding="utf-8") as handle:
        json.dump(report.to_dict(), handle, indent=2, ensure_ascii=False)
    logger.info("Saved: %s", report_path)

    return EXIT_IMPORT_FAILED if report.status == STATUS_FAILED else EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

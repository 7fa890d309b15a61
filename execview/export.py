"""
export.py — Delimited-text export.

Serialises snapshot collections (lists of records) or singleton summaries
(one dict) to CSV:

    header  — keys of the first record (or of the singleton)
    rows    — one per record, string fields quoted
    nested  — dict / list values are written as JSON text
"""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)


def _flatten_value(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


def to_delimited_text(data: list[dict[str, Any]] | dict[str, Any]) -> str:
    """Serialise records or a singleton summary to CSV text.

    Args:
        data: List of records, or one dict exported as a single row.

    Returns:
        CSV text; empty string when there is nothing to export.
    """
    rows = [data] if isinstance(data, dict) else list(data)
    if not rows:
        return ""

    headers = list(rows[0].keys())
    df = pd.DataFrame(
        [{h: _flatten_value(row.get(h)) for h in headers} for row in rows],
        columns=headers,
    )
    return df.to_csv(index=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")


def write_export(
    text: str,
    name: str,
    export_dir: str,
    granularity: str,
) -> Path:
    """Write exported CSV text to `<export_dir>/<name>_data_<granularity>_<stamp>.csv`."""
    out_dir = Path(export_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = out_dir / f"{name}_data_{granularity}_{stamp}.csv"
    path.write_text(text, encoding="utf-8")
    logger.info("Exported %s (%s) -> %s", name, granularity, path)
    return path

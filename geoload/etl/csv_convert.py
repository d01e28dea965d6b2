"""Convert tabular CSV exports into location records."""

import csv
import io
import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_header(header: str) -> str:
    return _WHITESPACE.sub("_", header.strip()).lower()


def coerce_value(raw: Optional[str]) -> Any:
    """Empty cells become None, numeric cells become numbers, the rest stays text."""
    if raw is None:
        return None
    value = raw.strip().strip('"')
    if not value:
        return None
    if "_" in value:
        return value
    try:
        return int(value)
    except ValueError:
        pass
    try:
        number = float(value)
    except ValueError:
        return value
    return number if math.isfinite(number) else value


def csv_to_records(text: str) -> List[Dict[str, Any]]:
    """Parse CSV text whose first row holds the headers."""
    reader = csv.reader(io.StringIO(text), skipinitialspace=True, escapechar="\\")
    try:
        headers = [normalize_header(header) for header in next(reader)]
    except StopIteration:
        return []

    records: List[Dict[str, Any]] = []
    for row in reader:
        if not any(cell.strip() for cell in row):
            continue
        records.append(
            {header: coerce_value(row[index] if index < len(row) else None) for index, header in enumerate(headers)}
        )
    return records


def convert_csv_file(input_path: Union[str, Path], output_path: Union[str, Path, None] = None) -> Path:
    """Write the records of ``input_path`` as pretty-printed JSON and return the output path."""
    input_path = Path(input_path)
    output_path = Path(output_path) if output_path else input_path.with_suffix(".json")

    text = input_path.read_text(encoding="utf-8")
    logger.info("Read CSV file %s", input_path)

    records = csv_to_records(text)
    output_path.write_text(json.dumps(records, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Converted %d rows from %s to %s", len(records), input_path, output_path)
    return output_path

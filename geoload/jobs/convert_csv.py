"""CLI job converting a CSV export into a JSON location file."""

import argparse
import logging
from typing import Optional

from geoload.etl.csv_convert import convert_csv_file

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Convert a CSV export into a JSON array of records")
    parser.add_argument("input_csv", help="CSV file whose first row holds the headers")
    parser.add_argument(
        "output_json",
        nargs="?",
        default=None,
        help="Output path (defaults to the input path with a .json suffix)",
    )
    return parser


def main(argv: Optional[list] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)

    try:
        convert_csv_file(args.input_csv, args.output_json)
    except OSError as exc:
        logger.error("Error processing file %s: %s", args.input_csv, exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()

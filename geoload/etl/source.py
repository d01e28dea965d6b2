"""Read raw location records from a JSON export."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)

_COMMENT_LINE = re.compile(r"^\s*//.*$", re.MULTILINE)


class LocationSourceError(ValueError):
    """Raised when the location file cannot be read or is not a JSON array."""


def load_locations(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Load the location array from ``path``, ignoring ``//`` comment lines."""
    path = Path(path)
    logger.info("Reading locations from %s", path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise LocationSourceError(f"Cannot read location file {path}: {exc}") from exc

    try:
        locations = json.loads(_COMMENT_LINE.sub("", text))
    except json.JSONDecodeError as exc:
        raise LocationSourceError(f"Location file {path} is not valid JSON: {exc}") from exc

    if not isinstance(locations, list):
        raise LocationSourceError("Location data must be an array")

    logger.info("Found %d raw entries in %s", len(locations), path)
    return locations

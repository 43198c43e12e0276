"""Architecture pattern catalog loading.

Reads a catalog from a JSON or YAML file into frozen pattern records:

- Top-level shape checked before model validation, for clearer errors
- Pattern count ceiling to reject implausibly large files
- Duplicate pattern ids rejected
- Full Pydantic validation of every entry
"""

import json
import logging
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import ValidationError

from .schema import PatternCatalog

logger = logging.getLogger(__name__)

MAX_PATTERN_COUNT = 500
YAML_SUFFIXES = (".yaml", ".yml")


class CatalogLoadError(Exception):
    """Raised when a pattern catalog cannot be loaded."""


def load_catalog(path: Union[str, Path]) -> PatternCatalog:
    """Load and validate a pattern catalog file.

    Args:
        path: Path to a ``.json``, ``.yaml`` or ``.yml`` catalog.

    Returns:
        The validated, immutable catalog.

    Raises:
        CatalogLoadError: If the file is missing, unparseable or malformed.
    """
    path = Path(path)
    if not path.exists():
        raise CatalogLoadError(f"Catalog file not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CatalogLoadError(f"Could not read catalog {path}: {exc}")

    if not text.strip():
        raise CatalogLoadError(f"Catalog file is empty: {path}")

    try:
        if path.suffix.lower() in YAML_SUFFIXES:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise CatalogLoadError(f"Catalog {path} is not valid {path.suffix.lstrip('.') or 'JSON'}: {exc}")

    catalog = parse_catalog(data)
    logger.info("Loaded %d patterns from %s (version %s)", len(catalog.patterns), path, catalog.version)
    return catalog


def parse_catalog(data: Any) -> PatternCatalog:
    """Validate already-parsed catalog data.

    Raises:
        CatalogLoadError: If the data does not describe a catalog.
    """
    _validate_catalog_structure(data)

    try:
        return PatternCatalog.model_validate(data)
    except ValidationError as exc:
        raise CatalogLoadError(f"Catalog failed schema validation: {exc}")


def _validate_catalog_structure(data: Any) -> None:
    """Validate the essential shape of a catalog.

    Checks performed:
    - Top-level must be a mapping with a 'patterns' list
    - Pattern count must be between 1 and MAX_PATTERN_COUNT
    - Each entry must be a mapping with a unique 'pattern_id'
    """
    if not isinstance(data, dict):
        raise CatalogLoadError("Catalog must be an object with a 'patterns' key.")

    if "patterns" not in data:
        raise CatalogLoadError("Catalog is missing the required 'patterns' field.")

    patterns = data["patterns"]
    if not isinstance(patterns, list):
        raise CatalogLoadError("'patterns' must be a list.")

    if len(patterns) == 0:
        raise CatalogLoadError("Catalog contains no patterns.")

    if len(patterns) > MAX_PATTERN_COUNT:
        raise CatalogLoadError(
            f"Catalog contains {len(patterns)} patterns, which exceeds "
            f"the maximum of {MAX_PATTERN_COUNT}."
        )

    seen: set[str] = set()
    for i, entry in enumerate(patterns):
        if not isinstance(entry, dict):
            raise CatalogLoadError(f"Pattern entry at index {i} is not an object.")

        pattern_id = entry.get("pattern_id")
        if not pattern_id:
            raise CatalogLoadError(f"Pattern entry at index {i} is missing 'pattern_id'.")

        if not isinstance(pattern_id, str):
            raise CatalogLoadError(f"Pattern entry at index {i} has a non-string 'pattern_id'.")

        if pattern_id in seen:
            raise CatalogLoadError(f"Duplicate pattern_id '{pattern_id}' at index {i}.")
        seen.add(pattern_id)

"""Startup catalog loading.

The catalog loader reads startup records from disk and turns them into
``StartupCatalogEntry`` objects, applying field aliases and defaults once,
at this boundary.

Supported formats
-----------------
* **Directory (with optional sub-directories)**: the loader recursively
  finds all ``.json`` files under the catalog path.  Each file holds one
  record or a JSON array of records; files are read in path order.
* **Single JSON-lines file**: each line is one record.
* **Single JSON file**: a JSON array of records.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from models.catalog import DEFAULT_MIN_INVESTMENT, StartupCatalogEntry

logger = logging.getLogger(__name__)


def load_catalog(
    catalog_path: str | Path,
    default_min_investment: float = DEFAULT_MIN_INVESTMENT,
) -> dict[str, StartupCatalogEntry]:
    """Load the catalog at *catalog_path*, keyed by startup id.

    Raises ``FileNotFoundError`` for a missing or unsupported path and
    ``ValueError`` for duplicate ids or malformed files.
    """
    path = Path(catalog_path)

    if path.is_dir():
        raw = _load_from_directory(path)
    elif path.is_file() and path.suffix == ".jsonl":
        raw = _load_from_jsonl(path)
    elif path.is_file() and path.suffix == ".json":
        raw = _load_from_json_array(path)
    else:
        raise FileNotFoundError(
            f"Catalog path '{catalog_path}' is neither a directory nor a "
            f"supported file (.json, .jsonl)."
        )

    context = {"default_min_investment": default_min_investment}
    catalog: dict[str, StartupCatalogEntry] = {}
    for item in raw:
        entry = StartupCatalogEntry.model_validate(item, context=context)
        if entry.id in catalog:
            raise ValueError(f"Duplicate startup id '{entry.id}' in catalog '{path}'.")
        catalog[entry.id] = entry

    logger.info("Loaded %d startup(s) from '%s'.", len(catalog), path)
    return catalog


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------

def _load_from_directory(directory: Path) -> list[Any]:
    files = sorted(
        directory.rglob("*.json"),
        key=lambda f: f.relative_to(directory),
    )
    if not files:
        raise FileNotFoundError(f"No .json files found under '{directory}'.")
    records: list[Any] = []
    for f in files:
        data = json.loads(f.read_text(encoding="utf-8"))
        records.extend(data if isinstance(data, list) else [data])
    return records


def _load_from_jsonl(path: Path) -> list[Any]:
    records: list[Any] = []
    with path.open(encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            records.append(json.loads(line))
    return records


def _load_from_json_array(path: Path) -> list[Any]:
    raw_list = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw_list, list):
        raise ValueError(
            f"Expected a JSON array in '{path}', got {type(raw_list).__name__}."
        )
    return raw_list

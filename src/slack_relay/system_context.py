"""Static system instructions and conversation context assembly.

The system prefix is read once at startup from a tabular side file with a
``content`` column; each row becomes one ``system`` message. A missing or
unreadable file degrades to an empty prefix.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)

CONTENT_COLUMN = "content"


def load_system_context(path: str | Path) -> list[dict[str, str]]:
    """Load system-role messages from a CSV (or TSV) side file.

    Args:
        path: Path to the side file.

    Returns:
        One ``{"role": "system", "content": ...}`` entry per non-empty row,
        or an empty list if the file is absent or cannot be parsed.
    """
    path = Path(path)
    if not path.exists():
        logger.info("No system context file at %s", path)
        return []

    sep = "\t" if path.suffix.lower() in (".tsv", ".txt") else ","
    try:
        df = pd.read_csv(path, sep=sep, dtype=str, keep_default_na=False)
    except (OSError, ValueError):
        logger.warning("Could not read system context from %s", path, exc_info=True)
        return []

    if CONTENT_COLUMN not in df.columns:
        logger.warning("System context file %s has no '%s' column", path, CONTENT_COLUMN)
        return []

    rows = [str(v) for v in df[CONTENT_COLUMN].tolist() if str(v).strip()]
    logger.info("Loaded %d system context rows from %s", len(rows), path)
    return [{"role": "system", "content": row} for row in rows]


def assemble_context(
    system_prefix: list[dict[str, str]],
    history: list[dict[str, str]],
) -> list[dict[str, str]]:
    """Return ``system_prefix`` followed by ``history`` as a new list."""
    return [*system_prefix, *history]

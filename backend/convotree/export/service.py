"""Export service: serialize the run store, and merge runs back in by content."""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from convotree.models import EXPORT_VERSION, ROOT_KEY, ConvoTreeExport, Run
from convotree.runs.store import generate_run_id, sanitize_runs, turns_equal

logger = logging.getLogger(__name__)


def export_json(runs: list[Run], root_key: str = ROOT_KEY) -> str:
    """Serialize runs as a pretty-printed export blob."""
    export = ConvoTreeExport(
        version=EXPORT_VERSION,
        exported_at=datetime.now(UTC),
        root_key=root_key,
        runs=runs,
    )
    data = export.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(data, indent=2, ensure_ascii=False)


def _valid_run_shape(raw: Any) -> bool:
    if not isinstance(raw, dict) or not raw.get("id") or not isinstance(raw.get("turns"), list):
        return False
    return all(
        isinstance(turn, dict) and turn.get("role") and turn.get("content")
        for turn in raw["turns"]
    )


def import_json(text: str | bytes, existing_runs: list[Run]) -> list[Run]:
    """Parse an export blob and return only the runs that are new by content.

    A run whose role+content sequence already exists (in the store or earlier
    in the same file) is skipped, so importing the same file twice adds
    nothing. Malformed runs are dropped with a warning; a malformed envelope
    raises ImportFormatError.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ImportFormatError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict) or not data.get("version") or "runs" not in data:
        raise ImportFormatError("Invalid export format")
    if not isinstance(data["runs"], list):
        raise ImportFormatError("Invalid export format: runs must be a list")

    shaped = []
    for raw in data["runs"]:
        if _valid_run_shape(raw):
            shaped.append(raw)
        else:
            logger.warning("Skipping invalid run in import: %r", raw)

    seen = list(existing_runs)
    new_runs: list[Run] = []
    for run in sanitize_runs(shaped):
        if any(turns_equal(other.turns, run.turns) for other in seen):
            continue
        # Same id, different content (e.g. an edited run): keep both runs.
        if any(other.id == run.id for other in seen):
            run = Run(id=generate_run_id(), turns=run.turns)
        seen.append(run)
        new_runs.append(run)

    logger.info("Import: %d runs in file, %d new", len(data["runs"]), len(new_runs))
    return new_runs


class ImportFormatError(Exception):
    """Raised when an import blob is not a convotree export."""

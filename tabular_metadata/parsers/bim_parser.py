"""Loader for TMSL database definitions stored on disk (model.bim or TMSL scripts)."""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_TMSL_COMMANDS = ("createOrReplace", "create", "alter")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def detect_input_type(path: str | Path) -> str:
    """Detect the input type: 'bim' or 'unknown'.

    Args:
        path: Path to a model.bim / .json file, a .pbip file, or a semantic
            model directory.
    """
    p = Path(path)

    if p.is_file() and p.suffix.lower() in (".bim", ".json"):
        return "bim"

    if p.suffix.lower() == ".pbip":
        # .pbip is a pointer file; the semantic model folder sits next to it
        sm_dir = _find_semantic_model_dir(p.parent)
        if sm_dir and (sm_dir / "model.bim").exists():
            return "bim"
        return "unknown"

    if p.is_dir():
        if (p / "model.bim").exists():
            return "bim"
        sm_dir = _find_semantic_model_dir(p)
        if sm_dir and (sm_dir / "model.bim").exists():
            return "bim"

    return "unknown"


def load_database(path: str | Path) -> dict:
    """Load the TMSL database object from a file or semantic model folder.

    Raises:
        FileNotFoundError: No model.bim could be located.
        ValueError: The file is not a TMSL database definition.
    """
    bim_path = find_bim_file(Path(path))
    logger.info(f"Loading TMSL definition: {bim_path}")
    data = json.loads(bim_path.read_text(encoding="utf-8-sig"))
    database = unwrap_database(data)
    if "name" not in database:
        # model.bim files saved by Power BI Desktop sometimes omit the name
        database["name"] = bim_path.parent.name
    return database


def unwrap_database(data: dict) -> dict:
    """Normalize the accepted JSON shapes to the database object.

    Accepts a bare database object (model.bim), a TMSL command
    (``{"createOrReplace": {"database": {...}}}``) or a ``{"database": {...}}``
    wrapper.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Expected a TMSL JSON object, got {type(data).__name__}")

    for command in _TMSL_COMMANDS:
        if command in data:
            data = data[command]
            break

    if "database" in data and isinstance(data["database"], dict):
        data = data["database"]

    if "model" not in data:
        raise ValueError("Not a TMSL database definition: no 'model' object found")
    return data


def find_bim_file(path: Path) -> Path:
    """Locate the model.bim file from various input paths."""
    if path.is_file() and path.suffix.lower() in (".bim", ".json"):
        return path
    if path.suffix.lower() == ".pbip":
        sm_dir = _find_semantic_model_dir(path.parent)
        if sm_dir:
            bim = sm_dir / "model.bim"
            if bim.exists():
                return bim
    if path.is_dir():
        bim = path / "model.bim"
        if bim.exists():
            return bim
        sm_dir = _find_semantic_model_dir(path)
        if sm_dir:
            bim = sm_dir / "model.bim"
            if bim.exists():
                return bim
    raise FileNotFoundError(f"model.bim not found at: {path}")


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

def _find_semantic_model_dir(parent: Path) -> Path | None:
    """Find a *.SemanticModel or *.Dataset directory inside parent."""
    if not parent.is_dir():
        return None
    for d in sorted(parent.iterdir()):
        if d.is_dir() and (
            d.name.endswith(".SemanticModel")
            or d.name.endswith(".Dataset")
        ):
            return d
    return None

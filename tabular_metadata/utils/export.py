"""JSON export of an extracted Model."""

import json
import logging
from dataclasses import fields, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from ..models import ColumnRef, Expression, Model, Name, Note

logger = logging.getLogger(__name__)


def model_to_dict(model: Model) -> dict:
    """Convert a Model to plain JSON-ready dicts.

    Names, notes and expressions become their text (None when absent),
    column references become ``{"table", "column"}`` pairs, datetimes
    ISO-8601 strings.
    """
    return _convert(model)


def write_model(model: Model, path: str | Path) -> Path:
    """Write the Model as indented UTF-8 JSON and return the output path."""
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(
        json.dumps(model_to_dict(model), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    logger.info(f"Model metadata written to {output}")
    return output


def _convert(value):
    if isinstance(value, (Name, Note, Expression)):
        return value.value if value.is_present else None
    if isinstance(value, ColumnRef):
        return {"table": value.table, "column": value.column}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if is_dataclass(value):
        return {f.name: _convert(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, list):
        return [_convert(v) for v in value]
    return value

"""Persistent settings for the extraction CLI."""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path

from ..extractors.connection import ConnectionDescriptor

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path.home() / ".tabular_metadata.json"

SECRET_KEYS = ("Password", "Pwd")


@dataclass
class ExtractorSettings:
    """User settings persisted between runs."""

    server_command: str = "python -m tabular_mcp_server"
    application_name: str = "tabular-metadata-cli"
    application_version: str = ""
    read_statistics_from_data: bool = True
    sample_rows: int = 0
    analyze_direct_query: bool = False
    output_path: str = "./model-metadata.json"
    last_connection_string: str = ""
    save_secrets: bool = False


def load_settings(path: Path | None = None) -> ExtractorSettings:
    """Load settings from JSON file. Returns defaults if file is missing."""
    settings_path = path or DEFAULT_SETTINGS_PATH
    if settings_path.exists():
        try:
            data = json.loads(settings_path.read_text(encoding="utf-8"))
            known = {f for f in ExtractorSettings.__dataclass_fields__}
            filtered = {k: v for k, v in data.items() if k in known}
            return ExtractorSettings(**filtered)
        except (json.JSONDecodeError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to load settings: {e}")
    return ExtractorSettings()


def save_settings(settings: ExtractorSettings, path: Path | None = None) -> None:
    """Save settings to JSON file. Strips passwords unless user opted in."""
    settings_path = path or DEFAULT_SETTINGS_PATH
    data = asdict(settings)
    if not settings.save_secrets:
        data["last_connection_string"] = _strip_secrets(settings.last_connection_string)
    settings_path.write_text(
        json.dumps(data, indent=2, ensure_ascii=False),
        encoding="utf-8",
    )


def _strip_secrets(connection_string: str) -> str:
    descriptor = ConnectionDescriptor.try_parse(connection_string)
    if descriptor is None:
        # bare server name, nothing secret in it
        return connection_string
    return str(descriptor.without(*SECRET_KEYS))

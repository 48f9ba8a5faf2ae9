"""Loading of sync mappings from the JSON mapping document."""

import json
import logging
from pathlib import Path
from typing import Any, Union

from ..exceptions import ConfigError
from .mapping import SyncMapping

logger = logging.getLogger(__name__)


def parse_mappings(data: Any) -> list[SyncMapping]:
    """Build mappings from a decoded mapping document.

    Args:
        data: Decoded JSON, expected to be an object of
            ``{"<local dir>": "<remote root id>"}``

    Returns:
        List of SyncMapping in document order

    Raises:
        ConfigError: If the document does not have the expected shape
    """
    if not isinstance(data, dict):
        raise ConfigError(
            "Mapping document must be a JSON object of local path -> remote folder ID"
        )

    mappings: list[SyncMapping] = []
    for local, remote_root_id in data.items():
        if not isinstance(remote_root_id, str):
            raise ConfigError(
                f"Remote folder ID for '{local}' must be a string, "
                f"got {type(remote_root_id).__name__}"
            )
        if not local.strip():
            raise ConfigError("Mapping document contains an empty local path")
        try:
            mappings.append(SyncMapping(local, remote_root_id))
        except ValueError as e:
            raise ConfigError(f"Invalid mapping for '{local}': {e}") from e
    return mappings


def load_mappings_from_json(path: Union[str, Path]) -> list[SyncMapping]:
    """Load mappings from a JSON file.

    Args:
        path: Path to the mapping document

    Returns:
        List of SyncMapping

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Error reading mapping file {path}: {e}") from e

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ConfigError(f"Error parsing mapping file {path}: {e}") from e

    mappings = parse_mappings(data)
    logger.debug("Loaded %d mapping(s) from %s", len(mappings), path)
    return mappings

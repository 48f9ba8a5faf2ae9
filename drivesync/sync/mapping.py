"""Sync mapping definition."""

from dataclasses import dataclass
from pathlib import Path
from typing import Union


@dataclass(frozen=True)
class SyncMapping:
    """One local directory mirrored into one remote root folder.

    Examples:
        >>> mapping = SyncMapping("~/docs", "1AbCdEf")
        >>> mapping.remote_root_id
        '1AbCdEf'
    """

    local: Path
    """Local directory to mirror"""

    remote_root_id: str
    """ID of the remote folder at the top of the mirrored tree"""

    def __init__(self, local: Union[str, Path], remote_root_id: str):
        remote_root_id = (remote_root_id or "").strip()
        if not remote_root_id:
            raise ValueError("Remote root ID must not be empty")
        object.__setattr__(self, "local", Path(local).expanduser())
        object.__setattr__(self, "remote_root_id", remote_root_id)

    def __str__(self) -> str:
        return f"{self.local} -> {self.remote_root_id}"

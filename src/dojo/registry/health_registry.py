"""
In-process Team Registry and Health Tracking

This module provides:
- HealthState: the three states a team's server can be in
- HealthRecord: address, last poll outcome and last message for one team
- InMemoryRegistry: a lock-guarded, dict-backed registry shared by the
  HTTP handlers and the per-team monitors
"""

import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional, Any

from ..errors import NoSuchTeam


class HealthState(Enum):
    """Team server health state"""
    PENDING = "pending"
    OK = "ok"
    ERROR = "error"


@dataclass
class HealthRecord:
    """Health record for a single team's server.

    ``message`` is only set while ``state`` is OK; ``reason`` only while
    ``state`` is ERROR.
    """
    address: str
    state: HealthState = HealthState.PENDING
    reason: Optional[str] = None
    message: Optional[str] = None

    @property
    def status(self) -> str:
        """Status string as served to clients."""
        if self.state is HealthState.OK:
            return "ok"
        if self.state is HealthState.ERROR:
            return f"error: {self.reason}"
        return ""

    def to_dict(self, include_message: bool = True) -> Dict[str, Any]:
        """Convert to JSON-serialisable dictionary."""
        data: Dict[str, Any] = {"address": self.address, "status": self.status}
        if include_message and self.message is not None:
            data["message"] = self.message
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HealthRecord':
        """Create from the dictionary form produced by to_dict."""
        status = data.get("status", "")
        if status == "ok":
            return cls(address=data["address"], state=HealthState.OK,
                       message=data.get("message"))
        if status.startswith("error"):
            reason = status[len("error"):].lstrip(":").strip()
            return cls(address=data["address"], state=HealthState.ERROR, reason=reason)
        return cls(address=data["address"])


# ---------------------------------------------------------------------------
# In-memory registry (shared by the HTTP handlers and the team monitors)
# ---------------------------------------------------------------------------

class InMemoryRegistry:
    """Thread-safe, dict-backed team registry.

    Every read and write goes through ``_lock``. Records handed out are
    copies, so callers never observe a record mid-update.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[int, HealthRecord] = {}

    def insert_or_update_address(self, team: int, address: str) -> bool:
        """Set the address for *team*.

        Creates a pending record if the team has none and returns True.
        Otherwise only the address changes and False is returned.
        """
        with self._lock:
            record = self._records.get(team)
            if record is None:
                self._records[team] = HealthRecord(address=address)
                return True
            record.address = address
            return False

    def get(self, team: int) -> Optional[HealthRecord]:
        with self._lock:
            record = self._records.get(team)
            return replace(record) if record is not None else None

    def get_address(self, team: int) -> str:
        with self._lock:
            record = self._records.get(team)
            if record is None:
                raise NoSuchTeam(team)
            return record.address

    def snapshot(self) -> Dict[int, HealthRecord]:
        """Return copies of all records with their messages stripped."""
        with self._lock:
            return {team: replace(record, message=None)
                    for team, record in self._records.items()}

    def remove(self, team: int) -> bool:
        with self._lock:
            return self._records.pop(team, None) is not None

    def set_status_ok(self, team: int, message: str) -> bool:
        with self._lock:
            record = self._records.get(team)
            if record is None:
                return False
            record.state = HealthState.OK
            record.reason = None
            record.message = message
        return True

    def set_status_error(self, team: int, reason: str) -> bool:
        with self._lock:
            record = self._records.get(team)
            if record is None:
                return False
            record.state = HealthState.ERROR
            record.reason = reason
            record.message = None
        return True

    def __contains__(self, team: int) -> bool:
        with self._lock:
            return team in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

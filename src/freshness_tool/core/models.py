"""
Record types shared by the freshness pipeline stages.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


@dataclass(frozen=True)
class RemoteFileEntry:
    """One file from a remote catalog directory listing"""
    name: str
    path: str


@dataclass(frozen=True)
class LocalTestSpec:
    """One atomic test from the local index"""
    technique: str
    test_id: str
    source_file: str
    sub_technique: str = ""
    test_name: str = ""
    platform: str = ""


class StalenessStatus(Enum):
    DATED = "dated"
    NOT_FOUND_REMOTELY = "not-found-remotely"


@dataclass(frozen=True)
class StalenessEntry:
    """Reconciliation outcome for one local technique"""
    technique: str
    local_found: bool
    remote_timestamp: Optional[datetime]
    status: StalenessStatus
    representative: Optional[LocalTestSpec] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "technique": self.technique,
            "status": self.status.value,
            "local_found": self.local_found,
            "remote_timestamp": self.remote_timestamp.isoformat() if self.remote_timestamp else None,
            "test_id": self.representative.test_id if self.representative else None,
            "source_file": self.representative.source_file if self.representative else None,
        }


# Type aliases for the two mappings passed between stages
DateIndex = Dict[str, datetime]
LocalIndex = Dict[str, List[LocalTestSpec]]

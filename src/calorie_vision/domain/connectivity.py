"""Domain models for backend reachability."""

from dataclasses import dataclass
from enum import StrEnum


class ConnectivityStatus(StrEnum):
    """Tri-state backend health."""

    UNKNOWN = "unknown"
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class ConnectivityState:
    """Outcome of the latest trusted health probe."""

    status: ConnectivityStatus
    detail: str = ""

    @classmethod
    def unknown(cls) -> "ConnectivityState":
        return cls(ConnectivityStatus.UNKNOWN)

    @classmethod
    def reachable(cls) -> "ConnectivityState":
        return cls(ConnectivityStatus.REACHABLE)

    @classmethod
    def unreachable(cls, detail: str) -> "ConnectivityState":
        return cls(ConnectivityStatus.UNREACHABLE, detail or "Backend unreachable")

# core/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Literal, Any, Union

Status = Literal["INFO", "WARNING", "ERROR"]

# Status can only move up this ladder during a run.
STATUS_RANK: dict[str, int] = {"INFO": 0, "WARNING": 1, "ERROR": 2}


def worst_status(statuses) -> Status:
    """Return the most severe status in `statuses` (INFO when empty)."""
    worst: Status = "INFO"
    for status in statuses:
        if STATUS_RANK[status] > STATUS_RANK[worst]:
            worst = status
    return worst


@dataclass
class RemediationResult:
    """
    Outcome of one remediation run.

    Each step appends to `log` and may escalate `status`. The log lines are
    what ends up in the event log, in order.
    """
    id: str
    name: str
    status: Status = "INFO"
    log: list[str] = field(default_factory=list)

    def add(self, line: str) -> None:
        self.log.append(line)

    def escalate(self, status: Status, line: str | None = None) -> None:
        if line is not None:
            self.add(line)
        if STATUS_RANK[status] > STATUS_RANK[self.status]:
            self.status = status


@dataclass(frozen=True)
class WellKnownAdministrator:
    """The built-in domain administrator (RID 500), whatever it is called today."""
    rid: int = 500


@dataclass(frozen=True)
class ExplicitName:
    name: str


Member = Union[WellKnownAdministrator, ExplicitName]


@dataclass(frozen=True)
class PolicyDefinition:
    name: str
    max_password_age_days: int   # 0 = never expires
    min_password_length: int
    precedence: int              # lower wins
    members: tuple[Member, ...] = ()


@dataclass(frozen=True)
class AdapterAddress:
    interface: str
    address: str
    netmask: str | None


@dataclass(frozen=True)
class NetworkAddress:
    network: str
    prefix_length: int

    def __str__(self) -> str:
        return f"{self.network}/{self.prefix_length}"


@dataclass
class RemediationReport:
    meta: dict[str, Any]
    host: dict[str, Any]
    results: list[RemediationResult]
    status: Status

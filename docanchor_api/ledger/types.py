"""Value types returned by the ledger gateway."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class ReportRecord:
    """A report as stored on the ledger."""

    report_id: str
    report_hash: str
    timestamp: int
    verifier: str

    @property
    def timestamp_iso(self) -> str:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc).isoformat()


@dataclass(frozen=True)
class Receipt:
    """Proof that a write transaction was committed."""

    transaction_hash: str
    block_number: int
    status: int = 1


@dataclass(frozen=True)
class ReportStatus:
    """Existence check used to resolve writes with an unknown outcome."""

    report_id: str
    exists: bool
    record: Optional[ReportRecord] = None

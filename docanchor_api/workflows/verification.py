"""Verification workflow: does a presented document match its anchor?"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from docanchor_api.errors import InvalidInputError
from docanchor_api.hashing.digest import hash_file
from docanchor_api.ledger.gateway import ReadOnlyLedgerGateway
from docanchor_api.ledger.types import ReportRecord, ReportStatus
from docanchor_api.utils.metrics import verification_requests
from docanchor_api.workflows.anchoring import require_report_id

logger = logging.getLogger(__name__)


class VerificationOutcome(str, enum.Enum):
    MATCHED = "matched"
    MISMATCH = "mismatch"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class VerificationResult:
    """Result of a verification.

    ``outcome`` tells a mismatch from an unknown report. The public API
    only exposes ``matched``.
    """

    report_id: str
    matched: bool
    outcome: VerificationOutcome
    file_hash: str
    record: Optional[ReportRecord] = None


class VerificationWorkflow:
    """Public verification of documents against the ledger. No secrets needed."""

    def __init__(self, gateway: ReadOnlyLedgerGateway):
        """Initialize workflow with a ledger gateway."""
        self.gateway = gateway

    def verify(self, report_id: Optional[str], candidate_file_bytes: Optional[bytes]) -> VerificationResult:
        """Re-hash a candidate file and compare it with the anchored digest."""
        report_id = require_report_id(report_id)
        if candidate_file_bytes is None:
            raise InvalidInputError("Document file is required")

        file_hash = hash_file(candidate_file_bytes).value
        logger.info(f"Verifying document {report_id} with hash {file_hash}")

        record = None
        if self.gateway.compare(report_id, file_hash):
            outcome = VerificationOutcome.MATCHED
            record = self.gateway.read(report_id)
        elif self.gateway.exists(report_id):
            outcome = VerificationOutcome.MISMATCH
        else:
            outcome = VerificationOutcome.NOT_FOUND

        verification_requests.labels(outcome=outcome.value).inc()
        logger.info(
            f"Verification of {report_id}: {outcome.value}",
            extra={"report_id": report_id, "outcome": outcome.value},
        )
        return VerificationResult(
            report_id=report_id,
            matched=outcome is VerificationOutcome.MATCHED,
            outcome=outcome,
            file_hash=file_hash,
            record=record,
        )

    def check_status(self, report_id: Optional[str]) -> ReportStatus:
        """Whether a report exists, for clients resolving an unknown write outcome."""
        return self.gateway.status(require_report_id(report_id))

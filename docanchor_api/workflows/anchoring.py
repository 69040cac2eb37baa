"""Anchoring workflow: document in, ledger write out."""

import logging
from dataclasses import dataclass
from typing import Optional

from docanchor_api.errors import (
    AnchorError,
    DuplicateRecordError,
    InvalidInputError,
    LedgerTimeoutError,
    RecordNotFoundError,
    UnauthorizedWriteError,
)
from docanchor_api.hashing.digest import Digest, HashMethod, digest_document
from docanchor_api.ledger.gateway import ReadOnlyLedgerGateway
from docanchor_api.ledger.journal import SubmissionJournal
from docanchor_api.ledger.types import Receipt
from docanchor_api.utils.metrics import anchor_requests

logger = logging.getLogger(__name__)

# Journal status for expected failures; anything else is "failed"
_FAILURE_STATUS = (
    (DuplicateRecordError, "conflict"),
    (RecordNotFoundError, "not_found"),
    (LedgerTimeoutError, "unknown"),
)


@dataclass(frozen=True)
class ReportDocument:
    """Exactly one of raw file bytes or text content."""

    file_bytes: Optional[bytes] = None
    text: Optional[str] = None

    def digest(self) -> Digest:
        """File bytes use the ledger-native hash, text uses SHA-256."""
        # An empty form field counts as absent
        return digest_document(self.file_bytes, self.text or None)


@dataclass(frozen=True)
class AnchorResult:
    report_id: str
    report_hash: str
    hash_method: HashMethod
    receipt: Receipt


def require_report_id(report_id: Optional[str]) -> str:
    if report_id is None or not str(report_id).strip():
        raise InvalidInputError("Report ID is required")
    return str(report_id)


class AnchoringWorkflow:
    """Create and update report digests on the ledger."""

    def __init__(self, gateway: ReadOnlyLedgerGateway, journal: Optional[SubmissionJournal] = None):
        """Initialize workflow with a ledger gateway and optional journal."""
        self.gateway = gateway
        self.journal = journal

    def submit_new_report(
        self,
        report_id: Optional[str],
        document: ReportDocument,
        metadata: Optional[dict] = None,
        submitted_by: Optional[str] = None,
    ) -> AnchorResult:
        """Anchor a report that must not exist yet."""
        return self._anchor("create", report_id, document, metadata, submitted_by)

    def update_existing_report(
        self,
        report_id: Optional[str],
        document: ReportDocument,
        metadata: Optional[dict] = None,
        submitted_by: Optional[str] = None,
    ) -> AnchorResult:
        """Replace the digest of a report that must already exist."""
        return self._anchor("update", report_id, document, metadata, submitted_by)

    def _anchor(
        self,
        operation: str,
        report_id: Optional[str],
        document: ReportDocument,
        metadata: Optional[dict],
        submitted_by: Optional[str],
    ) -> AnchorResult:
        report_id = require_report_id(report_id)
        digest = document.digest()
        logger.info(
            f"Generated {digest.method.value} hash {digest.value} for report {report_id}",
            extra={"report_id": report_id, "operation": operation},
        )

        if not self.gateway.can_write:
            raise UnauthorizedWriteError(detail=f"{operation} attempted on a read-only ledger session")

        submission = None
        if self.journal is not None:
            submission = self.journal.begin(report_id, operation, digest, metadata, submitted_by)

        write = self.gateway.create if operation == "create" else self.gateway.update
        try:
            receipt = write(report_id, digest.value)
        except AnchorError as e:
            status = next((s for cls, s in _FAILURE_STATUS if isinstance(e, cls)), "failed")
            anchor_requests.labels(operation=operation, outcome=status).inc()
            if submission is not None:
                self.journal.fail(submission, status, e.detail or e.message)
            raise

        anchor_requests.labels(operation=operation, outcome="confirmed").inc()
        if submission is not None:
            self.journal.confirm(submission, receipt)

        return AnchorResult(
            report_id=report_id,
            report_hash=digest.value,
            hash_method=digest.method,
            receipt=receipt,
        )

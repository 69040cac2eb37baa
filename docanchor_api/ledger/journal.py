"""Submission journal service."""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from docanchor_api.hashing.digest import Digest
from docanchor_api.ledger.types import Receipt
from docanchor_api.models import AnchorSubmission

logger = logging.getLogger(__name__)


class SubmissionJournal:
    """Records ledger write attempts and what came of them."""

    def __init__(self, db: Session):
        """Initialize journal service."""
        self.db = db

    def begin(
        self,
        report_id: str,
        operation: str,
        digest: Digest,
        metadata: Optional[dict] = None,
        submitted_by: Optional[str] = None,
    ) -> AnchorSubmission:
        """Record a pending submission before the transaction is sent."""
        submission = AnchorSubmission(
            report_id=report_id,
            operation=operation,
            report_hash=digest.value,
            hash_method=digest.method.value,
            status="pending",
            metadata_json=metadata,
            submitted_by=submitted_by,
        )
        self.db.add(submission)
        self.db.commit()
        return submission

    def confirm(self, submission: AnchorSubmission, receipt: Receipt):
        submission.status = "confirmed"
        submission.transaction_hash = receipt.transaction_hash
        submission.block_number = receipt.block_number
        self._finish(submission)

    def fail(self, submission: AnchorSubmission, status: str, error: Optional[str] = None):
        """Close a submission that did not confirm.

        ``status`` is one of conflict, not_found, unknown or failed.
        """
        submission.status = status
        submission.error = error
        self._finish(submission)

    def latest(self, report_id: str) -> Optional[AnchorSubmission]:
        """Most recent submission for a report."""
        return (
            self.db.query(AnchorSubmission)
            .filter(AnchorSubmission.report_id == report_id)
            .order_by(AnchorSubmission.created_at.desc(), AnchorSubmission.id.desc())
            .first()
        )

    def _finish(self, submission: AnchorSubmission):
        # The ledger outcome stands even if the journal cannot be updated
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Failed to update submission journal for {submission.report_id}: {e}",
                exc_info=True,
                extra={"report_id": submission.report_id, "status": submission.status},
            )

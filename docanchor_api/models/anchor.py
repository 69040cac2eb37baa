"""Off-chain journal of ledger write attempts."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, JSON, String, Text

from docanchor_api.db.base import Base


class AnchorSubmission(Base):
    """One create/update attempt against the report storage contract.

    The ledger is the system of record. This row records how the digest
    was produced and what the server observed, so an operator can resolve
    submissions whose outcome is unknown.
    """

    __tablename__ = "anchor_submissions"

    id = Column(Integer, primary_key=True, index=True)
    report_id = Column(String(255), nullable=False, index=True)
    operation = Column(String(20), nullable=False)  # create, update
    report_hash = Column(String(66), nullable=False)
    hash_method = Column(String(50), nullable=False)  # file-keccak256, content-sha256
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, confirmed, conflict, not_found, unknown, failed
    transaction_hash = Column(String(66), nullable=True, index=True)
    block_number = Column(Integer, nullable=True)
    metadata_json = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    submitted_by = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

"""Registered document models."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, JSON, String

from docanchor_api.db.base import Base


class RegisteredDocument(Base):
    """Document registered with its digest and metadata."""

    __tablename__ = "registered_documents"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    document_hash = Column(String(66), nullable=False)
    metadata_json = Column(JSON, nullable=True)
    registered_by = Column(String(255), nullable=True)
    registered_at = Column(DateTime, default=datetime.utcnow, nullable=False)

"""Document registry storage."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from docanchor_api.errors import (
    DuplicateRecordError,
    InvalidInputError,
    MalformedHashError,
    RecordNotFoundError,
)
from docanchor_api.hashing.digest import normalize_to_bytes32
from docanchor_api.models import RegisteredDocument


def caller_hash(document_hash: str) -> str:
    """Normalize a client-supplied digest; a bad one is an input error."""
    try:
        return normalize_to_bytes32(document_hash)
    except MalformedHashError as e:
        raise InvalidInputError(
            "Document hash must be a hex digest of at most 32 bytes", detail=e.detail
        ) from e


@dataclass(frozen=True)
class DocumentEntry:
    document_id: str
    name: str
    document_hash: str
    metadata: Optional[dict]
    registered_by: Optional[str]
    registered_at: datetime


class DocumentStore(ABC):
    """Storage interface for registered documents."""

    @abstractmethod
    def add(
        self,
        document_id: str,
        name: str,
        document_hash: str,
        metadata: Optional[dict] = None,
        registered_by: Optional[str] = None,
    ) -> DocumentEntry:
        """Register a document; DuplicateRecordError if the id is taken."""

    @abstractmethod
    def get(self, document_id: str) -> Optional[DocumentEntry]:
        """Look up a document by id."""

    def check(self, document_id: str, document_hash: str) -> tuple[bool, DocumentEntry]:
        """Compare a hash with the registered one, both in bytes32 form."""
        entry = self.get(document_id)
        if entry is None:
            raise RecordNotFoundError("Document not found")
        return entry.document_hash == caller_hash(document_hash), entry


class SqlDocumentStore(DocumentStore):
    """SQLAlchemy-backed document store."""

    def __init__(self, db: Session):
        """Initialize store with a database session."""
        self.db = db

    def add(
        self,
        document_id: str,
        name: str,
        document_hash: str,
        metadata: Optional[dict] = None,
        registered_by: Optional[str] = None,
    ) -> DocumentEntry:
        document = RegisteredDocument(
            document_id=document_id,
            name=name,
            document_hash=caller_hash(document_hash),
            metadata_json=metadata,
            registered_by=registered_by,
            registered_at=datetime.utcnow(),
        )
        self.db.add(document)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateRecordError(
                "Document with this ID is already registered", detail=str(e.orig)
            ) from e
        return self._entry(document)

    def get(self, document_id: str) -> Optional[DocumentEntry]:
        document = (
            self.db.query(RegisteredDocument)
            .filter(RegisteredDocument.document_id == document_id)
            .first()
        )
        return self._entry(document) if document else None

    @staticmethod
    def _entry(document: RegisteredDocument) -> DocumentEntry:
        return DocumentEntry(
            document_id=document.document_id,
            name=document.name,
            document_hash=document.document_hash,
            metadata=document.metadata_json,
            registered_by=document.registered_by,
            registered_at=document.registered_at,
        )

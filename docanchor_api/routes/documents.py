"""Document registry endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from docanchor_api.db.session import get_db
from docanchor_api.documents.store import DocumentEntry, DocumentStore, SqlDocumentStore
from docanchor_api.errors import RecordNotFoundError

router = APIRouter(prefix="/v1", tags=["documents"])


class DocumentRequest(BaseModel):
    """Document registration request model."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    document_id: str = Field(..., min_length=1)
    document_name: str = Field(..., min_length=1)
    document_hash: str = Field(..., min_length=1, description="Hex digest, bytes32 or shorter")
    metadata: Optional[dict] = None


class DocumentCheckRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    document_id: str
    document_hash: str


class DocumentResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    document_id: str
    document_name: str
    document_hash: str
    metadata: Optional[dict] = None
    registered_by: Optional[str] = None
    registered_at: str


class DocumentCheckResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    document_id: str
    matched: bool
    registered_at: str


def get_document_store(db: Session = Depends(get_db)) -> DocumentStore:
    return SqlDocumentStore(db)


def _document_response(entry: DocumentEntry) -> DocumentResponse:
    return DocumentResponse(
        document_id=entry.document_id,
        document_name=entry.name,
        document_hash=entry.document_hash,
        metadata=entry.metadata,
        registered_by=entry.registered_by,
        registered_at=entry.registered_at.isoformat(),
    )


@router.post("/documents", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def register_document(
    request_data: DocumentRequest,
    request: Request,
    store: DocumentStore = Depends(get_document_store),
):
    """Register a document digest."""
    entry = store.add(
        document_id=request_data.document_id,
        name=request_data.document_name,
        document_hash=request_data.document_hash,
        metadata=request_data.metadata,
        registered_by=getattr(request.state, "client_id", None),
    )
    return _document_response(entry)


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str, store: DocumentStore = Depends(get_document_store)):
    """Look up a registered document. Public."""
    entry = store.get(document_id)
    if entry is None:
        raise RecordNotFoundError("Document not found")
    return _document_response(entry)


@router.post("/documents/check", response_model=DocumentCheckResponse)
async def check_document(
    request_data: DocumentCheckRequest,
    store: DocumentStore = Depends(get_document_store),
):
    """Compare a digest with the registered one. Public."""
    matched, entry = store.check(request_data.document_id, request_data.document_hash)
    return DocumentCheckResponse(
        document_id=entry.document_id,
        matched=matched,
        registered_at=entry.registered_at.isoformat(),
    )

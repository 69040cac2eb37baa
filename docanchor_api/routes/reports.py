"""Report anchoring, lookup and verification endpoints."""

import json
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from docanchor_api.db.session import get_db
from docanchor_api.errors import InvalidInputError
from docanchor_api.hashing.digest import hash_content
from docanchor_api.ledger.gateway import (
    ReadOnlyLedgerGateway,
    SigningLedgerGateway,
    get_read_gateway,
    get_signing_gateway,
)
from docanchor_api.ledger.journal import SubmissionJournal
from docanchor_api.settings import get_settings
from docanchor_api.workflows.anchoring import AnchoringWorkflow, AnchorResult, ReportDocument
from docanchor_api.workflows.uploads import read_upload
from docanchor_api.workflows.verification import VerificationWorkflow


router = APIRouter(prefix="/v1", tags=["reports"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnchorResponse(CamelModel):
    """Anchor create/update response model."""

    success: bool = True
    message: str
    report_id: str
    report_hash: str
    hash_method: str
    transaction_hash: str
    block_number: int


class ReportResponse(CamelModel):
    report_id: str
    report_hash: str
    timestamp: str
    verifier: str
    verified: bool = True


class SubmissionSummary(CamelModel):
    operation: str
    status: str
    report_hash: str
    hash_method: str
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    created_at: Optional[str] = None


class ReportStatusResponse(CamelModel):
    """Existence check used to resolve an unknown write outcome."""

    report_id: str
    exists: bool
    report_hash: Optional[str] = None
    timestamp: Optional[str] = None
    verifier: Optional[str] = None
    last_submission: Optional[SubmissionSummary] = None


class ReportListResponse(CamelModel):
    total: int
    offset: int
    report_ids: list[str] = Field(default_factory=list)


class VerifyResponse(CamelModel):
    """Verification response model."""

    success: bool
    message: str
    report_id: str
    matched: bool
    file_hash: str
    report_hash: Optional[str] = None
    timestamp: Optional[str] = None
    verifier: Optional[str] = None


class HashRequest(BaseModel):
    content: str


class HashResponse(CamelModel):
    success: bool = True
    hash: str
    report_hash: str
    method: str


def get_journal(db: Session = Depends(get_db)) -> SubmissionJournal:
    return SubmissionJournal(db)


def parse_metadata(metadata: Optional[str]) -> Optional[dict]:
    """Decode the optional metadata form field."""
    if not metadata:
        return None
    try:
        parsed = json.loads(metadata)
    except json.JSONDecodeError as e:
        raise InvalidInputError("Metadata must be a JSON object", detail=str(e)) from e
    if not isinstance(parsed, dict):
        raise InvalidInputError("Metadata must be a JSON object")
    return parsed


async def _anchor(
    request: Request,
    operation: str,
    report_id: Optional[str],
    metadata: Optional[str],
    report_file: Optional[UploadFile],
    report_content: Optional[str],
    gateway: SigningLedgerGateway,
    journal: SubmissionJournal,
) -> AnchorResult:
    workflow = AnchoringWorkflow(gateway, journal)
    submitted_by = getattr(request.state, "client_id", None)

    # Upload bytes only live until the digest is taken
    async with read_upload(report_file, get_settings().max_upload_bytes) as file_bytes:
        parsed_metadata = parse_metadata(metadata)

    method = workflow.submit_new_report if operation == "create" else workflow.update_existing_report
    return await run_in_threadpool(
        method,
        report_id,
        ReportDocument(file_bytes=file_bytes, text=report_content),
        parsed_metadata,
        submitted_by,
    )


def _anchor_response(result: AnchorResult, message: str) -> AnchorResponse:
    return AnchorResponse(
        message=message,
        report_id=result.report_id,
        report_hash=result.report_hash,
        hash_method=result.hash_method.value,
        transaction_hash=result.receipt.transaction_hash,
        block_number=result.receipt.block_number,
    )


@router.post("/reports", response_model=AnchorResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    request: Request,
    report_id: Optional[str] = Form(None, alias="reportId"),
    metadata: Optional[str] = Form(None),
    report_file: Optional[UploadFile] = File(None, alias="reportFile"),
    report_content: Optional[str] = Form(None, alias="reportContent"),
    gateway: SigningLedgerGateway = Depends(get_signing_gateway),
    journal: SubmissionJournal = Depends(get_journal),
):
    """Anchor a new report digest on the ledger."""
    result = await _anchor(
        request, "create", report_id, metadata, report_file, report_content, gateway, journal
    )
    return _anchor_response(result, "Report added to blockchain successfully")


@router.put("/reports/{report_id}", response_model=AnchorResponse)
async def update_report(
    report_id: str,
    request: Request,
    metadata: Optional[str] = Form(None),
    report_file: Optional[UploadFile] = File(None, alias="reportFile"),
    report_content: Optional[str] = Form(None, alias="reportContent"),
    gateway: SigningLedgerGateway = Depends(get_signing_gateway),
    journal: SubmissionJournal = Depends(get_journal),
):
    """Replace the digest of an existing report."""
    result = await _anchor(
        request, "update", report_id, metadata, report_file, report_content, gateway, journal
    )
    return _anchor_response(result, "Report updated on blockchain successfully")


@router.get("/reports", response_model=ReportListResponse)
async def list_reports(
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    gateway: ReadOnlyLedgerGateway = Depends(get_read_gateway),
):
    """List anchored report ids in ledger order."""
    total = await run_in_threadpool(gateway.report_count)
    report_ids = await run_in_threadpool(gateway.list_report_ids, offset, limit)
    return ReportListResponse(total=total, offset=offset, report_ids=report_ids)


@router.get("/reports/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: str,
    gateway: ReadOnlyLedgerGateway = Depends(get_read_gateway),
):
    """Get a report record from the ledger."""
    record = await run_in_threadpool(gateway.read, report_id)
    return ReportResponse(
        report_id=record.report_id,
        report_hash=record.report_hash,
        timestamp=record.timestamp_iso,
        verifier=record.verifier,
    )


@router.get("/reports/{report_id}/status", response_model=ReportStatusResponse)
async def get_report_status(
    report_id: str,
    gateway: ReadOnlyLedgerGateway = Depends(get_read_gateway),
    journal: SubmissionJournal = Depends(get_journal),
):
    """Check whether a report exists, e.g. after a dropped create request."""
    report_status = await run_in_threadpool(VerificationWorkflow(gateway).check_status, report_id)
    response = ReportStatusResponse(report_id=report_id, exists=report_status.exists)
    if report_status.record is not None:
        response.report_hash = report_status.record.report_hash
        response.timestamp = report_status.record.timestamp_iso
        response.verifier = report_status.record.verifier

    submission = journal.latest(report_id)
    if submission is not None:
        response.last_submission = SubmissionSummary(
            operation=submission.operation,
            status=submission.status,
            report_hash=submission.report_hash,
            hash_method=submission.hash_method,
            transaction_hash=submission.transaction_hash,
            block_number=submission.block_number,
            created_at=submission.created_at.isoformat() if submission.created_at else None,
        )
    return response


@router.post("/verify", response_model=VerifyResponse)
async def verify_document(
    report_id: Optional[str] = Form(None, alias="reportId"),
    document_file: Optional[UploadFile] = File(None, alias="documentFile"),
    gateway: ReadOnlyLedgerGateway = Depends(get_read_gateway),
):
    """Verify a document against its anchored digest. Public."""
    file_bytes = None
    if document_file is not None:
        async with read_upload(document_file, get_settings().max_upload_bytes) as data:
            file_bytes = data

    result = await run_in_threadpool(VerificationWorkflow(gateway).verify, report_id, file_bytes)

    if not result.matched:
        # Mismatch and unknown report look the same from outside
        return VerifyResponse(
            success=False,
            message="Document verification failed. Hash mismatch or report not found.",
            report_id=result.report_id,
            matched=False,
            file_hash=result.file_hash,
        )

    return VerifyResponse(
        success=True,
        message="Document verified successfully",
        report_id=result.report_id,
        matched=True,
        file_hash=result.file_hash,
        report_hash=result.record.report_hash,
        timestamp=result.record.timestamp_iso,
        verifier=result.record.verifier,
    )


@router.post("/hash", response_model=HashResponse)
async def hash_text(request_data: HashRequest):
    """Hash text content the way report content is hashed at anchoring time."""
    digest = hash_content(request_data.content)
    return HashResponse(hash=digest.value[2:], report_hash=digest.value, method=digest.method.value)

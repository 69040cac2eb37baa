"""Ledger gateway: typed report operations over a contract backend.

A ReadOnlyLedgerGateway can read and compare. Only a SigningLedgerGateway,
built from a backend holding a signing account, can create or update
records. Revert-reason matching lives in REVERT_REASONS and nowhere else.
"""

import logging
import time
from functools import lru_cache
from typing import Callable, Optional, TypeVar

import requests
from eth_account import Account
from web3.exceptions import ContractLogicError, TimeExhausted

from docanchor_api.errors import (
    AnchorError,
    DuplicateRecordError,
    LedgerReadError,
    LedgerTimeoutError,
    LedgerWriteError,
    RecordNotFoundError,
    UnauthorizedWriteError,
)
from docanchor_api.hashing.digest import normalize_to_bytes32
from docanchor_api.ledger.backends import ContractBackend, InMemoryContractBackend, Web3ContractBackend
from docanchor_api.ledger.deployment import (
    load_deployment,
    resolve_contract_address,
    resolve_network,
)
from docanchor_api.ledger.types import Receipt, ReportRecord, ReportStatus
from docanchor_api.settings import Settings, get_settings
from docanchor_api.utils.metrics import ledger_call_duration, ledger_errors

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Substring of the ledger's revert reason -> typed error
REVERT_REASONS: dict[str, type[AnchorError]] = {
    "Report already exists": DuplicateRecordError,
    "Report does not exist": RecordNotFoundError,
    "Only owner": UnauthorizedWriteError,
}

TIMEOUT_ERRORS = (TimeExhausted, requests.exceptions.Timeout)


def revert_reason(exc: Exception) -> str:
    """Best-effort human readable reason from a ledger exception."""
    message = getattr(exc, "message", None)
    return str(message) if message else str(exc)


def map_ledger_error(exc: Exception, write: bool) -> AnchorError:
    """Translate a raw ledger exception into the error taxonomy."""
    reason = revert_reason(exc)
    if isinstance(exc, TIMEOUT_ERRORS):
        return LedgerTimeoutError(detail=reason)
    if isinstance(exc, ContractLogicError):
        for needle, error_cls in REVERT_REASONS.items():
            if needle in reason:
                return error_cls(detail=reason)
    if write:
        return LedgerWriteError(detail=reason)
    return LedgerReadError(detail=reason)


class ReadOnlyLedgerGateway:
    """Read access to report records. Writes are rejected without network I/O."""

    def __init__(self, backend: ContractBackend):
        """Initialize gateway around a contract backend."""
        self.backend = backend

    @property
    def can_write(self) -> bool:
        return False

    def create(self, report_id: str, report_hash: str) -> Receipt:
        raise UnauthorizedWriteError(detail="create attempted on a read-only ledger session")

    def update(self, report_id: str, report_hash: str) -> Receipt:
        raise UnauthorizedWriteError(detail="update attempted on a read-only ledger session")

    def read(self, report_id: str) -> ReportRecord:
        """Fetch a report record; RecordNotFoundError if absent."""
        report_hash, timestamp, verifier = self._call("getReport", self.backend.get_report, report_id)
        return ReportRecord(
            report_id=report_id,
            report_hash=normalize_to_bytes32(report_hash),
            timestamp=timestamp,
            verifier=verifier,
        )

    def compare(self, report_id: str, candidate_hash: str) -> bool:
        """Whether the stored digest equals the candidate.

        Both sides are compared in bytes32 form. A missing record compares
        as False; callers that care use exists() to tell the cases apart.
        """
        candidate = normalize_to_bytes32(candidate_hash)
        try:
            return self._call(
                "verifyReportHash",
                self.backend.verify_report_hash,
                report_id,
                bytes.fromhex(candidate[2:]),
            )
        except RecordNotFoundError:
            logger.info(f"Compare on unknown report {report_id}")
            return False

    def exists(self, report_id: str) -> bool:
        return self.status(report_id).exists

    def status(self, report_id: str) -> ReportStatus:
        """Idempotent existence check, used to resolve unknown write outcomes."""
        try:
            record = self.read(report_id)
        except RecordNotFoundError:
            return ReportStatus(report_id=report_id, exists=False)
        return ReportStatus(report_id=report_id, exists=True, record=record)

    def report_count(self) -> int:
        return self._call("getReportCount", self.backend.report_count)

    def list_report_ids(self, offset: int = 0, limit: int = 50) -> list[str]:
        """Enumerate report ids in insertion order."""
        total = self.report_count()
        end = min(total, offset + limit)
        return [
            self._call("reportIds", self.backend.report_id_at, index)
            for index in range(max(offset, 0), end)
        ]

    def _call(self, operation: str, fn: Callable[..., T], *args, write: bool = False) -> T:
        """Run one ledger round trip, timing it and mapping failures."""
        started = time.perf_counter()
        try:
            return fn(*args)
        except AnchorError:
            raise
        except Exception as exc:
            error = map_ledger_error(exc, write=write)
            ledger_errors.labels(operation=operation, error=error.code).inc()
            if isinstance(error, (DuplicateRecordError, RecordNotFoundError)):
                logger.info(f"Ledger {operation} rejected: {error.detail}")
            else:
                logger.error(
                    f"Ledger {operation} failed: {error.detail}",
                    extra={"operation": operation, "error_code": error.code},
                )
            raise error from exc
        finally:
            ledger_call_duration.labels(operation=operation).observe(time.perf_counter() - started)


class SigningLedgerGateway(ReadOnlyLedgerGateway):
    """Gateway that can submit create/update transactions."""

    def __init__(self, backend: ContractBackend):
        """Initialize gateway; the backend must carry a signing account."""
        if not backend.signer_address:
            raise UnauthorizedWriteError(
                detail="signing gateway requires a backend with a signing account"
            )
        super().__init__(backend)

    @property
    def can_write(self) -> bool:
        return True

    @property
    def signer_address(self) -> Optional[str]:
        return self.backend.signer_address

    def create(self, report_id: str, report_hash: str) -> Receipt:
        """Submit addReport and wait for confirmation."""
        return self._write("addReport", self.backend.add_report, report_id, report_hash)

    def update(self, report_id: str, report_hash: str) -> Receipt:
        """Submit updateReport and wait for confirmation."""
        return self._write("updateReport", self.backend.update_report, report_id, report_hash)

    def _write(self, operation: str, fn, report_id: str, report_hash: str) -> Receipt:
        normalized = normalize_to_bytes32(report_hash)
        logger.info(f"Submitting {operation} for report {report_id} with hash {normalized}")
        receipt = self._call(operation, fn, report_id, bytes.fromhex(normalized[2:]), write=True)
        if receipt.status == 0:
            ledger_errors.labels(operation=operation, error=LedgerWriteError.code).inc()
            raise LedgerWriteError(detail=f"transaction {receipt.transaction_hash} reverted")
        logger.info(
            f"Report {report_id} committed in block {receipt.block_number}",
            extra={"report_id": report_id, "tx_hash": receipt.transaction_hash},
        )
        return receipt


@lru_cache()
def _memory_ledger(private_key: Optional[str] = None) -> InMemoryContractBackend:
    """Process-wide development ledger shared by read and signing gateways."""
    if private_key:
        return InMemoryContractBackend(signer_address=Account.from_key(private_key).address)
    return InMemoryContractBackend()


def build_backend(settings: Settings, signing: bool) -> ContractBackend:
    """Build a contract backend from settings and the deployment file."""
    provider = settings.ledger_provider.lower()

    if provider == "memory":
        ledger = _memory_ledger(settings.ledger_private_key)
        return ledger if signing else ledger.read_only()
    elif provider == "web3":
        deployment = load_deployment(settings.contract_deployment_path)
        network = resolve_network(settings, deployment)
        return Web3ContractBackend.connect(
            rpc_url=network.rpc_url,
            contract_address=resolve_contract_address(settings, deployment),
            abi=deployment.abi,
            private_key=settings.ledger_private_key if signing else None,
            chain_id=network.chain_id,
            rpc_timeout=settings.ledger_rpc_timeout_seconds,
            confirmation_timeout=settings.ledger_confirmation_timeout_seconds,
        )
    else:
        raise ValueError(f"Unknown ledger provider: {provider}")


@lru_cache()
def get_read_gateway() -> ReadOnlyLedgerGateway:
    """Get the read-only gateway used by verification and lookups."""
    return ReadOnlyLedgerGateway(build_backend(get_settings(), signing=False))


@lru_cache()
def get_signing_gateway() -> SigningLedgerGateway:
    """Get the write-capable gateway; fails loudly without a signing credential."""
    settings = get_settings()
    if settings.ledger_provider.lower() != "memory" and not settings.ledger_private_key:
        raise UnauthorizedWriteError(
            detail="LEDGER_PRIVATE_KEY not configured. Set it in environment variables."
        )
    return SigningLedgerGateway(build_backend(settings, signing=True))

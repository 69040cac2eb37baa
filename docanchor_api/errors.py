"""Error taxonomy for anchoring, verification and ledger access."""

from typing import Optional


class AnchorError(Exception):
    """Base error. ``message`` is safe to show to callers, ``detail`` is not."""

    status_code = 500
    code = "ANCHOR_ERROR"
    default_message = "Document anchoring failed"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class InvalidInputError(AnchorError):
    """Caller supplied neither file nor text, or omitted the report id."""

    status_code = 400
    code = "INVALID_INPUT"
    default_message = "Invalid request"


class DocumentTooLargeError(InvalidInputError):
    """Uploaded document exceeds the configured size limit."""

    status_code = 413
    code = "DOCUMENT_TOO_LARGE"
    default_message = "Uploaded document is too large"


class MalformedHashError(AnchorError):
    """A hex digest cannot be normalized into 32 bytes."""

    code = "MALFORMED_HASH"
    default_message = "Digest cannot be represented as bytes32"


class DuplicateRecordError(AnchorError):
    status_code = 409
    code = "DUPLICATE_RECORD"
    default_message = "Report with this ID already exists on the blockchain"


class RecordNotFoundError(AnchorError):
    status_code = 404
    code = "RECORD_NOT_FOUND"
    default_message = "Report not found on the blockchain"


class UnauthorizedWriteError(AnchorError):
    """Write attempted without a signing credential (deployment error)."""

    code = "UNAUTHORIZED_WRITE"
    default_message = "Ledger writes are not configured on this server"


class LedgerTimeoutError(AnchorError):
    """Ledger round trip exceeded its deadline; the outcome may be unknown."""

    status_code = 504
    code = "LEDGER_TIMEOUT"
    default_message = "Timed out waiting for the blockchain"


class LedgerWriteError(AnchorError):
    status_code = 502
    code = "LEDGER_WRITE_FAILED"
    default_message = "Failed to write to the blockchain"


class LedgerReadError(AnchorError):
    status_code = 502
    code = "LEDGER_READ_FAILED"
    default_message = "Failed to read from the blockchain"

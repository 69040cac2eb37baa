"""Tests for report anchoring and verification endpoints."""

from unittest.mock import AsyncMock, MagicMock, patch

from docanchor_api.hashing.digest import hash_content, hash_file
from docanchor_api.ledger.backends import DEV_SIGNER_ADDRESS
from docanchor_api.ledger.gateway import SigningLedgerGateway, get_signing_gateway
from docanchor_api.main import app
from docanchor_api.settings import DEFAULT_API_KEY, get_settings
from docanchor_api.workflows.uploads import read_upload

API_HEADERS = {"x-api-key": DEFAULT_API_KEY}


def _create(client, report_id="R1", content=None, data=b"report body", metadata=None):
    form = {"reportId": report_id}
    if metadata is not None:
        form["metadata"] = metadata
    files = None
    if content is not None:
        form["reportContent"] = content
    else:
        files = {"reportFile": ("report.pdf", data, "application/pdf")}
    return client.post("/v1/reports", data=form, files=files, headers=API_HEADERS)


def test_create_report_with_file(client):
    response = _create(client)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Report added to blockchain successfully"
    assert body["reportId"] == "R1"
    assert body["reportHash"] == hash_file(b"report body").value
    assert body["hashMethod"] == "file-keccak256"
    assert body["transactionHash"].startswith("0x")
    assert body["blockNumber"] == 1


def test_create_report_with_content(client):
    response = _create(client, report_id="T1", content="hello world")

    assert response.status_code == 201
    assert response.json()["reportHash"] == hash_content("hello world").value


def test_create_requires_api_key(client):
    response = client.post("/v1/reports", data={"reportId": "R1", "reportContent": "x"})
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_create_rejects_bad_api_key(client):
    response = client.post(
        "/v1/reports", data={"reportId": "R1", "reportContent": "x"}, headers={"x-api-key": "nope"}
    )
    assert response.status_code == 401


def test_create_without_document_is_400(client):
    response = client.post("/v1/reports", data={"reportId": "R1"}, headers=API_HEADERS)

    assert response.status_code == 400
    body = response.json()
    assert body == {"success": False, "message": "Report file or content is required", "code": "INVALID_INPUT"}


def test_create_without_report_id_is_400(client):
    response = client.post("/v1/reports", data={"reportContent": "x"}, headers=API_HEADERS)

    assert response.status_code == 400
    assert response.json()["message"] == "Report ID is required"


def test_create_with_both_inputs_is_400(client):
    response = client.post(
        "/v1/reports",
        data={"reportId": "R1", "reportContent": "x"},
        files={"reportFile": ("report.pdf", b"y", "application/pdf")},
        headers=API_HEADERS,
    )
    assert response.status_code == 400


def test_create_with_bad_metadata_is_400(client):
    response = _create(client, metadata="not json")
    assert response.status_code == 400
    assert response.json()["message"] == "Metadata must be a JSON object"


def test_duplicate_create_is_409(client):
    first = _create(client, data=b"first")
    second = _create(client, data=b"second")

    assert second.status_code == 409
    body = second.json()
    assert body["success"] is False
    assert body["code"] == "DUPLICATE_RECORD"
    assert body["message"] == "Report with this ID already exists on the blockchain"

    report = client.get("/v1/reports/R1", headers=API_HEADERS).json()
    assert report["reportHash"] == first.json()["reportHash"]


def test_oversized_upload_is_413(client):
    response = _create(client, data=b"x" * (get_settings().max_upload_bytes + 1))
    assert response.status_code == 413


def test_update_report(client):
    _create(client, data=b"v1")

    response = client.put(
        "/v1/reports/R1",
        files={"reportFile": ("report.pdf", b"v2", "application/pdf")},
        headers=API_HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Report updated on blockchain successfully"
    assert response.json()["reportHash"] == hash_file(b"v2").value
    assert response.json()["blockNumber"] == 2


def test_update_missing_report_is_404(client):
    response = client.put("/v1/reports/missing", data={"reportContent": "x"}, headers=API_HEADERS)

    assert response.status_code == 404
    assert response.json()["message"] == "Report not found on the blockchain"


def test_get_report(client):
    _create(client)

    response = client.get("/v1/reports/R1", headers=API_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["reportId"] == "R1"
    assert body["reportHash"] == hash_file(b"report body").value
    assert body["verifier"] == DEV_SIGNER_ADDRESS
    assert body["verified"] is True
    assert body["timestamp"].endswith("+00:00")


def test_get_missing_report_is_404(client):
    response = client.get("/v1/reports/missing", headers=API_HEADERS)
    assert response.status_code == 404


def test_list_reports(client):
    for report_id in ("A", "B", "C"):
        _create(client, report_id=report_id, content=report_id)

    response = client.get("/v1/reports?offset=1&limit=5", headers=API_HEADERS)

    assert response.json() == {"total": 3, "offset": 1, "reportIds": ["B", "C"]}


def test_report_status_after_create(client):
    _create(client, metadata='{"candidate": "A"}')

    body = client.get("/v1/reports/R1/status", headers=API_HEADERS).json()

    assert body["exists"] is True
    assert body["reportHash"] == hash_file(b"report body").value
    assert body["lastSubmission"]["status"] == "confirmed"
    assert body["lastSubmission"]["operation"] == "create"
    assert body["lastSubmission"]["hashMethod"] == "file-keccak256"


def test_report_status_unknown(client):
    body = client.get("/v1/reports/nope/status", headers=API_HEADERS).json()

    assert body["exists"] is False
    assert body["reportHash"] is None
    assert body["lastSubmission"] is None


def test_verify_matching_document(client):
    _create(client, data=b"original")

    response = client.post(
        "/v1/verify",
        data={"reportId": "R1"},
        files={"documentFile": ("report.pdf", b"original", "application/pdf")},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["matched"] is True
    assert body["message"] == "Document verified successfully"
    assert body["fileHash"] == body["reportHash"] == hash_file(b"original").value
    assert body["verifier"] == DEV_SIGNER_ADDRESS


def test_verify_does_not_reveal_missing_vs_mismatch(client):
    _create(client, data=b"original")

    mismatch = client.post(
        "/v1/verify",
        data={"reportId": "R1"},
        files={"documentFile": ("report.pdf", b"tampered", "application/pdf")},
    ).json()
    missing = client.post(
        "/v1/verify",
        data={"reportId": "R2"},
        files={"documentFile": ("report.pdf", b"tampered", "application/pdf")},
    ).json()

    assert mismatch["matched"] is False
    assert mismatch["success"] is False
    assert mismatch["reportHash"] is None
    assert mismatch["message"] == missing["message"]


def test_verify_requires_file(client):
    response = client.post("/v1/verify", data={"reportId": "R1"})

    assert response.status_code == 400
    assert response.json()["message"] == "Document file is required"


def test_hash_endpoint_is_public(client):
    response = client.post("/v1/hash", json={"content": "hello world"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "hash": "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9",
        "reportHash": "0xb94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9",
        "method": "content-sha256",
    }


def test_unrecognized_ledger_error_hides_raw_message(client):
    from web3.exceptions import ContractLogicError

    backend = MagicMock()
    backend.signer_address = DEV_SIGNER_ADDRESS
    backend.add_report.side_effect = ContractLogicError("execution reverted: nonce too low")
    app.dependency_overrides[get_signing_gateway] = lambda: SigningLedgerGateway(backend)

    response = _create(client)

    assert response.status_code == 502
    body = response.json()
    assert body["code"] == "LEDGER_WRITE_FAILED"
    assert "nonce too low" not in body["message"]
    assert "nonce too low" in body["error"]


def test_hash_rejects_unencodable_content(client):
    response = client.post(
        "/v1/hash",
        content=b'{"content": "\\ud800"}',
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Content must be valid UTF-8 text"


def test_bad_metadata_still_releases_upload(client):
    scoped = MagicMock(wraps=read_upload)
    with patch("docanchor_api.routes.reports.read_upload", scoped), patch(
        "starlette.datastructures.UploadFile.close", new_callable=AsyncMock
    ) as mock_close:
        response = _create(client, metadata="[1, 2]")

    assert response.status_code == 400
    assert response.json()["message"] == "Metadata must be a JSON object"
    scoped.assert_called_once()
    mock_close.assert_awaited()

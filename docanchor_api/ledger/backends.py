"""Contract backends: the raw report-storage contract surface.

Backends speak the contract's language (revert messages, bytes32 values,
transaction receipts) and let ledger exceptions escape untouched. The
gateway translates those into typed errors.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError

from docanchor_api.ledger.types import Receipt

logger = logging.getLogger(__name__)

# Development signer for the in-memory ledger when no private key is configured
DEV_SIGNER_ADDRESS = Web3.to_checksum_address(
    Web3.to_hex(Web3.keccak(text="docanchor:dev-signer")[-20:])
)


class ContractBackend(ABC):
    """Report-storage contract operations."""

    @property
    @abstractmethod
    def signer_address(self) -> Optional[str]:
        """Address that signs write transactions, or None for read-only access."""

    @abstractmethod
    def add_report(self, report_id: str, report_hash: bytes) -> Receipt:
        """Submit addReport and wait for confirmation."""

    @abstractmethod
    def update_report(self, report_id: str, report_hash: bytes) -> Receipt:
        """Submit updateReport and wait for confirmation."""

    @abstractmethod
    def get_report(self, report_id: str) -> tuple[str, int, str]:
        """Return (report_hash, timestamp, verifier)."""

    @abstractmethod
    def verify_report_hash(self, report_id: str, report_hash: bytes) -> bool:
        """Call verifyReportHash."""

    @abstractmethod
    def report_count(self) -> int:
        """Call getReportCount."""

    @abstractmethod
    def report_id_at(self, index: int) -> str:
        """Call reportIds(index)."""


class Web3ContractBackend(ContractBackend):
    """Report storage contract reached over JSON-RPC with web3.py."""

    def __init__(
        self,
        w3: Web3,
        contract,
        account=None,
        chain_id: Optional[int] = None,
        confirmation_timeout: float = 120,
    ):
        """Initialize backend around a bound contract object."""
        self.w3 = w3
        self.contract = contract
        self.account = account
        self.chain_id = chain_id
        self.confirmation_timeout = confirmation_timeout

    @classmethod
    def connect(
        cls,
        rpc_url: str,
        contract_address: str,
        abi: list,
        private_key: Optional[str] = None,
        chain_id: Optional[int] = None,
        rpc_timeout: float = 30,
        confirmation_timeout: float = 120,
    ) -> "Web3ContractBackend":
        """Connect to an RPC endpoint; a private key makes the backend write-capable."""
        w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": rpc_timeout}))
        contract = w3.eth.contract(address=Web3.to_checksum_address(contract_address), abi=abi)
        account = Account.from_key(private_key) if private_key else None
        return cls(
            w3,
            contract,
            account=account,
            chain_id=chain_id,
            confirmation_timeout=confirmation_timeout,
        )

    @property
    def signer_address(self) -> Optional[str]:
        return self.account.address if self.account else None

    def add_report(self, report_id: str, report_hash: bytes) -> Receipt:
        return self._transact(self.contract.functions.addReport(report_id, report_hash))

    def update_report(self, report_id: str, report_hash: bytes) -> Receipt:
        return self._transact(self.contract.functions.updateReport(report_id, report_hash))

    def get_report(self, report_id: str) -> tuple[str, int, str]:
        report_hash, timestamp, verifier = self.contract.functions.getReport(report_id).call()
        return Web3.to_hex(report_hash), int(timestamp), verifier

    def verify_report_hash(self, report_id: str, report_hash: bytes) -> bool:
        return bool(self.contract.functions.verifyReportHash(report_id, report_hash).call())

    def report_count(self) -> int:
        return int(self.contract.functions.getReportCount().call())

    def report_id_at(self, index: int) -> str:
        return self.contract.functions.reportIds(index).call()

    def _transact(self, contract_function) -> Receipt:
        """Sign, send and wait for a contract transaction."""
        if self.account is None:
            raise RuntimeError("Web3ContractBackend has no signing account")

        tx_params = {
            "from": self.account.address,
            "nonce": self.w3.eth.get_transaction_count(self.account.address, "pending"),
        }
        if self.chain_id is not None:
            tx_params["chainId"] = self.chain_id

        # build_transaction estimates gas, so contract reverts surface here with their reason
        tx = contract_function.build_transaction(tx_params)
        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        logger.info(f"Transaction sent: {Web3.to_hex(tx_hash)}")

        receipt = self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.confirmation_timeout
        )
        return Receipt(
            transaction_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=int(receipt["blockNumber"]),
            status=int(receipt.get("status", 1)),
        )


class InMemoryContractBackend(ContractBackend):
    """Process-local ledger with the contract's semantics, for development and tests."""

    def __init__(self, signer_address: Optional[str] = DEV_SIGNER_ADDRESS, owner: Optional[str] = None):
        """Initialize an empty ledger owned by ``owner`` (defaults to the signer)."""
        self._signer_address = signer_address
        self.owner = owner or signer_address
        self._reports: dict[str, tuple[str, int, str]] = {}
        self._report_ids: list[str] = []
        self._block_number = 0
        self._lock = threading.Lock()

    @property
    def signer_address(self) -> Optional[str]:
        return self._signer_address

    def read_only(self) -> "InMemoryContractBackend":
        """A view sharing this ledger's state without a signer."""
        view = InMemoryContractBackend.__new__(InMemoryContractBackend)
        view.__dict__.update(self.__dict__)
        view._signer_address = None
        return view

    def add_report(self, report_id: str, report_hash: bytes) -> Receipt:
        with self._lock:
            self._require_owner()
            if report_id in self._reports:
                raise ContractLogicError("execution reverted: Report already exists")
            self._report_ids.append(report_id)
            return self._store(report_id, report_hash)

    def update_report(self, report_id: str, report_hash: bytes) -> Receipt:
        with self._lock:
            self._require_owner()
            if report_id not in self._reports:
                raise ContractLogicError("execution reverted: Report does not exist")
            return self._store(report_id, report_hash)

    def get_report(self, report_id: str) -> tuple[str, int, str]:
        with self._lock:
            if report_id not in self._reports:
                raise ContractLogicError("execution reverted: Report does not exist")
            return self._reports[report_id]

    def verify_report_hash(self, report_id: str, report_hash: bytes) -> bool:
        stored_hash, _, _ = self.get_report(report_id)
        return stored_hash == Web3.to_hex(report_hash)

    def report_count(self) -> int:
        with self._lock:
            return len(self._report_ids)

    def report_id_at(self, index: int) -> str:
        with self._lock:
            if index < 0 or index >= len(self._report_ids):
                raise ContractLogicError("execution reverted: Index out of bounds")
            return self._report_ids[index]

    def _require_owner(self):
        if self._signer_address is None or self._signer_address != self.owner:
            raise ContractLogicError("execution reverted: Only owner can perform this action")

    def _store(self, report_id: str, report_hash: bytes) -> Receipt:
        self._block_number += 1
        self._reports[report_id] = (
            Web3.to_hex(report_hash),
            int(time.time()),
            self._signer_address,
        )
        tx_hash = Web3.keccak(text=f"{report_id}:{Web3.to_hex(report_hash)}:{self._block_number}")
        return Receipt(transaction_hash=Web3.to_hex(tx_hash), block_number=self._block_number)

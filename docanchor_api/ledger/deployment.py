"""Contract deployment information and network resolution."""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from docanchor_api.settings import Settings

logger = logging.getLogger(__name__)


def _abi_function(name: str, inputs: list, outputs: list, mutability: str) -> dict:
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t, "internalType": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t, "internalType": t} for n, t in outputs],
        "stateMutability": mutability,
    }


def _abi_event(name: str, inputs: list) -> dict:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [
            {"name": n, "type": t, "internalType": t, "indexed": False} for n, t in inputs
        ],
    }


# ABI of ReportStorage.sol, used when no deployment file is available
REPORT_STORAGE_ABI = [
    _abi_function("owner", [], [("", "address")], "view"),
    _abi_function(
        "getReport",
        [("reportId", "string")],
        [("reportHash", "bytes32"), ("timestamp", "uint256"), ("verifier", "address")],
        "view",
    ),
    _abi_function(
        "verifyReportHash",
        [("reportId", "string"), ("hashToVerify", "bytes32")],
        [("", "bool")],
        "view",
    ),
    _abi_function("getReportCount", [], [("", "uint256")], "view"),
    _abi_function("reportIds", [("index", "uint256")], [("", "string")], "view"),
    _abi_function(
        "addReport", [("reportId", "string"), ("reportHash", "bytes32")], [], "nonpayable"
    ),
    _abi_function(
        "updateReport", [("reportId", "string"), ("newReportHash", "bytes32")], [], "nonpayable"
    ),
    _abi_function("transferOwnership", [("newOwner", "address")], [], "nonpayable"),
    _abi_event(
        "ReportAdded",
        [("reportId", "string"), ("reportHash", "bytes32"), ("verifier", "address"), ("timestamp", "uint256")],
    ),
    _abi_event(
        "ReportUpdated",
        [("reportId", "string"), ("newReportHash", "bytes32"), ("verifier", "address"), ("timestamp", "uint256")],
    ),
]


@dataclass
class NetworkConfig:
    """Ledger network connection details."""

    name: str
    chain_id: int
    rpc_url: str
    block_explorer: Optional[str] = None

    def explorer_tx_url(self, tx_hash: str) -> Optional[str]:
        if not self.block_explorer:
            return None
        return f"{self.block_explorer.rstrip('/')}/tx/{tx_hash}"


EDU_CHAIN = NetworkConfig(
    name="EDU Chain Testnet",
    chain_id=656476,
    rpc_url="https://rpc.open-campus-codex.gelato.digital",
    block_explorer="https://explorer.open-campus-codex.gelato.digital",
)


@dataclass
class ContractDeployment:
    """Where the report storage contract lives and how to call it."""

    address: Optional[str]
    abi: list = field(default_factory=lambda: list(REPORT_STORAGE_ABI))
    network: NetworkConfig = field(default_factory=lambda: EDU_CHAIN)
    deployment_tx: Optional[str] = None
    timestamp: Optional[str] = None

    def to_json(self) -> dict:
        return {
            "address": self.address,
            "abi": self.abi,
            "deploymentTx": self.deployment_tx,
            "network": {
                "name": self.network.name,
                "chainId": self.network.chain_id,
                "rpcUrl": self.network.rpc_url,
                "blockExplorer": self.network.block_explorer,
            },
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_json(cls, data: dict) -> "ContractDeployment":
        network_data = data.get("network") or {}
        network = NetworkConfig(
            name=network_data.get("name", EDU_CHAIN.name),
            chain_id=int(network_data.get("chainId", EDU_CHAIN.chain_id)),
            rpc_url=network_data.get("rpcUrl", EDU_CHAIN.rpc_url),
            block_explorer=network_data.get("blockExplorer"),
        )
        return cls(
            address=data.get("address"),
            abi=data.get("abi") or list(REPORT_STORAGE_ABI),
            network=network,
            deployment_tx=data.get("deploymentTx"),
            timestamp=data.get("timestamp"),
        )


def load_deployment(path: str) -> ContractDeployment:
    """Load deployment information, falling back to built-in defaults."""
    deployment_path = Path(path)
    try:
        with open(deployment_path, encoding="utf-8") as f:
            deployment = ContractDeployment.from_json(json.load(f))
        logger.info(f"Loaded contract information from {deployment_path}")
        return deployment
    except FileNotFoundError:
        logger.warning(f"Contract deployment file {deployment_path} not found, using defaults")
        return ContractDeployment(address=None)


def save_deployment(deployment: ContractDeployment, path: str) -> Path:
    """Write deployment information consumed by the gateway at startup."""
    deployment_path = Path(path)
    deployment_path.parent.mkdir(parents=True, exist_ok=True)
    with open(deployment_path, "w", encoding="utf-8") as f:
        json.dump(deployment.to_json(), f, indent=2)
    return deployment_path


def network_configs(settings: Settings, deployment: ContractDeployment) -> dict[str, NetworkConfig]:
    """Known networks; Infura-backed ones need INFURA_KEY."""
    configs = {"eduChain": deployment.network}
    if settings.infura_key:
        configs["sepolia"] = NetworkConfig(
            name="Sepolia",
            chain_id=11155111,
            rpc_url=f"https://sepolia.infura.io/v3/{settings.infura_key}",
            block_explorer="https://sepolia.etherscan.io",
        )
        configs["mainnet"] = NetworkConfig(
            name="Ethereum Mainnet",
            chain_id=1,
            rpc_url=f"https://mainnet.infura.io/v3/{settings.infura_key}",
            block_explorer="https://etherscan.io",
        )
    return configs


def resolve_network(settings: Settings, deployment: ContractDeployment) -> NetworkConfig:
    """Pick the configured network, applying RPC URL and chain id overrides."""
    configs = network_configs(settings, deployment)
    network = configs.get(settings.ledger_network)
    if network is None:
        raise ValueError(f"Network {settings.ledger_network} not configured")

    overrides = {}
    if settings.ledger_rpc_url:
        overrides["rpc_url"] = settings.ledger_rpc_url
    if settings.ledger_chain_id is not None:
        overrides["chain_id"] = settings.ledger_chain_id
    if overrides:
        network = NetworkConfig(**{**asdict(network), **overrides})
    return network


def resolve_contract_address(settings: Settings, deployment: ContractDeployment) -> str:
    address = settings.contract_address or deployment.address
    if not address:
        raise ValueError(
            "Contract address not configured. Set CONTRACT_ADDRESS or run `docanchor deploy-contract`."
        )
    return address

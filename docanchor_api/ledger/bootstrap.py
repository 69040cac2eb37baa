"""Deployment bootstrap: compile and publish the report storage contract.

Runs out-of-band (``docanchor deploy-contract``). The resulting address and
ABI are written to the deployment file that the gateway reads at startup.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import solcx
from solcx.exceptions import SolcError
from eth_account import Account
from web3 import Web3

from docanchor_api.ledger.deployment import (
    ContractDeployment,
    load_deployment,
    resolve_network,
    save_deployment,
)
from docanchor_api.settings import Settings

logger = logging.getLogger(__name__)

CONTRACT_NAME = "ReportStorage"
DEFAULT_CONTRACT_SOURCE = Path(__file__).parent / "contracts" / f"{CONTRACT_NAME}.sol"


class DeploymentError(Exception):
    """Raised when the contract cannot be compiled or published."""


def compile_contract(source_path: Optional[str] = None, solc_version: str = "0.8.19") -> tuple[list, str]:
    """Compile the contract source, returning (abi, bytecode)."""
    path = Path(source_path) if source_path else DEFAULT_CONTRACT_SOURCE
    source = path.read_text(encoding="utf-8")

    if solc_version not in [str(v) for v in solcx.get_installed_solc_versions()]:
        logger.info(f"Installing solc {solc_version}")
        solcx.install_solc(solc_version)

    try:
        compiled = solcx.compile_source(
            source,
            output_values=["abi", "bin"],
            solc_version=solc_version,
        )
    except SolcError as e:
        raise DeploymentError(f"Contract compilation failed: {e}") from e

    for key, output in compiled.items():
        if key.split(":")[-1] == CONTRACT_NAME:
            return output["abi"], output["bin"]
    raise DeploymentError(f"{CONTRACT_NAME} not found in compiler output for {path}")


def deploy_contract(
    settings: Settings,
    private_key: Optional[str] = None,
    output_path: Optional[str] = None,
    w3: Optional[Web3] = None,
) -> ContractDeployment:
    """Compile, publish and record the contract.

    The deployment file is written only after the constructor transaction
    has been confirmed.
    """
    private_key = private_key or settings.ledger_private_key
    if not private_key:
        raise DeploymentError("Private key not found. Set LEDGER_PRIVATE_KEY.")

    abi, bytecode = compile_contract(settings.contract_source_path, settings.solc_version)
    logger.info("Contract compiled successfully")

    network = resolve_network(settings, load_deployment(settings.contract_deployment_path))
    if w3 is None:
        w3 = Web3(
            Web3.HTTPProvider(
                network.rpc_url,
                request_kwargs={"timeout": settings.ledger_rpc_timeout_seconds},
            )
        )

    account = Account.from_key(private_key)
    logger.info(f"Deploying from address: {account.address} on {network.name}")

    balance = w3.eth.get_balance(account.address)
    logger.info(f"Wallet balance: {Web3.from_wei(balance, 'ether')}")
    if balance == 0:
        raise DeploymentError("Wallet has no funds to deploy the contract")

    contract = w3.eth.contract(abi=abi, bytecode=bytecode)
    tx = contract.constructor().build_transaction(
        {
            "from": account.address,
            "nonce": w3.eth.get_transaction_count(account.address, "pending"),
            "chainId": network.chain_id,
        }
    )
    signed = account.sign_transaction(tx)
    tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    logger.info(f"Deployment transaction sent: {Web3.to_hex(tx_hash)}")

    receipt = w3.eth.wait_for_transaction_receipt(
        tx_hash, timeout=settings.ledger_confirmation_timeout_seconds
    )
    if receipt.get("status", 1) == 0 or not receipt.get("contractAddress"):
        raise DeploymentError(f"Deployment transaction {Web3.to_hex(tx_hash)} failed")

    deployment = ContractDeployment(
        address=receipt["contractAddress"],
        abi=abi,
        network=network,
        deployment_tx=Web3.to_hex(tx_hash),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    path = save_deployment(deployment, output_path or settings.contract_deployment_path)
    logger.info(f"Contract deployed at {deployment.address}, details saved to {path}")
    return deployment

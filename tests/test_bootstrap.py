"""Tests for contract deployment and deployment file handling."""

import json
from unittest.mock import MagicMock, patch

import pytest

from docanchor_api.ledger.bootstrap import (
    DEFAULT_CONTRACT_SOURCE,
    DeploymentError,
    compile_contract,
    deploy_contract,
)
from docanchor_api.ledger.deployment import (
    EDU_CHAIN,
    REPORT_STORAGE_ABI,
    ContractDeployment,
    load_deployment,
    resolve_contract_address,
    resolve_network,
    save_deployment,
)
from docanchor_api.settings import Settings

CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        contract_deployment_path=str(tmp_path / "contract-deployment.json"),
        ledger_private_key="0x" + "11" * 32,
    )


@pytest.fixture
def mock_solcx():
    with patch("docanchor_api.ledger.bootstrap.solcx") as solcx:
        solcx.get_installed_solc_versions.return_value = []
        solcx.compile_source.return_value = {
            "<stdin>:ReportStorage": {"abi": REPORT_STORAGE_ABI, "bin": "6080604052"}
        }
        yield solcx


@pytest.fixture
def mock_w3():
    w3 = MagicMock()
    w3.eth.get_balance.return_value = 10**18
    w3.eth.get_transaction_count.return_value = 0
    w3.eth.send_raw_transaction.return_value = b"\xab" * 32
    w3.eth.wait_for_transaction_receipt.return_value = {
        "status": 1,
        "contractAddress": CONTRACT_ADDRESS,
    }
    return w3


def test_contract_source_is_packaged():
    source = DEFAULT_CONTRACT_SOURCE.read_text(encoding="utf-8")
    assert "contract ReportStorage" in source
    assert "Report already exists" in source
    assert "Report does not exist" in source


def test_compile_contract_installs_solc(mock_solcx):
    abi, bytecode = compile_contract(solc_version="0.8.19")

    mock_solcx.install_solc.assert_called_once_with("0.8.19")
    assert abi == REPORT_STORAGE_ABI
    assert bytecode == "6080604052"


def test_compile_contract_missing_output(mock_solcx):
    mock_solcx.compile_source.return_value = {"<stdin>:Other": {"abi": [], "bin": ""}}
    with pytest.raises(DeploymentError):
        compile_contract()


@patch("docanchor_api.ledger.bootstrap.Account")
def test_deploy_contract_saves_deployment(mock_account_cls, settings, mock_solcx, mock_w3):
    account = mock_account_cls.from_key.return_value
    account.address = "0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1"
    account.sign_transaction.return_value.raw_transaction = b"signed"

    deployment = deploy_contract(settings, w3=mock_w3)

    assert deployment.address == CONTRACT_ADDRESS
    assert deployment.deployment_tx == "0x" + "ab" * 32
    mock_w3.eth.send_raw_transaction.assert_called_once_with(b"signed")

    build_args = mock_w3.eth.contract.return_value.constructor.return_value.build_transaction.call_args[0][0]
    assert build_args["chainId"] == EDU_CHAIN.chain_id

    saved = load_deployment(settings.contract_deployment_path)
    assert saved.address == CONTRACT_ADDRESS
    assert saved.network.chain_id == EDU_CHAIN.chain_id


@patch("docanchor_api.ledger.bootstrap.Account")
def test_deploy_contract_requires_funds(mock_account_cls, settings, mock_solcx, mock_w3):
    mock_w3.eth.get_balance.return_value = 0

    with pytest.raises(DeploymentError, match="no funds"):
        deploy_contract(settings, w3=mock_w3)

    mock_w3.eth.send_raw_transaction.assert_not_called()


def test_deploy_contract_requires_private_key(tmp_path):
    settings = Settings(_env_file=None, contract_deployment_path=str(tmp_path / "d.json"))
    with pytest.raises(DeploymentError):
        deploy_contract(settings, w3=MagicMock())


def test_load_missing_deployment_uses_defaults(tmp_path):
    deployment = load_deployment(str(tmp_path / "missing.json"))

    assert deployment.address is None
    assert deployment.abi == REPORT_STORAGE_ABI
    assert deployment.network.chain_id == EDU_CHAIN.chain_id


def test_deployment_file_format(tmp_path):
    path = save_deployment(
        ContractDeployment(address=CONTRACT_ADDRESS, deployment_tx="0xfeed"),
        str(tmp_path / "out" / "deployment.json"),
    )

    data = json.loads(path.read_text())
    assert data["address"] == CONTRACT_ADDRESS
    assert data["deploymentTx"] == "0xfeed"
    assert data["network"]["chainId"] == 656476
    assert data["network"]["rpcUrl"] == EDU_CHAIN.rpc_url


def test_resolve_network_overrides():
    settings = Settings(_env_file=None, ledger_rpc_url="http://localhost:8545", ledger_chain_id=1337)
    network = resolve_network(settings, ContractDeployment(address=None))

    assert network.rpc_url == "http://localhost:8545"
    assert network.chain_id == 1337
    assert network.name == EDU_CHAIN.name


def test_resolve_infura_network_requires_key():
    deployment = ContractDeployment(address=None)
    with pytest.raises(ValueError):
        resolve_network(Settings(_env_file=None, ledger_network="sepolia"), deployment)

    network = resolve_network(
        Settings(_env_file=None, ledger_network="sepolia", infura_key="abc"), deployment
    )
    assert network.chain_id == 11155111
    assert network.rpc_url.endswith("/abc")


def test_resolve_contract_address():
    deployment = ContractDeployment(address=CONTRACT_ADDRESS)
    assert resolve_contract_address(Settings(_env_file=None), deployment) == CONTRACT_ADDRESS

    override = Settings(_env_file=None, contract_address="0x" + "1" * 40)
    assert resolve_contract_address(override, deployment) == "0x" + "1" * 40

    with pytest.raises(ValueError):
        resolve_contract_address(Settings(_env_file=None), ContractDeployment(address=None))

"""
Configuration for the SecureNotes SDK.

Settings come from explicit arguments, environment variables, the bundled
``networks.json`` or the ``contract-address.json`` file written by the
deployment script.
"""
import importlib.resources
import json
import logging
import os
import urllib.parse
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, field_validator
from web3 import Web3

logger = logging.getLogger(__name__)

CONTRACT_NAME = "SecureNotes"


class NetworkConfig:
    """Bundled network presets"""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """Load ``networks.json`` once and cache it"""
        if cls._networks_cache is None:
            resource = importlib.resources.files("securenotes_sdk").joinpath("networks.json")
            cls._networks_cache = json.loads(resource.read_text(encoding="utf-8"))
        return cls._networks_cache

    @classmethod
    def get_network(cls, name: str) -> Dict[str, Any]:
        """
        Get a network preset by name.

        Raises:
            ValueError: If the network is unknown
        """
        networks = cls.load_networks()
        if name not in networks:
            raise ValueError(
                f"Unknown network: {name}. Available: {', '.join(sorted(networks))}"
            )
        return networks[name]


def load_contract_address(path: Union[str, Path]) -> str:
    """
    Read the contract address from deployment output.

    The file holds ``{"SecureNotes": "0x..."}``.

    Raises:
        ValueError: If the file is missing, unreadable or has no valid address
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Could not load contract address from {path}: {e}")

    address = data.get(CONTRACT_NAME) if isinstance(data, dict) else None
    if not address or not Web3.is_address(address):
        raise ValueError(f"{path} has no valid '{CONTRACT_NAME}' address")
    logger.debug(f"Contract address loaded from {path}: {address}")
    return Web3.to_checksum_address(address)


class ClientConfig(BaseModel):
    """Connection settings for a SecureNotes deployment"""
    rpc_url: str
    contract_address: str
    chain_id: Optional[int] = None
    tx_timeout: int = 120
    poll_latency: float = 0.1
    gas_limit: int = 300000

    @field_validator("rpc_url")
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        parsed = urllib.parse.urlparse(v)
        host = parsed.hostname or ""
        is_local = host in ("localhost", "127.0.0.1")
        if parsed.scheme != "https" and not is_local:
            raise ValueError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")
        return v

    @field_validator("contract_address")
    @classmethod
    def validate_contract_address(cls, v: str) -> str:
        if not Web3.is_address(v):
            raise ValueError(f"Invalid contract address: {v}")
        return Web3.to_checksum_address(v)

    @classmethod
    def for_network(cls, name: str, **overrides: Any) -> "ClientConfig":
        """Build a config from a bundled network preset"""
        network = NetworkConfig.get_network(name)
        values = {
            "rpc_url": network["rpc"],
            "contract_address": network.get("secureNotes"),
            "chain_id": network.get("chainId"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        if not values["contract_address"]:
            raise ValueError(f"No {CONTRACT_NAME} deployment known for network {name}")
        return cls(**values)

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Build a config from the environment.

        ``SECURENOTES_NETWORK`` selects a preset; ``SECURENOTES_RPC_URL``,
        ``SECURENOTES_CONTRACT_ADDRESS`` and ``SECURENOTES_CONTRACT_FILE``
        override it.

        Raises:
            ValueError: If no RPC URL or contract address can be determined
        """
        rpc_url = os.environ.get("SECURENOTES_RPC_URL")
        contract_address = os.environ.get("SECURENOTES_CONTRACT_ADDRESS")
        contract_file = os.environ.get("SECURENOTES_CONTRACT_FILE")
        if not contract_address and contract_file:
            contract_address = load_contract_address(contract_file)

        network = os.environ.get("SECURENOTES_NETWORK")
        if network:
            return cls.for_network(network, rpc_url=rpc_url, contract_address=contract_address)

        if not rpc_url:
            raise ValueError("SECURENOTES_RPC_URL or SECURENOTES_NETWORK must be set")
        if not contract_address:
            raise ValueError(
                "SECURENOTES_CONTRACT_ADDRESS or SECURENOTES_CONTRACT_FILE must be set"
            )
        return cls(rpc_url=rpc_url, contract_address=contract_address)

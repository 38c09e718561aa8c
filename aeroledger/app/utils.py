import hashlib
import os
import time
from datetime import datetime
from typing import Optional

from eth_account import Account
from web3 import Web3


def mock_ipfs_hash(data: str) -> str:
    """Generate a mock IPFS hash for the given data."""
    raw_string = f"{data}-{time.time()}"
    hash_object = hashlib.sha256(raw_string.encode())
    return f"QmMock{hash_object.hexdigest()}"


def private_key_to_address(private_key: str) -> str:
    """Derive the Ethereum address from a given private key."""
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key

    account = Account.from_key(private_key)
    return account.address


def normalize_address(address: str) -> str:
    """Validate an address and return it in checksum format.
    Args:
        address (str): The address to validate.
    Returns:
        str: The checksummed address.
    """
    if not isinstance(address, str) or not Web3.is_address(address.strip()):
        raise ValueError(f"Address {address} is not a valid Ethereum address.")
    return Web3.to_checksum_address(address.strip())


def format_timestamp(timestamp: int) -> str:
    if timestamp <= 0:
        return "N/A"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")


def resolve_admin_address() -> Optional[str]:
    """Admin address from ADMIN_ADDRESS, or derived from ADMIN_PRIVATE_KEY."""
    admin_address = os.getenv("ADMIN_ADDRESS")
    if admin_address:
        return normalize_address(admin_address)

    admin_key = os.getenv("ADMIN_PRIVATE_KEY")
    if admin_key:
        return private_key_to_address(admin_key)
    return None

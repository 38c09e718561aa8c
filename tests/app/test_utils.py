import pytest

from aeroledger.app.models import PartStatus, Role, parse_part_status, parse_role
from aeroledger.app.utils import (
    format_timestamp,
    mock_ipfs_hash,
    normalize_address,
    private_key_to_address,
    resolve_admin_address,
)
from tests.conftest import ADMIN, ADMIN_PRIVATE_KEY


def test_private_key_to_address():
    """Test deriving Ethereum address from private key."""
    assert private_key_to_address(ADMIN_PRIVATE_KEY) == ADMIN
    assert private_key_to_address(ADMIN_PRIVATE_KEY[2:]) == ADMIN


def test_normalize_address_checksums():
    """Test that addresses are trimmed and checksummed."""
    assert normalize_address(ADMIN.lower()) == ADMIN
    assert normalize_address(f"  {ADMIN}  ") == ADMIN


@pytest.mark.parametrize("address", ["0x1234", "not-an-address", "", None])
def test_normalize_address_invalid(address):
    """Test that malformed addresses are rejected."""
    with pytest.raises(ValueError, match="is not a valid Ethereum address"):
        normalize_address(address)


def test_mock_ipfs_hash():
    """Test mock IPFS hash generation."""
    value = mock_ipfs_hash("certificate.pdf")
    assert value.startswith("QmMock")
    assert len(value) == len("QmMock") + 64


def test_format_timestamp():
    """Test timestamp formatting."""
    assert format_timestamp(0) == "N/A"
    assert format_timestamp(-5) == "N/A"
    assert len(format_timestamp(1672531199)) == len("2023-01-01 00:00")


def test_resolve_admin_address_from_address(mocker):
    """Test resolving the admin from ADMIN_ADDRESS."""
    mocker.patch.dict("os.environ", {"ADMIN_ADDRESS": ADMIN.lower()}, clear=True)
    assert resolve_admin_address() == ADMIN


def test_resolve_admin_address_from_private_key(mocker):
    """Test resolving the admin from ADMIN_PRIVATE_KEY."""
    mocker.patch.dict("os.environ", {"ADMIN_PRIVATE_KEY": ADMIN_PRIVATE_KEY}, clear=True)
    assert resolve_admin_address() == ADMIN


def test_resolve_admin_address_missing(mocker):
    """Test that no admin is resolved without configuration."""
    mocker.patch.dict("os.environ", {}, clear=True)
    assert resolve_admin_address() is None


@pytest.mark.parametrize(
    "value, expected",
    [(PartStatus.RETIRED, PartStatus.RETIRED), (2, PartStatus.INSTALLED), ("3", PartStatus.IN_MAINTENANCE),
     ("InTransit", PartStatus.IN_TRANSIT), ("in_transit", PartStatus.IN_TRANSIT)],
)
def test_parse_part_status(value, expected):
    """Test parsing part statuses from codes and names."""
    assert parse_part_status(value) == expected


@pytest.mark.parametrize("value", [5, -1, "Lost", True, None])
def test_parse_part_status_invalid(value):
    """Test that unknown statuses are rejected."""
    with pytest.raises(ValueError):
        parse_part_status(value)


def test_parse_role():
    """Test parsing roles from codes and names."""
    assert parse_role("MRO") == Role.MRO
    assert parse_role("regulator") == Role.REGULATOR
    assert parse_role(0) == Role.NONE
    assert Role.MRO.label == "MRO"
    assert PartStatus.IN_MAINTENANCE.label == "InMaintenance"

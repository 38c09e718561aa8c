import os
import sys
import pytest

os.environ["SECRET_KEY"] = "test_secret_key"
os.environ["DATABASE_URL"] = "sqlite://"

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from aeroledger.app.database import build_engine, init_db
from aeroledger.app.models import Role
from aeroledger.app.provenance_ledger import ProvenanceLedger

# Default local development accounts
ADMIN = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
MANUFACTURER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
AIRLINE = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
MRO = "0x90F79bf6EB2c4f870365E785982E1f101E93b906"
REGULATOR = "0x15d34AAf54267DB7D7c367839AAf71A00a2C6A65"
UNAUTHORIZED = "0x9965507D1a55bcC2695C58ba16FB37d819B0A4dc"

ADMIN_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


class FakeClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: int = 1_700_000_000):
        self.now = start

    def __call__(self) -> float:
        self.now += 1
        return self.now


@pytest.fixture
def accounts():
    return {
        "admin": ADMIN,
        "manufacturer": MANUFACTURER,
        "airline": AIRLINE,
        "mro": MRO,
        "regulator": REGULATOR,
        "unauthorized": UNAUTHORIZED,
    }


@pytest.fixture
def engine():
    test_engine = build_engine("sqlite://", echo=False)
    init_db(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def empty_ledger(engine, clock):
    """Ledger with no stakeholders registered."""
    return ProvenanceLedger(engine, ADMIN, clock=clock)


@pytest.fixture
def ledger(empty_ledger):
    """Ledger with one stakeholder registered per role."""
    empty_ledger.register_stakeholder(ADMIN, MANUFACTURER, "Boeing Manufacturing", Role.MANUFACTURER)
    empty_ledger.register_stakeholder(ADMIN, AIRLINE, "Delta Airlines", Role.AIRLINE)
    empty_ledger.register_stakeholder(ADMIN, MRO, "AAR Corp MRO", Role.MRO)
    empty_ledger.register_stakeholder(ADMIN, REGULATOR, "FAA", Role.REGULATOR)
    return empty_ledger


@pytest.fixture
def part_id(ledger):
    return ledger.register_part(MANUFACTURER, "ENG-001", "SN123456", "Turbine Blade", "QmTest123")

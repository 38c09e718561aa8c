# AVIATION PARTS PROVENANCE API
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from aeroledger.api.schemas import (
    RecordMaintenanceRequest,
    RegisterPartRequest,
    RegisterStakeholderRequest,
    TransferCustodyRequest,
    UpdateStatusRequest,
)
from aeroledger.app.database import engine, init_db
from aeroledger.app.errors import AlreadyRegistered, LedgerError
from aeroledger.app.logging_config import configure_logging
from aeroledger.app.provenance_ledger import ProvenanceLedger
from aeroledger.app.security import decode_access_token
from aeroledger.app.utils import normalize_address, resolve_admin_address

logger = logging.getLogger(__name__)

ledger: Optional[ProvenanceLedger] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()

    global ledger
    try:
        admin_address = resolve_admin_address()
        if admin_address is None:
            raise ValueError("ADMIN_ADDRESS or ADMIN_PRIVATE_KEY must be set.")
        ledger = ProvenanceLedger(engine, admin_address)
    except Exception as e:
        logger.warning("Ledger not initialized: %s", e)
        ledger = None
    yield


app = FastAPI(title="Aviation Parts Provenance API", lifespan=lifespan)
bearer_scheme = HTTPBearer()


def get_ledger() -> ProvenanceLedger:
    if ledger is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Ledger is not initialized.")
    return ledger


def get_caller_address(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> str:
    try:
        return normalize_address(decode_access_token(credentials.credentials))
    except (PermissionError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication credentials")


def check_sender(sender_address: str, caller_address: str) -> None:
    try:
        sender_address = normalize_address(sender_address)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))
    if sender_address != caller_address:
        raise HTTPException(status_code=403, detail="Wallet mismatch: Sender address does not match authenticated user.")


def to_http_exception(error: Exception) -> HTTPException:
    if isinstance(error, PermissionError):
        return HTTPException(status_code=403, detail=str(error))
    if isinstance(error, AlreadyRegistered):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, LookupError):
        return HTTPException(status_code=404, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))


def present_stakeholder(stakeholder: dict) -> dict:
    return {**stakeholder, "role": int(stakeholder["role"]), "role_name": stakeholder["role"].label}


def present_part(part: dict) -> dict:
    return {**part, "status": int(part["status"]), "status_name": part["status"].label}


# === API ENDPOINTS ===

@app.get("/")
def read_root():
    """Root endpoint to check API status.

    Returns:
        dict: Status message and ledger information.
    """
    return {"status": "Provenance API is running.", "ledger_initialized": ledger is not None}


# === STAKEHOLDERS ===

@app.post("/stakeholders")
def register_stakeholder(
    request: RegisterStakeholderRequest,
    caller: str = Depends(get_caller_address),
    ledger: ProvenanceLedger = Depends(get_ledger),
):
    """Register a stakeholder. Admin only."""
    check_sender(request.sender_address, caller)
    try:
        stakeholder = ledger.register_stakeholder(
            caller=caller,
            address=normalize_address(request.address),
            name=request.name,
            role=request.role,
        )
        return {"status": "success", "stakeholder": present_stakeholder(stakeholder)}
    except (LedgerError, ValueError) as e:
        raise to_http_exception(e)


@app.get("/stakeholders/{address}")
def get_stakeholder(address: str, ledger: ProvenanceLedger = Depends(get_ledger)):
    try:
        stakeholder = ledger.get_stakeholder(normalize_address(address))
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))
    if stakeholder is None:
        raise HTTPException(status_code=404, detail="Stakeholder is not registered.")
    return {"stakeholder": present_stakeholder(stakeholder)}


@app.get("/stakeholders/{address}/parts")
def get_stakeholder_parts(address: str, ledger: ProvenanceLedger = Depends(get_ledger)):
    """Ids of the parts currently held by a stakeholder."""
    try:
        address = normalize_address(address)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))
    return {"address": address, "part_ids": ledger.get_stakeholder_parts(address)}


# === PARTS ===

@app.get("/parts")
def get_all_parts(ledger: ProvenanceLedger = Depends(get_ledger)):
    """Retrieve all registered parts, most recent first."""
    return {"parts": [present_part(part) for part in ledger.get_all_parts()]}


@app.post("/parts/register")
def register_part(
    request: RegisterPartRequest,
    caller: str = Depends(get_caller_address),
    ledger: ProvenanceLedger = Depends(get_ledger),
):
    """Register a new part. Manufacturer only.

    Returns:
        dict: Status of the registration including the assigned part id.
    """
    check_sender(request.sender_address, caller)
    try:
        part_id = ledger.register_part(
            caller=caller,
            part_number=request.part_number,
            serial_number=request.serial_number,
            part_name=request.part_name,
            certificate_hash=request.certificate_hash,
        )
        return {"status": "success", "part_id": part_id}
    except (LedgerError, ValueError) as e:
        raise to_http_exception(e)


@app.get("/parts/{part_id}")
def get_part(part_id: int, ledger: ProvenanceLedger = Depends(get_ledger)):
    try:
        return {"part_details": present_part(ledger.get_part(part_id))}
    except LedgerError as e:
        raise to_http_exception(e)


@app.post("/parts/{part_id}/status")
def update_part_status(
    part_id: int,
    request: UpdateStatusRequest,
    caller: str = Depends(get_caller_address),
    ledger: ProvenanceLedger = Depends(get_ledger),
):
    """Set the status of a part. Current owner only."""
    check_sender(request.sender_address, caller)
    try:
        part = ledger.update_part_status(caller=caller, part_id=part_id, new_status=request.status)
        return {"status": "success", "part_details": present_part(part)}
    except (LedgerError, ValueError) as e:
        raise to_http_exception(e)


@app.post("/parts/{part_id}/transfer")
def transfer_custody(
    part_id: int,
    request: TransferCustodyRequest,
    caller: str = Depends(get_caller_address),
    ledger: ProvenanceLedger = Depends(get_ledger),
):
    """Transfer custody of a part to another registered stakeholder. Current owner only."""
    check_sender(request.sender_address, caller)
    try:
        record = ledger.transfer_custody(
            caller=caller,
            part_id=part_id,
            to_address=normalize_address(request.to_address),
            reason=request.reason,
        )
        return {"status": "success", "custody_record": record}
    except (LedgerError, ValueError) as e:
        raise to_http_exception(e)


@app.post("/parts/{part_id}/maintenance")
def record_maintenance(
    part_id: int,
    request: RecordMaintenanceRequest,
    caller: str = Depends(get_caller_address),
    ledger: ProvenanceLedger = Depends(get_ledger),
):
    """Record a maintenance action on a part. MRO only."""
    check_sender(request.sender_address, caller)
    try:
        record_index = ledger.record_maintenance(
            caller=caller,
            part_id=part_id,
            maintenance_type=request.maintenance_type,
            report_hash=request.report_hash,
            notes=request.notes,
        )
        return {"status": "success", "record_index": record_index}
    except (LedgerError, ValueError) as e:
        raise to_http_exception(e)


@app.get("/parts/{part_id}/custody")
def get_custody_history(part_id: int, ledger: ProvenanceLedger = Depends(get_ledger)):
    try:
        return {"custody_history": ledger.get_custody_history(part_id)}
    except LedgerError as e:
        raise to_http_exception(e)


@app.get("/parts/{part_id}/maintenance")
def get_maintenance_history(part_id: int, ledger: ProvenanceLedger = Depends(get_ledger)):
    try:
        return {"maintenance_history": ledger.get_maintenance_history(part_id)}
    except LedgerError as e:
        raise to_http_exception(e)


@app.get("/parts/{part_id}/verify")
def verify_part_authenticity(
    part_id: int,
    caller: str = Depends(get_caller_address),
    ledger: ProvenanceLedger = Depends(get_ledger),
):
    """Check that the part's manufacturer is still an active stakeholder. Regulator only."""
    try:
        is_authentic = ledger.verify_part_authenticity(caller=caller, part_id=part_id)
        return {"part_id": part_id, "is_authentic": is_authentic}
    except LedgerError as e:
        raise to_http_exception(e)


# === EVENTS / STATS ===

@app.get("/events")
def get_events(name: Optional[str] = None, part_id: Optional[int] = None, ledger: ProvenanceLedger = Depends(get_ledger)):
    return {"events": ledger.get_events(name=name, part_id=part_id)}


@app.get("/statistics")
def get_stats(ledger: ProvenanceLedger = Depends(get_ledger)):
    """Retrieve basic statistics about the ledger.

    Returns:
        dict: A dictionary containing various statistics.
    """
    return {"statistics": ledger.get_statistics()}

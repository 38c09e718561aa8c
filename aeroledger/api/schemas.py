from pydantic import BaseModel, field_validator

from aeroledger.app.models import PartStatus, Role, parse_part_status, parse_role


# ==== REQUEST MODELS ====
class RegisterStakeholderRequest(BaseModel):
    sender_address: str
    address: str
    name: str
    role: Role

    @field_validator("role", mode="before")
    @classmethod
    def parse_role_value(cls, value):
        return parse_role(value)


class RegisterPartRequest(BaseModel):
    sender_address: str
    part_number: str
    serial_number: str
    part_name: str
    certificate_hash: str


class UpdateStatusRequest(BaseModel):
    sender_address: str
    status: PartStatus

    @field_validator("status", mode="before")
    @classmethod
    def parse_status_value(cls, value):
        return parse_part_status(value)


class TransferCustodyRequest(BaseModel):
    sender_address: str
    to_address: str
    reason: str


class RecordMaintenanceRequest(BaseModel):
    sender_address: str
    maintenance_type: str
    report_hash: str
    notes: str = ""

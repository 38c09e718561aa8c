from enum import IntEnum
from typing import Optional, Union

from sqlmodel import Field, SQLModel


class Role(IntEnum):
    NONE = 0
    MANUFACTURER = 1
    AIRLINE = 2
    MRO = 3
    REGULATOR = 4

    @property
    def label(self) -> str:
        return _ROLE_LABELS[self]


class PartStatus(IntEnum):
    MANUFACTURED = 0
    IN_TRANSIT = 1
    INSTALLED = 2
    IN_MAINTENANCE = 3
    RETIRED = 4

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_ROLE_LABELS = {
    Role.NONE: "None",
    Role.MANUFACTURER: "Manufacturer",
    Role.AIRLINE: "Airline",
    Role.MRO: "MRO",
    Role.REGULATOR: "Regulator",
}

_STATUS_LABELS = {
    PartStatus.MANUFACTURED: "Manufactured",
    PartStatus.IN_TRANSIT: "InTransit",
    PartStatus.INSTALLED: "Installed",
    PartStatus.IN_MAINTENANCE: "InMaintenance",
    PartStatus.RETIRED: "Retired",
}


def _parse_enum(enum_cls, labels: dict, value: Union[int, str]):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid {enum_cls.__name__} value: {value!r}")
    if isinstance(value, int):
        try:
            return enum_cls(value)
        except ValueError:
            raise ValueError(f"Invalid {enum_cls.__name__} value: {value!r}")
    if isinstance(value, str):
        cleaned = value.strip()
        if cleaned.isdigit():
            return _parse_enum(enum_cls, labels, int(cleaned))
        for member, label in labels.items():
            if cleaned.lower() in (label.lower(), member.name.lower()):
                return member
    raise ValueError(f"Invalid {enum_cls.__name__} value: {value!r}")


def parse_role(value: Union[int, str]) -> Role:
    """Accept a Role, its numeric code, its display name ("MRO") or its member name."""
    return _parse_enum(Role, _ROLE_LABELS, value)


def parse_part_status(value: Union[int, str]) -> PartStatus:
    """Accept a PartStatus, its numeric code, its display name ("InTransit") or its member name."""
    return _parse_enum(PartStatus, _STATUS_LABELS, value)


# === TABLES ===

class Stakeholder(SQLModel, table=True):
    address: str = Field(primary_key=True)
    name: str
    role: Role
    is_active: bool = True
    registered_at: int


class Part(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    part_number: str
    serial_number: str
    part_name: str
    manufacturer: str = Field(index=True)
    current_owner: str = Field(index=True)  # owner -> part ids lookup
    status: PartStatus = PartStatus.MANUFACTURED
    certificate_hash: str
    manufactured_at: int


class CustodyRecord(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    part_id: int = Field(foreign_key="part.id", index=True)
    sequence: int
    from_address: str
    to_address: str
    reason: str
    timestamp: int


class MaintenanceRecord(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    part_id: int = Field(foreign_key="part.id", index=True)
    sequence: int
    performed_by: str
    maintenance_type: str
    report_hash: str
    notes: str
    timestamp: int


class LedgerEvent(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    part_id: Optional[int] = Field(default=None, index=True)
    payload: str  # JSON encoded event arguments
    timestamp: int

from typing import Optional

from aeroledger.app.errors import Unauthorized
from aeroledger.app.models import Part, Role, Stakeholder

ADMIN_ONLY = "Only admin can perform this action"
OWNER_ONLY = "Only part owner can perform this action"
ROLE_ONLY = {
    Role.MANUFACTURER: "Only manufacturers can perform this action",
    Role.AIRLINE: "Only airlines can perform this action",
    Role.MRO: "Only MROs can perform this action",
    Role.REGULATOR: "Only regulators can perform this action",
}


def is_active_stakeholder(stakeholder: Optional[Stakeholder]) -> bool:
    return stakeholder is not None and stakeholder.is_active


def has_role(stakeholder: Optional[Stakeholder], role: Role) -> bool:
    """True if the stakeholder is registered, active and holds `role`."""
    return is_active_stakeholder(stakeholder) and stakeholder.role == role


def require_admin(admin_address: str, caller: str) -> None:
    if caller != admin_address:
        raise Unauthorized(ADMIN_ONLY)


def require_role(stakeholder: Optional[Stakeholder], role: Role) -> None:
    if role == Role.NONE:
        raise ValueError("Role NONE cannot be required for an operation.")
    if not has_role(stakeholder, role):
        raise Unauthorized(ROLE_ONLY[role])


def require_owner(part: Part, caller: str) -> None:
    if part.current_owner != caller:
        raise Unauthorized(OWNER_ONLY)

import json
import logging
import threading
import time
from contextlib import nullcontext
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, col, select

from aeroledger.app import access
from aeroledger.app.errors import AlreadyRegistered, InvalidRecipient, NotFound, Unauthorized
from aeroledger.app.models import (
    CustodyRecord,
    LedgerEvent,
    MaintenanceRecord,
    Part,
    PartStatus,
    Role,
    Stakeholder,
    parse_part_status,
    parse_role,
)

logger = logging.getLogger(__name__)

EventCallback = Callable[[Dict[str, Any]], None]


class ProvenanceLedger:
    """Provenance ledger for aviation parts.

    Owns the stakeholder registry, the part table and the two append-only
    history logs. Every mutation is checked by the guards in `access`, runs
    under a single writer lock inside one database transaction and is
    journaled as a `LedgerEvent`.
    """

    def __init__(self, engine, admin_address: str, clock: Callable[[], float] = time.time):
        if not admin_address:
            raise ValueError("An admin address is required to initialize the ledger.")
        self.engine = engine
        self.admin_address = admin_address
        self._clock = clock
        self._write_lock = threading.Lock()
        # StaticPool engines share one connection, so reads must not interleave with a write
        self._read_guard = self._write_lock if isinstance(engine.pool, StaticPool) else nullcontext()
        self._subscribers: List[EventCallback] = []
        logger.info("ProvenanceLedger initialized with admin %s", admin_address)

    def _now(self) -> int:
        return int(self._clock())

    # === EVENTS ===

    def subscribe(self, callback: EventCallback) -> None:
        """Register an observer called with every event after its operation committed."""
        self._subscribers.append(callback)

    def _emit(self, session: Session, event_name: str, event_part_id: Optional[int], timestamp: int, args: Dict[str, Any]) -> LedgerEvent:
        event = LedgerEvent(name=event_name, part_id=event_part_id, payload=json.dumps(args), timestamp=timestamp)
        session.add(event)
        return event

    def _publish(self, event: Dict[str, Any]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber %r failed on %s", callback, event["name"])

    # === REGISTRY ===

    def register_stakeholder(self, caller: str, address: str, name: str, role) -> Dict[str, Any]:
        """Register a new stakeholder.
        Args:
            caller (str): Address of the account performing the registration (must be admin).
            address (str): Address of the stakeholder to register.
            name (str): Display name of the stakeholder.
            role (Role, int, str): Role assigned to the stakeholder, fixed for its lifetime.
        Returns:
            Dict: The registered stakeholder.
        """
        role = parse_role(role)
        with self._write_lock, Session(self.engine) as session:
            try:
                access.require_admin(self.admin_address, caller)
                if session.get(Stakeholder, address) is not None:
                    raise AlreadyRegistered("Stakeholder already registered")
            except (Unauthorized, AlreadyRegistered) as e:
                logger.warning("register_stakeholder rejected for %s: %s", address, e)
                raise

            now = self._now()
            stakeholder = Stakeholder(address=address, name=name, role=role, is_active=True, registered_at=now)
            session.add(stakeholder)
            event = self._emit(session, "StakeholderRegistered", None, now,
                               {"address": address, "name": name, "role": int(role)})
            session.commit()

            result = self._stakeholder_to_dict(stakeholder)
            published = self._event_to_dict(event)

        logger.info("Registered stakeholder %s (%s) as %s", address, name, role.label)
        self._publish(published)
        return result

    def get_stakeholder(self, address: str) -> Optional[Dict[str, Any]]:
        with self._read_guard, Session(self.engine) as session:
            stakeholder = session.get(Stakeholder, address)
            if stakeholder is None:
                return None
            return self._stakeholder_to_dict(stakeholder)

    # === PART LEDGER ===

    def register_part(self, caller: str, part_number: str, serial_number: str, part_name: str, certificate_hash: str) -> int:
        """Register a new part. The caller becomes its manufacturer and first owner.
        Args:
            caller (str): Address of the registering manufacturer.
            part_number (str): Part number, not checked for uniqueness.
            serial_number (str): Serial number, not checked for uniqueness.
            part_name (str): Human readable part name.
            certificate_hash (str): Reference to the certificate in the external document store.
        Returns:
            int: The sequential id assigned to the part.
        """
        with self._write_lock, Session(self.engine) as session:
            try:
                access.require_role(session.get(Stakeholder, caller), Role.MANUFACTURER)
            except Unauthorized as e:
                logger.warning("register_part rejected for %s: %s", caller, e)
                raise

            now = self._now()
            part = Part(
                part_number=part_number,
                serial_number=serial_number,
                part_name=part_name,
                manufacturer=caller,
                current_owner=caller,
                status=PartStatus.MANUFACTURED,
                certificate_hash=certificate_hash,
                manufactured_at=now,
            )
            session.add(part)
            session.flush()  # assigns the id
            part_id = part.id
            event = self._emit(session, "PartRegistered", part_id, now,
                               {"part_id": part_id, "part_number": part_number, "manufacturer": caller})
            session.commit()
            published = self._event_to_dict(event)

        logger.info("Registered part %s (%s/%s) by %s", part_id, part_number, serial_number, caller)
        self._publish(published)
        return part_id

    def update_part_status(self, caller: str, part_id: int, new_status) -> Dict[str, Any]:
        """Set the status of a part. Only the current owner may do so; any status is accepted."""
        new_status = parse_part_status(new_status)
        with self._write_lock, Session(self.engine) as session:
            part = self._load_part(session, part_id)
            try:
                access.require_owner(part, caller)
            except Unauthorized as e:
                logger.warning("update_part_status rejected for part %s by %s: %s", part_id, caller, e)
                raise

            now = self._now()
            part.status = new_status
            session.add(part)
            event = self._emit(session, "PartStatusUpdated", part_id, now,
                               {"part_id": part_id, "status": int(new_status)})
            session.commit()

            result = self._part_to_dict(part)
            published = self._event_to_dict(event)

        logger.info("Part %s status set to %s by %s", part_id, new_status.label, caller)
        self._publish(published)
        return result

    def get_part(self, part_id: int) -> Dict[str, Any]:
        with self._read_guard, Session(self.engine) as session:
            return self._part_to_dict(self._load_part(session, part_id))

    def get_all_parts(self) -> List[Dict[str, Any]]:
        with self._read_guard, Session(self.engine) as session:
            parts = session.exec(select(Part).order_by(col(Part.id).desc())).all()
            return [self._part_to_dict(p) for p in parts]  # Most recent first

    def get_total_parts(self) -> int:
        with self._read_guard, Session(self.engine) as session:
            return session.exec(select(func.count(Part.id))).one()

    def get_stakeholder_parts(self, address: str) -> List[int]:
        """Ids of the parts currently held by `address`, in ascending order."""
        with self._read_guard, Session(self.engine) as session:
            statement = select(Part.id).where(Part.current_owner == address).order_by(Part.id)
            return list(session.exec(statement).all())

    def verify_part_authenticity(self, caller: str, part_id: int) -> bool:
        """Regulator check: True iff the part's manufacturer is still an active stakeholder."""
        with self._read_guard, Session(self.engine) as session:
            try:
                access.require_role(session.get(Stakeholder, caller), Role.REGULATOR)
            except Unauthorized as e:
                logger.warning("verify_part_authenticity rejected for %s: %s", caller, e)
                raise
            part = self._load_part(session, part_id)
            manufacturer = session.get(Stakeholder, part.manufacturer)
            return access.is_active_stakeholder(manufacturer)

    # === CUSTODY ===

    def transfer_custody(self, caller: str, part_id: int, to_address: str, reason: str) -> Dict[str, Any]:
        """Hand a part over to another registered stakeholder.
        Args:
            caller (str): Address of the current owner.
            part_id (int): Id of the part being transferred.
            to_address (str): Address of the recipient, must be a registered active stakeholder.
            reason (str): Free text reason recorded in the custody history.
        Returns:
            Dict: The appended custody record.
        """
        with self._write_lock, Session(self.engine) as session:
            part = self._load_part(session, part_id)
            try:
                access.require_owner(part, caller)
                if not access.is_active_stakeholder(session.get(Stakeholder, to_address)):
                    raise InvalidRecipient("Recipient is not a registered stakeholder")
            except (Unauthorized, InvalidRecipient) as e:
                logger.warning("transfer_custody rejected for part %s by %s: %s", part_id, caller, e)
                raise

            now = self._now()
            from_address = part.current_owner
            record = CustodyRecord(
                part_id=part_id,
                sequence=self._count(session, CustodyRecord, part_id) + 1,
                from_address=from_address,
                to_address=to_address,
                reason=reason,
                timestamp=now,
            )
            session.add(record)

            part.current_owner = to_address
            part.status = PartStatus.IN_TRANSIT
            session.add(part)

            event = self._emit(session, "CustodyTransferred", part_id, now,
                               {"part_id": part_id, "from_address": from_address, "to_address": to_address})
            session.commit()

            result = self._custody_to_dict(record)
            published = self._event_to_dict(event)

        logger.info("Part %s custody transferred from %s to %s", part_id, from_address, to_address)
        self._publish(published)
        return result

    def get_custody_history(self, part_id: int) -> List[Dict[str, Any]]:
        """Custody records of a part in chronological order."""
        with self._read_guard, Session(self.engine) as session:
            self._load_part(session, part_id)
            statement = (
                select(CustodyRecord)
                .where(CustodyRecord.part_id == part_id)
                .order_by(CustodyRecord.sequence)
            )
            return [self._custody_to_dict(r) for r in session.exec(statement).all()]

    # === MAINTENANCE ===

    def record_maintenance(self, caller: str, part_id: int, maintenance_type: str, report_hash: str, notes: str) -> int:
        """Append a maintenance record. Any active MRO may record maintenance on any part.
        Args:
            caller (str): Address of the MRO performing the maintenance.
            part_id (int): Id of the serviced part.
            maintenance_type (str): Category of the maintenance ("Inspection", "Repair", ...).
            report_hash (str): Reference to the report in the external document store.
            notes (str): Free text notes.
        Returns:
            int: 1-based index of the record within the part's maintenance history.
        """
        with self._write_lock, Session(self.engine) as session:
            try:
                access.require_role(session.get(Stakeholder, caller), Role.MRO)
            except Unauthorized as e:
                logger.warning("record_maintenance rejected for %s: %s", caller, e)
                raise
            self._load_part(session, part_id)

            now = self._now()
            record_index = self._count(session, MaintenanceRecord, part_id) + 1
            session.add(
                MaintenanceRecord(
                    part_id=part_id,
                    sequence=record_index,
                    performed_by=caller,
                    maintenance_type=maintenance_type,
                    report_hash=report_hash,
                    notes=notes,
                    timestamp=now,
                )
            )
            event = self._emit(session, "MaintenanceRecorded", part_id, now,
                               {"part_id": part_id, "record_index": record_index, "performed_by": caller})
            session.commit()
            published = self._event_to_dict(event)

        logger.info("Maintenance #%s (%s) recorded on part %s by %s", record_index, maintenance_type, part_id, caller)
        self._publish(published)
        return record_index

    def get_maintenance_history(self, part_id: int) -> List[Dict[str, Any]]:
        """Maintenance records of a part in chronological order."""
        with self._read_guard, Session(self.engine) as session:
            self._load_part(session, part_id)
            statement = (
                select(MaintenanceRecord)
                .where(MaintenanceRecord.part_id == part_id)
                .order_by(MaintenanceRecord.sequence)
            )
            return [self._maintenance_to_dict(r) for r in session.exec(statement).all()]

    # === EVENTS / STATS ===

    def get_events(self, name: Optional[str] = None, part_id: Optional[int] = None) -> List[Dict[str, Any]]:
        with self._read_guard, Session(self.engine) as session:
            statement = select(LedgerEvent)
            if name is not None:
                statement = statement.where(LedgerEvent.name == name)
            if part_id is not None:
                statement = statement.where(LedgerEvent.part_id == part_id)
            events = session.exec(statement.order_by(LedgerEvent.id)).all()
            return [self._event_to_dict(e) for e in events]

    def get_statistics(self) -> Dict[str, Any]:
        with self._read_guard, Session(self.engine) as session:
            status_rows = session.exec(select(Part.status, func.count(Part.id)).group_by(Part.status)).all()
            parts_by_status = {status.label: 0 for status in PartStatus}
            for status, count in status_rows:
                parts_by_status[PartStatus(status).label] = count

            return {
                "total_parts": session.exec(select(func.count(Part.id))).one(),
                "total_stakeholders": session.exec(select(func.count(Stakeholder.address))).one(),
                "parts_by_status": parts_by_status,
                "custody_transfers": session.exec(select(func.count(CustodyRecord.id))).one(),
                "maintenance_records": session.exec(select(func.count(MaintenanceRecord.id))).one(),
            }

    # === HELPERS ===

    def _load_part(self, session: Session, part_id: int) -> Part:
        part = session.get(Part, part_id)
        if part is None:
            raise NotFound(f"Part does not exist: {part_id}")
        return part

    def _count(self, session: Session, model, part_id: int) -> int:
        return session.exec(select(func.count(model.id)).where(model.part_id == part_id)).one()

    def _stakeholder_to_dict(self, stakeholder: Stakeholder) -> Dict[str, Any]:
        return {
            "address": stakeholder.address,
            "name": stakeholder.name,
            "role": Role(stakeholder.role),
            "is_active": stakeholder.is_active,
            "registered_at": stakeholder.registered_at,
        }

    def _part_to_dict(self, part: Part) -> Dict[str, Any]:
        return {
            "part_id": part.id,
            "part_number": part.part_number,
            "serial_number": part.serial_number,
            "part_name": part.part_name,
            "manufacturer": part.manufacturer,
            "current_owner": part.current_owner,
            "status": PartStatus(part.status),
            "certificate_hash": part.certificate_hash,
            "manufactured_at": part.manufactured_at,
        }

    def _custody_to_dict(self, record: CustodyRecord) -> Dict[str, Any]:
        return {
            "sequence": record.sequence,
            "from_address": record.from_address,
            "to_address": record.to_address,
            "reason": record.reason,
            "timestamp": record.timestamp,
        }

    def _maintenance_to_dict(self, record: MaintenanceRecord) -> Dict[str, Any]:
        return {
            "sequence": record.sequence,
            "performed_by": record.performed_by,
            "maintenance_type": record.maintenance_type,
            "report_hash": record.report_hash,
            "notes": record.notes,
            "timestamp": record.timestamp,
        }

    def _event_to_dict(self, event: LedgerEvent) -> Dict[str, Any]:
        return {
            "event_id": event.id,
            "name": event.name,
            "part_id": event.part_id,
            "args": json.loads(event.payload),
            "timestamp": event.timestamp,
        }

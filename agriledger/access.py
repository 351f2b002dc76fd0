# agriledger/access.py
"""
Authorization for every ledger entry point.

Two independent axes: who may call (owner / operator set) and whether the
ledger is paused. ``OPERATION_POLICY`` is the single table both are read
from; only ``create_batch`` is pausable.
"""
import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.orm import Session

from agriledger import models
from agriledger.errors import ContractPaused, EmptyRequiredField, UnauthorizedAccess, UnauthorizedCaller

logger = logging.getLogger(__name__)


class Role(Enum):
    OWNER = "owner"
    OWNER_OR_OPERATOR = "owner_or_operator"


@dataclass(frozen=True)
class Requirement:
    role: Role
    pausable: bool = False


OPERATION_POLICY: dict[str, Requirement] = {
    "create_batch": Requirement(Role.OWNER, pausable=True),
    "edit_batch": Requirement(Role.OWNER),
    "deactivate_batch": Requirement(Role.OWNER),
    "create_activity_log": Requirement(Role.OWNER),
    "edit_activity_log": Requirement(Role.OWNER),
    "create_sustainability_log": Requirement(Role.OWNER),
    "edit_sustainability_log": Requirement(Role.OWNER),
    "set_operator": Requirement(Role.OWNER),
    "transfer_ownership": Requirement(Role.OWNER),
    "pause": Requirement(Role.OWNER_OR_OPERATOR),
    "unpause": Requirement(Role.OWNER_OR_OPERATOR),
}


class AccessGate:
    def _state(self, db: Session) -> models.AccessControlState:
        state = db.get(models.AccessControlState, 1)
        if state is None:
            raise RuntimeError("Access control is not initialised; call AccessGate.initialise first")
        return state

    def initialise(self, db: Session, owner: str) -> models.AccessControlState:
        """Create the singleton row on first use; an existing owner is kept."""
        if not owner or not owner.strip():
            raise EmptyRequiredField("owner must not be empty", field="owner")
        state = db.get(models.AccessControlState, 1)
        if state is None:
            state = models.AccessControlState(id=1, owner=owner, paused=False)
            db.add(state)
            db.flush()
            logger.info("ledger initialised with owner %s", owner)
        elif state.owner != owner:
            logger.warning("ledger already owned by %s; ignoring configured owner %s", state.owner, owner)
        return state

    # --- queries ---

    def owner(self, db: Session) -> str:
        return self._state(db).owner

    def is_paused(self, db: Session) -> bool:
        return bool(self._state(db).paused)

    def is_operator(self, db: Session, identity: str) -> bool:
        op = db.get(models.Operator, identity)
        return bool(op and op.enabled)

    # --- the gate ---

    def authorize(self, db: Session, operation: str, caller: str) -> None:
        req = OPERATION_POLICY[operation]
        state = self._state(db)
        if req.role is Role.OWNER and caller != state.owner:
            raise UnauthorizedCaller(f"{caller!r} is not the owner", caller=caller, operation=operation)
        if req.role is Role.OWNER_OR_OPERATOR and caller != state.owner and not self.is_operator(db, caller):
            raise UnauthorizedAccess(
                f"{caller!r} is neither owner nor operator", caller=caller, operation=operation
            )
        if req.pausable and state.paused:
            raise ContractPaused(f"{operation} is disabled while paused", operation=operation)

    # --- mutations (callers authorize first) ---

    def set_operator(self, db: Session, identity: str, enabled: bool) -> None:
        op = db.get(models.Operator, identity)
        if op is None:
            op = models.Operator(identity=identity)
            db.add(op)
        op.enabled = bool(enabled)
        db.flush()

    def set_paused(self, db: Session, paused: bool) -> None:
        self._state(db).paused = paused
        db.flush()

    def transfer_ownership(self, db: Session, new_owner: str) -> None:
        if not new_owner or not new_owner.strip():
            raise EmptyRequiredField("new owner must not be empty", field="new_owner")
        self._state(db).owner = new_owner
        db.flush()

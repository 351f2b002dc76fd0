# agriledger/identifiers.py
import logging

from sqlalchemy.orm import Session

from agriledger import models

logger = logging.getLogger(__name__)

LOG_ID_SEQUENCE = "log_id"


class IdentifierRegistry:
    """Strictly sequential integer ids starting at 0, persisted in ``sequences``.

    The counter row is advanced inside the caller's session, so a rolled back
    operation gives its id back. Callers must hold the ledger's write lock.
    """

    def __init__(self, name: str = LOG_ID_SEQUENCE):
        self.name = name

    def _row(self, db: Session) -> models.Sequence:
        row = db.get(models.Sequence, self.name)
        if row is None:
            row = models.Sequence(name=self.name, value=0)
            db.add(row)
        return row

    def peek(self, db: Session) -> int:
        row = db.get(models.Sequence, self.name)
        return 0 if row is None else row.value

    def next_id(self, db: Session) -> int:
        row = self._row(db)
        value = row.value or 0
        row.value = value + 1
        db.flush()
        logger.debug("allocated %s=%d", self.name, value)
        return value

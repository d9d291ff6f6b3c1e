from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..core.exceptions import StorageError
from ..models.vaccine import Vaccine

logger = logging.getLogger(__name__)

class InventoryLedger:
    """Vaccine dose counts. Callers own the transaction boundary."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, name: str) -> Optional[Vaccine]:
        return self.db.query(Vaccine).filter(Vaccine.name == name).first()

    def list_all(self) -> list[Vaccine]:
        return self.db.query(Vaccine).order_by(Vaccine.name.asc()).all()

    def ensure_and_add(self, name: str, count: int) -> int:
        """Add ``count`` doses to ``name``, creating the vaccine if unseen.

        Returns the resulting dose count.
        """
        if count < 0:
            raise ValueError("count must be non-negative")

        if not self._increment(name, count):
            try:
                with self.db.begin_nested():
                    self.db.add(Vaccine(name=name, doses=count))
            except IntegrityError:
                # Created by a concurrent add since the update above ran
                if not self._increment(name, count):
                    raise

        return self.db.query(Vaccine.doses).filter(Vaccine.name == name).scalar()

    def _increment(self, name: str, count: int) -> bool:
        result = self.db.execute(
            update(Vaccine)
            .where(Vaccine.name == name)
            .values(doses=Vaccine.doses + count)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def try_consume_one(self, name: str) -> bool:
        """Take one dose only if the vaccine exists and has a dose left."""
        result = self.db.execute(
            update(Vaccine)
            .where(Vaccine.name == name, Vaccine.doses > 0)
            .values(doses=Vaccine.doses - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def restore(self, name: str) -> None:
        """Give back one dose taken by a canceled appointment."""
        result = self.db.execute(
            update(Vaccine)
            .where(Vaccine.name == name)
            .values(doses=Vaccine.doses + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.error(f"Cannot restore a dose of missing vaccine {name}")
            raise StorageError(f"Vaccine {name} is missing from inventory")

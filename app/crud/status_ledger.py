from typing import Any, Iterable, Optional, Type
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.database import Base

logger = logging.getLogger(__name__)


class StatusLedger:
    """Compare-and-set writes over entity status fields.

    The precondition check and the write are one UPDATE statement, so of two
    concurrent callers expecting the same status only one sees a changed row.
    Nothing else in the pipeline writes a status column directly.
    """

    def transition(
        self,
        db: Session,
        model: Type[Base],
        id: int,
        expected: Iterable[Any],
        new: Any,
        *criteria,
        **values
    ) -> bool:
        expected = list(expected)
        stmt = (
            update(model)
            .where(model.id == id, model.status.in_(expected), *criteria)
            .values(status=new, **values)
            .execution_options(synchronize_session=False)
        )
        result = db.execute(stmt)
        changed = result.rowcount == 1
        if changed:
            logger.info(
                f"{model.__name__} {id}: {'/'.join(self._name(s) for s in expected)} -> {self._name(new)}"
            )
        else:
            logger.info(
                f"{model.__name__} {id}: transition to {self._name(new)} skipped, "
                f"status not in {[self._name(s) for s in expected]}"
            )
        return changed

    def current_status(self, db: Session, model: Type[Base], id: int) -> Optional[Any]:
        return db.execute(select(model.status).where(model.id == id)).scalar_one_or_none()

    @staticmethod
    def _name(status: Any) -> str:
        return getattr(status, "value", str(status))


status_ledger = StatusLedger()

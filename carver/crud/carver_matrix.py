import logging
from typing import Iterable, List, Optional

from sqlalchemy import ARRAY, Text, any_, func, literal, select, type_coerce
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carver.core.exceptions import StorageException
from carver.crud.base import CRUDBase
from carver.crud.carver_item import build_item
from carver.models.carver_matrix import CarverMatrix
from carver.models.user import AppUser
from carver.schemas.carver_matrix import CarverMatrixCreate

logger = logging.getLogger(__name__)


def array_contains(db: Session, column, identifier: str):
    """
    Predicate: `identifier` is an element of the string-list `column`.

    PostgreSQL stores the lists as TEXT[] and uses `= ANY(...)`; other
    dialects store JSON arrays and search them with json_each.
    """
    if db.get_bind().dialect.name == "postgresql":
        return literal(identifier, Text) == any_(type_coerce(column, ARRAY(Text)))
    elements = func.json_each(column).table_valued("value")
    return (
        select(elements.c.value)
        .where(elements.c.value == identifier)
        .correlate(CarverMatrix)
        .exists()
    )


class CRUDCarverMatrix(CRUDBase[CarverMatrix, CarverMatrixCreate]):
    def create(
        self,
        db: Session,
        *,
        obj_in: CarverMatrixCreate,
        owner: Optional[AppUser] = None,
        action: str = "create matrix",
    ) -> CarverMatrix:
        """Matrix plus every payload item, attached through add_item and committed together."""
        matrix = CarverMatrix(**obj_in.model_dump(exclude_none=True, exclude={"items"}))
        matrix.user = owner
        for item_in in obj_in.items:
            matrix.add_item(build_item(item_in))
        return self.save(db, matrix, action=action)

    def get_with_items(self, db: Session, *, matrix_id: int) -> Optional[CarverMatrix]:
        # items are loaded eagerly (selectin) with the matrix
        return db.query(CarverMatrix).filter(CarverMatrix.matrix_id == matrix_id).first()

    def find_by_predicates(self, db: Session, predicates: Iterable) -> List[CarverMatrix]:
        """AND of all predicates; no predicates returns every matrix."""
        query = db.query(CarverMatrix)
        for predicate in predicates:
            query = query.filter(predicate)
        return self._all(query.order_by(CarverMatrix.matrix_id), action="query matrices")

    def find_by_host(self, db: Session, *, identifier: str) -> List[CarverMatrix]:
        query = (
            db.query(CarverMatrix)
            .filter(array_contains(db, CarverMatrix.hosts, identifier))
        )
        return self._all(query, action="query matrices by host")

    def find_by_participant(self, db: Session, *, identifier: str) -> List[CarverMatrix]:
        query = (
            db.query(CarverMatrix)
            .filter(array_contains(db, CarverMatrix.participants, identifier))
        )
        return self._all(query, action="query matrices by participant")

    def _all(self, query, *, action: str) -> List[CarverMatrix]:
        try:
            return query.all()
        except SQLAlchemyError as e:
            logger.error(f"Database error while trying to {action}: {e}")
            raise StorageException(f"Failed to {action}") from e


carver_matrix = CRUDCarverMatrix(CarverMatrix)

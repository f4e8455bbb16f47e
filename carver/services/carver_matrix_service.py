import logging
from typing import List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from carver import crud
from carver.core.exceptions import EntityNotFoundException, InvalidArgumentException
from carver.core.metrics import (
    matrices_created_total,
    matrices_deleted_total,
    matrices_updated_total,
)
from carver.crud.carver_item import build_item
from carver.models.carver_matrix import CarverMatrix
from carver.schemas.carver_matrix import (
    CarverMatrixCreate,
    CarverMatrixUpdate,
)
from .matrix_search import MatrixSearchEngine
from .score_merge import ScoreMergeEngine, ScoreRecord, ScoreUpdateResult

logger = logging.getLogger(__name__)


class CarverMatrixService:
    """Matrix lifecycle: create, update and delete matrices with their owned items."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, matrix_id: int) -> CarverMatrix:
        matrix = crud.carver_matrix.get_with_items(self.db, matrix_id=matrix_id)
        if matrix is None:
            raise EntityNotFoundException("Matrix", matrix_id)
        return matrix

    def create(self, matrix_in: Optional[CarverMatrixCreate], owner_id: Optional[int]) -> CarverMatrix:
        if matrix_in is None:
            raise InvalidArgumentException("matrix required")
        if owner_id is None:
            raise InvalidArgumentException("owner id required")

        owner = crud.user.get(self.db, id=owner_id)
        if owner is None:
            raise InvalidArgumentException(f"Owner not found with id {owner_id}")

        matrix = crud.carver_matrix.create(self.db, obj_in=matrix_in, owner=owner)
        matrices_created_total.inc()
        logger.info(
            f"Created matrix {matrix.matrix_id} '{matrix.name}' for user {owner_id} "
            f"with {len(matrix.items)} items"
        )
        return matrix

    def update(self, matrix_id: Optional[int], partial: Optional[CarverMatrixUpdate]) -> CarverMatrix:
        if matrix_id is None:
            raise InvalidArgumentException("matrix id required")
        if partial is None:
            raise InvalidArgumentException("matrix update required")

        matrix = self.get(matrix_id)
        changes = partial.model_dump(exclude_none=True, exclude={"items"})
        for field, value in changes.items():
            setattr(matrix, field, value)
        for item_in in partial.items or []:
            matrix.add_item(build_item(item_in))

        matrix = crud.carver_matrix.save(self.db, matrix, action="update matrix")
        matrices_updated_total.inc()
        logger.info(
            f"Updated matrix {matrix_id}: fields={sorted(changes)} "
            f"added_items={len(partial.items or [])}"
        )
        return matrix

    def delete(self, matrix_id: Optional[int]) -> None:
        if matrix_id is None:
            raise InvalidArgumentException("matrix id required")
        matrix = self.get(matrix_id)
        item_count = len(matrix.items)
        # Stored images for this matrix are not removed here
        crud.carver_matrix.remove(self.db, db_obj=matrix, action="delete matrix")
        matrices_deleted_total.inc()
        logger.info(f"Deleted matrix {matrix_id} and {item_count} items")

    def get_by_host(self, identifier: str) -> List[CarverMatrix]:
        if not identifier:
            raise InvalidArgumentException("identifier required")
        return crud.carver_matrix.find_by_host(self.db, identifier=identifier)

    def get_by_participant(self, identifier: str) -> List[CarverMatrix]:
        if not identifier:
            raise InvalidArgumentException("identifier required")
        return crud.carver_matrix.find_by_participant(self.db, identifier=identifier)

    def search(self, criteria: Optional[Mapping[str, Optional[str]]]) -> List[CarverMatrix]:
        return MatrixSearchEngine(self.db).search(criteria)

    def update_item_scores(
        self,
        matrix_id: int,
        acting_identity: str,
        updates: Optional[Sequence[ScoreRecord]],
    ) -> ScoreUpdateResult:
        matrix = self.get(matrix_id)
        return ScoreMergeEngine(self.db).apply_updates(matrix, updates, acting_identity)

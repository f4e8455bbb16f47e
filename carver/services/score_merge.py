"""
Score merge engine for CARVER items.

Every item keeps one {identity: score} map per criterion. A submission from
one acting identity only ever writes that identity's key, and the write is
a single-key JSON update evaluated by the database. Contributors with
different identities therefore never overwrite each other, even when their
requests overlap; repeated submissions from the same identity are
last-write-wins.

Batches are applied record by record and each merged item is committed
before the next record is read. The first failing record stops the batch
and is reported through ScoreUpdateResult; records applied before it stay
persisted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session

from carver import crud
from carver.core.config import settings
from carver.core.exceptions import CarverException, InvalidArgumentException, StorageException
from carver.core.metrics import score_batches_failed_total, score_records_applied_total
from carver.models.carver_matrix import CarverItem, CarverMatrix
from carver.schemas.carver_matrix import ItemScoreUpdate

logger = logging.getLogger(__name__)

FIVE_POINT_RANGE = (1, 5)
TEN_POINT_RANGE = (1, 10)

ScoreRecord = Union[ItemScoreUpdate, Mapping]


def score_range(matrix: CarverMatrix) -> tuple:
    return FIVE_POINT_RANGE if matrix.five_point_scoring else TEN_POINT_RANGE


@dataclass
class ScoreUpdateResult:
    items: List[CarverItem] = field(default_factory=list)
    error: Optional[CarverException] = None
    failed_index: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def applied(self) -> int:
        return len(self.items)

    def raise_for_error(self) -> List[CarverItem]:
        if self.error is not None:
            raise self.error
        return self.items


class ScoreMergeEngine:
    def __init__(self, db: Session, enforce_range: Optional[bool] = None):
        self.db = db
        self.enforce_range = settings.ENFORCE_SCORE_RANGE if enforce_range is None else enforce_range

    def apply_updates(
        self,
        matrix: Optional[CarverMatrix],
        updates: Optional[Sequence[ScoreRecord]],
        acting_identity: Optional[str],
    ) -> ScoreUpdateResult:
        if matrix is None:
            raise InvalidArgumentException("matrix required")
        if updates is None:
            raise InvalidArgumentException("updates required")
        if not acting_identity:
            raise InvalidArgumentException("identity required")

        result = ScoreUpdateResult()
        for index, record in enumerate(updates):
            try:
                item = self._apply_record(matrix, self._as_record(record), acting_identity)
            except (InvalidArgumentException, StorageException) as e:
                logger.warning(
                    f"Score batch for matrix {matrix.matrix_id} stopped at record {index} "
                    f"after {result.applied} applied: {e.message}"
                )
                score_batches_failed_total.inc()
                result.error = e
                result.failed_index = index
                break
            result.items.append(item)
            score_records_applied_total.inc()
        return result

    def _apply_record(self, matrix: CarverMatrix, record: ItemScoreUpdate, identity: str) -> CarverItem:
        item = matrix.get_item(record.item_id)
        if item is None:
            raise InvalidArgumentException(
                f"Item {record.item_id} does not belong to matrix {matrix.matrix_id}"
            )
        scores = record.scores()
        if self.enforce_range:
            self._check_range(matrix, record.item_id, scores)
        return crud.carver_item.merge_scores(
            self.db, item=item, scores=scores, identity=identity, action="persist item update"
        )

    def _check_range(self, matrix: CarverMatrix, item_id: int, scores: Mapping[str, int]) -> None:
        low, high = score_range(matrix)
        for criterion, value in scores.items():
            if not low <= value <= high:
                raise InvalidArgumentException(
                    f"Score {value} for {criterion} on item {item_id} is outside {low}-{high}"
                )

    @staticmethod
    def _as_record(record: ScoreRecord) -> ItemScoreUpdate:
        if isinstance(record, ItemScoreUpdate):
            return record
        if isinstance(record, Mapping):
            if record.get("itemId", record.get("item_id")) is None:
                raise InvalidArgumentException("itemId required")
            try:
                return ItemScoreUpdate.model_validate(record)
            except ValidationError as e:
                raise InvalidArgumentException(f"Invalid score record: {e.errors()[0]['msg']}") from e
        raise InvalidArgumentException(f"Unsupported score record: {type(record).__name__}")

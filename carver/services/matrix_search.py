"""
Matrix search: a generic scalar filter followed by array-membership filters.

Phase one turns every scalar criterion into a predicate and asks the store
for the AND of them. Phase two narrows that candidate set by intersecting it
with the host- and participant-membership queries, since "element of a
string array" does not fit the scalar predicate builder.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from carver import crud
from carver.core.exceptions import InvalidArgumentException
from carver.core.metrics import matrix_searches_total
from carver.models.carver_matrix import CarverMatrix
from carver.models.user import AppUser

logger = logging.getLogger(__name__)

HOSTS_KEY = "hosts"
PARTICIPANTS_KEY = "participants"
MEMBERSHIP_KEYS = (HOSTS_KEY, PARTICIPANTS_KEY)

_TRUE = {"true", "1", "yes", "y", "on"}
_FALSE = {"false", "0", "no", "n", "off"}


def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _substring(column):
    return lambda value: column.contains(value, autoescape=True)


def _equals(column, coerce: Callable):
    return lambda value: column == coerce(value)


def _owner_email(value: str):
    return CarverMatrix.user.has(AppUser.email == value)


# search key -> predicate factory; snake_case aliases share the same factory
_FIELD_PREDICATES: Dict[str, Callable] = {
    "matrixId": _equals(CarverMatrix.matrix_id, int),
    "name": _substring(CarverMatrix.name),
    "description": _substring(CarverMatrix.description),
    "userId": _equals(CarverMatrix.user_id, int),
    "userEmail": _owner_email,
    "createdAt": _equals(CarverMatrix.created_at, datetime.fromisoformat),
    "cMulti": _equals(CarverMatrix.c_multi, float),
    "aMulti": _equals(CarverMatrix.a_multi, float),
    "rMulti": _equals(CarverMatrix.r_multi, float),
    "vMulti": _equals(CarverMatrix.v_multi, float),
    "eMulti": _equals(CarverMatrix.e_multi, float),
    "r2Multi": _equals(CarverMatrix.r2_multi, float),
    "randomAssignment": _equals(CarverMatrix.random_assignment, parse_bool),
    "roleBased": _equals(CarverMatrix.role_based, parse_bool),
    "fivePointScoring": _equals(CarverMatrix.five_point_scoring, parse_bool),
}

_SNAKE_ALIASES = {
    "matrix_id": "matrixId",
    "user_id": "userId",
    "user_email": "userEmail",
    "created_at": "createdAt",
    "c_multi": "cMulti",
    "a_multi": "aMulti",
    "r_multi": "rMulti",
    "v_multi": "vMulti",
    "e_multi": "eMulti",
    "r2_multi": "r2Multi",
    "random_assignment": "randomAssignment",
    "role_based": "roleBased",
    "five_point_scoring": "fivePointScoring",
}


def _is_blank(value: Optional[str]) -> bool:
    return value is None or value == ""


class MatrixSearchEngine:
    def __init__(self, db: Session):
        self.db = db

    def search(self, criteria: Optional[Mapping[str, Optional[str]]]) -> List[CarverMatrix]:
        if criteria is None:
            raise InvalidArgumentException("search parameters must not be null")
        matrix_searches_total.inc()

        candidates = crud.carver_matrix.find_by_predicates(self.db, self.build_predicates(criteria))

        host = criteria.get(HOSTS_KEY)
        if not _is_blank(host):
            hosted = crud.carver_matrix.find_by_host(self.db, identifier=host)
            candidates = self._intersect(candidates, hosted)

        participant = criteria.get(PARTICIPANTS_KEY)
        if not _is_blank(participant):
            joined = crud.carver_matrix.find_by_participant(self.db, identifier=participant)
            candidates = self._intersect(candidates, joined)

        logger.info(f"Matrix search on {sorted(k for k, v in criteria.items() if not _is_blank(v))} "
                    f"returned {len(candidates)} matrices")
        return candidates

    def build_predicates(self, criteria: Mapping[str, Optional[str]]) -> List:
        predicates = []
        for key, value in criteria.items():
            if key in MEMBERSHIP_KEYS or _is_blank(value):
                continue
            factory, field = self._resolve(key)
            try:
                predicates.append(factory(value))
            except ValueError as e:
                raise InvalidArgumentException(f"Invalid value {value!r} for search field {field}") from e
        return predicates

    @staticmethod
    def _resolve(key: str) -> Tuple[Callable, str]:
        field = _SNAKE_ALIASES.get(key, key)
        factory = _FIELD_PREDICATES.get(field)
        if factory is None:
            raise InvalidArgumentException(f"Unknown search field: {key}")
        return factory, field

    @staticmethod
    def _intersect(candidates: List[CarverMatrix], members: List[CarverMatrix]) -> List[CarverMatrix]:
        member_ids = {matrix.matrix_id for matrix in members}
        return [matrix for matrix in candidates if matrix.matrix_id in member_ids]

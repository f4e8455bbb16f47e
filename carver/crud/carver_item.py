from typing import Mapping
from sqlalchemy import Integer, Text, cast, func, literal_column, update
from sqlalchemy.orm import Session

from carver.crud.base import CRUDBase
from carver.models.carver_matrix import SCORE_CRITERIA, CarverItem
from carver.schemas.carver_matrix import CarverItemCreate


def build_item(item_in: CarverItemCreate) -> CarverItem:
    return CarverItem(
        item_name=item_in.item_name,
        target_users=item_in.target_users,
    )


def merged_score_map(db: Session, column, identity: str, value: int):
    """
    SQL expression for `column` with `identity` set to `value`.

    Only that one key is written, against the value the database holds at
    UPDATE time; keys of other identities are carried over untouched.
    """
    if db.get_bind().dialect.name == "postgresql":
        current = func.coalesce(column, literal_column("'{}'::jsonb"))
        return current.op("||")(func.jsonb_build_object(cast(identity, Text), cast(value, Integer)))
    current = func.coalesce(column, literal_column("'{}'"))
    return func.json_patch(current, func.json_object(identity, value))


class CRUDCarverItem(CRUDBase[CarverItem, CarverItemCreate]):
    def merge_scores(
        self,
        db: Session,
        *,
        item: CarverItem,
        scores: Mapping[str, int],
        identity: str,
        action: str = "persist item update",
    ) -> CarverItem:
        """Write `identity`'s score into each named criterion map of `item`, then reload it."""
        values = {
            criterion: merged_score_map(db, getattr(CarverItem, criterion), identity, value)
            for criterion, value in scores.items()
            if criterion in SCORE_CRITERIA
        }
        with self.write_guard(db, action=action):
            if values:
                db.execute(
                    update(CarverItem)
                    .where(CarverItem.item_id == item.item_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
        self.commit(db, action=action)
        db.refresh(item)
        return item


carver_item = CRUDCarverItem(CarverItem)

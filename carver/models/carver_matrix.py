from datetime import datetime
from typing import Dict
from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from carver.db.base import Base, ScoreMap, StringList

# Item score columns, in CARVER order
SCORE_CRITERIA = (
    "criticality",
    "accessibility",
    "recoverability",
    "vulnerability",
    "effect",
    "recognizability",
)


class CarverMatrix(Base):
    __tablename__ = "carver_matrices"

    matrix_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Access lists: user ids or emails, never validated against users
    hosts = Column(StringList, nullable=True)
    participants = Column(StringList, nullable=True)

    c_multi = Column(Float, nullable=False, default=1.0)
    a_multi = Column(Float, nullable=False, default=1.0)
    r_multi = Column(Float, nullable=False, default=1.0)
    v_multi = Column(Float, nullable=False, default=1.0)
    e_multi = Column(Float, nullable=False, default=1.0)
    r2_multi = Column(Float, nullable=False, default=1.0)

    random_assignment = Column(Boolean, nullable=False, default=False)
    role_based = Column(Boolean, nullable=False, default=False)
    five_point_scoring = Column(Boolean, nullable=False, default=False)

    # Relationships
    user = relationship("AppUser", back_populates="carver_matrices")
    items = relationship(
        "CarverItem",
        back_populates="carver_matrix",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CarverItem.item_id",
        lazy="selectin",
    )

    def add_item(self, item: "CarverItem") -> "CarverItem":
        """Attach an item and point its back-reference at this matrix."""
        self.items.append(item)
        item.carver_matrix = self
        return item

    def remove_item(self, item: "CarverItem") -> "CarverItem":
        self.items.remove(item)
        item.carver_matrix = None
        return item

    def get_item(self, item_id: int):
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None


class CarverItem(Base):
    __tablename__ = "carver_items"

    item_id = Column(Integer, primary_key=True, index=True)
    matrix_id = Column(
        Integer,
        ForeignKey("carver_matrices.matrix_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_name = Column(String(255), nullable=False)

    # Per-criterion {identity: score} maps
    criticality = Column(ScoreMap, nullable=False, default=dict)
    accessibility = Column(ScoreMap, nullable=False, default=dict)
    recoverability = Column(ScoreMap, nullable=False, default=dict)
    vulnerability = Column(ScoreMap, nullable=False, default=dict)
    effect = Column(ScoreMap, nullable=False, default=dict)
    recognizability = Column(ScoreMap, nullable=False, default=dict)

    target_users = Column(StringList, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    carver_matrix = relationship("CarverMatrix", back_populates="items")

    __table_args__ = (
        Index("ix_carver_items_matrix_item", "matrix_id", "item_id"),
    )

    def score_maps(self) -> Dict[str, Dict[str, int]]:
        return {criterion: dict(getattr(self, criterion) or {}) for criterion in SCORE_CRITERIA}

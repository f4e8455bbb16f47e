from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from carver.models.carver_matrix import SCORE_CRITERIA


# Item payloads
class CarverItemCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_name: str = Field(..., alias="itemName", min_length=1, max_length=255)
    target_users: Optional[List[str]] = Field(default=None, alias="targetUsers")


class CarverItemRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    item_id: int = Field(..., alias="itemId")
    matrix_id: int = Field(..., alias="matrixId")
    item_name: str = Field(..., alias="itemName")
    criticality: Dict[str, int] = Field(default_factory=dict)
    accessibility: Dict[str, int] = Field(default_factory=dict)
    recoverability: Dict[str, int] = Field(default_factory=dict)
    vulnerability: Dict[str, int] = Field(default_factory=dict)
    effect: Dict[str, int] = Field(default_factory=dict)
    recognizability: Dict[str, int] = Field(default_factory=dict)
    target_users: Optional[List[str]] = Field(default=None, alias="targetUsers")
    created_at: datetime = Field(..., alias="createdAt")


class ItemScoreUpdate(BaseModel):
    """One partial score submission: the target item plus any criteria being scored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    item_id: int = Field(..., alias="itemId")
    criticality: Optional[int] = None
    accessibility: Optional[int] = None
    recoverability: Optional[int] = None
    vulnerability: Optional[int] = None
    effect: Optional[int] = None
    recognizability: Optional[int] = None

    def scores(self) -> Dict[str, int]:
        return {
            criterion: getattr(self, criterion)
            for criterion in SCORE_CRITERIA
            if getattr(self, criterion) is not None
        }


# Matrix payloads
class CarverMatrixCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    hosts: Optional[List[str]] = Field(default_factory=list)
    participants: Optional[List[str]] = Field(default_factory=list)

    # Omitted or null weights fall back to the column default
    c_multi: Optional[float] = Field(default=1.0, alias="cMulti")
    a_multi: Optional[float] = Field(default=1.0, alias="aMulti")
    r_multi: Optional[float] = Field(default=1.0, alias="rMulti")
    v_multi: Optional[float] = Field(default=1.0, alias="vMulti")
    e_multi: Optional[float] = Field(default=1.0, alias="eMulti")
    r2_multi: Optional[float] = Field(default=1.0, alias="r2Multi")

    random_assignment: Optional[bool] = Field(default=False, alias="randomAssignment")
    role_based: Optional[bool] = Field(default=False, alias="roleBased")
    five_point_scoring: Optional[bool] = Field(default=False, alias="fivePointScoring")

    items: List[CarverItemCreate] = Field(default_factory=list)


class CarverMatrixUpdate(BaseModel):
    """Partial matrix: every field left null keeps its stored value."""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    hosts: Optional[List[str]] = None
    participants: Optional[List[str]] = None

    c_multi: Optional[float] = Field(default=None, alias="cMulti")
    a_multi: Optional[float] = Field(default=None, alias="aMulti")
    r_multi: Optional[float] = Field(default=None, alias="rMulti")
    v_multi: Optional[float] = Field(default=None, alias="vMulti")
    e_multi: Optional[float] = Field(default=None, alias="eMulti")
    r2_multi: Optional[float] = Field(default=None, alias="r2Multi")

    random_assignment: Optional[bool] = Field(default=None, alias="randomAssignment")
    role_based: Optional[bool] = Field(default=None, alias="roleBased")
    five_point_scoring: Optional[bool] = Field(default=None, alias="fivePointScoring")

    # Appended to the existing items
    items: Optional[List[CarverItemCreate]] = None


class CarverMatrixRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    matrix_id: int = Field(..., alias="matrixId")
    user_id: int = Field(..., alias="userId")
    name: str
    description: Optional[str] = None
    created_at: datetime = Field(..., alias="createdAt")
    hosts: Optional[List[str]] = None
    participants: Optional[List[str]] = None

    c_multi: Optional[float] = Field(default=None, alias="cMulti")
    a_multi: Optional[float] = Field(default=None, alias="aMulti")
    r_multi: Optional[float] = Field(default=None, alias="rMulti")
    v_multi: Optional[float] = Field(default=None, alias="vMulti")
    e_multi: Optional[float] = Field(default=None, alias="eMulti")
    r2_multi: Optional[float] = Field(default=None, alias="r2Multi")

    random_assignment: Optional[bool] = Field(default=None, alias="randomAssignment")
    role_based: Optional[bool] = Field(default=None, alias="roleBased")
    five_point_scoring: Optional[bool] = Field(default=None, alias="fivePointScoring")

    items: List[CarverItemRead] = Field(default_factory=list)


class CarverMatrixDeleted(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    deleted: bool = True
    matrix_id: int = Field(..., alias="matrixId")

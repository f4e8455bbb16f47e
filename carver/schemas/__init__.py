from .user import AppUserCreate, AppUserProfile, AppUserRead
from .carver_matrix import (
    CarverItemCreate,
    CarverItemRead,
    ItemScoreUpdate,
    CarverMatrixCreate,
    CarverMatrixUpdate,
    CarverMatrixRead,
    CarverMatrixDeleted,
)

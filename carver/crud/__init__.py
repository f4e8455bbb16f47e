from .user import user
from .carver_matrix import carver_matrix
from .carver_item import carver_item

__all__ = ["user", "carver_matrix", "carver_item"]

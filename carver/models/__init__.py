from .user import AppUser
from .carver_matrix import CarverMatrix, CarverItem, SCORE_CRITERIA

from fastapi import APIRouter

from carver.api.v1.endpoints import carver_matrices
from carver.api.v1.endpoints import health
from carver.api.v1.endpoints import users

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(carver_matrices.router, prefix="/carvermatrices", tags=["carver-matrices"])

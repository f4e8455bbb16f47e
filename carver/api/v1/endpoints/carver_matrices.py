from typing import Any, List

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from carver.api import deps
from carver.api.errors import error_body, status_for
from carver.schemas.carver_matrix import (
    CarverItemRead,
    CarverMatrixCreate,
    CarverMatrixDeleted,
    CarverMatrixRead,
    CarverMatrixUpdate,
    ItemScoreUpdate,
)
from carver.services.carver_matrix_service import CarverMatrixService

router = APIRouter()


@router.post("/create", response_model=CarverMatrixRead, status_code=status.HTTP_201_CREATED)
def create_carver_matrix(
    *,
    matrix_in: CarverMatrixCreate,
    user_id: int = Query(..., alias="userId"),
    service: CarverMatrixService = Depends(deps.get_matrix_service),
) -> Any:
    """
    Create a matrix owned by `userId`, together with any items in the payload.
    """
    return service.create(matrix_in, user_id)


@router.get("/search", response_model=List[CarverMatrixRead])
def search_carver_matrices(
    request: Request,
    service: CarverMatrixService = Depends(deps.get_matrix_service),
) -> Any:
    """
    Search matrices by any combination of fields given as query parameters.

    `name` and `description` match substrings; `hosts` and `participants`
    keep only matrices whose list contains the given identifier.
    """
    return service.search(dict(request.query_params))


@router.get("/host", response_model=List[CarverMatrixRead])
def get_matrices_by_host(
    user_id: str = Query(..., alias="userId", min_length=1),
    service: CarverMatrixService = Depends(deps.get_matrix_service),
) -> Any:
    """Matrices whose hosts list contains `userId`."""
    return service.get_by_host(user_id)


@router.get("/participant", response_model=List[CarverMatrixRead])
def get_matrices_by_participant(
    user_id: str = Query(..., alias="userId", min_length=1),
    service: CarverMatrixService = Depends(deps.get_matrix_service),
) -> Any:
    """Matrices whose participants list contains `userId`."""
    return service.get_by_participant(user_id)


@router.get("/{matrix_id}", response_model=CarverMatrixRead)
def get_carver_matrix(
    matrix_id: int,
    service: CarverMatrixService = Depends(deps.get_matrix_service),
) -> Any:
    return service.get(matrix_id)


@router.put("/{matrix_id}/update", response_model=CarverMatrixRead)
def update_carver_matrix(
    *,
    matrix_id: int,
    matrix_in: CarverMatrixUpdate,
    service: CarverMatrixService = Depends(deps.get_matrix_service),
) -> Any:
    """
    Overwrite every non-null field of the payload; items in the payload are appended.
    """
    return service.update(matrix_id, matrix_in)


@router.put("/{matrix_id}/carveritems/update", response_model=List[CarverItemRead])
def update_carver_item_scores(
    *,
    matrix_id: int,
    updates: List[ItemScoreUpdate],
    identity: str = Depends(deps.get_current_identity),
    service: CarverMatrixService = Depends(deps.get_matrix_service),
) -> Any:
    """
    Merge the caller's scores into the named items of this matrix.

    Records are applied in order and each is saved as it goes. When a record
    fails, the response carries its error status and still lists the items
    saved before it.
    """
    result = service.update_item_scores(matrix_id, identity, updates)
    if result.ok:
        return result.items
    status_code = status_for(result.error)
    applied = [CarverItemRead.model_validate(item).model_dump(by_alias=True) for item in result.items]
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({
            **error_body(result.error.message, status_code),
            "applied": result.applied,
            "failedIndex": result.failed_index,
            "items": applied,
        }),
    )


@router.delete("/{matrix_id}", response_model=CarverMatrixDeleted)
def delete_carver_matrix(
    matrix_id: int,
    service: CarverMatrixService = Depends(deps.get_matrix_service),
) -> Any:
    """Delete a matrix and every item it owns."""
    service.delete(matrix_id)
    return CarverMatrixDeleted(matrix_id=matrix_id)

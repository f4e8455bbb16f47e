from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from carver.schemas.carver_matrix import CarverMatrixRead

# Properties to receive on user creation
class AppUserCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    keycloak_id: str = Field(..., alias="keycloakId", min_length=1)
    username: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    first_name: Optional[str] = Field(default=None, alias="firstName", max_length=50)
    last_name: Optional[str] = Field(default=None, alias="lastName", max_length=50)
    full_name: Optional[str] = Field(default=None, alias="fullName", max_length=50)

# Properties to return to client
class AppUserRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int = Field(..., alias="userId")
    keycloak_id: str = Field(..., alias="keycloakId")
    username: str
    email: str
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    full_name: Optional[str] = Field(default=None, alias="fullName")
    created_at: datetime = Field(..., alias="createdAt")

# The caller's own record together with the matrices they own
class AppUserProfile(AppUserRead):
    carver_matrices: List[CarverMatrixRead] = Field(default_factory=list, alias="carverMatrices")

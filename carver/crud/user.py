import logging
from typing import Optional
from sqlalchemy.orm import Session

from carver.crud.base import CRUDBase
from carver.models.user import AppUser
from carver.schemas.user import AppUserCreate

logger = logging.getLogger(__name__)

# Profile fields refreshed from the identity provider on every upsert
_SYNCED_FIELDS = ("username", "email", "first_name", "last_name", "full_name")


class CRUDAppUser(CRUDBase[AppUser, AppUserCreate]):
    def create(self, db: Session, *, obj_in: AppUserCreate, action: str = "create user") -> AppUser:
        return super().create(db, obj_in=obj_in, action=action)

    def upsert(self, db: Session, *, obj_in: AppUserCreate) -> AppUser:
        """
        Create the user for `obj_in.keycloak_id`, or bring the stored profile
        in line with it. Optional name fields that are missing never clear a
        stored value.
        """
        existing = self.get_by_keycloak_id(db, keycloak_id=obj_in.keycloak_id)
        if existing is None:
            logger.info(f"Provisioning user for identity-provider id {obj_in.keycloak_id}")
            return self.create(db, obj_in=obj_in, action="provision user")

        changed = []
        for field in _SYNCED_FIELDS:
            value = getattr(obj_in, field)
            if value is not None and getattr(existing, field) != value:
                setattr(existing, field, value)
                changed.append(field)
        if not changed:
            return existing
        logger.info(f"Updated user {existing.id} from token claims: {changed}")
        return self.save(db, existing, action="update user")

    def get_by_email(self, db: Session, *, email: str) -> Optional[AppUser]:
        return db.query(AppUser).filter(AppUser.email == email).first()

    def get_by_keycloak_id(self, db: Session, *, keycloak_id: str) -> Optional[AppUser]:
        return db.query(AppUser).filter(AppUser.keycloak_id == keycloak_id).first()


# Create instance that can be imported directly
user = CRUDAppUser(AppUser)

# tests/test_users.py

"""
User CRUD Tests - registration and provisioning from identity-provider profiles
"""

import pytest

from carver import crud
from carver.core.exceptions import ConstraintViolationException
from carver.schemas.user import AppUserCreate


class TestUpsertUser:

    def test_creates_missing_user(self, db):
        user = crud.user.upsert(
            db,
            obj_in=AppUserCreate(keycloak_id="kc-new", username="newbie", email="newbie@example.com"),
        )

        assert user.id is not None
        assert crud.user.get_by_keycloak_id(db, keycloak_id="kc-new").id == user.id

    def test_updates_changed_fields_in_place(self, db, owner):
        user = crud.user.upsert(
            db,
            obj_in=AppUserCreate(
                keycloak_id=owner.keycloak_id,
                username="owner-renamed",
                email=owner.email,
                first_name="Olive",
            ),
        )

        assert user.id == owner.id
        assert user.username == "owner-renamed"
        assert user.first_name == "Olive"
        assert user.full_name == "Matrix Owner"

    def test_unchanged_profile_returns_same_row(self, db, owner):
        user = crud.user.upsert(
            db,
            obj_in=AppUserCreate(keycloak_id=owner.keycloak_id, username=owner.username, email=owner.email),
        )

        assert user is owner

    def test_username_taken_by_someone_else(self, db, owner, other_owner):
        with pytest.raises(ConstraintViolationException, match="Failed to update user"):
            crud.user.upsert(
                db,
                obj_in=AppUserCreate(
                    keycloak_id=owner.keycloak_id,
                    username=other_owner.username,
                    email=owner.email,
                ),
            )

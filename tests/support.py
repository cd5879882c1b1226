from __future__ import annotations

import os
import unittest
from collections.abc import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Must be in place before site_tracker builds its engine and reads settings.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")

from site_tracker.settings import get_settings  # noqa: E402

get_settings.cache_clear()

from site_tracker import models  # noqa: E402,F401
from site_tracker.db import Base, get_db  # noqa: E402
from site_tracker.main import app  # noqa: E402
from site_tracker.models import District, User, UserRole, UserStatus  # noqa: E402
from site_tracker.security import create_access_token, hash_password, reset_login_attempts  # noqa: E402

DEFAULT_PASSWORD = "secret123"


def build_test_engine() -> Engine:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def seed_user(
    db: Session,
    username: str,
    *,
    role: UserRole = UserRole.ADMIN,
    status: UserStatus = UserStatus.ACTIVE,
    password: str = DEFAULT_PASSWORD,
    name: str | None = None,
) -> User:
    user = User(
        username=username,
        password_hash=hash_password(password),
        name=name or username.title(),
        role=role,
        status=status,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def seed_district(db: Session, name: str, region: str | None = None) -> District:
    district = District(name=name, region=region)
    db.add(district)
    db.commit()
    db.refresh(district)
    return district


class DatabaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = build_test_engine()
        self.session_factory = build_session_factory(self.engine)
        self.db = self.session_factory()

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()


class ApiTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        reset_login_attempts()
        factory = self.session_factory

        def _override() -> Generator[Session, None, None]:
            db = factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = _override
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        reset_login_attempts()
        super().tearDown()

    def auth_headers(self, user: User) -> dict[str, str]:
        token, _, _ = create_access_token(user)
        return {"Authorization": f"Bearer {token}"}

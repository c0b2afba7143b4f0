"""Shared fixtures: an isolated in-memory database and an API client bound to it."""

from __future__ import annotations

import os
import sys
from datetime import datetime
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from currency import to_minor_units
from database import Base, Transaction, TransactionType, User, enable_sqlite_foreign_keys, get_db
from security import hash_password
from server import app


@pytest.fixture()
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def register_and_login(client: TestClient, email: str, name: str = "Test User", password: str = "secret123") -> dict:
    """Register a user through the API and return bearer headers for it."""
    response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.text
    login = client.post("/api/auth/login", json={"email": email, "password": password})
    assert login.status_code == 200, login.text
    return {"Authorization": f"Bearer {login.json()['accessToken']}"}


@pytest.fixture()
def auth_headers(client):
    return register_and_login(client, "alice@example.com", name="Alice")


@pytest.fixture()
def other_headers(client):
    return register_and_login(client, "bob@example.com", name="Bob")


@pytest.fixture()
def make_user(db_session):
    counter = {"n": 0}

    def _make(email: str | None = None) -> User:
        counter["n"] += 1
        user = User(
            name=f"User {counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password("secret123"),
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def add_transaction(db_session):
    def _add(
        user: User,
        txn_type: TransactionType,
        amount: float,
        when: datetime,
        category: str = "General",
        title: str = "Item",
        **extra,
    ) -> Transaction:
        txn = Transaction(
            user_id=user.id,
            type=txn_type,
            title=title,
            amount=to_minor_units(amount),
            category=category,
            date=when,
            **extra,
        )
        db_session.add(txn)
        db_session.commit()
        db_session.refresh(txn)
        return txn

    return _add

"""
Shared pytest fixtures.

Every test gets its own SQLite file under tmp_path, so nothing leaks between
tests. Password hashing uses a low round count to keep the suite fast.
"""

import pytest
from fastapi.testclient import TestClient

from romaneio.api.server import create_app
from romaneio.config import Config
from romaneio.db import connect, init_db


TEST_PASSWORD_ROUNDS = 1000


@pytest.fixture
def cfg(tmp_path):
    """Config pointing at a fresh, initialized database."""
    c = Config(
        DB_DSN=str(tmp_path / "romaneio_test.sqlite"),
        AUTH_PASSWORD_ROUNDS=TEST_PASSWORD_ROUNDS,
        AUTH_TOKEN_EXPIRE_MINUTES=0,
        AUTH_REVOKE_ON_LOGIN=True,
        CORS_ALLOW_ORIGINS="",
    )
    init_db(c.DB_DSN)
    return c


@pytest.fixture
def conn(cfg):
    with connect(cfg.DB_DSN) as c:
        yield c


@pytest.fixture
def client(cfg):
    with TestClient(create_app(cfg)) as c:
        yield c


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}

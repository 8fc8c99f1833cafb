"""
Tests for the register / login / logout / whoami operations.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

import pytest
from passlib.utils import MAX_PASSWORD_SIZE

from romaneio.auth import service
from romaneio.auth.crud import get_user_by_email
from romaneio.auth.errors import (
    DuplicateEmail,
    InvalidCredentials,
    StoreUnavailable,
    Unauthenticated,
    ValidationError,
)
from romaneio.db import connect


# =============================================================================
# Helpers
# =============================================================================


def _register(cfg, email="ana@x.com", password="secret123", name="Ana"):
    return service.register(
        cfg,
        name=name,
        email=email,
        password=password,
        password_confirmation=password,
    )


# =============================================================================
# register
# =============================================================================


class TestRegister:
    def test_register_returns_summary_and_token(self, cfg):
        result = _register(cfg)

        assert set(result["user"]) == {"id", "name", "email"}
        assert result["user"]["email"] == "ana@x.com"
        assert "|" in result["token"]

    def test_register_once_per_email(self, cfg):
        _register(cfg)

        with pytest.raises(DuplicateEmail):
            _register(cfg, email="Ana@X.com", name="Ana 2")

    def test_register_then_whoami_round_trip(self, cfg):
        result = _register(cfg)

        assert service.whoami(cfg, result["token"]) == result["user"]

    def test_password_is_stored_hashed(self, cfg):
        _register(cfg)

        with connect(cfg.DB_DSN) as conn:
            user = get_user_by_email(conn, "ana@x.com")

        assert user.password_hash != "secret123"
        assert user.password_hash.startswith("$pbkdf2-sha256$")

    @pytest.mark.parametrize(
        "kwargs,field",
        [
            ({"name": ""}, "name"),
            ({"name": "x" * 256}, "name"),
            ({"name": 42}, "name"),
            ({"email": ""}, "email"),
            ({"email": "not-an-email"}, "email"),
            ({"email": "Ana <ana@x.com>"}, "email"),
            ({"email": ("a" * 250) + "@x.com"}, "email"),
            ({"password": ""}, "password"),
            ({"password": "short", "password_confirmation": "short"}, "password"),
            ({"password_confirmation": "different1"}, "password"),
        ],
    )
    def test_validation(self, cfg, kwargs, field):
        args = {
            "name": "Ana",
            "email": "ana@x.com",
            "password": "secret123",
            "password_confirmation": "secret123",
        }
        args.update(kwargs)

        with pytest.raises(ValidationError) as exc:
            service.register(cfg, **args)

        assert list(exc.value.errors) == [field]

    def test_oversized_password_is_a_validation_error(self, cfg):
        huge = "a" * (MAX_PASSWORD_SIZE + 1)

        with pytest.raises(ValidationError) as exc:
            _register(cfg, password=huge)

        assert list(exc.value.errors) == ["password"]
        assert exc.value.status_code == 422

    def test_password_at_size_limit_is_accepted(self, cfg):
        result = _register(cfg, password="a" * MAX_PASSWORD_SIZE)
        assert result["token"]

    def test_concurrent_registrations_same_email(self, cfg):
        workers = 8
        barrier = threading.Barrier(workers)

        def attempt(i):
            barrier.wait()
            try:
                _register(cfg, name=f"Ana {i}")
                return "ok"
            except DuplicateEmail:
                return "duplicate"

        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(attempt, range(workers)))

        assert outcomes.count("ok") == 1
        assert outcomes.count("duplicate") == workers - 1
        with connect(cfg.DB_DSN) as conn:
            count = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]
        assert count == 1

    def test_validation_reports_every_field(self, cfg):
        with pytest.raises(ValidationError) as exc:
            service.register(cfg, name="", email="bad", password="1")

        assert set(exc.value.errors) == {"name", "email", "password"}
        assert exc.value.errors["password"] == ["Senha deve ter pelo menos 8 caracteres"]

    def test_confirmation_is_optional_at_service_level(self, cfg):
        result = service.register(cfg, name="Ana", email="ana@x.com", password="secret123")
        assert result["user"]["name"] == "Ana"


# =============================================================================
# login
# =============================================================================


class TestLogin:
    def test_login_then_whoami(self, cfg):
        registered = _register(cfg)

        result = service.login(cfg, email="ana@x.com", password="secret123")

        assert result["user"] == registered["user"]
        assert service.whoami(cfg, result["token"])["id"] == registered["user"]["id"]

    def test_login_email_is_case_insensitive(self, cfg):
        _register(cfg)
        assert service.login(cfg, email=" ANA@x.com", password="secret123")["user"]["email"] == "ana@x.com"

    def test_wrong_password_and_unknown_email_look_the_same(self, cfg):
        _register(cfg)

        with pytest.raises(InvalidCredentials) as wrong:
            service.login(cfg, email="ana@x.com", password="wrong-password")
        with pytest.raises(InvalidCredentials) as unknown:
            service.login(cfg, email="nobody@x.com", password="wrong-password")

        assert type(wrong.value) is type(unknown.value)
        assert wrong.value.public_message == unknown.value.public_message == "Credenciais inválidas"
        assert wrong.value.status_code == unknown.value.status_code == 401

    def test_login_revokes_previous_tokens(self, cfg):
        first = _register(cfg)["token"]
        second = service.login(cfg, email="ana@x.com", password="secret123")["token"]
        third = service.login(cfg, email="ana@x.com", password="secret123")["token"]

        for stale in (first, second):
            with pytest.raises(Unauthenticated):
                service.whoami(cfg, stale)
        assert service.whoami(cfg, third)["email"] == "ana@x.com"

    def test_multi_session_when_revocation_disabled(self, cfg):
        first = _register(cfg)["token"]
        multi = replace(cfg, AUTH_REVOKE_ON_LOGIN=False)

        second = service.login(multi, email="ana@x.com", password="secret123")["token"]

        assert service.whoami(cfg, first)["email"] == "ana@x.com"
        assert service.whoami(cfg, second)["email"] == "ana@x.com"

    def test_login_upgrades_weak_hash(self, cfg):
        _register(cfg)
        stronger = replace(cfg, AUTH_PASSWORD_ROUNDS=2000)

        service.login(stronger, email="ana@x.com", password="secret123")

        with connect(cfg.DB_DSN) as conn:
            user = get_user_by_email(conn, "ana@x.com")
        assert user.password_hash.startswith("$pbkdf2-sha256$2000$")
        assert service.login(cfg, email="ana@x.com", password="secret123")["token"]

    def test_login_with_oversized_password(self, cfg):
        _register(cfg)

        with pytest.raises(ValidationError) as exc:
            service.login(cfg, email="ana@x.com", password="a" * (MAX_PASSWORD_SIZE + 1))

        assert list(exc.value.errors) == ["password"]

    def test_login_validation(self, cfg):
        with pytest.raises(ValidationError) as exc:
            service.login(cfg, email="not-an-email", password="")

        assert set(exc.value.errors) == {"email", "password"}


# =============================================================================
# logout / whoami
# =============================================================================


class TestSession:
    def test_logout_revokes_only_that_token(self, cfg):
        token = _register(cfg)["token"]

        assert service.logout(cfg, token) == {"message": "Logout realizado com sucesso"}
        with pytest.raises(Unauthenticated):
            service.whoami(cfg, token)

    def test_logout_with_out_of_range_token_id(self, cfg):
        _register(cfg)

        with pytest.raises(Unauthenticated):
            service.logout(cfg, "99999999999999999999|abc")

    def test_second_logout_is_a_clean_rejection(self, cfg):
        token = _register(cfg)["token"]
        service.logout(cfg, token)

        with pytest.raises(Unauthenticated):
            service.logout(cfg, token)

    @pytest.mark.parametrize(
        "token",
        [None, "", "garbage", "1|nope", "99999999999999999999|abc", "9223372036854775808|abc"],
    )
    def test_whoami_rejects_bad_tokens(self, cfg, token):
        _register(cfg)

        with pytest.raises(Unauthenticated):
            service.whoami(cfg, token)

    def test_whoami_never_exposes_hash(self, cfg):
        token = _register(cfg)["token"]
        assert "password_hash" not in service.whoami(cfg, token)


# =============================================================================
# Store failures
# =============================================================================


class TestStoreFailures:
    @pytest.fixture
    def broken_cfg(self, cfg, tmp_path):
        # A fresh file with no tables: every query fails.
        return replace(cfg, DB_DSN=str(tmp_path / "empty.sqlite"))

    def test_register(self, broken_cfg):
        with pytest.raises(StoreUnavailable) as exc:
            _register(broken_cfg)
        assert exc.value.public_message == "Erro ao registrar usuário"
        assert exc.value.status_code == 500

    def test_login(self, broken_cfg):
        with pytest.raises(StoreUnavailable) as exc:
            service.login(broken_cfg, email="ana@x.com", password="secret123")
        assert exc.value.public_message == "Erro ao fazer login"

    def test_logout(self, broken_cfg):
        with pytest.raises(StoreUnavailable) as exc:
            service.logout(broken_cfg, "1|abc")
        assert exc.value.public_message == "Erro ao fazer logout"

    def test_whoami(self, broken_cfg):
        with pytest.raises(StoreUnavailable) as exc:
            service.whoami(broken_cfg, "1|abc")
        assert exc.value.public_message == "Erro ao buscar dados do usuário"

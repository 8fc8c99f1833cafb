"""Register / login / logout / whoami.

Each operation opens its own connection (one transaction) and either returns
a plain dict or raises an `AuthError`. Unexpected failures are logged here
and re-raised as `StoreUnavailable` with a generic message, so callers only
ever see the known outcomes.

The caller passes the presented bearer token explicitly; nothing here reads
request state.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from passlib.utils import MAX_PASSWORD_SIZE
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from romaneio.config import Config
from romaneio.db import connect
from romaneio.models import SessionToken, UserIdentity

from .crud import create_user, get_user_by_email, get_user_by_id, normalize_email, update_password_hash
from .errors import AuthError, InvalidCredentials, StoreUnavailable, Unauthenticated, ValidationError
from .security import dummy_verify, hash_password, verify_and_update_password
from .tokens import find_active_token, issue_token, revoke_all_tokens, revoke_token


MAX_NAME_LENGTH = 255
MAX_EMAIL_LENGTH = 255
MIN_PASSWORD_LENGTH = 8

REGISTER_FAILED = "Erro ao registrar usuário"
LOGIN_FAILED = "Erro ao fazer login"
LOGOUT_FAILED = "Erro ao fazer logout"
WHOAMI_FAILED = "Erro ao buscar dados do usuário"


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


# -----------------------------
# Validation
# -----------------------------


def _is_valid_email(value: str) -> bool:
    try:
        _name, normalized = validate_email(value)
    except PydanticCustomError:
        return False
    # validate_email also accepts "Name <addr>"; only a bare address is allowed here.
    return normalized.lower() == value.lower()


def _check_name(name: Any) -> List[str]:
    if name is None or (isinstance(name, str) and not name.strip()):
        return ["Nome é obrigatório"]
    if not isinstance(name, str):
        return ["Nome deve ser um texto"]
    if len(name.strip()) > MAX_NAME_LENGTH:
        return [f"Nome não pode ter mais de {MAX_NAME_LENGTH} caracteres"]
    return []


def _check_email(email: Any) -> List[str]:
    if email is None or (isinstance(email, str) and not email.strip()):
        return ["Email é obrigatório"]
    if not isinstance(email, str):
        return ["Email deve ser um texto"]
    errors: List[str] = []
    e = email.strip()
    if not _is_valid_email(e):
        errors.append("Email deve ser válido")
    if len(e) > MAX_EMAIL_LENGTH:
        errors.append(f"Email não pode ter mais de {MAX_EMAIL_LENGTH} caracteres")
    return errors


def _check_password(password: Any, *, min_length: int = 0) -> List[str]:
    if password is None or password == "":
        return ["Senha é obrigatória"]
    if not isinstance(password, str):
        return ["Senha deve ser um texto"]
    if len(password) < min_length:
        return [f"Senha deve ter pelo menos {min_length} caracteres"]
    try:
        size = len(password.encode("utf-8"))
    except UnicodeEncodeError:
        # Lone surrogates from JSON escapes cannot be hashed.
        return ["Senha deve ser um texto"]
    # passlib refuses larger secrets outright.
    if size > MAX_PASSWORD_SIZE:
        return [f"Senha não pode ter mais de {MAX_PASSWORD_SIZE} bytes"]
    return []


def validate_registration(
    name: Any,
    email: Any,
    password: Any,
    password_confirmation: Any = None,
) -> Tuple[str, str]:
    """Return (name, normalized email) or raise ValidationError listing every bad field."""
    errors: Dict[str, List[str]] = {
        "name": _check_name(name),
        "email": _check_email(email),
        "password": _check_password(password, min_length=MIN_PASSWORD_LENGTH),
    }
    if not errors["password"] and password_confirmation is not None and password_confirmation != password:
        errors["password"] = ["Confirmação de senha não confere"]
    if any(errors.values()):
        raise ValidationError(errors)
    return name.strip(), normalize_email(email)


def validate_login(email: Any, password: Any) -> str:
    errors: Dict[str, List[str]] = {
        "email": _check_email(email),
        "password": _check_password(password),
    }
    if any(errors.values()):
        raise ValidationError(errors)
    return normalize_email(email)


def _store_failure(op: str, public_message: str, exc: Exception) -> StoreUnavailable:
    _debug(f"{op} failed: {type(exc).__name__}: {exc}")
    return StoreUnavailable(public_message)


def _auth_result(user: UserIdentity, token: SessionToken) -> Dict[str, Any]:
    return {"user": user.summary(), "token": token.plain_text}


# -----------------------------
# Session resolution
# -----------------------------


def resolve_session(conn: Any, presented_token: Optional[str]) -> Tuple[UserIdentity, SessionToken]:
    """Map a presented bearer token to (owner, token) or raise Unauthenticated."""
    if not presented_token or not str(presented_token).strip():
        raise Unauthenticated()
    token = find_active_token(conn, str(presented_token))
    if token is None:
        raise Unauthenticated()
    user = get_user_by_id(conn, token.owner_id)
    if user is None:
        raise Unauthenticated()
    return user, token


# -----------------------------
# Operations
# -----------------------------


def register(
    cfg: Config,
    *,
    name: Any,
    email: Any,
    password: Any,
    password_confirmation: Any = None,
) -> Dict[str, Any]:
    """Create an account and its first token.

    Older tokens are not touched here (a new account has none).
    """
    clean_name, clean_email = validate_registration(name, email, password, password_confirmation)

    try:
        password_hash = hash_password(password, rounds=cfg.AUTH_PASSWORD_ROUNDS)
        with connect(cfg.DB_DSN) as conn:
            user = create_user(conn, name=clean_name, email=clean_email, password_hash=password_hash)
            token = issue_token(
                conn,
                user.id,
                nbytes=cfg.AUTH_TOKEN_BYTES,
                expires_minutes=cfg.AUTH_TOKEN_EXPIRE_MINUTES,
            )
    except AuthError:
        raise
    except Exception as e:
        raise _store_failure("register", REGISTER_FAILED, e) from e

    _debug(f"Registered user_id={user.id}")
    return _auth_result(user, token)


def login(cfg: Config, *, email: Any, password: Any) -> Dict[str, Any]:
    """Check credentials and hand out a fresh token.

    Unknown email and wrong password raise the same InvalidCredentials after the
    same amount of hashing work.
    """
    clean_email = validate_login(email, password)

    try:
        with connect(cfg.DB_DSN) as conn:
            user = get_user_by_email(conn, clean_email)
            if user is None:
                dummy_verify(rounds=cfg.AUTH_PASSWORD_ROUNDS)
                raise InvalidCredentials()

            ok, new_hash = verify_and_update_password(
                password,
                user.password_hash,
                rounds=cfg.AUTH_PASSWORD_ROUNDS,
            )
            if not ok:
                raise InvalidCredentials()
            if new_hash:
                update_password_hash(conn, user.id, new_hash)
                _debug(f"Upgraded password hash for user_id={user.id}")

            if cfg.AUTH_REVOKE_ON_LOGIN:
                revoke_all_tokens(conn, user.id)
            token = issue_token(
                conn,
                user.id,
                nbytes=cfg.AUTH_TOKEN_BYTES,
                expires_minutes=cfg.AUTH_TOKEN_EXPIRE_MINUTES,
            )
    except InvalidCredentials:
        _debug("Login rejected: invalid credentials")
        raise
    except AuthError:
        raise
    except Exception as e:
        raise _store_failure("login", LOGIN_FAILED, e) from e

    _debug(f"Login ok user_id={user.id} token_id={token.token_id}")
    return _auth_result(user, token)


def logout(cfg: Config, presented_token: Optional[str]) -> Dict[str, Any]:
    """Revoke exactly the presented token."""
    try:
        with connect(cfg.DB_DSN) as conn:
            user, token = resolve_session(conn, presented_token)
            revoke_token(conn, token.token_id)
    except AuthError:
        raise
    except Exception as e:
        raise _store_failure("logout", LOGOUT_FAILED, e) from e

    _debug(f"Logout user_id={user.id} token_id={token.token_id}")
    return {"message": "Logout realizado com sucesso"}


def whoami(cfg: Config, presented_token: Optional[str]) -> Dict[str, Any]:
    try:
        with connect(cfg.DB_DSN) as conn:
            user, _token = resolve_session(conn, presented_token)
    except AuthError:
        raise
    except Exception as e:
        raise _store_failure("whoami", WHOAMI_FAILED, e) from e
    return user.summary()

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from romaneio.config import Config

from .errors import StoreUnavailable


_bearer = HTTPBearer(auto_error=False)


def get_config(request: Request) -> Config:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise StoreUnavailable("Erro interno do servidor")
    return cfg


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Optional[str]:
    """Raw token from `Authorization: Bearer <token>`, or None.

    Only extraction happens here. Whether the token is valid is decided by the
    auth service, which receives it as an explicit argument.
    """
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials

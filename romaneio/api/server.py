from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from romaneio import __version__
from romaneio.auth import service
from romaneio.auth.deps import get_bearer_token, get_config
from romaneio.auth.errors import AuthError, Unauthenticated, ValidationError
from romaneio.config import Config, load_config
from romaneio.db import init_db


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


# Fields are deliberately loose: every rule (required, type, length, format)
# is checked by the auth service so all validation failures share one shape.
class RegisterRequest(BaseModel):
    name: Any = None
    email: Any = None
    password: Any = None
    password_confirmation: Any = None


class LoginRequest(BaseModel):
    email: Any = None
    password: Any = None


def _auth_error_response(exc: AuthError) -> JSONResponse:
    if isinstance(exc, ValidationError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.public_message, "errors": exc.errors},
        )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.public_message},
        headers=headers,
    )


def _request_validation_response(exc: RequestValidationError) -> JSONResponse:
    errors: Dict[str, List[str]] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        field = loc[-1] if loc else "body"
        errors.setdefault(field, []).append("Requisição inválida")
    return JSONResponse(
        status_code=422,
        content={"message": "Requisição inválida", "errors": errors or {"body": ["Requisição inválida"]}},
    )


def create_app(cfg: Optional[Config] = None) -> FastAPI:
    cfg = cfg or load_config()
    app = FastAPI(title="Romaneio API", version=__version__)
    app.state.cfg = cfg

    # CORS is mainly needed for local development (Vite on :5173 -> API on :8000).
    _cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if _cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=_cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.on_event("startup")
    def _on_startup() -> None:
        # Ensure schema exists.
        init_db(cfg.DB_DSN)

    @app.exception_handler(AuthError)
    async def _handle_auth_error(request: Request, exc: AuthError) -> JSONResponse:
        if exc.status_code >= 500:
            _debug(f"{request.method} {request.url.path} -> {exc.status_code}")
        return _auth_error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _request_validation_response(exc)

    # -----------------------------
    # Health
    # -----------------------------

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    # -----------------------------
    # Auth
    # -----------------------------

    @app.post("/api/auth/register", status_code=201)
    def auth_register(payload: RegisterRequest, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
        result = service.register(
            cfg,
            name=payload.name,
            email=payload.email,
            password=payload.password,
            # Missing confirmation must fail the "confirmed" rule, not skip it.
            password_confirmation=payload.password_confirmation if payload.password_confirmation is not None else "",
        )
        return {
            "message": "Usuário registrado com sucesso",
            "user": result["user"],
            "token": result["token"],
            "token_type": "Bearer",
        }

    @app.post("/api/auth/login")
    def auth_login(payload: LoginRequest, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
        result = service.login(cfg, email=payload.email, password=payload.password)
        return {
            "message": "Login realizado com sucesso",
            "user": result["user"],
            "token": result["token"],
            "token_type": "Bearer",
        }

    @app.post("/api/auth/logout")
    def auth_logout(
        token: Optional[str] = Depends(get_bearer_token),
        cfg: Config = Depends(get_config),
    ) -> Dict[str, Any]:
        if token is None:
            raise Unauthenticated()
        return service.logout(cfg, token)

    @app.get("/api/auth/user")
    @app.get("/api/user")
    def auth_user(
        token: Optional[str] = Depends(get_bearer_token),
        cfg: Config = Depends(get_config),
    ) -> Dict[str, Any]:
        if token is None:
            raise Unauthenticated()
        return {"user": service.whoami(cfg, token)}

    return app


app = create_app()

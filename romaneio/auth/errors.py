"""Auth error taxonomy.

Domain code raises these; the HTTP layer turns them into fixed payloads.
`public_message` is the only text that ever reaches a client.
"""

from __future__ import annotations

from typing import Dict, List, Optional


class AuthError(Exception):
    status_code = 500
    public_message = "Erro interno"

    def __init__(self, public_message: Optional[str] = None):
        if public_message is not None:
            self.public_message = public_message
        super().__init__(self.public_message)


class ValidationError(AuthError):
    """Malformed or missing input. `errors` maps field -> messages."""

    status_code = 422

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = {k: list(v) for k, v in errors.items() if v}
        first = next(iter(self.errors.values()), ["Dados inválidos"])[0]
        super().__init__(first)


class DuplicateEmail(ValidationError):
    def __init__(self) -> None:
        super().__init__({"email": ["Este email já está cadastrado"]})


class InvalidCredentials(AuthError):
    status_code = 401
    public_message = "Credenciais inválidas"


class Unauthenticated(AuthError):
    status_code = 401
    public_message = "Não autenticado"


class StoreUnavailable(AuthError):
    status_code = 500

from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import JWT_ALGORITHM, JWT_SECRET

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as asserted by the identity provider."""

    id: int
    roles: list[str] = field(default_factory=list)

    def has_role(self, *roles: str) -> bool:
        wanted = {r.lower() for r in roles}
        return any(r.lower() in wanted for r in self.roles)

    @property
    def is_admin(self) -> bool:
        return self.has_role("admin")


def _invalid(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def actor_from_payload(payload: dict) -> Actor:
    try:
        actor_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _invalid("Token subject must be a user id")

    roles = payload.get("roles")
    if isinstance(roles, str):
        roles = [roles]
    if not isinstance(roles, list):
        roles = []
    return Actor(id=actor_id, roles=[str(r).strip().lower() for r in roles if r])


def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Actor:
    token = None
    if creds and creds.scheme.lower() == "bearer":
        token = creds.credentials

    if not token:
        raise _invalid("Missing Bearer token")

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise _invalid("Invalid or expired token")

    actor = actor_from_payload(payload)
    request.state.user_sub = actor.id
    request.state.user_roles = actor.roles
    return actor

import uuid
from dataclasses import dataclass

from fastapi import Request, Response


@dataclass(frozen=True)
class DemoUser:
    id: str
    name: str = "Demo User"


def _valid_token(token: str | None) -> bool:
    if not token:
        return False
    try:
        uuid.UUID(token)
    except ValueError:
        return False
    return True


def ensure_session(request: Request, response: Response, cookie_name: str) -> str:
    """Return the caller's session token, issuing a new cookie on first contact."""
    token = request.cookies.get(cookie_name)
    if _valid_token(token):
        return token
    token = str(uuid.uuid4())
    response.set_cookie(cookie_name, token, httponly=True, samesite="lax")
    return token


def demo_user(session_id: str) -> DemoUser:
    return DemoUser(id=f"demo_{session_id}")

"""
Identity collaborator.

Authentication happens upstream; the identity provider (or the gateway in
front of this service) forwards the authenticated user's id in the
X-User-Id header. A missing header means there is no user.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from tasklane.errors import Unauthorized


@dataclass(frozen=True)
class CurrentUser:
    id: str


def get_current_user(x_user_id: Optional[str] = Header(default=None)) -> Optional[CurrentUser]:
    if not x_user_id or not x_user_id.strip():
        return None
    return CurrentUser(id=x_user_id.strip())


def require_user(user: Optional[CurrentUser]) -> CurrentUser:
    if user is None:
        raise Unauthorized()
    return user

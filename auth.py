"""
Session-based authentication.

The cookie (signed by SessionMiddleware) carries only an opaque token; the
token maps to a user id in the sessions collection. Roles are always re-read
from the user record, never from the session.
"""
from typing import Any, Dict, Optional

from fastapi import Depends, Request

from database import Storage
from errors import AuthError, AuthzError
from logger import get_logger

LOGGER = get_logger("auth")

SESSION_KEY = "sid"
INVALID_CREDENTIALS = "اسم المستخدم أو كلمة المرور غير صحيحة"

PROFILE_FIELDS = ("id", "username", "name", "role", "email", "phone")


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: user.get(k) for k in PROFILE_FIELDS}


def authenticate(storage: Storage, username: str, password: str) -> Optional[Dict[str, Any]]:
    user = storage.get_user_by_username(username)
    if user is None:
        storage.hasher.dummy_verify()
        return None
    if not storage.hasher.verify(password, user.get("passwordHash")):
        return None
    return user


def start_session(request: Request, storage: Storage, user: Dict[str, Any]) -> None:
    request.session.clear()
    request.session[SESSION_KEY] = storage.create_session(user["id"])


def end_session(request: Request, storage: Storage) -> None:
    token = request.session.get(SESSION_KEY)
    if token:
        storage.delete_session(token)
    request.session.clear()


def get_current_user(request: Request, storage: Storage = Depends(get_storage)) -> Dict[str, Any]:
    token = request.session.get(SESSION_KEY)
    if not token:
        raise AuthError()
    user_id = storage.get_session_user_id(token)
    user = storage.get_user(user_id) if user_id else None
    if user is None:
        request.session.clear()
        raise AuthError()
    return user


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        LOGGER.info("non-admin user %s denied", user.get("username"))
        raise AuthzError()
    return user

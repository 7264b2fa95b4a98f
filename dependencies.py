from typing import Optional

from bson.errors import InvalidId
from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from pymongo.database import Database

from database import USERS, get_db, object_id
from schemas import PublicUser
from security import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

NOT_AUTHORIZED = "Not authorized to access this resource"


def protect(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    db: Database = Depends(get_db),
) -> PublicUser:
    """Resolve the caller from a bearer token or, failing that, the ``token`` cookie."""
    credentials_exception = HTTPException(status_code=401, detail=NOT_AUTHORIZED)
    token = bearer or request.cookies.get("token")
    if not token:
        raise credentials_exception

    user_id = decode_access_token(token)
    if user_id is None:
        raise credentials_exception

    try:
        doc = db[USERS].find_one({"_id": object_id(user_id)})
    except InvalidId:
        doc = None
    if not doc:
        raise credentials_exception

    return PublicUser(
        id=str(doc["_id"]),
        name=doc.get("name"),
        email=doc.get("email"),
        role=doc.get("role", "user"),
    )


def authorize(*roles: str):
    """Restrict a route to callers holding one of ``roles``."""

    def dependency(current_user: PublicUser = Depends(protect)) -> PublicUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"User role {current_user.role} is not authorized to access this resource",
            )
        return current_user

    return dependency


def ensure_owner(doc: dict, current_user: PublicUser, action: str, resource: str) -> None:
    if str(doc.get("user")) != current_user.id and current_user.role != "admin":
        raise HTTPException(
            status_code=403,
            detail=f"User {current_user.id} is not authorized to {action} this {resource}",
        )

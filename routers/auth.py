import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pymongo.database import Database

import config
from database import get_db, serialize
from dependencies import protect
from mailer import Mailer, get_mailer
from repositories import UserRepository
from schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    PublicUser,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateDetailsRequest,
    UpdatePasswordRequest,
)
from security import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid credentials"


def send_token_response(user: dict, status_code: int = 200) -> JSONResponse:
    """Issue a session: sign a token, set it as an HTTP-only cookie and echo it in the body."""
    token = create_access_token(str(user["_id"]))
    max_age = config.JWT_COOKIE_EXPIRE_DAYS * 24 * 60 * 60
    response = JSONResponse(status_code=status_code, content={"success": True, "token": token})
    response.set_cookie(
        key="token",
        value=token,
        max_age=max_age,
        expires=datetime.now(timezone.utc) + timedelta(seconds=max_age),
        httponly=True,
        secure=config.is_production(),
    )
    return response


@router.post("/register")
def register(payload: RegisterRequest, db: Database = Depends(get_db)):
    user = UserRepository(db).create(payload.model_dump())
    return send_token_response(user)


@router.post("/login")
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Please provide an email and password")

    users = UserRepository(db)
    user = users.find_by_email(payload.email)
    if not user or not users.match_password(user, payload.password):
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)

    return send_token_response(user)


@router.get("/me")
def get_me(current_user: PublicUser = Depends(protect), db: Database = Depends(get_db)):
    user = UserRepository(db).find_by_id(current_user.id)
    return {"success": True, "data": serialize(user)}


@router.post("/forgotpassword")
def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    db: Database = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    users = UserRepository(db)
    user = users.find_by_email(payload.email)
    if not user:
        raise HTTPException(status_code=404, detail="There is no user with that email")

    reset_token = users.issue_reset_token(user)
    reset_url = request.url_for("reset_password", resettoken=reset_token)
    message = (
        "You are receiving this email because you (or someone else) has requested "
        f"the reset of a password. Please make a PUT request to: \n\n {reset_url}"
    )

    try:
        mailer.send(email=user["email"], subject="Password reset token", message=message)
    except Exception:
        logger.exception("Password reset email to %s failed", user["email"])
        users.clear_reset_token(user)
        raise HTTPException(status_code=500, detail="Email could not be sent")

    return {"success": True, "data": "Email sent"}


@router.put("/resetpassword/{resettoken}", name="reset_password")
def reset_password(resettoken: str, payload: ResetPasswordRequest, db: Database = Depends(get_db)):
    users = UserRepository(db)
    user = users.find_by_reset_token(resettoken)
    if not user:
        raise HTTPException(status_code=400, detail="Invalid token")

    user = users.reset_password(user, payload.password)
    return send_token_response(user)


@router.put("/updatedetails")
def update_details(
    payload: UpdateDetailsRequest,
    current_user: PublicUser = Depends(protect),
    db: Database = Depends(get_db),
):
    users = UserRepository(db)
    changes = payload.model_dump(exclude_none=True)
    user = users.update(current_user.id, changes) if changes else users.find_by_id(current_user.id)
    return {"success": True, "data": serialize(user)}


@router.put("/updatepassword")
def update_password(
    payload: UpdatePasswordRequest,
    current_user: PublicUser = Depends(protect),
    db: Database = Depends(get_db),
):
    users = UserRepository(db)
    user = users.find_by_id(current_user.id)
    if not users.match_password(user, payload.current_password):
        raise HTTPException(status_code=401, detail="Password is incorrect")

    user = users.update(current_user.id, {"password": payload.new_password})
    return send_token_response(user)


@router.get("/logout")
def logout(current_user: PublicUser = Depends(protect)):
    response = JSONResponse(content={"success": True, "data": {}})
    response.set_cookie(key="token", value="none", max_age=10, httponly=True)
    return response

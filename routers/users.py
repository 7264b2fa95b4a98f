"""Administrative user management. Every route requires the admin role."""

from fastapi import APIRouter, Depends, HTTPException
from pymongo.database import Database

from advanced_results import STRING, FilterBuilder, advanced_results
from database import USERS, get_db, serialize
from dependencies import authorize
from repositories import UserRepository
from schemas import UserCreate, UserUpdate

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(authorize("admin"))])

USER_FILTERS = FilterBuilder({
    "name": STRING,
    "email": STRING,
    "role": STRING,
})


def get_user_or_404(users: UserRepository, user_id: str) -> dict:
    user = users.find_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail=f"No user with the id of {user_id}")
    return user


@router.get("")
def get_users(results: dict = Depends(advanced_results(USERS, USER_FILTERS))):
    return results


@router.get("/{user_id}")
def get_user(user_id: str, db: Database = Depends(get_db)):
    user = get_user_or_404(UserRepository(db), user_id)
    return {"success": True, "data": serialize(user)}


@router.post("", status_code=201)
def create_user(payload: UserCreate, db: Database = Depends(get_db)):
    user = UserRepository(db).create(payload.model_dump())
    return {"success": True, "data": serialize(user)}


@router.put("/{user_id}")
def update_user(user_id: str, payload: UserUpdate, db: Database = Depends(get_db)):
    users = UserRepository(db)
    user = get_user_or_404(users, user_id)

    changes = payload.model_dump(exclude_none=True)
    if changes:
        user = users.update(user_id, changes)
    return {"success": True, "data": serialize(user)}


@router.delete("/{user_id}")
def delete_user(user_id: str, db: Database = Depends(get_db)):
    users = UserRepository(db)
    user = get_user_or_404(users, user_id)
    users.delete(user)
    return {"success": True, "data": {}}

from typing import Optional
from fastapi import APIRouter, HTTPException

from bookcircle.database import users_table, fits_partition_key

router = APIRouter()

# Get full user data
def get_user(user_id: str) -> Optional[dict]:
    if not fits_partition_key(user_id):
        return None
    response = users_table().get_item(Key={"user_id": user_id})
    return response.get("Item")

def get_username(user_id: str) -> Optional[str]:
    user = get_user(user_id)
    return user["username"] if user else None

# Public user name lookup
@router.get("/{user_id}")
def get_user_name(user_id: str):
    user = get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return {"username": user["username"]}

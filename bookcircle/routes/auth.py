import jwt
import uuid
import datetime
from typing import Optional
from passlib.context import CryptContext
from boto3.dynamodb.conditions import Key
from fastapi import APIRouter, HTTPException, Request, Response

from bookcircle import settings
from bookcircle.database import users_table
from bookcircle.models import Credentials, AuthResponse

router = APIRouter()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)

# Hash the password
def hash_password(password: str):
    return pwd_context.hash(password)

# Verify the password
def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)

# Create JWT session token
def create_session_token(user_id: str, username: str):
    expiration = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(seconds=settings.SESSION_MAX_AGE)
    token_data = {"sub": user_id, "username": username, "exp": expiration}
    return jwt.encode(token_data, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

# Decode JWT session token, None when it's missing, expired or tampered with
def decode_session_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
    if not payload.get("sub"):
        return None
    return {"user_id": payload["sub"], "username": payload.get("username")}

# Session token from the cookie, or from a bearer header
def _session_token(request: Request) -> Optional[str]:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header.split("Bearer ", 1)[1]
    return None

def get_session_user(request: Request) -> Optional[dict]:
    token = _session_token(request)
    if not token:
        return None
    return decode_session_token(token)

# Dependency for routes that need a logged in user
def get_current_user(request: Request) -> dict:
    user = get_session_user(request)
    if not user:
        raise HTTPException(status_code=401, detail="Not logged in")
    return user

def find_user_by_username(username: str) -> Optional[dict]:
    response = users_table().query(
        IndexName="username-index",
        KeyConditionExpression=Key("username").eq(username),
    )
    items = response.get("Items", [])
    return items[0] if items else None

def _start_session(response: Response, user: dict):
    token = create_session_token(user["user_id"], user["username"])
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.SESSION_MAX_AGE,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )

# Register new user and log them in
@router.post("/signup", response_model=AuthResponse)
def signup(credentials: Credentials, response: Response):
    if find_user_by_username(credentials.username):
        raise HTTPException(status_code=400, detail="Username already taken")

    user = {
        "user_id": str(uuid.uuid4()),
        "username": credentials.username,
        "password_hash": hash_password(credentials.password),
        "created_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }
    users_table().put_item(Item=user)
    _start_session(response, user)

    return {"success": True, "username": user["username"]}

# Login and session cookie
@router.post("/login", response_model=AuthResponse)
def login(credentials: Credentials, response: Response):
    user = find_user_by_username(credentials.username)
    if not user or not verify_password(credentials.password, user["password_hash"]):
        raise HTTPException(status_code=400, detail="Invalid username or password")

    _start_session(response, user)

    return {"success": True, "username": user["username"]}

@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"success": True}

# Current session user, logged out is not an error here
@router.get("/me")
def me(request: Request):
    user = get_session_user(request)
    if not user:
        return {"username": None}
    return {"id": user["user_id"], "username": user["username"]}

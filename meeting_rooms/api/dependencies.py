"""API Dependencies - Authentication"""
from functools import lru_cache
from typing import Dict, Iterable, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from meeting_rooms.api.schemas import TokenData
from meeting_rooms.domain.auth import Caller, User, UserInDB
from meeting_rooms.domain.enums import Role
from meeting_rooms.infrastructure.security import decode_access_token, get_password_hash

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# Demo identity store: one account per role.
# In production, this would be a call to the identity service
_DEMO_ACCOUNTS = [
    # username, password, role, full name, department
    ("admin", "admin123", Role.ADMINISTRATOR, "Admin User", None),
    ("approver", "approver123", Role.APPROVER, "Approver User", None),
    ("organizer", "organizer123", Role.ORGANIZER, "Organizer User", "Sales"),
    ("organizer2", "organizer123", Role.ORGANIZER, "Second Organizer", "Finance"),
    ("reception", "reception123", Role.RECEPTION, "Front Desk", None),
]

fake_users_db: Dict[str, dict] = {
    username: {
        "user_id": f"123e4567-e89b-12d3-a456-42661417400{index}",
        "username": username,
        "email": f"{username}@example.com",
        "full_name": full_name,
        "department": department,
        "role": role,
        "plain_password": password,
        "disabled": False,
    }
    for index, (username, password, role, full_name, department) in enumerate(_DEMO_ACCOUNTS)
}


@lru_cache(maxsize=None)
def _hashed_password(plain_password: str) -> str:
    """Hash each demo password once, on first login"""
    return get_password_hash(plain_password)


def get_user(db: Dict[str, dict], username: str) -> Optional[UserInDB]:
    record = db.get(username)
    if record is None:
        return None
    fields = {k: v for k, v in record.items() if k != "plain_password"}
    fields.setdefault("hashed_password", _hashed_password(record["plain_password"]))
    return UserInDB(**fields)


def approver_ids() -> Iterable[UUID]:
    """Users notified about reservations waiting for review"""
    return [
        UUID(u["user_id"]) for u in fake_users_db.values()
        if u["role"] in (Role.APPROVER, Role.ADMINISTRATOR) and not u["disabled"]
    ]


async def get_current_user(token: str = Depends(oauth2_scheme)) -> User:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        token_data = TokenData(username=decode_access_token(token).get("sub"))
    except JWTError:
        raise unauthorized

    user = get_user(fake_users_db, token_data.username) if token_data.username else None
    if user is None:
        raise unauthorized
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


async def get_caller(current_user: User = Depends(get_current_active_user)) -> Caller:
    """Identity and role handed to the reservation core"""
    return current_user.as_caller()

"""Domain Entities - Auth"""
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from meeting_rooms.domain.enums import Role


class Caller(BaseModel):
    """Identity and role of whoever invokes a lifecycle operation"""

    user_id: UUID
    role: Role

    model_config = {"frozen": True}


class User(BaseModel):
    """User Entity"""
    user_id: UUID = Field(default_factory=uuid4)
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    department: Optional[str] = None
    role: Role = Role.ORGANIZER
    disabled: bool = False

    model_config = {"from_attributes": True}

    def as_caller(self) -> Caller:
        return Caller(user_id=self.user_id, role=self.role)


class UserInDB(User):
    """User with hashed password for DB storage"""
    hashed_password: str

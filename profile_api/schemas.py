from pydantic import BaseModel, ConfigDict, EmailStr
from typing import Optional
from datetime import datetime


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    full_name: Optional[str]
    is_active: bool
    created_at: datetime
    avatar_url: str


class AvatarOut(BaseModel):
    avatar_url: str
    avatar_key: Optional[str] = None


class StoredFileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    filename: str
    mimetype: Optional[str]
    size: Optional[int]
    created_at: datetime


class DeletionOut(BaseModel):
    ok: bool = True
    storage_deleted: int = 0
    storage_failed: int = 0

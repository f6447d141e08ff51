from datetime import datetime
from sqlmodel import SQLModel
from pydantic import EmailStr, Field, field_validator
from typing import Optional

from core.roles import Role


class LoginSchema(SQLModel):
    email: EmailStr
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class UserReadSchema(SQLModel):
    id: int
    username: str
    email: EmailStr
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DriverReadSchema(SQLModel):
    id: int
    username: str
    email: EmailStr


class Token(SQLModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[UserReadSchema] = None


class RegisterSchema(SQLModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6)
    role: Role = Role.DRIVER

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class UserUpdateSchema(SQLModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    role: Optional[Role] = None

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class PasswordChangeSchema(SQLModel):
    current_password: Optional[str] = None
    new_password: str = Field(min_length=6)

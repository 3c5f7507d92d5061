"""Schemas for users and authentication"""
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from bugtracker.schemas.base import CamelModel


class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: Optional[str] = None


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class UserSummary(CamelModel):
    id: int
    email: str
    name: Optional[str] = None


class UserResponse(UserSummary):
    created_at: datetime


class AuthResponse(CamelModel):
    user: UserResponse
    token: str


class MeResponse(CamelModel):
    user: UserResponse

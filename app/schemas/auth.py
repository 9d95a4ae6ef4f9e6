"""Pydantic schemas for authentication endpoints."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field

Password = Annotated[str, Field(min_length=6, max_length=72)]


class EmailRequest(BaseModel):
    email: EmailStr


class RegisterRequest(EmailRequest):
    password: Password


class LoginRequest(EmailRequest):
    password: str


class ForgotPasswordRequest(EmailRequest):
    pass


class ActivateRequest(BaseModel):
    token: str = Field(min_length=1)


class ChangePasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    new_password: Password


class ResetPasswordRequest(BaseModel):
    old_password: str
    new_password: Password


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str

"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel


class LoginRequest(BaseModel):
    email: str
    password: str
    remember_me: bool = False


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    gender: str | None = None


class RegisterResponse(BaseModel):
    id: int
    email: str
    name: str
    message: str


class TokenResponse(BaseModel):
    token: str
    email: str
    name: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    email: str
    token: str
    new_password: str


class ChangePasswordRequest(BaseModel):
    current_password: str | None = None
    new_password: str

"""Pydantic DTOs for sign-in."""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, examples=["admin@prefuel"])
    password: str = Field(..., min_length=1)


class UserProfile(BaseModel):
    id: str
    name: str
    email: str
    role: str


class LoginResponse(BaseModel):
    token: str
    user: UserProfile

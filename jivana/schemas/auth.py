"""
Authentication Schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
import re


class UserRegister(BaseModel):
    """User registration schema"""
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, description="Minimum 8 characters")
    external_id: Optional[str] = Field(None, max_length=255, description="Identity provider subject, generated if omitted")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Letters, digits, dots, dashes and underscores only"""
        if not re.match(r'^[A-Za-z0-9._-]+$', v):
            raise ValueError('Username may only contain letters, digits, ".", "-" and "_"')
        return v

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "username": "demo",
            "email": "demo@example.com",
            "password": "demo12345"
        }
    })


class UserLogin(BaseModel):
    """User login schema"""
    username: str
    password: str

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "username": "demo",
            "password": "demo12345"
        }
    })


class IdentityVerify(BaseModel):
    """Look up a user by identity provider subject"""
    external_id: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """User response schema"""
    id: int
    username: str
    email: str
    external_id: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    """Token response schema"""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

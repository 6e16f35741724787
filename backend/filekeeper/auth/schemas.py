"""Pydantic schemas for registration, signin and token exchange.

Wire names are camelCase (``firstName``, ``accessToken``); the models use
snake_case attributes and convert through an alias generator.
"""
import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")

PHONE_NUMBER_LENGTH = 12
MIN_PASSWORD_LENGTH = 5


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SignupRequest(CamelModel):
    """Request body for POST /users/signup.

    Attributes:
        first_name: Given name (non-empty).
        last_name: Family name (non-empty).
        email: Unique login identifier.
        phone_number: Exactly 12 characters, also usable as identifier.
        password: Plaintext password, at least 5 characters.
    """
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=PHONE_NUMBER_LENGTH, max_length=PHONE_NUMBER_LENGTH)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not _EMAIL_RE.match(value):
            raise ValueError("must be a valid email")
        return value


class SigninRequest(BaseModel):
    """Request body for POST /users/signin; identifier is email or phone."""
    identifier: str
    password: str


class TokenRequest(BaseModel):
    """Request body carrying a refresh token (refresh and logout).

    Any JSON value is accepted; only strings can name a registered token.
    """
    token: Any = None


class MessageResponse(BaseModel):
    message: str


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str


class AccessTokenResponse(CamelModel):
    access_token: str


class UserRecord(BaseModel):
    """A row of the users table."""
    id: int
    first_name: str
    last_name: str
    email: str
    phone_number: str
    password_hash: str
    created_at: datetime

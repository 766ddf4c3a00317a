"""
Authentication models and schemas.
"""

from enum import Enum

from pydantic import BaseModel, Field


class CallerRole(str, Enum):
    """Who a bearer token speaks for."""
    ORGANIZATION = "organization"
    RECIPIENT = "recipient"


class TokenData(BaseModel):
    """Token payload data."""

    subject: str = Field(..., description="Organization or recipient id")
    role: CallerRole

"""
Credential issuance, revocation and verification models.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from bson import ObjectId
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from .recipient import PyObjectId


class IssueCredentialRequest(BaseModel):
    """Schema for issuing one credential from a template."""

    template_id: str = Field(..., validation_alias=AliasChoices("template_id", "templateId"))
    recipient_email: EmailStr = Field(
        ...,
        validation_alias=AliasChoices("recipient_email", "recipientEmail", "userEmail"),
        description="Recipient identity; created on first issuance",
    )
    data: Dict[str, Any] = Field(default_factory=dict, description="Placeholder key to value")
    description: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "template_id": "6650c0ffee0ddba11c0ffee1",
                "recipient_email": "ada@example.com",
                "data": {"name": "Ada Lovelace", "course": "Analytical Engines"},
            }
        }
    )


class IssueCredentialResponse(BaseModel):
    """Result of a successful issuance."""

    message: str = "Credential issued"
    credential_id: str
    artifact_ref: str
    artifact_url: str
    link: str


class CredentialInDB(BaseModel):
    """Credential as stored in database."""

    id: PyObjectId = Field(default_factory=PyObjectId, alias="_id")
    template_id: PyObjectId
    owner_id: PyObjectId
    recipient_id: PyObjectId
    issue_date: datetime = Field(default_factory=datetime.utcnow)
    artifact_ref: str
    is_revoked: bool = False
    revoked_at: Optional[datetime] = None
    downloads: int = 0
    featured: bool = False
    description: Optional[str] = None

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_encoders={ObjectId: str}
    )


class CredentialResponse(BaseModel):
    """Credential record returned to its issuer or recipient."""

    id: str
    template_id: str
    owner_id: str
    recipient_id: str
    issue_date: datetime
    artifact_url: str
    is_revoked: bool
    revoked_at: Optional[datetime] = None
    downloads: int = 0
    featured: bool = False
    description: Optional[str] = None


class RevokeResponse(BaseModel):
    message: str = "Credential revoked"
    credential_id: str
    is_revoked: bool = True
    revoked_at: Optional[datetime] = None


class VerificationStatus(str, Enum):
    """Public verification outcome."""
    VALID = "valid"
    REVOKED = "revoked"
    NOT_FOUND = "not_found"


class VerificationResult(BaseModel):
    """
    Public verification response. Carries only what the credential record
    exposes publicly: never bound data, artifact bytes or storage paths.
    """

    valid: bool
    status: VerificationStatus
    issuer_name: Optional[str] = None
    issue_date: Optional[datetime] = None
    message: Optional[str] = None


class VerificationQRResponse(BaseModel):
    credential_id: str
    verification_url: str
    qr_code_image: str = Field(..., description="Base64 encoded PNG")

"""
Issuing organization models.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict
from bson import ObjectId

from .recipient import PyObjectId


class OrganizationInDB(BaseModel):
    """Issuing organization as stored in database."""
    
    id: PyObjectId = Field(default_factory=PyObjectId, alias="_id")
    name: str = Field(..., description="Organization name shown on verification")
    email: str = Field(..., description="Contact email")
    website: Optional[str] = None
    logo: Optional[str] = None
    credentials: List[PyObjectId] = Field(default_factory=list, description="Issued credential ids")
    
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_encoders={ObjectId: str}
    )


class OrganizationProfile(BaseModel):
    """Public profile of an organization; the credential list is reduced to a count."""
    
    id: str
    name: str
    email: str
    website: Optional[str] = None
    logo: Optional[str] = None
    credential_count: int = 0
    
    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "OrganizationProfile":
        organization = OrganizationInDB(**document)
        return cls(
            id=str(organization.id),
            name=organization.name,
            email=organization.email,
            website=organization.website,
            logo=organization.logo,
            credential_count=len(organization.credentials),
        )


class DashboardStats(BaseModel):
    """Summary counters for an organization's dashboard."""
    
    name: str
    email: str
    total_templates: int = 0
    total_credentials_issued: int = 0
    recent_templates: int = 0
    pending_credentials: int = 0


class ReconcileResult(BaseModel):
    """Outcome of re-adding credential ids to organization and recipient lists."""
    
    organization_id: str
    credentials_checked: int
    recipients_touched: int

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

TENANT_ID_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class CreateTenantRequest(BaseModel):
    """Schema for a tenant creation request"""

    id: str = Field(..., min_length=1, max_length=64, pattern=TENANT_ID_PATTERN,
                    description="URL-safe tenant key, e.g. 'acme' or 'north-fc'")
    name: str = Field(..., min_length=1, max_length=200)
    admin_email: EmailStr
    password: str = Field(..., min_length=1)
    has_isolated_database: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class UpdateTenantRequest(BaseModel):
    """Schema for a tenant update request"""

    name: str = Field(..., min_length=1, max_length=200)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class TenantResponse(BaseModel):
    id: str
    name: str
    is_active: bool
    status: str
    has_isolated_database: bool
    provisioning_error: str | None = None
    failed_operation: str | None = None
    last_provisioning_attempt: datetime | None = None
    created_on: datetime

    model_config = ConfigDict(from_attributes=True)


class TenantOptionResponse(BaseModel):
    """Lightweight tenant entry for pickers"""

    id: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class TenantAcceptedResponse(BaseModel):
    """A create or update request queued for background processing"""

    tenant_id: str
    job_id: str

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# Product Schemas
class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None


class ProductResponse(BaseModel):
    id: str
    tenant_id: str
    name: str
    description: str | None
    created_by: str | None
    created_on: datetime
    last_modified_by: str | None
    last_modified_on: datetime | None

    model_config = ConfigDict(from_attributes=True)


# Category Schemas
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    locale: str = Field("en", min_length=2, max_length=10)


class CategoryResponse(BaseModel):
    id: str
    tenant_id: str
    name: str
    locale: str
    created_by: str | None
    created_on: datetime

    model_config = ConfigDict(from_attributes=True)

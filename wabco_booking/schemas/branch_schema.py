"""Branch (location) wire models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _BranchModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class BranchCreate(_BranchModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    working_hours: str = ""
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    subdomain: Optional[str] = None


class BranchUpdate(_BranchModel):
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, min_length=1)
    working_hours: Optional[str] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    subdomain: Optional[str] = None


class BranchResponse(_BranchModel):
    id: int
    name: str
    address: str
    phone: str
    working_hours: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    subdomain: Optional[str] = None
    distance: Optional[float] = None

"""Address Schemas — address-book request/response shapes."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AddressCreate(BaseModel):
    """New shipping address — required parts stripped and non-empty."""
    street: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str | None = Field(None, max_length=100)
    postal_code: str = Field(min_length=1, max_length=20)
    country: str = Field(min_length=1, max_length=100)

    @field_validator("street", "city", "postal_code", "country")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty or whitespace")
        return v


class AddressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    street: str
    city: str
    state: str | None = None
    postal_code: str
    country: str

from pydantic import BaseModel, Field


class ZoneResponse(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class PackResponse(BaseModel):
    id: int
    name: str
    units_per_pack: int
    price_cents: int

    model_config = {"from_attributes": True}


class AddressCreateRequest(BaseModel):
    label: str | None = Field(default=None, max_length=64)
    line1: str = Field(max_length=255)
    line2: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=128)
    postcode: str | None = Field(default=None, max_length=16)


class AddressResponse(BaseModel):
    id: int
    label: str
    line1: str
    line2: str | None = None
    city: str | None = None
    postcode: str | None = None
    country: str
    is_default: bool

    model_config = {"from_attributes": True}

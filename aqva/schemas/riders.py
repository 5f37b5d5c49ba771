from pydantic import BaseModel, Field


class RiderResponse(BaseModel):
    id: int
    user_id: int
    display_name: str | None = None
    phone: str | None = None
    is_online: bool

    model_config = {"from_attributes": True}


class OnlineRequest(BaseModel):
    is_online: bool


class LocationUpdateRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class LocationUpdateResponse(BaseModel):
    accepted: bool
    sharing_active: bool

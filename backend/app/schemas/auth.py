from pydantic import BaseModel, Field

from app.models.enums import Area


# ── Users ────────────────────────────────────────────────────

class UserCreate(BaseModel):
    """Admin creates a new user for an area."""
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1, max_length=255)
    area: Area


class UserOut(BaseModel):
    id: str
    username: str
    full_name: str
    area: str
    is_active: bool

    model_config = {"from_attributes": True}


# ── Login ────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut

"""User domain model."""

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """Authenticated principal supplied by the auth provider."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable user id from the auth provider")
    email: str = Field(default="", description="Email address of the user")

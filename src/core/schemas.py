"""
Pydantic schemas for request bodies accepted by the HTTP API
"""
from pydantic import BaseModel, ConfigDict, Field, StrictInt


class CredentialsRequest(BaseModel):
    """
    Body of /register and /login
    """
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RateRequest(BaseModel):
    """
    Body of POST /rate. Any userId in the body is ignored.
    """
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(..., alias="itemId", min_length=1)
    rating: StrictInt = Field(..., ge=1, le=5)


class CommentCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(..., alias="itemId", min_length=1)
    text: str


class CommentUpdateRequest(BaseModel):
    text: str

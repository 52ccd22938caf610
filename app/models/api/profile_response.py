# app/models/api/profile_response.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProfileInvalidationResponse(BaseModel):
    """Response for DELETE /api/stats"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    account_id: int = Field(..., description="Account whose cached profile was targeted")
    invalidated: bool = Field(..., description="True when a cached entry existed and was removed")

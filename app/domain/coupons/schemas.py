from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, field_validator
from app.core.utils.text_utils import strip_text


class CouponClaimDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    code: str = Field(min_length=1, max_length=64)

    _strip_code = field_validator("code", mode="before")(strip_text)


class CouponClaimReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: UUID
    name: str
    discount: int
    valid_at: datetime
    expired_at: datetime

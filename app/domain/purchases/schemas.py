from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, field_validator
from app.core.utils.text_utils import strip_text


class RedemptionTokenReadDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    purchase_id: UUID
    token: str


class RedemptionValidateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    token: str = Field(min_length=1, max_length=512)

    _strip_token = field_validator("token", mode="before")(strip_text)


class RedemptionResultDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    purchase_id: UUID
    event_title: str
    ticket_type: str
    used_at: datetime

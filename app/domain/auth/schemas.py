from pydantic import BaseModel, ConfigDict
from typing import Literal


class TokenPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sub: str
    iat: int
    nbf: int
    exp: int
    jti: str | None = None
    typ: Literal["access"] | None = None
    iss: str | None = None
    aud: str | list[str] | None = None

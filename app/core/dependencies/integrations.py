from functools import lru_cache
from typing import Annotated
from fastapi import Header
from app.core.config import EXTERNAL_ID_SECRET, REDEMPTION_SECRET, XENDIT_CALLBACK_TOKEN
from app.core.external_id import ExternalIdCodec
from app.core.security import RedemptionSigner, constant_time_equals
from app.domain.exceptions import Unauthorized
from app.integrations.xendit_client import XenditClient


@lru_cache
def get_external_id_codec() -> ExternalIdCodec:
    return ExternalIdCodec(EXTERNAL_ID_SECRET)


@lru_cache
def get_redemption_signer() -> RedemptionSigner:
    return RedemptionSigner(REDEMPTION_SECRET)


@lru_cache
def get_xendit_client() -> XenditClient:
    return XenditClient()


def require_xendit_callback_token(
        x_callback_token: Annotated[str | None, Header(alias="x-callback-token")] = None
) -> None:
    if not XENDIT_CALLBACK_TOKEN:
        return
    if not constant_time_equals(x_callback_token, XENDIT_CALLBACK_TOKEN):
        raise Unauthorized("Invalid callback token", ctx={"reason": "callback_token_mismatch"})

from fastapi import APIRouter, Depends, status
from typing import Annotated
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.core.dependencies.auth import get_current_user_with_roles
from app.core.dependencies.integrations import get_external_id_codec, get_xendit_client, \
    require_xendit_callback_token
from app.core.external_id import ExternalIdCodec
from app.domain.users.models import User
from app.domain.payments.schemas import PaymentIntentCreateDTO, PaymentIntentReadDTO, XenditInvoiceCallbackDTO, \
    CallbackAckDTO
from app.integrations.xendit_client import XenditClient
from app.services import payment_intent_service, payment_callback_service


router = APIRouter(prefix="/payments", tags=["payments"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
user_dependency = Annotated[User, Depends(get_current_user_with_roles("ATTENDEE", "ORGANIZER", "ADMIN"))]
codec_dependency = Annotated[ExternalIdCodec, Depends(get_external_id_codec)]
gateway_dependency = Annotated[XenditClient, Depends(get_xendit_client)]


@router.post(
    "",
    status_code=status.HTTP_200_OK,
    response_model=PaymentIntentReadDTO,
)
async def create_payment_link(
        schema: PaymentIntentCreateDTO,
        db: db_dependency,
        user: user_dependency,
        codec: codec_dependency,
        gateway: gateway_dependency,
):
    return await payment_intent_service.build_payment_intent(db, user, schema, codec=codec, gateway=gateway)


@router.post(
    "/notification",
    status_code=status.HTTP_200_OK,
    response_model=CallbackAckDTO,
    response_model_exclude_none=True,
    dependencies=[Depends(require_xendit_callback_token)],
)
async def payment_notification(
        payload: XenditInvoiceCallbackDTO,
        db: db_dependency,
        codec: codec_dependency,
        gateway: gateway_dependency,
):
    return await payment_callback_service.process_payment_callback(db, payload, codec=codec, gateway=gateway)

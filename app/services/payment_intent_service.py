import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_FLOOR
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.auditing import AuditSpan
from app.core.config import ADMIN_FEE_PERCENT, PAYMENT_CURRENCY, XENDIT_INVOICE_DURATION, \
    INVOICE_SUCCESS_REDIRECT_URL
from app.core.external_id import ExternalIdCodec
from app.core.utils.validators import normalize_phone_or_none
from app.domain.payments.schemas import PaymentIntentCreateDTO, PaymentIntentReadDTO
from app.domain.ticketing.models import Ticket
from app.domain.users.models import User
from app.integrations.xendit_client import XenditClient
from app.services.ledger_service import require_ticket, require_user, require_redeemable_coupon

logger = logging.getLogger("app.payments")

ADMIN_FEE_TYPE = "ADMIN"


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    subtotal: int
    admin_fee: int
    amount: int


def calculate_price(
        unit_price: int,
        quantity: int,
        discount: int | None = None,
        fee_percent: Decimal = ADMIN_FEE_PERCENT
) -> PriceBreakdown:
    subtotal = unit_price * quantity
    if discount:
        subtotal = subtotal * (100 - discount) // 100
    admin_fee = int((Decimal(subtotal) * fee_percent / 100).to_integral_value(rounding=ROUND_FLOOR))
    return PriceBreakdown(subtotal=subtotal, admin_fee=admin_fee, amount=subtotal + admin_fee)


def _line_item(ticket: Ticket, quantity: int, subtotal: int) -> dict:
    event = ticket.event
    return {
        "name": f"{event.title} - {ticket.type}",
        "quantity": quantity,
        "price": subtotal // quantity,
        "category": ",".join(c.name for c in event.categories),
    }


def _customer(user: User) -> dict:
    customer = {"given_names": user.name, "email": user.email}
    try:
        phone = normalize_phone_or_none(user.phone_number)
    except ValueError:
        phone = None
    if phone:
        customer["mobile_number"] = phone
    return customer


async def build_payment_intent(
        db: AsyncSession,
        user: User,
        schema: PaymentIntentCreateDTO,
        *,
        codec: ExternalIdCodec,
        gateway: XenditClient,
) -> PaymentIntentReadDTO:
    async with AuditSpan(
        scope="PAYMENTS",
        action="INTENT",
        object_type="ticket",
        object_id=schema.ticket_id,
        coupon_id=schema.coupon_id,
        meta={"quantity": schema.quantity},
    ) as span:
        ticket = await require_ticket(db, schema.ticket_id, with_event=True)
        payer = await require_user(db, user.id)
        now = datetime.now(timezone.utc)

        discount = None
        if schema.coupon_id is not None:
            coupon, _ = await require_redeemable_coupon(db, payer.id, schema.coupon_id, now)
            discount = coupon.discount

        price = calculate_price(ticket.price, schema.quantity, discount)
        external_id = codec.build_external_id(ticket.id, schema.coupon_id, now=now)
        span.event_id = ticket.event_id
        span.meta.update({"subtotal": price.subtotal, "admin_fee": price.admin_fee, "amount": price.amount})

        invoice_url = await gateway.create_invoice(
            external_id=external_id,
            amount=price.amount,
            payer_email=payer.email,
            description=f"{ticket.event.title} - {ticket.type} x{schema.quantity}",
            items=[_line_item(ticket, schema.quantity, price.subtotal)],
            fees=[{"type": ADMIN_FEE_TYPE, "value": price.admin_fee}],
            customer=_customer(payer),
            currency=PAYMENT_CURRENCY,
            invoice_duration=XENDIT_INVOICE_DURATION,
            success_redirect_url=INVOICE_SUCCESS_REDIRECT_URL,
        )
        logger.info("Invoice created", extra={"ticket_id": str(ticket.id), "amount": price.amount})

        return PaymentIntentReadDTO(
            invoice_url=invoice_url,
            external_id=external_id,
            subtotal=price.subtotal,
            admin_fee=price.admin_fee,
            amount=price.amount,
        )

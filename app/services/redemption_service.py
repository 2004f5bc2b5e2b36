import logging
from datetime import datetime, timezone
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.auditing import AuditSpan
from app.core.qr import render_qr_png
from app.core.security import RedemptionSigner
from app.domain.exceptions import NotFound, Forbidden, AlreadyUsed
from app.domain.purchases import crud as purchases_crud
from app.domain.purchases.models import Purchase
from app.domain.purchases.schemas import RedemptionTokenReadDTO, RedemptionResultDTO
from app.domain.users.models import User

logger = logging.getLogger("app.redemption")


async def _require_purchase(db: AsyncSession, purchase_id: UUID) -> Purchase:
    purchase = await purchases_crud.get_purchase_with_event(db, purchase_id)
    if not purchase:
        raise NotFound("Purchase not found", ctx={"purchase_id": purchase_id})
    return purchase


async def issue_redemption_token(
        db: AsyncSession,
        user: User,
        purchase_id: UUID,
        *,
        signer: RedemptionSigner,
) -> RedemptionTokenReadDTO:
    async with AuditSpan(scope="REDEMPTION", action="ISSUE", object_type="purchase", purchase_id=purchase_id) as span:
        purchase = await _require_purchase(db, purchase_id)
        span.event_id = purchase.ticket.event_id

        if purchase.user_id != user.id:
            raise Forbidden(
                "You don't have permission to generate a token for this purchase",
                ctx={"purchase_id": purchase_id, "reason": "owner_mismatch"}
            )
        if purchase.is_used:
            raise Forbidden("Ticket already used", ctx={"purchase_id": purchase_id, "reason": "already_used"})

        token = signer.render(
            purchase_id=purchase.id,
            payment_id=purchase.payment_id,
            user_id=purchase.user_id,
            ticket_id=purchase.ticket_id,
            event_id=purchase.ticket.event_id,
        )
        return RedemptionTokenReadDTO(purchase_id=purchase.id, token=token)


async def issue_redemption_qr(
        db: AsyncSession,
        user: User,
        purchase_id: UUID,
        *,
        signer: RedemptionSigner,
) -> bytes:
    issued = await issue_redemption_token(db, user, purchase_id, signer=signer)
    return render_qr_png(issued.token)


async def validate_redemption_token(
        db: AsyncSession,
        user: User,
        token: str,
        *,
        signer: RedemptionSigner,
) -> RedemptionResultDTO:
    """
    Redeems a ticket at the venue.

    Only the organizer of the purchase's event may redeem. The used flag is
    flipped with a conditional update, so of two concurrent scans exactly one
    succeeds and the other gets AlreadyUsed.
    """
    async with AuditSpan(scope="REDEMPTION", action="VALIDATE", object_type="purchase") as span:
        claims = signer.parse(token)
        span.purchase_id = claims.purchase_id
        span.object_id = claims.purchase_id

        purchase = await _require_purchase(db, claims.purchase_id)
        event = purchase.ticket.event
        span.event_id = event.id

        if not signer.verify(claims, payment_id=purchase.payment_id, user_id=purchase.user_id):
            logger.warning("Redemption signature mismatch", extra={"purchase_id": str(purchase.id)})
            raise Forbidden("Invalid ticket signature", ctx={"reason": "signature_mismatch"})
        if claims.ticket_id != purchase.ticket_id or claims.event_id != event.id:
            logger.warning("Redemption token does not match purchase", extra={"purchase_id": str(purchase.id)})
            raise Forbidden("Invalid ticket signature", ctx={"reason": "claims_mismatch"})

        if event.organizer_id != user.id:
            raise Forbidden(
                "You don't have permission to validate this ticket",
                ctx={"purchase_id": purchase.id, "reason": "organizer_mismatch"}
            )

        if purchase.is_used:
            raise AlreadyUsed("Ticket already used", ctx={"purchase_id": purchase.id})

        used_at = datetime.now(timezone.utc)
        if not await purchases_crud.mark_used_if_unused(db, purchase.id, used_at):
            raise AlreadyUsed("Ticket already used", ctx={"purchase_id": purchase.id})
        await db.flush()

        return RedemptionResultDTO(
            purchase_id=purchase.id,
            event_title=event.title,
            ticket_type=purchase.ticket.type,
            used_at=used_at,
        )

import uuid
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from app.core.external_id import ExternalIdCodec
from app.services import payment_callback_service
from app.domain.exceptions import NotFound
from app.domain.payments.models import Payment, PayoutStatus
from app.domain.payments.schemas import XenditInvoiceCallbackDTO, CallbackOutcome
from app.domain.purchases.models import Purchase
from tests.helper import db_session


CODEC = ExternalIdCodec("callback-secret")
TICKET_ID = uuid.uuid4()
ORGANIZER_ID = uuid.uuid4()


def _payload(external_id=None, status="PAID", quantity=3, fees=405) -> XenditInvoiceCallbackDTO:
    return XenditInvoiceCallbackDTO.model_validate({
        "id": "inv_1",
        "external_id": external_id or CODEC.build_external_id(TICKET_ID),
        "status": status,
        "amount": 27405,
        "payer_email": "buyer@example.com",
        "payment_channel": "BCA",
        "items": [{"name": "Concert - VIP", "quantity": quantity, "price": 9000}],
        "fees": [{"type": "ADMIN", "value": fees}],
    })


def _setup(mocker, *, user=True, existing=None, ticket=True, claim=None, payout_status=PayoutStatus.ACCEPTED):
    user_obj = mocker.Mock(id=uuid.uuid4()) if user else None
    ticket_obj = mocker.Mock(id=TICKET_ID, event_id=uuid.uuid4(), event=mocker.Mock(organizer_id=ORGANIZER_ID))
    spies = {
        "user": mocker.patch(
            "app.services.payment_callback_service.users_crud.get_active_user_by_email",
            new=mocker.AsyncMock(return_value=user_obj),
        ),
        "existing": mocker.patch(
            "app.services.payment_callback_service.payments_crud.get_payment_by_transaction_id",
            new=mocker.AsyncMock(return_value=existing),
        ),
        "ticket": mocker.patch(
            "app.services.payment_callback_service.require_ticket",
            new=mocker.AsyncMock(return_value=ticket_obj) if ticket else mocker.AsyncMock(side_effect=NotFound("x")),
        ),
        "claim": mocker.patch(
            "app.services.payment_callback_service.coupons_crud.get_user_coupon",
            new=mocker.AsyncMock(return_value=claim),
        ),
        "payout": mocker.patch(
            "app.services.payment_callback_service.dispatch_payout",
            new=mocker.AsyncMock(return_value=mocker.Mock(status=payout_status)),
        ),
    }
    db = db_session(mocker)
    return db, user_obj, spies


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["PENDING", "EXPIRED"])
async def test_unpaid_status_is_rejected_without_writes(mocker, status):
    db, _, spies = _setup(mocker)

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(status=status), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.REJECTED
    spies["user"].assert_not_awaited()
    db.add.assert_not_called()
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_payer_fails(mocker):
    db, _, spies = _setup(mocker, user=False)

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.FAILED
    assert ack.message == "User not found"
    spies["existing"].assert_not_awaited()
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("external_id", ["INV-1700000000", "INV-1700000000-garbage"])
async def test_undecodable_external_id_fails(mocker, external_id):
    db, _, spies = _setup(mocker)

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(external_id=external_id), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.FAILED
    assert ack.message == "Invalid external reference"
    spies["existing"].assert_not_awaited()
    db.add.assert_not_called()


@pytest.mark.asyncio
async def test_forged_external_id_from_other_secret_fails(mocker):
    db, _, _ = _setup(mocker)
    forged = ExternalIdCodec("attacker").build_external_id(TICKET_ID)

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(external_id=forged), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.FAILED


@pytest.mark.asyncio
async def test_replayed_callback_is_duplicate(mocker):
    existing = mocker.Mock(id=uuid.uuid4())
    db, _, spies = _setup(mocker, existing=existing)

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.DUPLICATE
    assert ack.payment_id == existing.id
    spies["ticket"].assert_not_awaited()
    db.add.assert_not_called()
    spies["payout"].assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_ticket_fails(mocker):
    db, _, spies = _setup(mocker, ticket=False)

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.FAILED
    assert ack.message == "Ticket not found"
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_paid_callback_creates_payment_and_one_purchase_per_unit(mocker, auditspan_stub):
    db, user, spies = _setup(mocker)
    payload = _payload()
    gateway = mocker.Mock()

    ack = await payment_callback_service.process_payment_callback(db, payload, codec=CODEC, gateway=gateway)

    assert ack.outcome == CallbackOutcome.FULFILLED
    assert ack.purchases == 3
    assert ack.payout_status == PayoutStatus.ACCEPTED

    payment = db.add.call_args.args[0]
    assert isinstance(payment, Payment)
    assert payment.transaction_id == payload.external_id
    assert payment.amount == 27405
    assert payment.method == "BCA"
    assert payment.user_id == user.id
    assert payment.coupon_id is None
    assert ack.payment_id == payment.id

    purchases = db.add_all.call_args.args[0]
    assert len(purchases) == 3
    assert all(isinstance(p, Purchase) for p in purchases)
    assert {p.payment_id for p in purchases} == {payment.id}
    assert {p.ticket_id for p in purchases} == {TICKET_ID}
    assert {p.total for p in purchases} == {9000}
    assert len({p.id for p in purchases}) == 3

    spies["claim"].assert_not_awaited()
    db.commit.assert_awaited_once()
    db.rollback.assert_not_awaited()
    spies["payout"].assert_awaited_once_with(
        db, payment, organizer_id=ORGANIZER_ID, amount=27000, gateway=gateway
    )
    assert auditspan_stub[0].meta["outcome"] == CallbackOutcome.FULFILLED


@pytest.mark.asyncio
async def test_paid_callback_with_coupon_marks_claim_used(mocker):
    coupon_id = uuid.uuid4()
    claim = mocker.Mock(is_used=False)
    db, user, spies = _setup(mocker, claim=claim)

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(external_id=CODEC.build_external_id(TICKET_ID, coupon_id)), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.FULFILLED
    assert claim.is_used is True
    spies["claim"].assert_awaited_once_with(db, user.id, coupon_id, for_update=True)
    assert db.add.call_args.args[0].coupon_id == coupon_id


@pytest.mark.asyncio
async def test_paid_callback_with_missing_claim_still_fulfills(mocker):
    db, _, _ = _setup(mocker, claim=None)

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(external_id=CODEC.build_external_id(TICKET_ID, uuid.uuid4())), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.FULFILLED
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_database_failure_rolls_back_everything(mocker):
    db, _, spies = _setup(mocker)
    db.flush.side_effect = [None, OperationalError("stmt", {}, Exception("boom"))]

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.FAILED
    db.rollback.assert_awaited_once()
    db.commit.assert_not_awaited()
    spies["payout"].assert_not_awaited()


@pytest.mark.asyncio
async def test_concurrent_duplicate_detected_after_integrity_error(mocker):
    winner = mocker.Mock(id=uuid.uuid4())
    db, _, spies = _setup(mocker)
    spies["existing"].side_effect = [None, winner]
    db.commit.side_effect = IntegrityError("stmt", {}, Exception("unique"))

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.DUPLICATE
    assert ack.payment_id == winner.id
    db.rollback.assert_awaited_once()
    spies["payout"].assert_not_awaited()


@pytest.mark.asyncio
async def test_payout_bookkeeping_failure_keeps_sale(mocker):
    db, _, spies = _setup(mocker)
    spies["payout"].side_effect = OperationalError("stmt", {}, Exception("boom"))

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.FULFILLED
    assert ack.payout_status is None
    db.commit.assert_awaited_once()
    db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_payout_is_reported_in_ack(mocker):
    db, _, _ = _setup(mocker, payout_status=PayoutStatus.FAILED)

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.FULFILLED
    assert ack.payout_status == PayoutStatus.FAILED


@pytest.mark.asyncio
@pytest.mark.parametrize("lookup", ["user", "existing", "ticket"])
async def test_lookup_database_error_is_acknowledged_as_failed(mocker, lookup):
    db, _, spies = _setup(mocker)
    spies[lookup].side_effect = OperationalError("stmt", {}, Exception("down"))

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.FAILED
    assert ack.message == "Failed to process payment"
    db.rollback.assert_awaited_once()
    db.add.assert_not_called()
    db.commit.assert_not_awaited()
    spies["payout"].assert_not_awaited()


@pytest.mark.asyncio
async def test_duplicate_recheck_error_after_integrity_error_fails(mocker):
    db, _, spies = _setup(mocker)
    spies["existing"].side_effect = [None, OperationalError("stmt", {}, Exception("down"))]
    db.commit.side_effect = IntegrityError("stmt", {}, Exception("unique"))

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.FAILED
    assert ack.message == "Failed to fulfill payment"
    assert spies["existing"].await_count == 2
    spies["payout"].assert_not_awaited()


@pytest.mark.asyncio
async def test_unexpected_payout_error_still_acknowledges_sale(mocker, auditspan_stub):
    db, _, spies = _setup(mocker)
    spies["payout"].side_effect = AttributeError("'list' object has no attribute 'get'")

    ack = await payment_callback_service.process_payment_callback(
        db, _payload(), codec=CODEC, gateway=mocker.Mock()
    )

    assert ack.outcome == CallbackOutcome.FULFILLED
    assert ack.payout_status is None
    assert ack.payment_id is not None
    db.commit.assert_awaited_once()
    db.rollback.assert_awaited_once()
    assert auditspan_stub[0].meta["outcome"] == CallbackOutcome.FULFILLED

import uuid
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from app.main import app
from app.core.database import get_db
from app.core.dependencies.auth import get_token_payload
from app.core.dependencies.integrations import get_external_id_codec, get_xendit_client, get_redemption_signer
from app.core.external_id import ExternalIdCodec
from app.core.security import RedemptionSigner
from tests.helper import db_session


CODEC = ExternalIdCodec("route-secret")
SIGNER = RedemptionSigner("route-secret")


@pytest.fixture
def db(mocker):
    return db_session(mocker)


@pytest.fixture
def client(mocker, db):
    async def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_external_id_codec] = lambda: CODEC
    app.dependency_overrides[get_redemption_signer] = lambda: SIGNER
    app.dependency_overrides[get_xendit_client] = lambda: mocker.Mock()
    yield TestClient(app)
    app.dependency_overrides.clear()


def _callback() -> dict:
    return {
        "id": "inv_1",
        "external_id": CODEC.build_external_id(uuid.uuid4()),
        "status": "PAID",
        "amount": 27405,
        "payer_email": "buyer@example.com",
        "payment_channel": "BCA",
        "items": [{"name": "Concert - VIP", "quantity": 3, "price": 9000}],
        "fees": [{"type": "ADMIN", "value": 405}],
    }


def _patch_payer(mocker, **kwargs):
    return mocker.patch(
        "app.services.payment_callback_service.users_crud.get_active_user_by_email",
        new=mocker.AsyncMock(**kwargs),
    )


def test_notification_for_unknown_payer_acks_failed(mocker, client):
    _patch_payer(mocker, return_value=None)

    r = client.post("/payments/notification", json=_callback())

    assert r.status_code == 200
    assert r.json() == {"outcome": "FAILED", "message": "User not found"}


def test_notification_replay_acks_duplicate(mocker, client):
    payment_id = uuid.uuid4()
    _patch_payer(mocker, return_value=mocker.Mock(id=uuid.uuid4()))
    mocker.patch(
        "app.services.payment_callback_service.payments_crud.get_payment_by_transaction_id",
        new=mocker.AsyncMock(return_value=mocker.Mock(id=payment_id)),
    )

    r = client.post("/payments/notification", json=_callback())

    assert r.status_code == 200
    body = r.json()
    assert body["outcome"] == "DUPLICATE"
    assert body["payment_id"] == str(payment_id)


def test_notification_database_outage_still_acks(mocker, client, db):
    _patch_payer(mocker, side_effect=OperationalError("stmt", {}, Exception("down")))

    r = client.post("/payments/notification", json=_callback())

    assert r.status_code == 200
    assert r.json() == {"outcome": "FAILED", "message": "Failed to process payment"}
    db.rollback.assert_awaited()


def test_notification_with_unparseable_body_is_422(client):
    r = client.post("/payments/notification", json={"id": "inv_1", "status": "PAID"})

    assert r.status_code == 422


def test_redemption_qr_returns_png_for_owner(mocker, client, db):
    owner = mocker.Mock(id=uuid.uuid4(), roles=[mocker.Mock()])
    owner.roles[0].name = "ATTENDEE"
    res = mocker.Mock()
    res.scalars.return_value.first.return_value = owner
    db.execute.return_value = res
    app.dependency_overrides[get_token_payload] = lambda: mocker.Mock(sub=str(owner.id))

    event_id = uuid.uuid4()
    purchase = mocker.Mock(
        id=uuid.uuid4(),
        payment_id=uuid.uuid4(),
        user_id=owner.id,
        ticket_id=uuid.uuid4(),
        ticket=mocker.Mock(event_id=event_id),
        is_used=False,
    )
    mocker.patch(
        "app.services.redemption_service.purchases_crud.get_purchase_with_event",
        new=mocker.AsyncMock(return_value=purchase),
    )

    r = client.get(f"/purchases/{purchase.id}/redemption-qr")

    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    assert r.content.startswith(b"\x89PNG\r\n\x1a\n")

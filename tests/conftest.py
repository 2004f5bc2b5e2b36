import os

os.environ.setdefault("POSTGRES_USER", "ticketing")
os.environ.setdefault("db_password", "ticketing")
os.environ.setdefault("POSTGRES_DB", "ticketing_test")
os.environ.setdefault("DB_HOST", "localhost")
os.environ.setdefault("DB_PORT", "5432")
os.environ.setdefault("secret_key", "test-secret-key")

import pytest
import importlib


SERVICE_MODULES = [
    "app.services.coupon_service",
    "app.services.payment_callback_service",
    "app.services.payment_intent_service",
    "app.services.payout_service",
    "app.services.redemption_service",
]

class _StubSpan:
    def __init__(
        self,
        *,
        scope: str,
        action: str,
        object_type: str | None = None,
        object_id=None,
        event_id=None,
        payment_id=None,
        purchase_id=None,
        coupon_id=None,
        meta: dict | None = None,
        **_ignored
    ):
        self.scope = scope
        self.action = action
        self.object_type = object_type
        self.object_id = object_id
        self.event_id = event_id
        self.payment_id = payment_id
        self.purchase_id = purchase_id
        self.coupon_id = coupon_id
        self.meta = dict(meta or {})
        self.entered = False
        self.exited = False
        self.exit_args = None

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited = True
        self.exit_args = (exc_type, exc, tb)
        return False


@pytest.fixture(autouse=True)
def auditspan_stub(mocker, request):
    instances = []

    def factory(*a, **k):
        s = _StubSpan(*a, **k)
        instances.append(s)
        return s

    for mod in SERVICE_MODULES:
        importlib.import_module(mod)
        mocker.patch(f"{mod}.AuditSpan", side_effect=factory)

    return instances

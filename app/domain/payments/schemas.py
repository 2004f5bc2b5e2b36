from datetime import datetime
from enum import Enum
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, field_validator
from app.core.utils.text_utils import strip_text, lower_email
from app.domain.payments.models import PayoutStatus

PAID_STATUSES = frozenset({"PAID", "SETTLED"})


class PaymentIntentCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    ticket_id: UUID
    coupon_id: UUID | None = None
    quantity: int = Field(ge=1, le=100)


class PaymentIntentReadDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    invoice_url: str
    external_id: str
    subtotal: int
    admin_fee: int
    amount: int


class XenditInvoiceItemDTO(BaseModel):
    model_config = ConfigDict(extra='ignore')

    name: str
    quantity: int = Field(ge=1)
    price: int = Field(ge=0)
    category: str | None = None


class XenditFeeDTO(BaseModel):
    model_config = ConfigDict(extra='ignore')

    type: str
    value: int = Field(ge=0)


class XenditInvoiceCallbackDTO(BaseModel):
    """Invoice callback body as posted by Xendit to the notification URL."""
    model_config = ConfigDict(extra='ignore')

    id: str
    external_id: str = Field(min_length=1)
    status: str
    amount: int = Field(ge=0)
    payer_email: str
    payment_method: str | None = None
    payment_channel: str | None = None
    currency: str | None = None
    paid_at: datetime | None = None
    items: list[XenditInvoiceItemDTO] = Field(min_length=1)
    fees: list[XenditFeeDTO] = Field(default_factory=list)

    _strip_external_id = field_validator("external_id", mode="before")(strip_text)
    _lower_email = field_validator("payer_email", mode="before")(lower_email)

    @field_validator("status", mode="before")
    @classmethod
    def _upper_status(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @property
    def is_paid(self) -> bool:
        return self.status in PAID_STATUSES

    @property
    def total_fees(self) -> int:
        return sum(fee.value for fee in self.fees)

    @property
    def method(self) -> str:
        return self.payment_channel or self.payment_method or "UNKNOWN"


class CallbackOutcome(str, Enum):
    FULFILLED = "FULFILLED"
    REJECTED = "REJECTED"
    DUPLICATE = "DUPLICATE"
    FAILED = "FAILED"


class CallbackAckDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    outcome: CallbackOutcome
    message: str
    payment_id: UUID | None = None
    purchases: int | None = None
    payout_status: PayoutStatus | None = None


class PayoutReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: UUID
    payment_id: UUID
    reference: str
    amount: int
    currency: str
    channel_code: str | None
    status: PayoutStatus
    gateway_payout_id: str | None
    failure_reason: str | None

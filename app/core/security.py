import hashlib
import hmac
from dataclasses import dataclass
from uuid import UUID
from app.domain.exceptions import MalformedInput

_TOKEN_FIELDS = ("purchase", "ticket", "event", "signature")


def derive_key(secret: str) -> bytes:
    if not secret:
        raise ValueError("Secret must not be empty")
    return hashlib.sha256(secret.encode()).digest()


def hmac_sha256_hex(key: bytes, message: str) -> str:
    return hmac.new(key, message.encode(), hashlib.sha256).hexdigest()


def constant_time_equals(a: str | None, b: str | None) -> bool:
    if a is None or b is None:
        return False
    return hmac.compare_digest(a.encode(), b.encode())


@dataclass(frozen=True, slots=True)
class RedemptionClaims:
    purchase_id: UUID
    ticket_id: UUID
    event_id: UUID
    signature: str


class RedemptionSigner:
    """
    Signs and verifies redemption tokens of the form
    ``purchase:<id>;ticket:<id>;event:<id>;signature:<hex>``.

    The signature covers purchase, payment and owner ids. Only the purchase,
    ticket and event ids travel in the token, so verification needs the stored
    purchase row.
    """

    def __init__(self, secret: str):
        self._key = derive_key(secret)

    def sign(self, purchase_id: UUID, payment_id: UUID, user_id: UUID) -> str:
        return hmac_sha256_hex(self._key, f"{purchase_id}:{payment_id}:{user_id}")

    def render(self, *, purchase_id: UUID, payment_id: UUID, user_id: UUID, ticket_id: UUID, event_id: UUID) -> str:
        signature = self.sign(purchase_id, payment_id, user_id)
        return f"purchase:{purchase_id};ticket:{ticket_id};event:{event_id};signature:{signature}"

    @staticmethod
    def parse(token: str) -> RedemptionClaims:
        parts = (token or "").strip().split(";")
        if len(parts) != len(_TOKEN_FIELDS):
            raise MalformedInput("Invalid redemption token format", ctx={"reason": "segments"})

        values: dict[str, str] = {}
        for field, part in zip(_TOKEN_FIELDS, parts):
            prefix = f"{field}:"
            if not part.startswith(prefix) or len(part) == len(prefix):
                raise MalformedInput("Invalid redemption token format", ctx={"reason": field})
            values[field] = part[len(prefix):]

        try:
            return RedemptionClaims(
                purchase_id=UUID(values["purchase"]),
                ticket_id=UUID(values["ticket"]),
                event_id=UUID(values["event"]),
                signature=values["signature"],
            )
        except ValueError as e:
            raise MalformedInput("Invalid redemption token format", ctx={"reason": "identifier"}) from e

    def verify(self, claims: RedemptionClaims, *, payment_id: UUID, user_id: UUID) -> bool:
        expected = self.sign(claims.purchase_id, payment_id, user_id)
        return constant_time_equals(expected, claims.signature)

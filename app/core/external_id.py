"""
Authenticated codec for the ticket/coupon reference carried through the
payment gateway inside the invoice external id (``INV-<unix_ts>-<token>``).

The gateway callback only attests payment status, so the AES-GCM tag is what
stops a forged callback from naming an arbitrary ticket or coupon.
"""
import base64
import binascii
import os
from datetime import datetime, timezone
from uuid import UUID
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from app.core.security import derive_key
from app.domain.exceptions import DecodeError

NONCE_SIZE = 12
EXTERNAL_ID_PREFIX = "INV"
_SEPARATOR = "|"


class ExternalIdCodec:
    def __init__(self, secret: str):
        self._aead = AESGCM(derive_key(secret))

    def seal(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._aead.encrypt(nonce, plaintext.encode(), None)
        return base64.urlsafe_b64encode(nonce + ciphertext).decode()

    def open(self, token: str) -> str:
        try:
            data = base64.urlsafe_b64decode(token.encode())
        except (binascii.Error, ValueError) as e:
            raise DecodeError("Invalid external reference encoding") from e

        if len(data) <= NONCE_SIZE:
            raise DecodeError("External reference too short", ctx={"length": len(data)})

        nonce, ciphertext = data[:NONCE_SIZE], data[NONCE_SIZE:]
        try:
            plaintext = self._aead.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise DecodeError("External reference failed verification") from e

        try:
            return plaintext.decode()
        except UnicodeDecodeError as e:
            raise DecodeError("External reference is not text") from e

    def encode(self, ticket_id: UUID, coupon_id: UUID | None = None) -> str:
        plaintext = str(ticket_id)
        if coupon_id is not None:
            plaintext = f"{ticket_id}{_SEPARATOR}{coupon_id}"
        return self.seal(plaintext)

    def decode(self, token: str) -> tuple[UUID, UUID | None]:
        parts = self.open(token).split(_SEPARATOR)
        if len(parts) > 2:
            raise DecodeError("Invalid external reference payload", ctx={"segments": len(parts)})

        ticket_id = _parse_uuid(parts[0], "ticket_id")
        coupon_id = _parse_uuid(parts[1], "coupon_id") if len(parts) == 2 else None
        return ticket_id, coupon_id

    def build_external_id(self, ticket_id: UUID, coupon_id: UUID | None = None, *, now: datetime | None = None) -> str:
        now = now or datetime.now(timezone.utc)
        return f"{EXTERNAL_ID_PREFIX}-{int(now.timestamp())}-{self.encode(ticket_id, coupon_id)}"

    def decode_external_id(self, external_id: str) -> tuple[UUID, UUID | None]:
        parts = (external_id or "").split("-")
        if len(parts) < 3:
            raise DecodeError("Invalid external id format", ctx={"segments": len(parts)})
        # urlsafe base64 may itself contain '-'
        return self.decode("-".join(parts[2:]))


def _parse_uuid(value: str, field: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as e:
        raise DecodeError(f"Invalid {field} format") from e

"""
Pickup QR tokens.

A token is the URL-safe base64 (no padding) of
``"{order_id}|{user_id}|{issued_at}|{hex hmac-sha256}"`` where the HMAC covers
the first three fields. Only the secret holder can mint one, and the scanner
can check it without a database round trip.
"""
import base64
import binascii
import hashlib
import hmac
import io
import re
from typing import Optional, Tuple

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from canteen.core.clock import epoch_seconds, utcnow

INVALID_ENCODING = "Invalid token encoding"
INVALID_CONTENT = "Invalid token content"
MALFORMED = "Malformed token"
INVALID_DATA = "Invalid token data"
INVALID_SIGNATURE = "Invalid token signature"
EXPIRED = "Token has expired"

_INT32_MAX = 2 ** 31 - 1
_SIGNED_INT = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_INT = re.compile(r"\+?[0-9]+")
_URLSAFE_B64 = re.compile(r"[A-Za-z0-9_-]*")


class QrTokenError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _sign(payload: str, secret: str) -> str:
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


def _parse_id(raw: str) -> int:
    if not _SIGNED_INT.fullmatch(raw):
        raise QrTokenError(INVALID_DATA)
    value = int(raw)
    if not -_INT32_MAX - 1 <= value <= _INT32_MAX:
        raise QrTokenError(INVALID_DATA)
    return value


def _parse_timestamp(raw: str) -> int:
    if not _UNSIGNED_INT.fullmatch(raw):
        raise QrTokenError(INVALID_DATA)
    value = int(raw)
    if value >= 2 ** 64:
        raise QrTokenError(INVALID_DATA)
    return value


def generate_qr_token(order_id: int, user_id: int, secret: str, issued_at: Optional[int] = None) -> str:
    if issued_at is None:
        issued_at = epoch_seconds(utcnow())
    payload = f"{order_id}|{user_id}|{issued_at}"
    raw = f"{payload}|{_sign(payload, secret)}"
    return base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")


def verify_qr_token(token: str, secret: str, max_age_secs: int) -> Tuple[int, int]:
    """Returns (order_id, user_id) or raises QrTokenError with the failure reason."""
    stripped = token.strip()
    if not _URLSAFE_B64.fullmatch(stripped):
        raise QrTokenError(INVALID_ENCODING)
    try:
        padded = stripped + "=" * (-len(stripped) % 4)
        decoded = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except binascii.Error:
        raise QrTokenError(INVALID_ENCODING)

    try:
        text = decoded.decode("utf-8")
    except UnicodeDecodeError:
        raise QrTokenError(INVALID_CONTENT)

    parts = text.split("|", 3)
    if len(parts) != 4:
        raise QrTokenError(MALFORMED)

    order_id = _parse_id(parts[0])
    user_id = _parse_id(parts[1])
    issued_at = _parse_timestamp(parts[2])

    # Re-sign the canonical form so "007" and "7" cannot carry different signatures
    expected = _sign(f"{order_id}|{user_id}|{issued_at}", secret)
    if not hmac.compare_digest(parts[3].encode(), expected.encode()):
        raise QrTokenError(INVALID_SIGNATURE)

    age = epoch_seconds(utcnow()) - issued_at
    if age > max_age_secs:
        raise QrTokenError(EXPIRED)

    return order_id, user_id


def render_qr_png(token: str) -> bytes:
    """Greyscale PNG of the token with a four-module quiet zone."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=10, border=4)
    qr.add_data(token)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white").convert("L")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()

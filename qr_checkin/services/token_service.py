"""Signed attendance tokens embedded in the scannable code."""
import base64
import hashlib
import hmac
import io
import json
import time
from dataclasses import dataclass
from typing import Callable

import qrcode

from qr_checkin.errors import ConfigurationError, InvalidSignature, TokenExpired

# Issued tokens are about 200 characters; anything far larger is not ours.
MAX_TOKEN_LENGTH = 512


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of an attendance token."""
    session_id: str
    issued_at: int  # epoch milliseconds


class TokenCodec:
    """Issue and verify ``base64(json({sessionId, issuedAt, signature}))`` tokens.

    The signature is HMAC-SHA256 over ``"<sessionId>:<issuedAt>"`` with a
    process-wide secret, so rotating the secret invalidates every outstanding
    token. Verification checks the signature before freshness and reports
    both failures with the same client-facing message.
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = 60,
        clock_skew_seconds: int = 5,
        clock: Callable[[], float] = time.time
    ):
        if not secret:
            raise ConfigurationError()
        self._secret = secret.encode('utf-8')
        self.ttl_ms = int(ttl_seconds * 1000)
        self.skew_ms = int(clock_skew_seconds * 1000)
        self._clock = clock

    @classmethod
    def from_config(cls, config, clock: Callable[[], float] = time.time) -> 'TokenCodec':
        return cls(
            secret=config.get('QR_SECRET'),
            ttl_seconds=config.get('QR_TOKEN_TTL_SECONDS', 60),
            clock_skew_seconds=config.get('QR_TOKEN_CLOCK_SKEW_SECONDS', 5),
            clock=clock
        )

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _sign(self, session_id: str, issued_at: int) -> str:
        payload = f"{session_id}:{issued_at}".encode('utf-8')
        return hmac.new(self._secret, payload, hashlib.sha256).hexdigest()

    @staticmethod
    def _serialize(record: dict) -> bytes:
        return json.dumps(record, separators=(',', ':')).encode('utf-8')

    def issue(self, session_id: str) -> str:
        issued_at = self._now_ms()
        record = {
            'sessionId': session_id,
            'issuedAt': issued_at,
            'signature': self._sign(session_id, issued_at)
        }
        return base64.b64encode(self._serialize(record)).decode('ascii')

    def verify(self, token: str) -> TokenClaims:
        if not isinstance(token, str) or not token or len(token) > MAX_TOKEN_LENGTH:
            raise InvalidSignature()

        try:
            encoded = token.encode('ascii')
            raw = base64.b64decode(encoded, validate=True)
            record = json.loads(raw.decode('utf-8'))
        except (ValueError, RecursionError):
            raise InvalidSignature()

        # Only the exact bytes issue() produces are accepted, so alternative
        # encodings of the same record never verify.
        if not isinstance(record, dict) or base64.b64encode(raw) != encoded:
            raise InvalidSignature()
        if self._serialize(record) != raw:
            raise InvalidSignature()

        session_id = record.get('sessionId')
        issued_at = record.get('issuedAt')
        signature = record.get('signature')
        if (not isinstance(session_id, str) or not session_id
                or isinstance(issued_at, bool) or not isinstance(issued_at, int)
                or not isinstance(signature, str)):
            raise InvalidSignature()

        expected = self._sign(session_id, issued_at)
        if not hmac.compare_digest(expected.encode('ascii'), signature.encode('utf-8')):
            raise InvalidSignature()

        age_ms = self._now_ms() - issued_at
        if age_ms > self.ttl_ms or age_ms < -self.skew_ms:
            raise TokenExpired()

        return TokenClaims(session_id=session_id, issued_at=issued_at)


def render_qr_image(token: str) -> str:
    """Render a token as a PNG data URI for display on the teacher's screen."""
    qr = qrcode.QRCode(
        version=None,  # Auto-determine size
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(token)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffered = io.BytesIO()
    img.save(buffered, format="PNG")
    img_str = base64.b64encode(buffered.getvalue()).decode()

    return f"data:image/png;base64,{img_str}"

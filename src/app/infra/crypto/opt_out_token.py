"""Token de opt-out de feedback assinado com HMAC-SHA256.

Formato: base64url("<session_id>:<recipient_id>:<epoch>") + "." + base64url(hmac)
sem padding. Sem a assinatura, qualquer um forjaria opt-out alheio.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from datetime import UTC, datetime

from app.protocols.opt_out import OptOutClaims
from utils.errors import InvalidOptOutTokenError


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


class HmacOptOutTokenCodec:
    """Codec de token de opt-out com integridade HMAC-SHA256.

    Args:
        secret: Segredo compartilhado (FEEDBACK_OPT_OUT_SECRET)
    """

    def __init__(self, secret: str | bytes) -> None:
        if not secret:
            raise ValueError("secret do opt-out não pode ser vazio")
        self._secret = secret.encode() if isinstance(secret, str) else secret

    def _sign(self, payload: bytes) -> bytes:
        return hmac.new(self._secret, payload, hashlib.sha256).digest()

    def encode(self, session_id: str, recipient_id: str, timestamp: datetime) -> str:
        """Gera token para (sessão, destinatário, instante)."""
        if ":" in recipient_id:
            raise ValueError("recipient_id não pode conter ':'")
        payload = f"{session_id}:{recipient_id}:{int(timestamp.timestamp())}".encode()
        return f"{_b64encode(payload)}.{_b64encode(self._sign(payload))}"

    def decode(self, token: str) -> OptOutClaims:
        """Verifica assinatura e decodifica.

        Raises:
            InvalidOptOutTokenError: Formato inválido ou assinatura incorreta.
        """
        payload_part, sep, signature_part = token.partition(".")
        if not sep or not payload_part or not signature_part:
            raise InvalidOptOutTokenError("Token de opt-out malformado")

        try:
            payload = _b64decode(payload_part)
            signature = _b64decode(signature_part)
        except (binascii.Error, ValueError) as exc:
            raise InvalidOptOutTokenError("Token de opt-out malformado") from exc

        if not hmac.compare_digest(signature, self._sign(payload)):
            raise InvalidOptOutTokenError("Assinatura do token de opt-out inválida")

        try:
            session_id, recipient_id, epoch = payload.decode().rsplit(":", 2)
            issued_at = datetime.fromtimestamp(int(epoch), tz=UTC)
        except (UnicodeDecodeError, ValueError) as exc:
            raise InvalidOptOutTokenError("Conteúdo do token de opt-out inválido") from exc

        if not session_id or not recipient_id:
            raise InvalidOptOutTokenError("Conteúdo do token de opt-out inválido")

        return OptOutClaims(session_id=session_id, recipient_id=recipient_id, issued_at=issued_at)

"""Standard Webhooks signature verification.

Render signs each delivery with HMAC-SHA256 over ``{id}.{timestamp}.{body}``
using the endpoint's ``whsec_`` secret. The ``webhook-signature`` header holds
one or more space-separated ``v1,<base64>`` entries; any match passes.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import time
from typing import Callable, Mapping

from render_relay.errors import ConfigError, VerificationError

SECRET_PREFIX = "whsec_"
SIGNATURE_VERSION = "v1"
DEFAULT_TOLERANCE = 5 * 60

HEADER_ID = "webhook-id"
HEADER_TIMESTAMP = "webhook-timestamp"
HEADER_SIGNATURE = "webhook-signature"


def _header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None:
        # Plain dicts are case-sensitive; aiohttp's CIMultiDict is not.
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                return candidate
        return ""
    return value


class WebhookVerifier:
    """Checks that a raw webhook body was signed with the shared secret."""

    def __init__(
        self,
        secret: str,
        tolerance: int = DEFAULT_TOLERANCE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ConfigError("webhook secret is empty")
        encoded = secret.removeprefix(SECRET_PREFIX)
        try:
            self._key = base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            raise ConfigError("webhook secret is not valid base64") from e
        self._tolerance = tolerance
        self._clock = clock

    def sign(self, msg_id: str, timestamp: int | str, body: bytes) -> str:
        """Return the ``v1,<base64>`` signature for a message."""
        to_sign = f"{msg_id}.{timestamp}.".encode() + body
        digest = hmac.new(self._key, to_sign, hashlib.sha256).digest()
        return f"{SIGNATURE_VERSION},{base64.b64encode(digest).decode()}"

    def verify(self, body: bytes, headers: Mapping[str, str]) -> None:
        """Raise VerificationError unless the headers carry a valid signature.

        ``body`` must be the exact bytes received; verification happens
        before any JSON decoding.
        """
        msg_id = _header(headers, HEADER_ID)
        msg_timestamp = _header(headers, HEADER_TIMESTAMP)
        msg_signature = _header(headers, HEADER_SIGNATURE)

        if not msg_id or not msg_timestamp or not msg_signature:
            raise VerificationError("Missing required headers")

        self._check_timestamp(msg_timestamp)

        expected = self.sign(msg_id, msg_timestamp, body).split(",", 1)[1]
        for versioned in msg_signature.split(" "):
            version, _, signature = versioned.partition(",")
            if version != SIGNATURE_VERSION:
                continue
            if hmac.compare_digest(expected.encode(), signature.encode()):
                return

        raise VerificationError("No matching signature found")

    def _check_timestamp(self, msg_timestamp: str) -> None:
        try:
            timestamp = int(msg_timestamp)
        except ValueError:
            raise VerificationError("Invalid Signature Headers") from None

        now = int(self._clock())
        if timestamp < now - self._tolerance:
            raise VerificationError("Message timestamp too old")
        if timestamp > now + self._tolerance:
            raise VerificationError("Message timestamp too new")

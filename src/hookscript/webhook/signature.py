"""HMAC signature verification for webhook deliveries.

GitHub signs each delivery with an HMAC of the raw request body, keyed with
the secret shared between the sender and this service. The digest travels in
a header of the form ``<algorithm>=<hex digest>``:

- ``X-Hub-Signature-256: sha256=<hex>`` (preferred)
- ``X-Hub-Signature: sha1=<hex>`` (legacy)

Verification only ever answers accept or reject. Rejection reasons are logged
at warning level and never returned to the caller, so a sender cannot use the
response to guess the secret.
"""

import hashlib
import hmac
import re
from typing import Callable, Dict, Mapping, Optional

import structlog

from .errors import AuthenticationError

logger = structlog.get_logger(__name__)

SIGNATURE_256_HEADER = "X-Hub-Signature-256"
SIGNATURE_HEADER = "X-Hub-Signature"

_HEX_RE = re.compile(r"[0-9a-fA-F]+")

# Algorithm identifiers accepted in the header prefix
DIGESTS: Dict[str, Callable] = {
    "sha256": hashlib.sha256,
    "sha1": hashlib.sha1,
}


def _check(secret: bytes, body: bytes, signature: Optional[str]) -> None:
    """Raise AuthenticationError unless ``signature`` matches ``body``."""
    if not signature:
        raise AuthenticationError("missing signature header")

    algorithm, sep, received = signature.strip().partition("=")
    if not sep:
        raise AuthenticationError("malformed signature header")

    digestmod = DIGESTS.get(algorithm.lower())
    if digestmod is None:
        raise AuthenticationError(f"unsupported signature algorithm {algorithm!r}")

    # bytes.fromhex skips whitespace, so check the digest first
    if not _HEX_RE.fullmatch(received):
        raise AuthenticationError("signature digest is not hex")
    try:
        received_digest = bytes.fromhex(received)
    except ValueError:
        raise AuthenticationError("signature digest is not hex") from None

    expected_digest = hmac.new(secret, body, digestmod).digest()
    if len(received_digest) != len(expected_digest):
        raise AuthenticationError("signature digest has the wrong length")

    if not hmac.compare_digest(expected_digest, received_digest):
        raise AuthenticationError("signature mismatch")


def verify(secret: bytes, body: bytes, signature: Optional[str]) -> bool:
    """Check a signature header value against the raw body.

    Args:
        secret: The shared webhook secret.
        body: The raw, unparsed request body.
        signature: The header value, e.g. ``sha256=<hex>``. May be None.

    Returns:
        True if the signature is a valid HMAC of ``body`` under ``secret``.
    """
    try:
        _check(secret, body, signature)
    except AuthenticationError as exc:
        logger.warning("signature_rejected", reason=exc.reason)
        return False
    return True


class SignatureVerifier:
    """Verifies deliveries against a fixed secret.

    The secret is held for the lifetime of the process and is never logged.

    Attributes:
        secret: The shared webhook secret as bytes.
    """

    def __init__(self, secret: bytes):
        if not secret:
            raise ValueError("webhook secret cannot be empty")
        self.secret = secret

    def __repr__(self) -> str:
        return "SignatureVerifier(secret=<redacted>)"

    def verify(self, body: bytes, signature: Optional[str]) -> bool:
        """Verify a single signature header value."""
        return verify(self.secret, body, signature)

    def verify_headers(self, headers: Mapping[str, str], body: bytes) -> bool:
        """Verify a delivery using whichever signature header it carries.

        ``X-Hub-Signature-256`` wins when both headers are present.

        Args:
            headers: Request headers. Names are matched case-insensitively.
            body: The raw request body.

        Returns:
            True if the delivery is authentic.
        """
        lowered = {name.lower(): value for name, value in headers.items()}
        signature = lowered.get(SIGNATURE_256_HEADER.lower()) or lowered.get(
            SIGNATURE_HEADER.lower()
        )
        return self.verify(body, signature)


def sign(secret: bytes, body: bytes, algorithm: str = "sha256") -> str:
    """Compute a signature header value for ``body``.

    Senders and tests use this to produce the value verify() accepts.
    """
    digest = hmac.new(secret, body, DIGESTS[algorithm]).hexdigest()
    return f"{algorithm}={digest}"

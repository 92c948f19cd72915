"""HMAC-SHA256 signing and verification of webhook payloads.

GitHub signs every delivery with the shared webhook secret and sends the
result in the ``x-hub-signature-256`` header as ``sha256=<hex digest>``.
"""

import hashlib
import hmac
import logging


logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def sign(secret: str, payload: str) -> str:
    """Compute the ``x-hub-signature-256`` value for a payload.

    Args:
        secret: The shared webhook secret.
        payload: The raw request body as text.

    Returns:
        The signature in the form ``sha256=<hex digest>``.

    Raises:
        ValueError: If the secret or payload is empty.
    """
    if not secret or not payload:
        raise ValueError("secret & payload required for sign()")

    digest = hmac.new(
        key=secret.encode("utf-8"),
        msg=payload.encode("utf-8"),
        digestmod=hashlib.sha256,
    ).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify(secret: str, payload: str, signature: str) -> bool:
    """Check a signature against the payload in constant time.

    Args:
        secret: The shared webhook secret.
        payload: The raw request body as text.
        signature: The value of the ``x-hub-signature-256`` header.

    Returns:
        True if the signature matches, False otherwise.

    Raises:
        ValueError: If any argument is empty.
    """
    if not secret or not payload or not signature:
        raise ValueError("secret, payload & signature required")

    expected = sign(secret, payload).encode("utf-8")
    supplied = signature.encode("utf-8")

    if len(expected) != len(supplied):
        logger.debug(
            "Signature length mismatch",
            extra={"expected_length": len(expected), "supplied_length": len(supplied)},
        )
        return False

    return hmac.compare_digest(expected, supplied)

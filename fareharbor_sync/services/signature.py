"""
Webhook Signature Verification

FareHarbor signs the exact request body with HMAC-SHA256 using the shared
webhook secret and sends the hex digest, optionally prefixed "sha256=".
The digest must be computed over the raw bytes, before any JSON parsing.
"""

import hashlib
import hmac
import logging
from typing import Optional

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the body keyed with the shared secret"""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, secret: Optional[str], signature: Optional[str]) -> bool:
    """
    Decide whether a webhook body was signed with the shared secret.

    Returns True without checking anything when no secret is configured.
    Never raises: any failure while computing or comparing is a rejection.
    """
    if not secret:
        return True

    if not signature:
        logger.warning("Missing webhook signature header")
        return False

    try:
        provided = signature.strip()
        if provided.startswith(SIGNATURE_PREFIX):
            provided = provided[len(SIGNATURE_PREFIX):]

        expected = compute_signature(raw_body, secret)
        # Compare in constant time
        return hmac.compare_digest(expected, provided)
    except Exception as e:
        logger.warning(f"Webhook signature check failed: {e}")
        return False

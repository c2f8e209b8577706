"""Integrity hash: a local SHA-256 tamper-evidence token.

The digest covers the certificate id, both parties' emails, the
certificate name and an issuance nonce.  It is computed once at issuance
and never recomputed, so verification only checks its shape; the nonce
is not stored.
"""

from __future__ import annotations

import hashlib
import re
import secrets
import time
from uuid import UUID

HASH_PREFIX = "0x"
HASH_LENGTH = 66
HASH_PATTERN = re.compile(r"^0x[0-9a-f]{64}$")


def issuance_nonce() -> str:
    """Nanosecond clock plus 128 random bits.

    Two certificates issued in the same clock tick still get distinct
    digests.
    """
    return f"{time.time_ns()}:{secrets.token_hex(16)}"


def compute_integrity_hash(
    *,
    certificate_id: UUID,
    holder_email: str,
    issuer_email: str,
    name: str,
    nonce: str | None = None,
) -> str:
    if nonce is None:
        nonce = issuance_nonce()
    material = f"{certificate_id}{holder_email}{issuer_email}{name}{nonce}"
    return HASH_PREFIX + hashlib.sha256(material.encode("utf-8")).hexdigest()


def is_well_formed_hash(value: str | None) -> bool:
    return value is not None and HASH_PATTERN.fullmatch(value) is not None

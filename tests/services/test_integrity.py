from __future__ import annotations

from uuid import UUID

import pytest

from app.services.integrity import (
    HASH_LENGTH,
    compute_integrity_hash,
    is_well_formed_hash,
)

CERT_ID = UUID("12345678-1234-5678-1234-567812345678")


def _hash(nonce: str | None = None, **overrides) -> str:
    fields = {
        "certificate_id": CERT_ID,
        "holder_email": "alice@example.com",
        "issuer_email": "bob@example.com",
        "name": "Backend Cert",
    }
    fields.update(overrides)
    return compute_integrity_hash(nonce=nonce, **fields)


def test_hash_shape() -> None:
    value = _hash()
    assert value.startswith("0x")
    assert len(value) == HASH_LENGTH
    assert is_well_formed_hash(value)


def test_same_inputs_and_nonce_give_same_hash() -> None:
    assert _hash(nonce="n1") == _hash(nonce="n1")


def test_every_field_feeds_the_digest() -> None:
    base = _hash(nonce="n1")
    assert _hash(nonce="n2") != base
    assert _hash(nonce="n1", name="Other") != base
    assert _hash(nonce="n1", holder_email="carol@example.com") != base
    assert _hash(nonce="n1", issuer_email="dave@example.com") != base


def test_fresh_nonce_per_call() -> None:
    assert len({_hash() for _ in range(20)}) == 20


@pytest.mark.parametrize(
    "value,ok",
    [
        ("0x" + "0" * 64, True),
        ("0x" + "f" * 64, True),
        (None, False),
        ("", False),
        ("0x", False),
        ("0X" + "a" * 64, False),
        ("0x" + "a" * 65, False),
        ("0x" + "a" * 63 + "\n", False),
    ],
)
def test_is_well_formed_hash(value: str | None, ok: bool) -> None:
    assert is_well_formed_hash(value) is ok

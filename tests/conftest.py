"""Shared fixtures for the Turbo client tests."""

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from turbo_client.utils import b64url_encode

ETHEREUM_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


def _encode_int(value: int) -> str:
    return b64url_encode(value.to_bytes((value.bit_length() + 7) // 8, "big"))


@pytest.fixture(scope="session")
def rsa_key():
    """A fresh RSA-4096 key (the Arweave wallet size)."""
    return rsa.generate_private_key(public_exponent=65537, key_size=4096)


@pytest.fixture(scope="session")
def arweave_jwk(rsa_key):
    """The RSA key as an Arweave JWK."""
    numbers = rsa_key.private_numbers()
    public = numbers.public_numbers
    return {
        "kty": "RSA",
        "n": _encode_int(public.n),
        "e": _encode_int(public.e),
        "d": _encode_int(numbers.d),
        "p": _encode_int(numbers.p),
        "q": _encode_int(numbers.q),
        "dp": _encode_int(numbers.dmp1),
        "dq": _encode_int(numbers.dmq1),
        "qi": _encode_int(numbers.iqmp),
    }


@pytest.fixture
def ethereum_private_key():
    return ETHEREUM_PRIVATE_KEY

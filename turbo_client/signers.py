"""
Turbo Client - Wallet Signers

One ``Signer`` protocol, one independent adapter per wallet family.
Adapters hold key material privately and only expose the address,
the token type and signing operations.

Usage:
    signer = ArweaveSigner.from_keyfile("wallet.json")
    signed = signer.sign_data_item(DataItem.create(b"hello"))

    signer = create_signer("0xabc...", TokenType.ETHEREUM)
"""

from __future__ import annotations

import hashlib
import json
from os import PathLike
from typing import Any, Protocol, runtime_checkable

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys import keys

from .bundles import ARWEAVE_SIGNATURE, ETHEREUM_SIGNATURE, sign_item
from .exceptions import ConfigurationError, SigningError, ValidationError, WalletKeyError
from .models import DataItem, SignedDataItem, TokenType
from .utils import b64url_decode, b64url_encode


ARWEAVE_KEY_BITS = 4096
PSS_SALT_LENGTH = 32

# Networks whose wallets sign with secp256k1 / EIP-191.
ETHEREUM_TOKENS = frozenset({TokenType.ETHEREUM, TokenType.BASE_ETH, TokenType.POLYGON})


@runtime_checkable
class Signer(Protocol):
    """Capability interface implemented by every wallet adapter."""

    @property
    def token_type(self) -> TokenType: ...

    def get_native_address(self) -> str:
        """
        Return the wallet's address in its network's native format.

        Raises:
            WalletKeyError: If no address can be derived from the wallet.
        """
        ...

    def sign(self, data: bytes) -> bytes:
        """
        Sign raw bytes with the wallet's signature scheme.

        Raises:
            SigningError: On cryptographic failure.
        """
        ...

    def sign_data_item(self, item: DataItem) -> SignedDataItem:
        """
        Serialize, sign and lay out a data item.

        Raises:
            SigningError: If the item cannot be signed or the result is empty.
        """
        ...


# =============================================================================
# ARWEAVE
# =============================================================================


def _jwk_int(jwk: dict[str, Any], name: str) -> int:
    return int.from_bytes(b64url_decode(jwk[name]), "big")


class ArweaveSigner:
    """
    Signer for Arweave RSA-4096 wallets (JWK).

    Signatures are RSA-PSS with SHA-256 and a 32-byte salt. The owner
    field is the public modulus and the address is its base64url SHA-256.
    """

    def __init__(self, jwk: dict[str, Any]) -> None:
        """
        Initialize from a JWK mapping.

        Args:
            jwk: Arweave wallet JWK (``kty``, ``n``, ``e``, ``d``, ``p``, ``q``,
                ``dp``, ``dq``, ``qi``).

        Raises:
            ValidationError: If the JWK is malformed or not an RSA-4096 key.
        """
        if not isinstance(jwk, dict):
            raise ValidationError("Arweave private key must be a JWK mapping", field="jwk")
        if jwk.get("kty", "RSA") != "RSA":
            raise ValidationError(f"Unsupported JWK key type: {jwk.get('kty')}", field="jwk")

        try:
            public_numbers = rsa.RSAPublicNumbers(_jwk_int(jwk, "e"), _jwk_int(jwk, "n"))
            private_numbers = rsa.RSAPrivateNumbers(
                p=_jwk_int(jwk, "p"),
                q=_jwk_int(jwk, "q"),
                d=_jwk_int(jwk, "d"),
                dmp1=_jwk_int(jwk, "dp"),
                dmq1=_jwk_int(jwk, "dq"),
                iqmp=_jwk_int(jwk, "qi"),
                public_numbers=public_numbers,
            )
            self._key = private_numbers.private_key()
        except KeyError as e:
            raise ValidationError(f"JWK is missing field {e.args[0]!r}", field="jwk") from e
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid Arweave JWK: {e}", field="jwk") from e

        if self._key.key_size != ARWEAVE_KEY_BITS:
            raise ValidationError(
                f"Arweave keys must be {ARWEAVE_KEY_BITS}-bit RSA, got {self._key.key_size}",
                field="jwk",
            )

        self._owner = public_numbers.n.to_bytes(ARWEAVE_SIGNATURE.owner_length, "big")
        self._address = b64url_encode(hashlib.sha256(self._owner).digest())

    @classmethod
    def from_keyfile(cls, path: str | PathLike[str]) -> ArweaveSigner:
        """
        Load a signer from a JWK keyfile.

        Raises:
            ValidationError: If the file cannot be read or parsed.
        """
        try:
            with open(path, encoding="utf-8") as keyfile:
                jwk = json.load(keyfile)
        except (OSError, json.JSONDecodeError) as e:
            raise ValidationError(f"Cannot load keyfile {path}: {e}", field="keyfile") from e
        return cls(jwk)

    @property
    def token_type(self) -> TokenType:
        return TokenType.ARWEAVE

    @property
    def owner(self) -> bytes:
        return self._owner

    def get_native_address(self) -> str:
        if not self._address:
            raise WalletKeyError("Arweave wallet has no address")
        return self._address

    def sign(self, data: bytes) -> bytes:
        try:
            return self._key.sign(
                data,
                padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=PSS_SALT_LENGTH),
                hashes.SHA256(),
            )
        except (TypeError, ValueError) as e:
            raise SigningError(f"Failed to sign data: {e}", cause=e) from e

    def sign_data_item(self, item: DataItem) -> SignedDataItem:
        signed = sign_item(ARWEAVE_SIGNATURE, self._owner, item, self.sign)
        if not signed.binary:
            raise SigningError("Failed to generate signed data item binary")
        return signed

    def __repr__(self) -> str:
        return f"ArweaveSigner(address={self._address!r})"


# =============================================================================
# ETHEREUM
# =============================================================================


class EthereumSigner:
    """
    Signer for secp256k1 wallets (Ethereum, Base, Polygon).

    Messages are signed as EIP-191 personal messages. The owner field is
    the uncompressed public key.
    """

    def __init__(self, private_key: str, token_type: TokenType = TokenType.ETHEREUM) -> None:
        """
        Initialize from a hex private key.

        Args:
            private_key: 32-byte private key as hex, with or without ``0x``.
            token_type: Network the wallet pays on.

        Raises:
            ConfigurationError: If the token type does not use Ethereum signatures.
            ValidationError: If the key is malformed.
        """
        token_type = TokenType(token_type)
        if token_type not in ETHEREUM_TOKENS:
            raise ConfigurationError(
                f"Token type {token_type.value} does not use Ethereum signatures",
                config_key="token",
            )
        if not isinstance(private_key, str):
            raise ValidationError("Ethereum private key must be a hex string", field="private_key")

        key_hex = private_key[2:] if private_key.startswith(("0x", "0X")) else private_key
        try:
            key_bytes = bytes.fromhex(key_hex)
        except ValueError as e:
            raise ValidationError("Ethereum private key is not valid hex", field="private_key") from e
        if len(key_bytes) != 32:
            raise ValidationError(
                f"Ethereum private key must be 32 bytes, got {len(key_bytes)}",
                field="private_key",
            )

        try:
            self._account = Account.from_key(key_bytes)
            public_key = keys.PrivateKey(key_bytes).public_key
        except Exception as e:
            raise ValidationError(f"Invalid Ethereum private key: {e}", field="private_key") from e

        self._token_type = token_type
        self._owner = b"\x04" + public_key.to_bytes()

    @property
    def token_type(self) -> TokenType:
        return self._token_type

    @property
    def owner(self) -> bytes:
        return self._owner

    def get_native_address(self) -> str:
        address = self._account.address
        if not address:
            raise WalletKeyError("Ethereum wallet has no address")
        return address

    def sign(self, data: bytes) -> bytes:
        try:
            signed = self._account.sign_message(encode_defunct(primitive=data))
        except (TypeError, ValueError) as e:
            raise SigningError(f"Failed to sign data: {e}", cause=e) from e
        return bytes(signed.signature)

    def sign_data_item(self, item: DataItem) -> SignedDataItem:
        signed = sign_item(ETHEREUM_SIGNATURE, self._owner, item, self.sign)
        if not signed.binary:
            raise SigningError("Failed to generate signed data item binary")
        return signed

    def __repr__(self) -> str:
        return f"EthereumSigner(address={self._account.address!r}, token={self._token_type.value!r})"


# =============================================================================
# FACTORY
# =============================================================================


def create_signer(private_key: Any, token_type: TokenType | str) -> Signer:
    """
    Build the adapter for ``token_type`` from raw key material.

    Args:
        private_key: JWK mapping for Arweave, hex string for Ethereum-family tokens.
        token_type: The wallet's network.

    Returns:
        A signer for the wallet.

    Raises:
        ConfigurationError: If the token type is unknown or has no signer.
        ValidationError: If the key material is malformed.
    """
    try:
        token = TokenType(token_type)
    except ValueError as e:
        raise ConfigurationError(f"Unknown token type: {token_type}", config_key="token") from e

    if token is TokenType.ARWEAVE:
        if not isinstance(private_key, dict):
            raise ValidationError("Arweave private key must be a JWK mapping", field="private_key")
        return ArweaveSigner(private_key)

    if token in ETHEREUM_TOKENS:
        if not isinstance(private_key, str):
            raise ValidationError("Ethereum private key must be a hex string", field="private_key")
        return EthereumSigner(private_key, token)

    raise ConfigurationError(f"Unsupported token type: {token.value}", config_key="token")

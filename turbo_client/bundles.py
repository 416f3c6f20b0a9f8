"""
Turbo Client - ANS-104 Data Item Serialization

Canonical signable format and binary layout of Arweave bundle data items.

Binary layout (integers little-endian):

    signature type      2 bytes
    signature           signature_length bytes
    owner               owner_length bytes
    target flag         1 byte  (+32 bytes when set)
    anchor flag         1 byte  (+32 bytes when set)
    tag count           8 bytes
    tag bytes length    8 bytes
    tags                Avro-encoded array of {name, value}
    data                remaining bytes

The signature covers the SHA-384 deep hash of
``["dataitem", "1", signature type, owner, target, anchor, tags, data]``
and the item id is the base64url SHA-256 of the signature.
"""

from __future__ import annotations

import hashlib
import struct
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Union

from .exceptions import SigningError
from .models import DataItem, SignedDataItem, Tag
from .utils import b64url_decode, b64url_encode

MAX_TAGS = 128
MAX_TAG_NAME_BYTES = 1024
MAX_TAG_VALUE_BYTES = 3072
TARGET_LENGTH = 32
ANCHOR_LENGTH = 32

DeepHashChunk = Union[bytes, Sequence["DeepHashChunk"]]


@dataclass(frozen=True)
class SignatureConfig:
    """Per-scheme sizes of the signature and owner fields."""

    signature_type: int
    signature_length: int
    owner_length: int
    name: str


ARWEAVE_SIGNATURE = SignatureConfig(1, 512, 512, "arweave")
ETHEREUM_SIGNATURE = SignatureConfig(3, 65, 65, "ethereum")

SIGNATURE_CONFIGS = {
    config.signature_type: config for config in (ARWEAVE_SIGNATURE, ETHEREUM_SIGNATURE)
}


@dataclass(frozen=True)
class ParsedDataItem:
    """Fields read back from a serialized data item."""

    signature_type: int
    signature: bytes
    owner: bytes
    target: bytes
    anchor: bytes
    tags: list[Tag]
    data: bytes

    @property
    def id(self) -> str:
        return item_id(self.signature)


# =============================================================================
# HASHING
# =============================================================================


def _sha384(data: bytes) -> bytes:
    return hashlib.sha384(data).digest()


def deep_hash(chunk: DeepHashChunk) -> bytes:
    """SHA-384 deep hash of a byte string or a (nested) list of them."""
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        data = bytes(chunk)
        tag = b"blob" + str(len(data)).encode()
        return _sha384(_sha384(tag) + _sha384(data))

    acc = _sha384(b"list" + str(len(chunk)).encode())
    for item in chunk:
        acc = _sha384(acc + deep_hash(item))
    return acc


def item_id(signature: bytes) -> str:
    return b64url_encode(hashlib.sha256(signature).digest())


# =============================================================================
# AVRO TAG ENCODING
# =============================================================================


def _write_long(value: int) -> bytes:
    encoded = (value << 1) ^ (value >> 63)
    out = bytearray()
    while encoded & ~0x7F:
        out.append((encoded & 0x7F) | 0x80)
        encoded >>= 7
    out.append(encoded)
    return bytes(out)


def _read_long(buffer: bytes, offset: int) -> tuple[int, int]:
    shift = 0
    encoded = 0
    while True:
        if offset >= len(buffer):
            raise ValueError("Truncated varint in tag bytes")
        byte = buffer[offset]
        offset += 1
        encoded |= (byte & 0x7F) << shift
        shift += 7
        if not byte & 0x80:
            break
    return (encoded >> 1) ^ -(encoded & 1), offset


def _write_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return _write_long(len(raw)) + raw


def _read_string(buffer: bytes, offset: int) -> tuple[str, int]:
    length, offset = _read_long(buffer, offset)
    end = offset + length
    if length < 0 or end > len(buffer):
        raise ValueError("Truncated string in tag bytes")
    return buffer[offset:end].decode("utf-8"), end


def validate_tags(tags: Sequence[Tag]) -> None:
    """
    Check tags against the ANS-104 limits.

    Raises:
        SigningError: If a limit is exceeded.
    """
    if len(tags) > MAX_TAGS:
        raise SigningError(f"Too many tags: {len(tags)} (max {MAX_TAGS})")
    for tag in tags:
        name_length = len(tag.name.encode("utf-8"))
        value_length = len(tag.value.encode("utf-8"))
        if not 0 < name_length <= MAX_TAG_NAME_BYTES:
            raise SigningError(
                f"Tag name must be 1-{MAX_TAG_NAME_BYTES} bytes, got {name_length}"
            )
        if not 0 < value_length <= MAX_TAG_VALUE_BYTES:
            raise SigningError(
                f"Tag value for {tag.name!r} must be 1-{MAX_TAG_VALUE_BYTES} bytes, "
                f"got {value_length}"
            )


def serialize_tags(tags: Sequence[Tag]) -> bytes:
    """Avro-encode tags in the given order. No tags encode to ``b""``."""
    if not tags:
        return b""
    parts = [_write_long(len(tags))]
    for tag in tags:
        parts.append(_write_string(tag.name))
        parts.append(_write_string(tag.value))
    parts.append(_write_long(0))
    return b"".join(parts)


def deserialize_tags(buffer: bytes) -> list[Tag]:
    """Decode Avro-encoded tags."""
    tags: list[Tag] = []
    if not buffer:
        return tags
    offset = 0
    while True:
        count, offset = _read_long(buffer, offset)
        if count == 0:
            break
        if count < 0:
            # Negative block count is followed by the block's byte size.
            count = -count
            _, offset = _read_long(buffer, offset)
        for _ in range(count):
            name, offset = _read_string(buffer, offset)
            value, offset = _read_string(buffer, offset)
            tags.append(Tag(name=name, value=value))
    return tags


# =============================================================================
# SIGNING & LAYOUT
# =============================================================================


def _raw_target(target: str | None) -> bytes:
    if not target:
        return b""
    try:
        raw = b64url_decode(target)
    except ValueError as e:
        raise SigningError(f"Target is not valid base64url: {target!r}", cause=e) from e
    if len(raw) != TARGET_LENGTH:
        raise SigningError(
            f"Target must decode to {TARGET_LENGTH} bytes, got {len(raw)}"
        )
    return raw


def _raw_anchor(anchor: str | None) -> bytes:
    if not anchor:
        return b""
    raw = anchor.encode("utf-8")
    if len(raw) != ANCHOR_LENGTH:
        raise SigningError(f"Anchor must be {ANCHOR_LENGTH} bytes, got {len(raw)}")
    return raw


def signature_payload(config: SignatureConfig, owner: bytes, item: DataItem) -> bytes:
    """The message a wallet signs for ``item``."""
    validate_tags(item.tags)
    return deep_hash(
        [
            b"dataitem",
            b"1",
            str(config.signature_type).encode(),
            owner,
            _raw_target(item.target),
            _raw_anchor(item.anchor),
            serialize_tags(item.tags),
            item.data,
        ]
    )


def assemble(
    config: SignatureConfig, signature: bytes, owner: bytes, item: DataItem
) -> bytes:
    """Lay out a signed data item as its binary wire form."""
    if len(signature) != config.signature_length:
        raise SigningError(
            f"{config.name} signature must be {config.signature_length} bytes, "
            f"got {len(signature)}"
        )
    if len(owner) != config.owner_length:
        raise SigningError(
            f"{config.name} owner must be {config.owner_length} bytes, got {len(owner)}"
        )

    target = _raw_target(item.target)
    anchor = _raw_anchor(item.anchor)
    tags = serialize_tags(item.tags)

    return b"".join(
        [
            struct.pack("<H", config.signature_type),
            signature,
            owner,
            b"\x01" + target if target else b"\x00",
            b"\x01" + anchor if anchor else b"\x00",
            struct.pack("<QQ", len(item.tags), len(tags)),
            tags,
            item.data,
        ]
    )


def sign_item(
    config: SignatureConfig,
    owner: bytes,
    item: DataItem,
    sign: Callable[[bytes], bytes],
) -> SignedDataItem:
    """
    Serialize, sign and lay out ``item``.

    Args:
        config: Signature scheme sizes.
        owner: The signer's owner field (public key material).
        item: The unsigned data item.
        sign: Wallet signature function applied to the deep hash.

    Returns:
        The signed data item.

    Raises:
        SigningError: If the item is malformed or the wallet fails to sign.
    """
    message = signature_payload(config, owner, item)
    try:
        signature = sign(message)
    except SigningError:
        raise
    except Exception as e:
        raise SigningError(f"Failed to sign data item: {e}", cause=e) from e

    binary = assemble(config, signature, owner, item)
    return SignedDataItem(
        id=item_id(signature), binary=binary, signature=signature, owner=owner
    )


def parse_data_item(binary: bytes) -> ParsedDataItem:
    """
    Read a serialized data item back into its fields.

    Raises:
        ValueError: If the binary is truncated or uses an unknown signature type.
    """
    if len(binary) < 2:
        raise ValueError("Data item is too short")
    (signature_type,) = struct.unpack_from("<H", binary, 0)
    config = SIGNATURE_CONFIGS.get(signature_type)
    if config is None:
        raise ValueError(f"Unknown signature type: {signature_type}")

    offset = 2
    signature = binary[offset : offset + config.signature_length]
    offset += config.signature_length
    owner = binary[offset : offset + config.owner_length]
    offset += config.owner_length

    fields = []
    for length in (TARGET_LENGTH, ANCHOR_LENGTH):
        if offset >= len(binary):
            raise ValueError("Data item is truncated")
        present = binary[offset]
        offset += 1
        if present:
            fields.append(binary[offset : offset + length])
            offset += length
        else:
            fields.append(b"")

    if offset + 16 > len(binary):
        raise ValueError("Data item is truncated")
    tag_count, tags_length = struct.unpack_from("<QQ", binary, offset)
    offset += 16
    tags = deserialize_tags(binary[offset : offset + tags_length])
    if len(tags) != tag_count:
        raise ValueError(f"Expected {tag_count} tags, decoded {len(tags)}")
    offset += tags_length

    return ParsedDataItem(
        signature_type=signature_type,
        signature=signature,
        owner=owner,
        target=fields[0],
        anchor=fields[1],
        tags=tags,
        data=binary[offset:],
    )

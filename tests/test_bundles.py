"""Tests for ANS-104 data item serialization."""

import hashlib
import struct

import pytest

from turbo_client.bundles import (
    ETHEREUM_SIGNATURE,
    assemble,
    deep_hash,
    deserialize_tags,
    item_id,
    parse_data_item,
    serialize_tags,
    sign_item,
    signature_payload,
)
from turbo_client.exceptions import SigningError
from turbo_client.models import DataItem, Tag
from turbo_client.utils import b64url_encode

SIGNATURE = b"\x01" * 65
OWNER = b"\x04" + b"\x02" * 64
TARGET_RAW = bytes(range(32))
TARGET = b64url_encode(TARGET_RAW)
ANCHOR = "a" * 32


def sha384(data):
    return hashlib.sha384(data).digest()


# =============================================================================
# Deep Hash Tests
# =============================================================================


class TestDeepHash:
    """Tests for the SHA-384 deep hash."""

    def test_blob(self):
        expected = sha384(sha384(b"blob3") + sha384(b"abc"))

        assert deep_hash(b"abc") == expected

    def test_list(self):
        acc = sha384(b"list2")
        acc = sha384(acc + deep_hash(b"a"))
        acc = sha384(acc + deep_hash(b"bc"))

        assert deep_hash([b"a", b"bc"]) == acc

    def test_nested_list(self):
        inner = deep_hash([b"x"])
        expected = sha384(sha384(b"list1") + inner)

        assert deep_hash([[b"x"]]) == expected

    def test_order_sensitive(self):
        assert deep_hash([b"a", b"b"]) != deep_hash([b"b", b"a"])


# =============================================================================
# Tag Encoding Tests
# =============================================================================


class TestTagEncoding:
    """Tests for Avro tag encoding."""

    def test_no_tags_encode_empty(self):
        assert serialize_tags([]) == b""

    def test_single_tag(self):
        encoded = serialize_tags([Tag(name="a", value="b")])

        assert encoded == bytes([0x02, 0x02, ord("a"), 0x02, ord("b"), 0x00])

    def test_multibyte_length(self):
        """Lengths of 64 and above need two varint bytes."""
        encoded = serialize_tags([Tag(name="n" * 64, value="v")])

        assert encoded[:3] == bytes([0x02, 0x80, 0x01])

    def test_round_trip_keeps_order_and_duplicates(self):
        tags = [
            Tag(name="Content-Type", value="text/plain"),
            Tag(name="App", value="1"),
            Tag(name="App", value="1"),
            Tag(name="Émoji", value="✓"),
        ]

        assert deserialize_tags(serialize_tags(tags)) == tags

    def test_deserialize_empty(self):
        assert deserialize_tags(b"") == []


# =============================================================================
# Layout Tests
# =============================================================================


class TestAssemble:
    """Tests for the binary layout."""

    def test_layout_without_target_or_anchor(self):
        item = DataItem.create(b"hello", [("a", "b")])

        binary = assemble(ETHEREUM_SIGNATURE, SIGNATURE, OWNER, item)

        assert binary[:2] == struct.pack("<H", 3)
        assert binary[2:67] == SIGNATURE
        assert binary[67:132] == OWNER
        assert binary[132:134] == b"\x00\x00"
        tag_count, tags_length = struct.unpack_from("<QQ", binary, 134)
        assert tag_count == 1
        assert tags_length == 6
        assert binary[150:156] == serialize_tags(item.tags)
        assert binary[156:] == b"hello"

    def test_layout_with_target_and_anchor(self):
        item = DataItem.create(b"data", target=TARGET, anchor=ANCHOR)

        parsed = parse_data_item(assemble(ETHEREUM_SIGNATURE, SIGNATURE, OWNER, item))

        assert parsed.signature_type == 3
        assert parsed.signature == SIGNATURE
        assert parsed.owner == OWNER
        assert parsed.target == TARGET_RAW
        assert parsed.anchor == ANCHOR.encode()
        assert parsed.tags == []
        assert parsed.data == b"data"

    def test_wrong_signature_length(self):
        with pytest.raises(SigningError):
            assemble(ETHEREUM_SIGNATURE, b"short", OWNER, DataItem.create(b"x"))

    def test_wrong_owner_length(self):
        with pytest.raises(SigningError):
            assemble(ETHEREUM_SIGNATURE, SIGNATURE, b"short", DataItem.create(b"x"))


class TestItemValidation:
    """Tests for ANS-104 field limits."""

    def test_target_must_be_32_bytes(self):
        item = DataItem.create(b"x", target=b64url_encode(b"short"))

        with pytest.raises(SigningError):
            signature_payload(ETHEREUM_SIGNATURE, OWNER, item)

    def test_anchor_must_be_32_bytes(self):
        item = DataItem.create(b"x", anchor="too-short")

        with pytest.raises(SigningError):
            signature_payload(ETHEREUM_SIGNATURE, OWNER, item)

    def test_too_many_tags(self):
        item = DataItem.create(b"x", [("k", "v")] * 129)

        with pytest.raises(SigningError):
            signature_payload(ETHEREUM_SIGNATURE, OWNER, item)

    def test_empty_tag_name(self):
        item = DataItem.create(b"x", [("", "v")])

        with pytest.raises(SigningError):
            signature_payload(ETHEREUM_SIGNATURE, OWNER, item)

    def test_tag_value_too_long(self):
        item = DataItem.create(b"x", [("k", "v" * 3073)])

        with pytest.raises(SigningError):
            signature_payload(ETHEREUM_SIGNATURE, OWNER, item)


# =============================================================================
# Signing Tests
# =============================================================================


class TestSignItem:
    """Tests for sign_item."""

    def test_signs_deep_hash(self):
        item = DataItem.create(b"Hello, Turbo!", [("Content-Type", "text/plain")])
        messages = []

        def sign(message):
            messages.append(message)
            return SIGNATURE

        signed = sign_item(ETHEREUM_SIGNATURE, OWNER, item, sign)

        assert messages == [
            deep_hash(
                [
                    b"dataitem",
                    b"1",
                    b"3",
                    OWNER,
                    b"",
                    b"",
                    serialize_tags(item.tags),
                    b"Hello, Turbo!",
                ]
            )
        ]
        assert signed.signature == SIGNATURE
        assert signed.owner == OWNER
        assert signed.id == b64url_encode(hashlib.sha256(SIGNATURE).digest())
        assert signed.size > 0
        assert parse_data_item(signed.binary).data == b"Hello, Turbo!"

    def test_tag_order_changes_signature_payload(self):
        first = DataItem.create(b"x", [("a", "1"), ("b", "2")])
        second = DataItem.create(b"x", [("b", "2"), ("a", "1")])

        assert signature_payload(ETHEREUM_SIGNATURE, OWNER, first) != signature_payload(
            ETHEREUM_SIGNATURE, OWNER, second
        )

    def test_wallet_failure_becomes_signing_error(self):
        def sign(message):
            raise RuntimeError("hardware wallet unplugged")

        with pytest.raises(SigningError) as exc:
            sign_item(ETHEREUM_SIGNATURE, OWNER, DataItem.create(b"x"), sign)

        assert isinstance(exc.value.cause, RuntimeError)
        assert exc.value.stage == "signing"

    def test_parsed_id_matches(self):
        signed = sign_item(ETHEREUM_SIGNATURE, OWNER, DataItem.create(b"x"), lambda m: SIGNATURE)

        assert parse_data_item(signed.binary).id == signed.id == item_id(SIGNATURE)


class TestParseDataItem:
    def test_unknown_signature_type(self):
        with pytest.raises(ValueError):
            parse_data_item(struct.pack("<H", 99) + b"\x00" * 10)

    def test_truncated(self):
        with pytest.raises(ValueError):
            parse_data_item(struct.pack("<H", 3) + b"\x00" * 10)

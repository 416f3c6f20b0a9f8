"""
Turbo Client - Data Models

Pydantic models for the payloads exchanged with the Turbo payment and
upload services, plus the unsigned and signed data item types handed
to and returned from signers.
"""

from __future__ import annotations

from enum import Enum
from typing import IO, Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class TokenType(str, Enum):
    """Blockchain / wallet networks known to the Turbo services."""

    ARWEAVE = "arweave"
    ETHEREUM = "ethereum"
    SOLANA = "solana"
    POLYGON = "pol"
    KYVE = "kyve"
    BASE_ETH = "base-eth"
    ARIO = "ario"


def _to_winston(value: Any) -> Any:
    """Parse a winston amount; absent or empty means zero."""
    if value is None or value == "":
        return 0
    if isinstance(value, str):
        return int(value.strip())
    return value


# =============================================================================
# DATA ITEMS
# =============================================================================


class Tag(BaseModel):
    """A name/value metadata pair attached to a data item."""

    name: str
    value: str

    model_config = ConfigDict(frozen=True)


class DataItem(BaseModel):
    """
    An unsigned data item: payload plus metadata.

    Tags keep the caller's order and duplicates. The network's digest
    over tags is order-sensitive, so they are never sorted or merged.
    """

    data: bytes = b""
    tags: tuple[Tag, ...] = ()
    target: str | None = None
    anchor: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> Any:
        if value is None:
            return ()
        coerced = []
        for tag in value:
            if isinstance(tag, (tuple, list)) and len(tag) == 2:
                tag = {"name": tag[0], "value": tag[1]}
            coerced.append(tag)
        return tuple(coerced)

    @field_validator("target", "anchor", mode="before")
    @classmethod
    def _empty_as_none(cls, value: Any) -> Any:
        return value or None

    @classmethod
    def create(
        cls,
        data: bytes,
        tags: Iterable[Tag | dict[str, str] | tuple[str, str]] | None = None,
        target: str | None = None,
        anchor: str | None = None,
    ) -> DataItem:
        """Create a data item from in-memory bytes."""
        return cls(data=bytes(data), tags=tags, target=target, anchor=anchor)

    @classmethod
    def from_reader(
        cls,
        reader: IO[bytes],
        tags: Iterable[Tag | dict[str, str] | tuple[str, str]] | None = None,
        target: str | None = None,
        anchor: str | None = None,
    ) -> DataItem:
        """Create a data item by reading ``reader`` to the end."""
        return cls.create(reader.read(), tags, target, anchor)


class SignedDataItem(BaseModel):
    """A signed data item ready for transport."""

    id: str = Field(description="Item identifier (base64url SHA-256 of the signature)")
    binary: bytes = Field(description="Serialized signed data item")
    signature: bytes = b""
    owner: bytes = b""

    model_config = ConfigDict(frozen=True)

    @property
    def size(self) -> int:
        return len(self.binary)


# =============================================================================
# SERVICE RESPONSES
# =============================================================================


class Balance(BaseModel):
    """Credit balance of a wallet, in winston credits."""

    winc: int = Field(default=0, description="Balance in winston credits")
    credits: str | None = Field(default=None, description="Human-readable credits")
    currency: str | None = None
    controlled_winc: int | None = Field(default=None, alias="controlledWinc")
    effective_balance: int | None = Field(default=None, alias="effectiveBalance")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("winc", mode="before")
    @classmethod
    def _parse_winc(cls, value: Any) -> Any:
        return _to_winston(value)

    @field_validator("controlled_winc", "effective_balance", mode="before")
    @classmethod
    def _parse_optional_winc(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return _to_winston(value)

    @field_serializer("winc", "controlled_winc", "effective_balance", when_used="json")
    def _serialize_winc(self, value: int | None) -> str | None:
        return None if value is None else str(value)


class UploadCost(BaseModel):
    """Price of uploading a given number of bytes."""

    winc: int = Field(default=0, description="Price in winston credits")
    bytes: int | None = Field(default=None, description="Byte count that was priced")
    adjustments: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("winc", mode="before")
    @classmethod
    def _parse_winc(cls, value: Any) -> Any:
        return _to_winston(value)

    @field_validator("adjustments", mode="before")
    @classmethod
    def _fold_adjustments(cls, value: Any) -> Any:
        # The service may send a list of adjustment objects.
        if value is None:
            return {}
        if isinstance(value, list):
            folded: dict[str, Any] = {}
            for index, entry in enumerate(value):
                key = entry.get("name") if isinstance(entry, dict) else None
                folded[str(key or index)] = entry
            return folded
        return value

    @field_serializer("winc", when_used="json")
    def _serialize_winc(self, value: int) -> str:
        return str(value)


class UploadResult(BaseModel):
    """Receipt returned by the upload service for an accepted data item."""

    id: str
    owner: str
    data_caches: list[str] = Field(default_factory=list, alias="dataCaches")
    fast_finality_indexes: list[str] = Field(
        default_factory=list, alias="fastFinalityIndexes"
    )
    validator_signatures: list[Any] = Field(
        default_factory=list, alias="validatorSignatures"
    )
    deadline_height: int | None = Field(default=None, alias="deadlineHeight")
    block: int | None = None
    timestamp: int | None = None
    public: str | None = None
    signature: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator(
        "data_caches", "fast_finality_indexes", "validator_signatures", mode="before"
    )
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

"""
Turbo Client - Test Doubles

``MockSigner`` satisfies the ``Signer`` protocol without any key
material, for exercising clients in tests.
"""

from __future__ import annotations

from .exceptions import WalletKeyError
from .models import DataItem, SignedDataItem, TokenType


class MockSigner:
    """
    Configurable in-memory signer.

    Set ``sign_error``, ``sign_data_item_error`` or ``address_error`` to
    make the matching call raise. Every data item passed to
    ``sign_data_item`` is recorded in ``signed_items``.
    """

    def __init__(
        self,
        address: str = "mock-address",
        token_type: TokenType = TokenType.ARWEAVE,
        sign_result: bytes = b"mock-signature",
        sign_data_item_result: SignedDataItem | None = None,
    ) -> None:
        self.address = address
        self._token_type = TokenType(token_type)
        self.sign_result = sign_result
        self.sign_data_item_result = sign_data_item_result or SignedDataItem(
            id="mock-item-id",
            binary=b"mock-signed-data-item",
            signature=sign_result,
        )
        self.sign_error: BaseException | None = None
        self.sign_data_item_error: BaseException | None = None
        self.address_error: BaseException | None = None
        self.signed_items: list[DataItem] = []

    @property
    def token_type(self) -> TokenType:
        return self._token_type

    def get_native_address(self) -> str:
        if self.address_error is not None:
            raise self.address_error
        if not self.address:
            raise WalletKeyError()
        return self.address

    def sign(self, data: bytes) -> bytes:
        if self.sign_error is not None:
            raise self.sign_error
        return self.sign_result

    def sign_data_item(self, item: DataItem) -> SignedDataItem:
        self.signed_items.append(item)
        if self.sign_data_item_error is not None:
            raise self.sign_data_item_error
        return self.sign_data_item_result

"""
Turbo Client - Python SDK for the Turbo Upload and Payment Services

Check credit balances, price uploads, and sign-and-upload data items
to Arweave through Turbo.

Quick Start:
    from turbo_client import TurboFactory, UploadEvents

    # Unauthenticated: balances and prices
    async with TurboFactory.unauthenticated() as turbo:
        costs = await turbo.get_upload_costs([1024, 1048576])
        print(f"1 KiB costs {costs[0].winc} winc")

    # Authenticated: sign and upload
    async with TurboFactory.authenticated(private_key=jwk) as turbo:
        balance = await turbo.get_balance()
        result = await turbo.upload(
            b"Hello, Turbo!",
            tags=[("Content-Type", "text/plain")],
            events=UploadEvents(on_progress=print),
        )
        print(result.id)

Configuration:
    Pass a TurboConfig; the environment is never read.
    - TurboConfig.production(): payment.ardrive.io / upload.ardrive.io (default)
    - TurboConfig.development(): payment.ardrive.dev / upload.ardrive.dev
    - TurboConfig(payment_url=..., upload_url=..., token=...): custom endpoints
"""

from .bundles import deep_hash, parse_data_item, serialize_tags
from .core import (
    SyncTurboClient,
    TurboAuthenticatedClient,
    TurboConfig,
    TurboFactory,
    TurboHTTPClient,
    TurboUnauthenticatedClient,
    authenticated,
    create_client,
    unauthenticated,
)
from .events import (
    ErrorEvent,
    EventKind,
    ProgressEvent,
    Stage,
    UploadEvent,
    UploadEvents,
)
from .exceptions import (
    ConfigurationError,
    HTTPStatusError,
    ResponseDecodeError,
    ServiceUnavailableError,
    SigningError,
    StageError,
    TransportError,
    TurboError,
    UploadError,
    ValidationError,
    WalletError,
    WalletKeyError,
)
from .models import (
    Balance,
    DataItem,
    SignedDataItem,
    Tag,
    TokenType,
    UploadCost,
    UploadResult,
)
from .signers import ArweaveSigner, EthereumSigner, Signer, create_signer

__version__ = "0.1.0"
__all__ = [
    # Version
    "__version__",
    # Clients
    "TurboFactory",
    "TurboConfig",
    "TurboUnauthenticatedClient",
    "TurboAuthenticatedClient",
    "TurboHTTPClient",
    "SyncTurboClient",
    "authenticated",
    "unauthenticated",
    "create_client",
    # Signers
    "Signer",
    "ArweaveSigner",
    "EthereumSigner",
    "create_signer",
    # Data models
    "TokenType",
    "Tag",
    "DataItem",
    "SignedDataItem",
    "Balance",
    "UploadCost",
    "UploadResult",
    # Events
    "Stage",
    "EventKind",
    "ProgressEvent",
    "ErrorEvent",
    "UploadEvent",
    "UploadEvents",
    # Exceptions
    "TurboError",
    "ConfigurationError",
    "ValidationError",
    "WalletError",
    "WalletKeyError",
    "StageError",
    "SigningError",
    "UploadError",
    "TransportError",
    "ServiceUnavailableError",
    "HTTPStatusError",
    "ResponseDecodeError",
    # Serialization
    "deep_hash",
    "serialize_tags",
    "parse_data_item",
]

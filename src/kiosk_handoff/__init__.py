"""kiosk-handoff — Mobile-to-kiosk shopping session handoff.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.  The HTTP/WebSocket server lives in
:mod:`kiosk_handoff.server` and is not imported here.

Example
-------
>>> import kiosk_handoff
>>> kiosk_handoff.__version__
'0.1.0'
"""
from __future__ import annotations

# Errors
from kiosk_handoff.errors import (
    ConfigurationError,
    HandoffError,
    InvalidPayloadError,
    InvalidStatusTransition,
    NotFoundError,
    ProductNotFoundError,
    SessionNotFoundError,
    StoreUnavailableError,
    TokenNotFoundError,
)

# Configuration
from kiosk_handoff.config import HandoffSettings

# Shared key-value store
from kiosk_handoff.kv import AsyncInMemoryStore, AsyncKeyValueStore, AsyncRedisStore

# Record storage
from kiosk_handoff.storage import (
    AsyncInMemoryBackend,
    AsyncRecordBackend,
    AsyncRedisBackend,
    AsyncSQLiteBackend,
)

# Sessions
from kiosk_handoff.session import (
    ChatMessage,
    ParsedIntent,
    SessionSerializer,
    SessionStatus,
    SessionStore,
    ShoppingSession,
)

# Catalog and intent
from kiosk_handoff.catalog import Product, ProductCatalog
from kiosk_handoff.intent import IntentExtractor, ParsedMessage, Recommendations, Recommender

# Handoff core
from kiosk_handoff.tokens import IssuedToken, TokenService
from kiosk_handoff.registry import Channel, ConnectionRegistry
from kiosk_handoff.sweeper import ExpirySweeper
from kiosk_handoff.handoff import (
    ChannelTransport,
    HandoffCoordinator,
    MessageResult,
    NullChannel,
    SessionSnapshot,
)
from kiosk_handoff.runtime import HandoffRuntime, build_runtime

__version__: str = "0.1.0"

__all__ = [
    "__version__",
    # Errors
    "ConfigurationError",
    "HandoffError",
    "InvalidPayloadError",
    "InvalidStatusTransition",
    "NotFoundError",
    "ProductNotFoundError",
    "SessionNotFoundError",
    "StoreUnavailableError",
    "TokenNotFoundError",
    # Configuration
    "HandoffSettings",
    # Stores
    "AsyncInMemoryBackend",
    "AsyncInMemoryStore",
    "AsyncKeyValueStore",
    "AsyncRecordBackend",
    "AsyncRedisBackend",
    "AsyncRedisStore",
    "AsyncSQLiteBackend",
    # Sessions
    "ChatMessage",
    "ParsedIntent",
    "SessionSerializer",
    "SessionStatus",
    "SessionStore",
    "ShoppingSession",
    # Catalog and intent
    "IntentExtractor",
    "ParsedMessage",
    "Product",
    "ProductCatalog",
    "Recommendations",
    "Recommender",
    # Handoff core
    "Channel",
    "ChannelTransport",
    "ConnectionRegistry",
    "ExpirySweeper",
    "HandoffCoordinator",
    "HandoffRuntime",
    "IssuedToken",
    "MessageResult",
    "NullChannel",
    "SessionSnapshot",
    "TokenService",
    "build_runtime",
]

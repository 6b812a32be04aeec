# Business Logic Services

from .upstream import (
    UpstreamTransport,
    UpstreamResponse,
    AiohttpTransport,
    TransportError,
)
from .token_provider import (
    TokenProvider,
    SessionToken,
    AuthError,
    CrumbRequestFailed,
)
from .chart_api import (
    ChartEndpoint,
    FetchError,
    AuthUnavailable,
    UpstreamError,
    MalformedResponse,
)
from .quote_cache import (
    TTLCache,
    DEFAULT_QUOTE_TTL_SECONDS,
    DEFAULT_HISTORY_TTL_SECONDS,
)
from .quotes import (
    QuoteFetcher,
    QuoteRecord,
)
from .history import (
    HistoryFetcher,
    HistoryPoint,
    HistoryRange,
    interval_for_range,
)
from .batch import (
    BatchOrchestrator,
    ErrorDescriptor,
    EmptySymbolSetError,
)
from .config import (
    ConfigService,
    config_service,
    ConfigValidationException,
    ConfigValidationError,
)
from .logging_service import configure_logging
from .quote_service import (
    QuoteService,
    QuoteServiceSettings,
    quote_service,
    get_quote_service,
)

__all__ = [
    # Transport
    "UpstreamTransport",
    "UpstreamResponse",
    "AiohttpTransport",
    "TransportError",
    # Session token
    "TokenProvider",
    "SessionToken",
    "AuthError",
    "CrumbRequestFailed",
    # Chart API
    "ChartEndpoint",
    "FetchError",
    "AuthUnavailable",
    "UpstreamError",
    "MalformedResponse",
    # Cache
    "TTLCache",
    "DEFAULT_QUOTE_TTL_SECONDS",
    "DEFAULT_HISTORY_TTL_SECONDS",
    # Quotes
    "QuoteFetcher",
    "QuoteRecord",
    # History
    "HistoryFetcher",
    "HistoryPoint",
    "HistoryRange",
    "interval_for_range",
    # Batch
    "BatchOrchestrator",
    "ErrorDescriptor",
    "EmptySymbolSetError",
    # Config
    "ConfigService",
    "config_service",
    "ConfigValidationException",
    "ConfigValidationError",
    # Logging
    "configure_logging",
    # Quote service
    "QuoteService",
    "QuoteServiceSettings",
    "quote_service",
    "get_quote_service",
]

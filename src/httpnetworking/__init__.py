"""Asynchronous HTTP request pipeline with adaptors, validators and retriers."""

from ._version import __version__
from .adaptors import (
    Adaptor,
    CollisionStrategy,
    HeadersAdaptor,
    ParametersAdaptor,
    RequestAdaptor,
    ZipAdaptor,
)
from .backoff import JitterStrategy, RetryStrategy
from .cancellation import CancellationToken
from .client import HTTPClient
from .coordinator import CoordinatorState, RetryCoordinator
from .decoding import JSONDecoder
from .exceptions import (
    AdaptationError,
    CancellationError,
    DecodingError,
    HTTPNetworkingError,
    StatusCodeError,
    TransportError,
    TransportTimeoutError,
    ValidationError,
)
from .executor import PluginOrder, Plugins, RequestExecutor
from .models import HTTPMethod, Request, Response, RetryAction, RetryDecision, ValidationResult
from .request_options import RequestOptions
from .retriers import RequestRetrier, Retrier, RetrierCombination, ZipRetrier
from .transport import HTTPXTransport, Transport
from .validators import ResponseValidator, StatusCodeValidator, Validator, ZipValidator

__all__ = [
    "__version__",
    "AdaptationError",
    "Adaptor",
    "CancellationError",
    "CancellationToken",
    "CollisionStrategy",
    "CoordinatorState",
    "DecodingError",
    "HTTPClient",
    "HTTPMethod",
    "HTTPNetworkingError",
    "HTTPXTransport",
    "HeadersAdaptor",
    "JSONDecoder",
    "JitterStrategy",
    "ParametersAdaptor",
    "PluginOrder",
    "Plugins",
    "Request",
    "RequestAdaptor",
    "RequestExecutor",
    "RequestOptions",
    "RequestRetrier",
    "Response",
    "ResponseValidator",
    "RetrierCombination",
    "Retrier",
    "RetryAction",
    "RetryCoordinator",
    "RetryDecision",
    "RetryStrategy",
    "StatusCodeError",
    "StatusCodeValidator",
    "Transport",
    "TransportError",
    "TransportTimeoutError",
    "ValidationError",
    "ValidationResult",
    "Validator",
    "ZipAdaptor",
    "ZipRetrier",
    "ZipValidator",
]

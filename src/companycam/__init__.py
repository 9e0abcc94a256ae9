"""
CompanyCam SDK for Python.

A Python client for the CompanyCam REST API, built around a rate-limited,
retrying HTTP transport.

Quick Start:
    >>> from companycam import create_client
    >>> client = create_client(auth_token="my-token")
    >>> company = client.company.retrieve()
    >>> me = client.users.retrieve_current()
    >>> client.dispose()

Global Configuration:
    >>> from companycam import COMPANYCAM
    >>>
    >>> # Pre-loaded with defaults + env vars
    >>> timeout = COMPANYCAM.config.http.timeout
    >>>
    >>> # Custom configuration
    >>> COMPANYCAM.configure(
    ...     http={"auth_token": "my-token", "timeout": 10},
    ...     retry={"retries": 5, "allow_post_retry": True},
    ...     rate_limit={"tokens_per_interval": 60, "interval": 60.0},
    ... )

Main Classes:
    - CompanyCamClient: Client composing the resource groups.
    - create_client: Factory creating a CompanyCamClient.

HTTP Client:
    - HttpClient: Rate-limited, retrying transport.
    - RetryOptions: Retry settings of an HttpClient.
    - RequestConfig: Final wire-level description of a request.
    - RequestOptions: Per-call options accepted by resource methods.
    - UserScopedRequestOptions: RequestOptions plus the X-CompanyCam-User value.
    - APIError: Normalized error raised for every failed request.

Rate Limiting and Cancellation:
    - RateLimiter: Token bucket with a FIFO wait queue.
    - CancellationToken: Default cancellation signal implementation.
    - CancellationSignal: Protocol accepted wherever a signal is.
    - CancelledError: Raised when an operation is cancelled.
    - DisposedError: Raised when the rate limiter was disposed.

Retry:
    - Retrying: Context manager for retry with exponential backoff.
    - RetryAttempt: Metadata of a single attempt.
    - RetryPolicy: Retry eligibility and delay computation.

OAuth:
    - build_authorization_grant_url, get_access_token, refresh_access_token.

Configuration:
    - COMPANYCAM: Global SDK singleton for configuration.
    - CompanyCamConfig: Root configuration dataclass.
    - HttpConfig, RetryConfig, RateLimitConfig: Configuration sections.
    - ConfigEnvVarError: Exception raised when env var parsing fails.
    - ConfigValidationError: Exception raised when config validation fails.
"""

from importlib.metadata import version as _get_version

__version__ = _get_version("companycam")

from companycam._cancellation import CancellationSignal, CancellationToken
from companycam._client import CompanyCamClient, create_client
from companycam._config import (
    COMPANYCAM,
    CompanyCamConfig,
    ConfigEnvVarError,
    ConfigValidationError,
    HttpConfig,
    RateLimitConfig,
    RetryConfig,
)
from companycam._errors import APIError
from companycam._http import HttpClient
from companycam._oauth import (
    AUTHORIZATION_ENDPOINT,
    DEFAULT_OAUTH_SCOPES,
    TOKEN_ENDPOINT,
    OAuthTokenResponse,
    build_authorization_grant_url,
    get_access_token,
    refresh_access_token,
)
from companycam._rate_limit import (
    CancelledError,
    DisposedError,
    RateLimiter,
    RateLimiterError,
)
from companycam._request import (
    USER_CONTEXT_HEADER,
    RequestConfig,
    RequestOptions,
    UserScopedRequestOptions,
    build_request_config,
    build_request_options,
    clean_query_parameters,
    encode_path_param,
    split_user_scoped_options,
)
from companycam._retry import (
    RetryAttempt,
    Retrying,
    RetryOptions,
    RetryPolicy,
)

__all__ = [
    "__version__",
    # Client
    "CompanyCamClient",
    "create_client",
    # Configuration
    "COMPANYCAM",
    "CompanyCamConfig",
    "HttpConfig",
    "RetryConfig",
    "RateLimitConfig",
    "ConfigEnvVarError",
    "ConfigValidationError",
    # HTTP Client
    "HttpClient",
    "RequestConfig",
    "RequestOptions",
    "UserScopedRequestOptions",
    "USER_CONTEXT_HEADER",
    "APIError",
    "build_request_config",
    "build_request_options",
    "clean_query_parameters",
    "encode_path_param",
    "split_user_scoped_options",
    # Rate Limiting and Cancellation
    "RateLimiter",
    "RateLimiterError",
    "CancelledError",
    "DisposedError",
    "CancellationSignal",
    "CancellationToken",
    # Retry
    "Retrying",
    "RetryAttempt",
    "RetryOptions",
    "RetryPolicy",
    # OAuth
    "AUTHORIZATION_ENDPOINT",
    "TOKEN_ENDPOINT",
    "DEFAULT_OAUTH_SCOPES",
    "OAuthTokenResponse",
    "build_authorization_grant_url",
    "get_access_token",
    "refresh_access_token",
]

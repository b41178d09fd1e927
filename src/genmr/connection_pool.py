"""Pooled async HTTP session for the provider and AI clients.

All requests return ``Result[HTTPResponse, str]`` so callers never see
transport exceptions. Non-2xx responses are still ``Success``; callers
decide what an error status means for them.

Classes:
    ConnectionConfig: Immutable connection configuration
    HTTPRequest: Immutable request description
    HTTPResponse: Immutable response representation
    PooledSession: aiohttp session with connection pooling
"""

import json
import logging
import types
from dataclasses import dataclass
from dataclasses import field
from typing import Any

import aiohttp
from returns.result import Failure
from returns.result import Result
from returns.result import Success


logger = logging.getLogger(__name__)

USER_AGENT = "gen-mr-cli"


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Immutable HTTP connection configuration.

    Attributes:
        max_connections: Maximum number of pooled connections
        keepalive_timeout: Keepalive timeout in seconds
        connection_timeout: Connection timeout in seconds
        read_timeout: Read timeout in seconds
        total_timeout: Total request timeout in seconds
    """

    max_connections: int = 10
    keepalive_timeout: float = 30.0
    connection_timeout: float = 10.0
    read_timeout: float = 60.0
    total_timeout: float = 120.0


@dataclass(frozen=True, slots=True)
class HTTPRequest:
    """Immutable HTTP request.

    Attributes:
        method: HTTP method (GET, POST, PATCH, PUT)
        url: Request URL
        headers: Request headers
        json_body: Body serialized as JSON when not None
        params: URL query parameters
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    json_body: dict[str, Any] | None = None
    params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class HTTPResponse:
    """Status, body text and decoded JSON of a finished request."""

    status_code: int
    text: str
    json_data: Any = None
    url: str = ""

    @property
    def is_success(self) -> bool:
        """True for 2xx statuses."""
        return 200 <= self.status_code < 300


def _parse_json_response(content_type: str, text: str) -> Any:
    """Decode a JSON body, or None when the body is not JSON."""
    if "application/json" not in content_type:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def _describe_transport_error(error: BaseException, total_timeout: float) -> str:
    if isinstance(error, TimeoutError):
        return f"Request timeout after {total_timeout}s"
    if isinstance(error, aiohttp.ClientError):
        return f"HTTP client error: {error}"
    if isinstance(error, OSError):
        return f"Network error: {error}"
    return f"Unexpected error: {error}"


class PooledSession:
    """Lazily opened aiohttp session shared by one API client.

    Example:
        >>> async with PooledSession() as session:
        ...     result = await session.get("https://api.github.com/user")
    """

    def __init__(self, config: ConnectionConfig | None = None) -> None:
        self._config = config or ConnectionConfig()
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "PooledSession":
        self._open()
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: types.TracebackType | None
    ) -> None:
        await self.close()

    def _open(self) -> aiohttp.ClientSession:
        """Return the live aiohttp session, creating it on first use."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(
                    limit=self._config.max_connections,
                    keepalive_timeout=self._config.keepalive_timeout,
                ),
                timeout=aiohttp.ClientTimeout(
                    total=self._config.total_timeout,
                    connect=self._config.connection_timeout,
                    sock_read=self._config.read_timeout,
                ),
                headers={"User-Agent": USER_AGENT},
            )
        return self._session

    async def request(self, request: HTTPRequest) -> Result[HTTPResponse, str]:
        """Send ``request`` and read the whole body.

        Returns:
            Success with the HTTPResponse whatever its status, or Failure
            describing the transport error
        """
        logger.debug("%s %s", request.method, request.url)
        try:
            session = self._open()
            async with session.request(
                method=request.method,
                url=request.url,
                headers=request.headers,
                json=request.json_body,
                params=request.params or None,
            ) as response:
                text = (await response.read()).decode("utf-8", errors="ignore")
                logger.debug("%s %s -> %s", request.method, request.url, response.status)
                return Success(
                    HTTPResponse(
                        status_code=response.status,
                        text=text,
                        json_data=_parse_json_response(response.headers.get("Content-Type", ""), text),
                        url=str(response.url),
                    )
                )
        except (TimeoutError, aiohttp.ClientError, OSError, ValueError) as e:
            logger.debug("%s %s failed: %s", request.method, request.url, e)
            return Failure(_describe_transport_error(e, self._config.total_timeout))

    async def get(
        self, url: str, headers: dict[str, str] | None = None, params: dict[str, str] | None = None
    ) -> Result[HTTPResponse, str]:
        return await self.request(HTTPRequest("GET", url, headers=headers or {}, params=params or {}))

    async def post(
        self, url: str, json_body: dict[str, Any], headers: dict[str, str] | None = None
    ) -> Result[HTTPResponse, str]:
        return await self.request(HTTPRequest("POST", url, headers=headers or {}, json_body=json_body))

    async def patch(
        self, url: str, json_body: dict[str, Any], headers: dict[str, str] | None = None
    ) -> Result[HTTPResponse, str]:
        return await self.request(HTTPRequest("PATCH", url, headers=headers or {}, json_body=json_body))

    async def put(
        self, url: str, json_body: dict[str, Any], headers: dict[str, str] | None = None
    ) -> Result[HTTPResponse, str]:
        return await self.request(HTTPRequest("PUT", url, headers=headers or {}, json_body=json_body))

    async def close(self) -> None:
        """Close the session and all connections."""
        if self._session is not None and not self._session.closed:
            await self._session.close()

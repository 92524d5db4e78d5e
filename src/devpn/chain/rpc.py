"""
JSON-RPC Client for the Tatum Polygon Amoy gateway.

Lightweight alternative to web3.py: uses httpx for HTTP. Requests are spaced
by a RateLimiter (the free Tatum plan allows 3 req/s) and rate-limited calls
are retried with exponential backoff.
"""

from __future__ import annotations

import itertools
import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

import httpx

from .abi import ParamType, decode_words, encode_call

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://polygon-amoy.gateway.tatum.io/"
POLYGON_AMOY_CHAIN_ID = 80002

RATE_LIMIT_INTERVAL = 0.4  # 400ms between requests
MAX_RETRIES = 3
SEND_MAX_RETRIES = 5
BASE_DELAY = 1.0
MAX_JITTER = 0.5
DEFAULT_TIMEOUT = 30.0

_BODY_PREVIEW = 500
_RATE_LIMIT_MARKERS = ("429", "too many requests", "rate limit")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class RpcClientError(RuntimeError):
    """Base class for RPC client failures."""


class TransportError(RpcClientError):
    """HTTP status other than 200/429, or the request never completed."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ParseError(RpcClientError):
    """Response body is not valid JSON."""


class RpcError(RpcClientError):
    """Well-formed JSON-RPC error object."""

    def __init__(self, code: Optional[int], message: str, data: Any = None) -> None:
        text = f"RPC Error: {message} (Code: {code})"
        if data is not None:
            text += f"\n   Data: {data}"
        super().__init__(text)
        self.code = code
        self.message = message
        self.data = data


class RateLimitExceeded(RpcClientError):
    """Retries exhausted while the gateway kept rate-limiting."""

    def __init__(self, method: str, attempts: int) -> None:
        super().__init__(
            f"Rate limit exceeded for {method} after {attempts} attempt(s)"
        )
        self.method = method
        self.attempts = attempts


class _RateLimited(RpcClientError):
    """HTTP 429 from the gateway; retried internally."""


def is_rate_limit_error(error: Exception) -> bool:
    if isinstance(error, _RateLimited):
        return True
    if isinstance(error, RpcError):
        text = f"{error.code} {error.message}".lower()
        return any(marker in text for marker in _RATE_LIMIT_MARKERS)
    return False


# ---------------------------------------------------------------------------
# Endpoint + rate limiter
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RpcEndpoint:
    url: str
    api_key: Optional[str] = None

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers


class RateLimiter:
    """
    Minimum-interval limiter.

    ``acquire()`` blocks until ``interval`` seconds have passed since the
    last ``release()``. The clock and sleep functions are injectable so
    tests can run without real waits.
    """

    def __init__(
        self,
        interval: float = RATE_LIMIT_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None
        self._lock = threading.Lock()

    def acquire(self) -> None:
        self._lock.acquire()
        try:
            if self._last is not None:
                wait = self.interval - (self._clock() - self._last)
                if wait > 0:
                    self._sleep(wait)
        except BaseException:
            self._lock.release()
            raise

    def release(self) -> None:
        self._last = self._clock()
        self._lock.release()

    def __enter__(self) -> "RateLimiter":
        self.acquire()
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()


def retry_delay(attempt: int, base_delay: float = BASE_DELAY, jitter: float = 0.0) -> float:
    """Backoff before retry number ``attempt`` (1-based)."""
    return base_delay * (2 ** (attempt - 1)) + jitter


def hex_to_int(value: Any) -> int:
    """Decode a 0x hex quantity. None and empty strings decode to 0."""
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text in ("", "0x", "0X"):
        return 0
    return int(text, 16)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class RpcClient:
    """
    JSON-RPC 2.0 client bound to one endpoint.

    Args:
        endpoint: URL and optional gateway API key
        max_retries: Retries on rate limiting (per call, overridable)
        base_delay: First backoff delay in seconds
        rate_limiter: Shared limiter; a private one is created if omitted
        timeout: HTTP request timeout in seconds
        http_client: Pre-built httpx.Client (tests pass one with MockTransport)
        sleep: Sleep function used for backoff
        jitter: Returns the random jitter added to each backoff delay
    """

    def __init__(
        self,
        endpoint: RpcEndpoint,
        max_retries: int = MAX_RETRIES,
        base_delay: float = BASE_DELAY,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Optional[Callable[[], float]] = None,
    ) -> None:
        self.endpoint = endpoint
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.rate_limiter = rate_limiter or RateLimiter()
        self._client = http_client or httpx.Client(timeout=timeout)
        self._sleep = sleep
        self._jitter = jitter or (lambda: random.uniform(0, MAX_JITTER))
        self._ids = itertools.count(1)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def call(self, method: str, params: Optional[list] = None, max_retries: Optional[int] = None) -> Any:
        """
        Make a JSON-RPC call, retrying while the gateway rate-limits.

        Args:
            method: RPC method name (e.g., "eth_call")
            params: RPC parameters
            max_retries: Override the client's retry budget for this call

        Returns:
            Result field from the RPC response (may be None)

        Raises:
            TransportError, ParseError, RpcError, RateLimitExceeded
        """
        if not method:
            raise ValueError("RPC method must be a non-empty string")
        retries = self.max_retries if max_retries is None else max_retries
        params = list(params or [])

        attempt = 0
        while True:
            attempt += 1
            try:
                return self._call_once(method, params)
            except RpcClientError as exc:
                if not is_rate_limit_error(exc):
                    raise
                if attempt > retries:
                    logger.error(
                        "Rate limit exceeded for %s after %d retries", method, retries
                    )
                    raise RateLimitExceeded(method, attempt) from exc
                delay = retry_delay(attempt, self.base_delay, self._jitter())
                logger.warning(
                    "Rate limit hit on %s, waiting %.1fs before retry (%d/%d)",
                    method,
                    delay,
                    attempt,
                    retries,
                )
                self._sleep(delay)

    def _call_once(self, method: str, params: list) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        if method == "eth_sendRawTransaction" and params:
            logger.debug(
                "Calling %s (transaction length: %d bytes)",
                method,
                (len(params[0]) - 2) // 2,
            )
        else:
            logger.debug("Calling %s", method)

        with self.rate_limiter:
            try:
                response = self._client.post(
                    self.endpoint.url,
                    json=payload,
                    headers=self.endpoint.headers(),
                )
            except httpx.HTTPError as exc:
                raise TransportError(f"HTTP request failed: {exc}") from exc

        return self._handle_response(response, method)

    def _handle_response(self, response: httpx.Response, method: str) -> Any:
        body = response.text
        if response.status_code == 429:
            raise _RateLimited(f"Rate Limit Exceeded (429): {body[:_BODY_PREVIEW]}")
        if response.status_code != 200:
            raise TransportError(
                f"HTTP Error: {response.status_code} - {response.reason_phrase}\n"
                f"Body: {body[:_BODY_PREVIEW]}",
                status_code=response.status_code,
                body=body[:_BODY_PREVIEW],
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ParseError(
                f"Failed to parse JSON response: {exc}\n"
                f"Response body: {body[:_BODY_PREVIEW]}"
            ) from exc
        if not isinstance(data, dict):
            raise ParseError(f"Unexpected JSON-RPC response: {body[:_BODY_PREVIEW]}")

        error = data.get("error")
        if error:
            logger.debug("Full RPC response for %s: %s", method, body)
            if not isinstance(error, dict):
                raise RpcError(None, str(error))
            raise RpcError(error.get("code"), str(error.get("message", "")), error.get("data"))

        result = data.get("result")
        if result is None and method == "eth_sendRawTransaction":
            logger.warning("RPC returned nil result for %s: %s", method, body)
        return result

    # ---- typed wrappers ----

    def chain_id(self) -> int:
        return hex_to_int(self.call("eth_chainId"))

    def get_balance(self, address: str) -> int:
        """Get native balance in wei."""
        return hex_to_int(self.call("eth_getBalance", [address, "latest"]))

    def get_transaction_count(self, address: str) -> Any:
        return self.call("eth_getTransactionCount", [address, "latest"])

    def gas_price(self) -> Any:
        return self.call("eth_gasPrice")

    def estimate_gas(self, transaction: dict) -> Any:
        return self.call("eth_estimateGas", [transaction])

    def send_raw_transaction(self, raw_tx: str) -> Any:
        return self.call("eth_sendRawTransaction", [raw_tx], max_retries=SEND_MAX_RETRIES)

    def get_transaction_receipt(self, tx_hash: str) -> Optional[dict]:
        return self.call("eth_getTransactionReceipt", [tx_hash])

    def get_transaction_by_hash(self, tx_hash: str) -> Optional[dict]:
        return self.call("eth_getTransactionByHash", [tx_hash])

    def eth_call(self, to: str, data: str, block: str = "latest") -> Any:
        return self.call("eth_call", [{"to": to, "data": data}, block])


def read_contract(
    rpc: RpcClient,
    contract_address: str,
    signature: str,
    args: Sequence[Any] = (),
    returns: Sequence[ParamType] = (),
) -> Any:
    """
    Read from a contract with eth_call.

    Args:
        rpc: Client to call through
        contract_address: 0x-prefixed contract address
        signature: Function signature, e.g. "balanceOf(address)"
        args: Function arguments
        returns: Static return word types to decode

    Returns:
        None for empty return data, the single decoded value when one type
        is requested, a list for several, or the raw hex when none are.
    """
    result = rpc.eth_call(contract_address, encode_call(signature, args))
    if result is None or result in ("0x", "0X", ""):
        return None
    if not returns:
        return result
    decoded = decode_words(result, returns)
    if len(decoded) == 1:
        return decoded[0]
    return decoded

"""HTTP probe - one liveness check per domain.

Measures whether we can reach the service over HTTPS/HTTP within a fixed
timeout and, for alive domains, optionally keeps the (size-capped) body so
the page inspector can classify it.

Network failures never escape check() - they are categorized and encoded
into the Result so a single bad host can't take down the run.
"""

import asyncio
import errno
import logging
import socket
import ssl
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Dict, Optional, Tuple

import aiohttp

from subprobe.util.types import Result, FailureReason
from subprobe.util.time import monotonic, elapsed_since
from subprobe.scanner.normalization import ProbeTarget, parse_target

logger = logging.getLogger(__name__)

# Failures where the other scheme has a real chance of working.
# Timeouts and DNS errors would fail the same way (and a timeout has
# already spent the whole budget).
FALLBACK_REASONS = frozenset({
    FailureReason.CONNECTION_REFUSED,
    FailureReason.TLS_ERROR,
    FailureReason.CONNECTION_ERROR,
})

MAX_REDIRECTS = 10
CHUNK_SIZE = 64 * 1024


@dataclass
class ProbeOutcome:
    """What a single check produced: the Result plus raw material for inspection."""
    result: Result
    body: Optional[bytes] = None
    content_type: str = ""
    headers: Dict[str, str] = field(default_factory=dict)


def is_alive_status(status: int) -> bool:
    return 200 <= status < 400


def status_text_for(status: int, reason: Optional[str] = None) -> str:
    """Human-readable outcome like '200 OK' derived from the status code."""
    try:
        phrase = HTTPStatus(status).phrase
    except ValueError:
        phrase = reason or ""
    return f"{status} {phrase}".strip()


def classify_error(exc: BaseException) -> FailureReason:
    """Map an aiohttp / socket exception onto our failure taxonomy.

    Order matters: the SSL connector errors are also ClientConnectorErrors.
    """
    if isinstance(exc, asyncio.TimeoutError):
        return FailureReason.TIMEOUT
    if isinstance(exc, aiohttp.TooManyRedirects):
        return FailureReason.TOO_MANY_REDIRECTS
    if isinstance(exc, aiohttp.InvalidURL):
        return FailureReason.INVALID_DOMAIN
    if isinstance(exc, (aiohttp.ClientSSLError, aiohttp.ClientConnectorCertificateError, ssl.SSLError)):
        return FailureReason.TLS_ERROR
    if isinstance(exc, aiohttp.ClientConnectorError):
        os_error = exc.os_error
        if isinstance(os_error, socket.gaierror):
            return FailureReason.DNS_ERROR
        if isinstance(os_error, ConnectionRefusedError) or getattr(os_error, 'errno', None) == errno.ECONNREFUSED:
            return FailureReason.CONNECTION_REFUSED
        if isinstance(os_error, ssl.SSLError):
            return FailureReason.TLS_ERROR
        return FailureReason.CONNECTION_ERROR
    if isinstance(exc, socket.gaierror):
        return FailureReason.DNS_ERROR
    if isinstance(exc, ConnectionRefusedError):
        return FailureReason.CONNECTION_REFUSED
    return FailureReason.CONNECTION_ERROR


class HTTPProbe:
    """Async HTTP client for liveness checks.

    Uses one aiohttp session (and connection pool) for the whole run.
    Redirects are followed so the recorded status is the final response.
    TLS verification is off - we measure reachability, not certificate hygiene.
    """

    def __init__(self,
                 timeout: float = 10.0,
                 read_body: bool = False,
                 max_body_bytes: int = 2 * 1024 * 1024,
                 user_agent: str = "subprobe/1.0",
                 connection_limit: int = 100):
        """Initialize HTTP probe with timeout and body capture settings."""
        self.timeout = timeout
        self.read_body = read_body
        self.max_body_bytes = max_body_bytes
        self.user_agent = user_agent
        self.connection_limit = connection_limit
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Set up aiohttp session with connection pooling."""
        connector = aiohttp.TCPConnector(
            limit=self.connection_limit,
            ttl_dns_cache=300,
            ssl=False
        )
        self.session = aiohttp.ClientSession(
            connector=connector,
            headers={'User-Agent': self.user_agent}
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Clean up session."""
        if self.session:
            await self.session.close()
            self.session = None

    async def check(self, domain: str) -> ProbeOutcome:
        """Check a single domain, trying https then http unless a scheme was given.

        Returns ProbeOutcome with:
          - result.alive=True and the final status for a 2xx/3xx response
          - result.alive=False and status=0 with a categorized message on failure
          - result.alive=False with the status for any other final response
        """
        start = monotonic()
        target = parse_target(domain)

        if target is None:
            logger.debug(f"Invalid domain {domain!r} - skipping network I/O")
            return ProbeOutcome(result=Result(
                domain=domain,
                alive=False,
                status=0,
                status_text="invalid",
                response_time=elapsed_since(start),
                message=FailureReason.INVALID_DOMAIN.value
            ))

        reason = FailureReason.CONNECTION_ERROR
        detail = ""
        url = ""
        for scheme in target.schemes():
            remaining = self.timeout - elapsed_since(start)
            if remaining <= 0:
                reason, detail = FailureReason.TIMEOUT, ""
                break

            url = target.url(scheme)
            outcome, reason, detail = await self._attempt(domain, url, remaining, start)
            if outcome is not None:
                return outcome

            if reason not in FALLBACK_REASONS:
                break
            logger.debug(f"{url} failed ({reason.value}) - trying next scheme")

        message = f"error: {detail}" if detail else reason.value
        return ProbeOutcome(result=Result(
            domain=domain,
            alive=False,
            status=0,
            status_text="unreachable",
            response_time=elapsed_since(start),
            message=message,
            url=url
        ))

    async def _attempt(self, domain: str, url: str, budget: float,
                       start: float) -> Tuple[Optional[ProbeOutcome], FailureReason, str]:
        """One GET against one URL within the remaining time budget.

        Returns (outcome, _, _) when a response arrived, else (None, reason, detail).
        """
        try:
            async with self.session.get(
                url,
                allow_redirects=True,
                max_redirects=MAX_REDIRECTS,
                timeout=aiohttp.ClientTimeout(total=budget)
            ) as resp:
                status = resp.status
                alive = is_alive_status(status)
                headers = {k.lower(): v for k, v in resp.headers.items()}

                body = None
                if alive and self.read_body:
                    try:
                        body = await self._read_limited(resp)
                    except (asyncio.TimeoutError, aiohttp.ClientError) as e:
                        # Status already arrived - the domain is alive, just unreadable
                        logger.debug(f"Could not read body from {url}: {type(e).__name__}")

                result = Result(
                    domain=domain,
                    alive=alive,
                    status=status,
                    status_text=status_text_for(status, resp.reason),
                    response_time=elapsed_since(start),
                    message="" if alive else f"http {status}",
                    url=str(resp.url)
                )
                return ProbeOutcome(
                    result=result,
                    body=body,
                    content_type=headers.get('content-type', ''),
                    headers=headers
                ), None, ""

        except (asyncio.TimeoutError, aiohttp.ClientError, OSError) as e:
            reason = classify_error(e)
            logger.debug(f"HTTP {reason.value} for {url}: {type(e).__name__}: {e}")
            return None, reason, ""

        except Exception as e:
            logger.warning(f"Unexpected error probing {url}: {e}")
            return None, FailureReason.CONNECTION_ERROR, f"{type(e).__name__}"

    async def _read_limited(self, resp: aiohttp.ClientResponse) -> bytes:
        """Read at most max_body_bytes of the response body."""
        chunks = []
        size = 0
        async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
            chunks.append(chunk)
            size += len(chunk)
            if size >= self.max_body_bytes:
                break
        return b"".join(chunks)[:self.max_body_bytes]

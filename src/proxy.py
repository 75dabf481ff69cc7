import asyncio
import logging
from datetime import datetime, timezone

import aiohttp

from .errors import DependencyMissing, ProxyAttemptFailed, ProxyExhausted, Timeout
from .metrics import ProxyStat
from .policy import failure_reason
from .settings import CaptureConfig, ProxyEndpoint

logger = logging.getLogger(__name__)


DEFAULT_PROXY_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "DNT": "1",
    "Connection": "keep-alive",
    "Pragma": "no-cache",
    "Cache-Control": "no-cache",
}


def make_session() -> aiohttp.ClientSession:
    """
    Session for proxy fetches. Cookies are never stored, so nothing the
    user has with the target site leaks to third-party proxies.
    """
    return aiohttp.ClientSession(cookie_jar=aiohttp.DummyCookieJar())


class ProxyRetrievalEngine:
    """
    Fetches a page through a fixed, ordered list of passthrough proxies.

    - Endpoints are tried strictly one after another, always in the same
      order; history never reorders them
    - One outstanding request at a time, each bounded by proxy_timeout_s
    - Per-endpoint failures are logged and turned into the next attempt;
      only total exhaustion reaches the caller (ProxyExhausted)
    - Attempt/success/failure counters are kept per endpoint id
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: CaptureConfig,
        endpoints: list[ProxyEndpoint] | None = None,
    ):
        if session is None:
            raise DependencyMissing("session")
        self.session = session
        self.config = config
        self.endpoints = list(endpoints) if endpoints is not None else config.endpoints()

        self._stats: dict[str, ProxyStat] = {}
        # Diagnostic only
        self.succeeded_ids: set[str] = set()
        self.failed_ids: set[str] = set()

    async def fetch_through_proxies(self, url: str) -> str:
        """
        Returns the first non-blank body served by an endpoint.

        Raises:
            ProxyExhausted carrying the last failure message when every
            endpoint failed.
        """
        headers = {**DEFAULT_PROXY_HEADERS, "User-Agent": self.config.user_agent}
        last_error: Exception | None = None

        for endpoint in self.endpoints:
            proxy_url = endpoint.build(url)
            if self.config.log_proxy_attempts:
                logger.info("Trying proxy: %s -> %s", endpoint.id, proxy_url)

            self._record(endpoint.id, "attempt")
            try:
                html = await self._fetch_with_timeout(proxy_url, headers)
            except Exception as e:
                self._record(endpoint.id, "failure")
                self.failed_ids.add(endpoint.id)
                if self.config.log_proxy_attempts:
                    logger.warning("Proxy %s error: %s", endpoint.id, _describe(e))
                last_error = e
                continue

            self._record(endpoint.id, "success")
            self.succeeded_ids.add(endpoint.id)
            if self.config.log_proxy_attempts:
                logger.info("Successfully fetched content via %s", endpoint.id)
            return html

        last_msg = _describe(last_error) if last_error else "no proxy endpoints configured"
        logger.error("All %d proxy endpoints failed for %s: %s", len(self.endpoints), url, last_msg)
        raise ProxyExhausted(last_msg)

    async def _fetch_with_timeout(self, proxy_url: str, headers: dict) -> str:
        timeout_ms = int(self.config.proxy_timeout_s * 1000)
        try:
            return await asyncio.wait_for(
                self._fetch(proxy_url, headers), timeout=self.config.proxy_timeout_s
            )
        except asyncio.TimeoutError as e:
            raise Timeout(timeout_ms) from e

    async def _fetch(self, proxy_url: str, headers: dict) -> str:
        async with self.session.get(proxy_url, headers=headers, allow_redirects=True) as resp:
            body = await resp.text(errors="replace")
            reason = failure_reason(resp.status, resp.reason, body)
            if reason is not None:
                raise ProxyAttemptFailed(reason)
            return body

    def _record(self, endpoint_id: str, outcome: str) -> None:
        stat = self._stats.setdefault(endpoint_id, ProxyStat())
        stat.last_used = datetime.now(timezone.utc)
        if outcome == "attempt":
            stat.attempts += 1
        elif outcome == "success":
            stat.successes += 1
        elif outcome == "failure":
            stat.failures += 1

    def get_stats(self) -> dict[str, dict]:
        return {endpoint_id: stat.as_dict() for endpoint_id, stat in self._stats.items()}

    def reset_stats(self) -> None:
        self._stats.clear()
        self.succeeded_ids.clear()
        self.failed_ids.clear()


def _describe(e: Exception) -> str:
    return str(e) or type(e).__name__

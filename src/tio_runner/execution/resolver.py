from __future__ import annotations

import logging
import re
import time
from typing import Callable

import aiohttp

from ..errors import ResolutionError
from ..settings import RunnerSettings

logger = logging.getLogger(__name__)

SCRIPT_PATTERN = re.compile(r'<script src="(/static/[0-9a-f]+-frontend\.js)" defer></script>')
RUN_URL_PATTERN = re.compile(r'^var runURL = "/cgi-bin/static/([^"]+)";$', re.MULTILINE)


async def fetch_text(session: aiohttp.ClientSession, base_url: str, path: str) -> str:
    """GET `base_url + path` and return the body, failing on non-2xx statuses.

    Example:
        ```python
        html = await fetch_text(session, "https://tio.run", "/")
        ```
    """
    try:
        async with session.get(f"{base_url}{path}") as response:
            if not 200 <= response.status < 300:
                raise ResolutionError(f"Failed to fetch {path} from tio.run ({response.status})")
            return await response.text(errors="replace")
    except aiohttp.ClientError as exc:
        raise ResolutionError(f"Failed to fetch {path} from tio.run: {exc}") from exc


class EndpointResolver:
    """Discover and cache the ephemeral tio.run execution path.

    The cache is not locked: two coroutines that both see an expired
    entry will both re-resolve and the last write wins.

    Example:
        ```python
        resolver = EndpointResolver(RunnerSettings())
        endpoint = await resolver.resolve(session)
        ```
    """

    def __init__(
        self,
        settings: RunnerSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create an empty resolver bound to a base URL and refresh window.

        Example:
            ```python
            resolver = EndpointResolver(RunnerSettings(refresh_seconds=60), clock=lambda: 0.0)
            ```
        """
        self._settings = settings or RunnerSettings()
        self._clock = clock
        self._endpoint: str | None = None
        self._expires_at = 0.0

    @property
    def endpoint(self) -> str | None:
        """Return the cached endpoint, expired or not.

        Example:
            ```python
            cached = resolver.endpoint
            ```
        """
        return self._endpoint

    @property
    def expires_at(self) -> float:
        """Return the clock value after which the cached endpoint is stale.

        Example:
            ```python
            deadline = resolver.expires_at
            ```
        """
        return self._expires_at

    def is_fresh(self) -> bool:
        """Return True while a cached endpoint exists and has not expired.

        Example:
            ```python
            if not resolver.is_fresh():
                await resolver.resolve(session)
            ```
        """
        return self._endpoint is not None and self._clock() < self._expires_at

    def invalidate(self) -> None:
        """Drop the cached endpoint so the next `resolve()` re-discovers it.

        Example:
            ```python
            resolver.invalidate()
            ```
        """
        self._endpoint = None
        self._expires_at = 0.0

    async def resolve(self, session: aiohttp.ClientSession) -> str:
        """Return a usable endpoint, scraping tio.run only when the cache is stale.

        Example:
            ```python
            endpoint = await resolver.resolve(session)
            ```
        """
        if self.is_fresh():
            logger.debug("Reusing cached tio.run endpoint %s", self._endpoint)
            return self._endpoint  # type: ignore[return-value]

        base_url = self._settings.base_url
        landing_html = await fetch_text(session, base_url, "/")
        script_match = SCRIPT_PATTERN.search(landing_html)
        if script_match is None:
            raise ResolutionError("Unable to resolve tio.run frontend script URL")

        frontend_script = await fetch_text(session, base_url, script_match.group(1))
        run_url_match = RUN_URL_PATTERN.search(frontend_script)
        if run_url_match is None:
            raise ResolutionError("Unable to resolve tio.run execution URL")

        self._endpoint = run_url_match.group(1)
        self._expires_at = self._clock() + self._settings.refresh_seconds
        logger.info("Resolved tio.run endpoint %s", self._endpoint)
        return self._endpoint

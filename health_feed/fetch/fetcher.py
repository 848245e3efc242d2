"""
HTTP fetching for discovery, feeds, listing pages and article metadata.

Every outbound request in the pipeline goes through fetch_url so timeouts,
retries, the browser User-Agent and proxy handling are configured in one place.
Failures never raise: callers inspect FetchResult and degrade to "nothing found".
"""

from __future__ import annotations

from dataclasses import dataclass
import time

import httpx

from ..config import FetchConfig


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: The response body text, or None on error
        error: Error message if fetch failed, None on success
        final_url: URL after redirects, used to resolve relative links
    """
    url: str
    status_code: int | None
    text: str | None
    error: str | None
    final_url: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None

    @property
    def base_url(self) -> str:
        return self.final_url or self.url


def fetch_url(
    url: str,
    timeout: float,
    retries: int,
    user_agent: str,
    trust_env: bool,
) -> FetchResult:
    """Fetch a URL using httpx with retry logic.

    Uses a synchronous HTTP client that follows redirects and respects
    system proxy settings when trust_env is enabled. Non-2xx responses are
    reported as errors; only network failures and 5xx responses are retried.
    Malformed URLs fail immediately. Nothing is raised to the caller.

    Args:
        url: The URL to fetch
        timeout: Request timeout in seconds
        retries: Number of retry attempts after initial failure
        user_agent: User-Agent header string
        trust_env: Whether to respect system proxy settings from environment

    Returns:
        FetchResult with text on success or error message on failure
    """
    headers = {"User-Agent": user_agent}
    last_error: str | None = None
    last_status: int | None = None

    for attempt in range(retries + 1):
        try:
            with httpx.Client(
                timeout=timeout,
                headers=headers,
                follow_redirects=True,
                trust_env=trust_env,
            ) as client:
                resp = client.get(url)
        except (httpx.InvalidURL, ValueError) as exc:
            # Malformed URL (bad port, NUL byte, IDNA label): retrying cannot help
            return FetchResult(url=url, status_code=None, text=None, error=f"{type(exc).__name__}: {exc}")
        except Exception as exc:  # noqa: BLE001
            last_error = f"{type(exc).__name__}: {exc}"
            last_status = None
        else:
            if resp.is_success:
                return FetchResult(
                    url=url,
                    status_code=resp.status_code,
                    text=resp.text,
                    error=None,
                    final_url=str(resp.url),
                )
            last_status = resp.status_code
            last_error = f"HTTP {resp.status_code}"
            if resp.status_code < 500:
                break
        if attempt < retries:
            # Linear backoff: 0.5s, 1.0s, 1.5s...
            time.sleep(0.5 * (attempt + 1))

    return FetchResult(url=url, status_code=last_status, text=None, error=last_error)


def fetch_with_config(url: str, cfg: FetchConfig, timeout: float | None = None) -> FetchResult:
    """Fetch a URL with the shared fetch settings, optionally overriding the timeout."""
    return fetch_url(
        url,
        timeout=cfg.timeout_seconds if timeout is None else timeout,
        retries=cfg.retries,
        user_agent=cfg.user_agent,
        trust_env=cfg.trust_env,
    )

"""NVD CVE API 2.0 client — one windowed page per pipeline run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from threatpulse.core.config import Settings, get_settings
from threatpulse.core.errors import FetchError
from threatpulse.core.logging import get_logger
from threatpulse.pipeline.window import FetchWindow

logger = get_logger(__name__)


@dataclass
class FeedPage:
    items: list[dict[str, Any]] = field(default_factory=list)
    total_results: int = 0


def format_nvd_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with milliseconds, e.g. ``2024-01-15T10:15:07.123Z``."""
    utc = value.astimezone(timezone.utc) if value.tzinfo else value
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


class NvdFeedClient:
    """Fetch CVEs published inside a window from the NVD search endpoint.

    Not retried: a failed fetch raises ``FetchError`` and the caller (or
    its scheduler) owns the retry policy.
    """

    def __init__(
        self,
        api_url: str,
        page_size: int = 100,
        timeout: float = 30.0,
        user_agent: str = "ThreatPulse-CVE-Monitor/1.0",
        api_key: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url
        self.page_size = page_size
        self.timeout = timeout
        self.user_agent = user_agent
        self.api_key = api_key
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "NvdFeedClient":
        settings = settings or get_settings()
        return cls(
            api_url=settings.nvd_api_url,
            page_size=settings.feed_page_size,
            timeout=settings.feed_timeout,
            user_agent=settings.feed_user_agent,
            api_key=settings.nvd_api_key,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        if self.api_key:
            headers["apiKey"] = self.api_key
        return headers

    def _params(self, window: FetchWindow) -> dict[str, str | int]:
        return {
            "pubStartDate": format_nvd_timestamp(window.start),
            "pubEndDate": format_nvd_timestamp(window.end),
            "resultsPerPage": self.page_size,
            "startIndex": 0,
        }

    async def fetch(self, window: FetchWindow) -> FeedPage:
        """Return at most ``page_size`` raw items published inside ``window``."""
        logger.info(
            "Fetching CVEs from feed",
            start=window.start.isoformat(),
            end=window.end.isoformat(),
            page_size=self.page_size,
        )
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                resp = await client.get(self.api_url, params=self._params(window))
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as exc:
            raise FetchError(f"timed out after {self.timeout}s ({exc.__class__.__name__})") from exc
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                exc.response.reason_phrase or "unexpected status",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"feed unreachable: {exc}") from exc
        except ValueError as exc:
            raise FetchError(f"malformed JSON body: {exc}") from exc

        return self._parse(data)

    @staticmethod
    def _parse(data: Any) -> FeedPage:
        if not isinstance(data, dict) or not isinstance(data.get("vulnerabilities"), list):
            raise FetchError("malformed response body: missing 'vulnerabilities' list")

        items = data["vulnerabilities"]
        total = data.get("totalResults")
        if isinstance(total, bool) or not isinstance(total, int):
            total = len(items)

        logger.info("Fetched CVEs from feed", count=len(items), total_results=total)
        return FeedPage(items=items, total_results=total)

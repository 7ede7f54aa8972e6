from __future__ import annotations

from dataclasses import dataclass

import httpx

from src.app.ports.output import IFeedSource
from src.domain.exceptions import NetworkError, UpstreamStatusError


def parse_headers(raw: str | None) -> dict[str, str]:
    """Parse `Key:Value;Key2:Value2` into a header dict, skipping junk parts."""

    raw = (raw or "").strip()
    if not raw:
        return {}
    headers: dict[str, str] = {}
    for part in raw.split(";"):
        part = part.strip()
        if not part or ":" not in part:
            continue
        k, v = part.split(":", 1)
        k = k.strip()
        if k:
            headers[k] = v.strip()
    return headers


@dataclass(slots=True)
class HttpFeedSource(IFeedSource):
    """Fetches the GTFS-Realtime payload over HTTP(S).

    `headers_raw` holds extra request headers as `Key:Value;Key2:Value2`.
    The refresher bounds each call with its own fetch timeout and cancels the
    request on expiry; `timeout_s` is only httpx's per-phase limit.
    """

    url: str
    headers_raw: str | None = None
    timeout_s: float = 10.0
    transport: httpx.AsyncBaseTransport | None = None

    @property
    def address(self) -> str:
        return self.url

    async def fetch(self) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                resp = await client.get(self.url, headers=parse_headers(self.headers_raw))
        except httpx.TimeoutException as exc:
            raise NetworkError(f"Timed out fetching {self.url}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(
                f"Failed to fetch {self.url}: {str(exc) or exc.__class__.__name__}"
            ) from exc

        if not resp.is_success:
            raise UpstreamStatusError(resp.status_code, resp.reason_phrase)
        return resp.content

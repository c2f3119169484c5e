"""
Connectivity Probe for the SERPAVI rent reference scraper.
Plain HTTP fetch of the calculator and its landing page, without a browser.
"""
from typing import Any, Dict, Optional

import httpx
from bs4 import BeautifulSoup

from serpavi.utils.logger import LayerLogger

SAMPLE_CHARS = 200


class ConnectivityProbe:
    """
    Reports whether the target site answers plain HTTP from this host.
    Used by the /diag endpoint to tell network problems from layout changes.
    """

    def __init__(
        self,
        timeout: float = 15.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.transport = transport
        self.user_agent = user_agent or "Mozilla/5.0"
        self.logger = LayerLogger("connectivity_probe")

    async def probe(self, targets: Dict[str, str]) -> Dict[str, Dict[str, Any]]:
        """
        Fetch each named URL once.

        Returns:
            {name: {url, status, length, title, sample}}

        Raises:
            httpx.HTTPError: a fetch failed at the transport level
        """
        report = {}
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers=self._get_headers(),
            transport=self.transport,
        ) as client:
            for name, url in targets.items():
                report[name] = await self._fetch(client, url)
        return report

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> Dict[str, Any]:
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            self.logger.log_http_probe(url, None, "transport_error", error=str(e))
            raise

        html = response.text
        self.logger.log_http_probe(url, response.status_code, "fetched", content_length=len(html))
        return {
            "url": str(response.url),
            "status": response.status_code,
            "length": len(html),
            "title": self._extract_title(html),
            "sample": html[:SAMPLE_CHARS],
        }

    def _get_headers(self) -> dict:
        """Browser-like request headers."""
        return {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "es-ES,es;q=0.9",
        }

    def _extract_title(self, html: str) -> Optional[str]:
        if not html:
            return None
        soup = BeautifulSoup(html, "lxml")
        if soup.title and soup.title.string:
            return soup.title.string.strip()
        return None

import logging
import urllib.parse
from dataclasses import dataclass

from playwright.async_api import Error as PlaywrightError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkRecord:
    url: str
    display_text: str
    is_internal: bool


@dataclass
class LinkStatus:
    url: str
    status: int | None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status is not None and 200 <= self.status < 400


def is_checkable_href(href: str | None) -> bool:
    if not href:
        return False
    href = href.strip()
    return href != "#" and not href.lower().startswith("javascript:")


def to_link_record(href: str, text: str, base_url: str) -> LinkRecord:
    absolute = href if href.startswith("http") else urllib.parse.urljoin(base_url.rstrip("/") + "/", href)
    base_host = urllib.parse.urlparse(base_url).hostname or ""
    host = urllib.parse.urlparse(absolute).hostname or ""
    return LinkRecord(url=absolute, display_text=(text or "").strip(), is_internal=host == base_host)


async def extract_links(page, base_url: str) -> list[LinkRecord]:
    """Scan anchors on the current page; first occurrence of a URL wins."""
    records: list[LinkRecord] = []
    seen = set()
    for anchor in await page.locator("a[href]").all():
        href = await anchor.get_attribute("href")
        if not is_checkable_href(href):
            continue
        record = to_link_record(href.strip(), await anchor.text_content() or "", base_url)
        if record.url in seen:
            continue
        seen.add(record.url)
        records.append(record)
    logger.info("→ Found %d unique links", len(records))
    return records


async def check_links(request, links: list[LinkRecord], limit: int = 10, timeout_ms: int = 5000) -> list[LinkStatus]:
    """Request each link directly, bypassing the page render."""
    results = []
    for link in links[:limit]:
        try:
            response = await request.get(link.url, timeout=timeout_ms)
            results.append(LinkStatus(url=link.url, status=response.status))
            logger.info("%s: %s", link.url, response.status)
        except PlaywrightError as e:
            results.append(LinkStatus(url=link.url, status=None, error=str(e)))
            logger.error("✖ Failed to test %s: %s", link.url, e)
    return results


def success_rate(statuses: list[LinkStatus]) -> float:
    if not statuses:
        return 0.0
    return 100.0 * sum(1 for s in statuses if s.ok) / len(statuses)

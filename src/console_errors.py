import logging
import re
import time
from collections import Counter
from dataclasses import asdict, dataclass

from playwright.async_api import Error as PlaywrightError


logger = logging.getLogger(__name__)


@dataclass
class ConsoleError:
    type: str
    message: str
    url: str
    timestamp: float
    stack: str = ""


class ErrorFilter:
    BROWSER_WARNING_PATTERNS = [
        re.compile(r"warning", re.I),
        re.compile(r"favicon", re.I),
        re.compile(r"chrome-extension", re.I),
        re.compile(r"performance\.mark", re.I),
        re.compile(r"service.*worker", re.I),
        re.compile(r"ad.*blocker", re.I),
        re.compile(r"extension", re.I),
        re.compile(r"sectioned h1 element", re.I),
    ]

    NETWORK_ERROR_PATTERNS = [
        re.compile(r"failed to load resource.*404", re.I),
        re.compile(r"net::err_internet_disconnected", re.I),
        re.compile(r"net::err_name_not_resolved", re.I),
        re.compile(r"failed to fetch", re.I),
    ]

    EXPECTED_TEST_PATTERNS = [
        re.compile(r"timeout", re.I),
        re.compile(r"element not found", re.I),
        re.compile(r"selector.*not found", re.I),
        re.compile(r"navigation.*failed", re.I),
    ]

    @staticmethod
    def _matches(patterns, message: str) -> bool:
        return any(p.search(message) for p in patterns)

    @classmethod
    def filter_console_errors(cls, errors: list[ConsoleError]) -> list[ConsoleError]:
        return [
            e for e in errors
            if not cls._matches(cls.BROWSER_WARNING_PATTERNS, e.message)
            and not cls._matches(cls.NETWORK_ERROR_PATTERNS, e.message)
        ]

    @classmethod
    def filter_page_errors(cls, errors: list[ConsoleError]) -> list[ConsoleError]:
        return [e for e in errors if not cls._matches(cls.EXPECTED_TEST_PATTERNS, e.message)]

    @classmethod
    def categorize(cls, console_errors: list[ConsoleError], page_errors: list[ConsoleError]) -> dict:
        return {
            "critical": {
                "console": cls.filter_console_errors(console_errors),
                "page": cls.filter_page_errors(page_errors),
            },
            "network": [e for e in console_errors if cls._matches(cls.NETWORK_ERROR_PATTERNS, e.message)],
            "browser_warnings": [e for e in console_errors if cls._matches(cls.BROWSER_WARNING_PATTERNS, e.message)],
            "test_related": [e for e in page_errors if cls._matches(cls.EXPECTED_TEST_PATTERNS, e.message)],
        }


def critical_count(categories: dict) -> int:
    return len(categories["critical"]["console"]) + len(categories["critical"]["page"])


def summarize(categories: dict) -> dict:
    """Counts per category, for logging."""
    return {
        "critical_console": len(categories["critical"]["console"]),
        "critical_page": len(categories["critical"]["page"]),
        "network": len(categories["network"]),
        "browser_warnings": len(categories["browser_warnings"]),
        "test_related": len(categories["test_related"]),
    }


class ErrorCollector:
    """Collects console errors and uncaught page errors from one page.

    Use as a context manager so the listeners are removed afterwards.
    """

    def __init__(self, page):
        self.page = page
        self.console_errors: list[ConsoleError] = []
        self.page_errors: list[ConsoleError] = []

    def _on_console(self, msg) -> None:
        if msg.type == "error":
            err = ConsoleError(type="console", message=msg.text, url=self.page.url, timestamp=time.time())
            self.console_errors.append(err)
            logger.warning("⚠️ Console error detected: %s", err.message)

    def _on_page_error(self, error) -> None:
        err = ConsoleError(
            type="pageerror",
            message=getattr(error, "message", str(error)),
            url=self.page.url,
            timestamp=time.time(),
            stack=getattr(error, "stack", "") or "",
        )
        self.page_errors.append(err)
        logger.error("✖ Page error detected: %s", err.message)

    def attach(self) -> "ErrorCollector":
        self.page.on("console", self._on_console)
        self.page.on("pageerror", self._on_page_error)
        return self

    def detach(self) -> None:
        self.page.remove_listener("console", self._on_console)
        self.page.remove_listener("pageerror", self._on_page_error)

    def __enter__(self):
        return self.attach()

    def __exit__(self, *exc):
        self.detach()
        return False

    def categorize(self) -> dict:
        return ErrorFilter.categorize(self.console_errors, self.page_errors)

    def all_errors(self) -> list[dict]:
        return [asdict(e) for e in self.console_errors + self.page_errors]


def format_report(categories: dict) -> str:
    critical = categories["critical"]["console"] + categories["critical"]["page"]
    total = sum(summarize(categories).values())
    lines = [
        "Console Error Analysis:",
        f"- Critical errors: {len(critical)}",
        f"- Network errors: {len(categories['network'])}",
        f"- Browser warnings: {len(categories['browser_warnings'])}",
        f"- Test-related: {len(categories['test_related'])}",
        f"- Total categorized: {total}",
        "",
    ]
    if critical:
        lines.append("Critical Errors:")
        for i, err in enumerate(critical, start=1):
            lines.append(f"  {i}. {err.message}")
        lines.append("")
        lines.append("Errors by Page:")
        for url, count in Counter(e.url for e in critical).items():
            lines.append(f"  {url}: {count} errors")
    return "\n".join(lines)


async def wait_for_async_errors(page, settle_ms: int = 2000, idle_timeout_ms: int = 3000) -> None:
    """Give delayed errors time to surface. The idle wait may time out."""
    await page.wait_for_timeout(settle_ms)
    try:
        await page.wait_for_load_state("networkidle", timeout=idle_timeout_ms)
    except PlaywrightError:
        logger.debug("→ Network idle wait timed out after error injection")

"""Multi-signal verification that a login actually happened.

No single check is reliable across demo sites, so several independent
signals are evaluated and the login counts as successful when at least
`threshold` of them hold. The signal set and threshold come from the
`loginCheck` block of the configuration document.
"""
import logging
import re
from dataclasses import dataclass, field

from playwright.async_api import Error as PlaywrightError

from config_manager import LoginCheckSettings


logger = logging.getLogger(__name__)


async def left_login_page(page, url: str) -> bool:
    return "login.html" not in url


async def landing_url(page, url: str) -> bool:
    return any(part in url for part in ("dashboard", "home", "profile", "account"))


async def welcome_content(page, url: str) -> bool:
    pattern = re.compile(r"welcome|hello|dashboard|logout|profile|account", re.I)
    return await page.get_by_text(pattern).count() > 0


async def password_form_absent(page, url: str) -> bool:
    return not await page.locator('input[type="password"]').first.is_visible()


async def navigation_present(page, url: str) -> bool:
    return await page.locator("nav, .navbar, .menu, .navigation").count() > 0


SIGNALS = {
    "left_login_page": left_login_page,
    "landing_url": landing_url,
    "welcome_content": welcome_content,
    "password_form_absent": password_form_absent,
    "navigation_present": navigation_present,
}


@dataclass
class LoginVerdict:
    threshold: int
    results: dict = field(default_factory=dict)
    errors: dict = field(default_factory=dict)

    @property
    def passed_count(self) -> int:
        return sum(1 for ok in self.results.values() if ok)

    @property
    def passed(self) -> bool:
        return self.passed_count >= self.threshold

    def summary(self) -> dict:
        return {
            "success_indicators": f"{self.passed_count}/{len(self.results)}",
            "results": self.results,
            "errors": self.errors,
            "verification_passed": self.passed,
        }


async def verify_login(page, settings: LoginCheckSettings | None = None) -> LoginVerdict:
    settings = settings or LoginCheckSettings()
    url = page.url
    verdict = LoginVerdict(threshold=settings.threshold)
    for name in settings.signals:
        try:
            verdict.results[name] = bool(await SIGNALS[name](page, url))
        except PlaywrightError as e:
            verdict.results[name] = False
            verdict.errors[name] = str(e)
    logger.info("Login verification: %s", verdict.summary())
    return verdict

import asyncio
import logging
import re
from pathlib import Path

import pyotp
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from artifacts import screenshot_path
from errors import ElementNotFoundError, NavigationError


logger = logging.getLogger(__name__)

DEFAULT_HEADING_SELECTOR = 'h1, h2, .title, .heading, [class*="title"], [class*="heading"]'
DEFAULT_CONTENT_SELECTOR = 'main, .content, .main-content, section, article, .container'


def join_url(base_url: str, path: str) -> str:
    if not path:
        return base_url
    if path.startswith("http"):
        return path
    return base_url.rstrip("/") + "/" + path.lstrip("/")


class BasePage:
    """Named, explicit-wait interactions over one Playwright page.

    Every click and fill waits for visibility first, so a failure names
    the selector and the timeout that expired.
    """

    def __init__(self, page, base_url: str, navigation_timeout_ms: int = 30000):
        self.page = page
        self.base_url = base_url
        self.navigation_timeout_ms = navigation_timeout_ms

    async def navigate(self, path: str = "") -> None:
        url = join_url(self.base_url, path)
        logger.debug("→ Navigating to %s", url)
        try:
            await self.page.goto(url, timeout=self.navigation_timeout_ms)
            await self.page.wait_for_load_state("networkidle", timeout=self.navigation_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationError(url, self.navigation_timeout_ms, "timed out") from e
        except PlaywrightError as e:
            raise NavigationError(url, self.navigation_timeout_ms, str(e)) from e

    async def wait_for_element(self, selector: str, timeout_ms: int = 5000) -> None:
        try:
            await self.page.wait_for_selector(selector, state="visible", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ElementNotFoundError(selector, timeout_ms, self.get_current_url()) from e

    async def click(self, selector: str) -> None:
        await self.wait_for_element(selector)
        await self.page.click(selector)

    async def fill(self, selector: str, value: str) -> None:
        await self.wait_for_element(selector)
        await self.page.fill(selector, value)

    async def get_text(self, selector: str) -> str:
        await self.wait_for_element(selector)
        text = await self.page.text_content(selector)
        return (text or "").strip()

    async def is_visible(self, selector: str, timeout_ms: int = 1000) -> bool:
        try:
            await self.page.wait_for_selector(selector, state="visible", timeout=timeout_ms)
            return True
        except PlaywrightError:
            return False

    def get_current_url(self) -> str:
        return self.page.url

    async def has_essential_elements(self, heading_selector: str | None = None, content_selector: str | None = None) -> bool:
        heading_selector = heading_selector or DEFAULT_HEADING_SELECTOR
        content_selector = content_selector or DEFAULT_CONTENT_SELECTOR

        body_visible = await self.page.locator("body").is_visible()
        has_heading = await self.page.locator(heading_selector).first.is_visible() or body_visible
        has_main_content = await self.page.locator(content_selector).first.is_visible()
        # Bare pages still count as loaded when the body renders something
        body_has_content = body_visible and await self.page.locator("body *").first.is_visible()

        return (has_heading and has_main_content) or body_has_content

    async def screenshot(self, name: str, directory: Path) -> Path:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = screenshot_path(directory, name)
        await self.page.screenshot(path=str(path), full_page=True)
        logger.info("📸 Screenshot saved: %s", path.name)
        return path


class HomePage(BasePage):
    selectors = {
        "main_heading": "h1",
        "navigation": "nav",
        # The account link is the login entry point
        "login_link": 'a[href*="account"], a[href*="login"]',
        "about_link": 'a[href*="about"]',
        "logo": '.logo, #logo, img[alt*="logo"]',
        "main_content": "main, .content, .main-content",
    }

    async def navigate(self) -> None:
        await super().navigate("")

    async def get_main_heading(self) -> str:
        return await self.get_text(self.selectors["main_heading"])

    async def go_to_login(self) -> None:
        await self.click(self.selectors["login_link"])

    async def go_to_about(self) -> None:
        await self.click(self.selectors["about_link"])

    async def has_navigation(self) -> bool:
        return await self.is_visible(self.selectors["navigation"])

    async def has_essential_elements(self) -> bool:
        has_heading = await self.is_visible(self.selectors["main_heading"])
        has_navigation = await self.is_visible(self.selectors["navigation"])
        has_main_content = await self.is_visible(self.selectors["main_content"])
        return has_heading and has_navigation and has_main_content

    async def get_navigation_links(self) -> list[str]:
        texts = []
        for link in await self.page.locator(f"{self.selectors['navigation']} a").all():
            text = (await link.text_content() or "").strip()
            if text:
                texts.append(text)
        return texts


class LoginPage(BasePage):
    selectors = {
        "username": "#username",
        "password": "#password",
        "login_button": 'input[type="submit"]',
        "error_message": ".error",
        "one_time_code": "#otp, input[name*='otp'], input[id*='otp'], input[autocomplete='one-time-code']",
    }
    success_url_pattern = re.compile(r"account")

    async def navigate(self) -> None:
        await super().navigate("/login.html")

    async def login(self, username: str, password: str, totp_secret: str | None = None) -> None:
        fields = [(self.selectors["username"], username), (self.selectors["password"], password)]
        for selector, value in fields:
            if await self.is_visible(selector):
                await self.fill(selector, value)
            else:
                logger.warning("⚠️ Login field not present, skipping: %s", selector)

        if totp_secret and await self.is_visible(self.selectors["one_time_code"]):
            await self.fill(self.selectors["one_time_code"], pyotp.TOTP(totp_secret).now())
            logger.debug("→ One-time code filled")

        await self.click(self.selectors["login_button"])

    async def is_login_successful(self, timeout_ms: int = 5000) -> bool:
        """Wait for a redirect or an error, then judge by the current URL."""
        waits = [
            asyncio.ensure_future(self.page.wait_for_url(self.success_url_pattern, timeout=timeout_ms)),
            asyncio.ensure_future(self.page.wait_for_selector(self.selectors["error_message"], timeout=timeout_ms)),
        ]
        _, pending = await asyncio.wait(waits, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        # Neither outcome is an error here; the URL decides
        await asyncio.gather(*waits, return_exceptions=True)
        return "login" not in self.get_current_url()

    async def get_error_message(self) -> str:
        if await self.is_visible(self.selectors["error_message"]):
            return await self.get_text(self.selectors["error_message"])
        return ""

    async def has_form_elements(self) -> bool:
        has_username = await self.is_visible(self.selectors["username"])
        has_password = await self.is_visible(self.selectors["password"])
        has_button = await self.is_visible(self.selectors["login_button"])
        return has_username and has_password and has_button


class AboutPage(BasePage):
    selectors = {
        "page_heading": DEFAULT_HEADING_SELECTOR,
        "main_content": DEFAULT_CONTENT_SELECTOR,
        "navigation": "nav, .nav, .navbar, .menu, header a, .navigation",
        "back_link": 'a[href*="index"], a:has-text("Home"), a:has-text("Back"), a[href="/"], a[href="../"]',
    }

    async def navigate(self) -> None:
        await super().navigate("/about.html")

    async def get_page_heading(self) -> str:
        return await self.get_text(self.selectors["page_heading"])

    async def get_main_content(self) -> str:
        return await self.get_text(self.selectors["main_content"])

    async def go_back_to_home(self) -> None:
        await self.click(self.selectors["back_link"])

    async def has_essential_elements(self) -> bool:
        return await super().has_essential_elements(
            self.selectors["page_heading"],
            self.selectors["main_content"],
        )

    async def has_navigation(self) -> bool:
        return await self.is_visible(self.selectors["navigation"])

import json
import re

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class FakeLocator:
    def __init__(self, page, selector, matches=None):
        self.page = page
        self.selector = selector
        self._matches = matches

    @property
    def first(self):
        return self

    async def is_visible(self):
        return self.page.is_shown(self.selector)

    async def is_editable(self):
        return self.page.is_shown(self.selector)

    async def is_enabled(self):
        return self.page.is_shown(self.selector)

    async def count(self):
        if self._matches is not None:
            return self._matches
        return 1 if self.page.is_shown(self.selector) else 0

    async def all(self):
        return [FakeAnchor(**a) for a in self.page.anchors.get(self.selector, [])]


class FakeAnchor:
    def __init__(self, href=None, text=""):
        self.href = href
        self.text = text

    async def get_attribute(self, name):
        return self.href if name == "href" else None

    async def text_content(self):
        return self.text


class FakePage:
    """Just enough of playwright's async Page for the page views and helpers."""

    def __init__(self, url="about:blank", visible=(), texts=None):
        self.url = url
        self.visible = set(visible)
        self.texts = dict(texts or {})
        self.anchors = {}
        self.text_matches = 0
        self.filled = {}
        self.clicked = []
        self.visited = []
        self.waited = []
        self.unreachable = set()
        self.on_click = {}
        self.evaluate_result = None
        self.handlers = {}
        self.default_timeout = None
        self.load_state_error = None

    def is_shown(self, selector):
        return selector in self.visible

    async def goto(self, url, timeout=None):
        self.visited.append(url)
        if url in self.unreachable:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded navigating to {url}")
        self.url = url

    async def wait_for_load_state(self, state=None, timeout=None):
        if self.load_state_error:
            raise self.load_state_error

    async def wait_for_selector(self, selector, state="visible", timeout=None):
        self.waited.append((selector, timeout))
        if selector not in self.visible:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def wait_for_url(self, pattern, timeout=None):
        if not re.search(pattern, self.url):
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for url")

    async def wait_for_timeout(self, ms):
        pass

    async def click(self, selector):
        self.clicked.append(selector)
        if selector in self.on_click:
            self.on_click[selector](self)

    async def fill(self, selector, value):
        self.filled[selector] = value

    async def text_content(self, selector):
        return self.texts.get(selector)

    async def evaluate(self, expression, arg=None):
        return self.evaluate_result

    async def screenshot(self, path=None, full_page=False):
        with open(path, "wb") as f:
            f.write(b"\x89PNG")
        return b"\x89PNG"

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    def locator(self, selector):
        return FakeLocator(self, selector)

    def get_by_text(self, pattern):
        return FakeLocator(self, f"text={pattern}", matches=self.text_matches)

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def remove_listener(self, event, handler):
        self.handlers.get(event, []).remove(handler)

    def emit(self, event, payload):
        for handler in list(self.handlers.get(event, [])):
            handler(payload)


@pytest.fixture
def fake_page():
    return FakePage(url="https://shop.example/fashionhub/")


@pytest.fixture
def config_document():
    return {
        "environments": {
            "production": {"name": "Production", "baseUrl": "https://shop.example", "basePath": "/fashionhub/"},
            "staging": {"name": "Staging", "baseUrl": "https://staging.shop.example/", "basePath": "fashionhub", "timeout": 10000, "retries": 2},
            "local": {"name": "Local", "baseUrl": "http://localhost:4000", "basePath": "/"},
        },
        "github": {"exampleRepo": "https://github.com/appwrite/appwrite/pulls"},
        "credentials": {"demo": {"username": "demouser", "password": "fashion123"}},
    }


@pytest.fixture
def write_config(tmp_path):
    def _write(document, name="environments.json"):
        path = tmp_path / name
        path.write_text(json.dumps(document) if not isinstance(document, str) else document, encoding="utf-8")
        return path
    return _write

import re

import pytest

from errors import ElementNotFoundError, NavigationError
from pages import AboutPage, BasePage, HomePage, LoginPage, join_url

BASE = "https://shop.example/fashionhub/"


@pytest.mark.parametrize("path,expected", [
    ("", BASE),
    ("/login.html", "https://shop.example/fashionhub/login.html"),
    ("about.html", "https://shop.example/fashionhub/about.html"),
    ("https://other.example/x", "https://other.example/x"),
])
def test_join_url(path, expected):
    assert join_url(BASE, path) == expected


@pytest.mark.asyncio
async def test_navigate_goes_to_joined_url(fake_page):
    await BasePage(fake_page, BASE).navigate("/about.html")
    assert fake_page.url == "https://shop.example/fashionhub/about.html"


@pytest.mark.asyncio
async def test_navigate_timeout_raises_navigation_error(fake_page):
    fake_page.unreachable.add("https://shop.example/fashionhub/slow.html")
    with pytest.raises(NavigationError) as exc_info:
        await BasePage(fake_page, BASE, navigation_timeout_ms=1234).navigate("slow.html")
    assert exc_info.value.url.endswith("slow.html")
    assert "1234ms" in str(exc_info.value)


@pytest.mark.asyncio
async def test_wait_for_element_reports_selector_and_timeout(fake_page):
    with pytest.raises(ElementNotFoundError) as exc_info:
        await BasePage(fake_page, BASE).wait_for_element("#missing", timeout_ms=250)
    assert exc_info.value.selector == "#missing"
    assert "250ms" in str(exc_info.value)
    assert fake_page.url in str(exc_info.value)


@pytest.mark.asyncio
async def test_click_waits_before_interacting(fake_page):
    page = BasePage(fake_page, BASE)
    with pytest.raises(ElementNotFoundError):
        await page.click("#buy")
    assert fake_page.clicked == []

    fake_page.visible.add("#buy")
    await page.click("#buy")
    assert fake_page.clicked == ["#buy"]
    assert fake_page.waited[-1] == ("#buy", 5000)


@pytest.mark.asyncio
async def test_fill_requires_visible_field(fake_page):
    page = BasePage(fake_page, BASE)
    with pytest.raises(ElementNotFoundError):
        await page.fill("#q", "shoes")
    fake_page.visible.add("#q")
    await page.fill("#q", "shoes")
    assert fake_page.filled == {"#q": "shoes"}


@pytest.mark.asyncio
async def test_get_text_trims_and_defaults_to_empty(fake_page):
    fake_page.visible.update({"h1", "p"})
    fake_page.texts["h1"] = "  Welcome to FashionHub \n"
    page = BasePage(fake_page, BASE)
    assert await page.get_text("h1") == "Welcome to FashionHub"
    assert await page.get_text("p") == ""


@pytest.mark.asyncio
async def test_is_visible_never_raises(fake_page):
    page = BasePage(fake_page, BASE)
    assert await page.is_visible(".nothing") is False
    assert fake_page.waited[-1] == (".nothing", 1000)
    fake_page.visible.add(".something")
    assert await page.is_visible(".something") is True


def test_get_current_url(fake_page):
    assert BasePage(fake_page, BASE).get_current_url() == fake_page.url


@pytest.mark.asyncio
async def test_base_essential_elements_accepts_bare_body(fake_page):
    fake_page.visible.update({"body", "body *"})
    assert await BasePage(fake_page, BASE).has_essential_elements() is True


@pytest.mark.asyncio
async def test_screenshot_written_under_directory(fake_page, tmp_path):
    path = await BasePage(fake_page, BASE).screenshot("Before Login!", tmp_path / "shots")
    assert path.parent == tmp_path / "shots"
    assert path.name.startswith("before_login_")
    assert path.exists()


@pytest.mark.asyncio
async def test_home_page_essential_elements_need_all_three(fake_page):
    home = HomePage(fake_page, BASE)
    fake_page.visible.update({"h1", "nav"})
    assert await home.has_essential_elements() is False
    fake_page.visible.add(HomePage.selectors["main_content"])
    assert await home.has_essential_elements() is True


@pytest.mark.asyncio
async def test_home_page_links(fake_page):
    fake_page.visible.update({"h1", HomePage.selectors["about_link"], HomePage.selectors["login_link"]})
    fake_page.texts["h1"] = " FashionHub "
    fake_page.anchors["nav a"] = [{"href": "/", "text": " Home "}, {"href": "#", "text": "  "}]
    home = HomePage(fake_page, BASE)
    assert await home.get_main_heading() == "FashionHub"
    await home.go_to_about()
    await home.go_to_login()
    assert fake_page.clicked == [HomePage.selectors["about_link"], HomePage.selectors["login_link"]]
    assert await home.get_navigation_links() == ["Home"]


def _login_form(page, succeed=True):
    sel = LoginPage.selectors
    page.visible.update({sel["username"], sel["password"], sel["login_button"]})

    def submit(p):
        if p.filled.get(sel["password"]) == "fashion123":
            p.url = "https://shop.example/fashionhub/account.html"
        else:
            p.visible.add(sel["error_message"])
            p.texts[sel["error_message"]] = " Invalid username or password "

    page.on_click[sel["login_button"]] = submit


@pytest.mark.asyncio
async def test_login_success_leaves_login_page(fake_page):
    fake_page.url = "https://shop.example/fashionhub/login.html"
    _login_form(fake_page)
    login = LoginPage(fake_page, BASE)
    await login.login("demouser", "fashion123")
    assert fake_page.filled == {"#username": "demouser", "#password": "fashion123"}
    assert await login.is_login_successful() is True
    assert "login" not in login.get_current_url()


@pytest.mark.asyncio
async def test_login_failure_shows_error(fake_page):
    fake_page.url = "https://shop.example/fashionhub/login.html"
    _login_form(fake_page)
    login = LoginPage(fake_page, BASE)
    await login.login("invaliduser", "wrongpassword")
    assert await login.is_login_successful() is False
    assert await login.get_error_message() == "Invalid username or password"


@pytest.mark.asyncio
async def test_login_skips_absent_fields(fake_page):
    fake_page.visible.update({"#password", LoginPage.selectors["login_button"]})
    await LoginPage(fake_page, BASE).login("demouser", "fashion123")
    assert fake_page.filled == {"#password": "fashion123"}
    assert fake_page.clicked == [LoginPage.selectors["login_button"]]


@pytest.mark.asyncio
async def test_login_fills_one_time_code_when_configured(fake_page):
    _login_form(fake_page)
    fake_page.visible.add(LoginPage.selectors["one_time_code"])
    await LoginPage(fake_page, BASE).login("demouser", "fashion123", totp_secret="JBSWY3DPEHPK3PXP")
    code = fake_page.filled[LoginPage.selectors["one_time_code"]]
    assert re.fullmatch(r"\d{6}", code)


@pytest.mark.asyncio
async def test_login_form_elements_require_all_fields(fake_page):
    login = LoginPage(fake_page, BASE)
    fake_page.visible.update({"#username", "#password"})
    assert await login.has_form_elements() is False
    fake_page.visible.add(LoginPage.selectors["login_button"])
    assert await login.has_form_elements() is True


@pytest.mark.asyncio
async def test_error_message_empty_without_error(fake_page):
    assert await LoginPage(fake_page, BASE).get_error_message() == ""


@pytest.mark.asyncio
async def test_about_page(fake_page):
    sel = AboutPage.selectors
    fake_page.visible.update({sel["page_heading"], sel["main_content"], sel["back_link"], "body"})
    fake_page.texts[sel["page_heading"]] = "About Us"
    about = AboutPage(fake_page, BASE)
    await about.navigate()
    assert fake_page.url.endswith("/fashionhub/about.html")
    assert await about.get_page_heading() == "About Us"
    assert await about.get_main_content() == ""
    assert await about.has_essential_elements() is True
    assert await about.has_navigation() is False
    await about.go_back_to_home()
    assert fake_page.clicked == [sel["back_link"]]

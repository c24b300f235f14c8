import re
import shutil
from pathlib import Path

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pje_automation.browser.agent.text_scanner import ButtonTextScanner
from pje_automation.config import AutomationConfig, RetrySettings
from pje_automation.state import APP_STATE

PANEL_HEADER = 'mat-expansion-panel-header:has-text("Órgãos Julgadores")'
TEST_INTERVAL_MS = 1234


@pytest.fixture
def isolated_pje_home(tmp_path: Path) -> Path:
    """
    Provides a pristine, isolated, and empty ~/.pje directory for each test function.
    """
    test_home = tmp_path / ".pje"
    if test_home.exists():
        shutil.rmtree(test_home)
    test_home.mkdir()
    yield test_home


@pytest.fixture(autouse=True)
def app_config(monkeypatch, tmp_path: Path) -> AutomationConfig:
    """Installs a known process-wide configuration so no test reads the real home."""
    config = AutomationConfig(
        retry=RetrySettings(interval_ms=TEST_INTERVAL_MS),
        screenshots_dir=tmp_path / "screenshots",
    )
    monkeypatch.setattr(APP_STATE, "config", config)
    return config


class FakeElement:
    """A node of the synthetic DOM: its text, the selectors it answers to, and its state."""

    def __init__(
        self,
        text: str = "",
        selectors=(),
        tag: str = "button",
        visible: bool = True,
        present: bool = True,
        attributes: dict | None = None,
        visible_after_ms: int | None = None,
    ):
        self.text = text
        self.selectors = set(selectors)
        self.tag = tag
        self.visible = visible
        self.present = present
        # Hidden now, becomes visible this many ms into a "visible" wait.
        self.visible_after_ms = visible_after_ms
        self.attributes = dict(attributes or {})
        self.clicks = 0
        self.on_click = None


class FakeKeyboard:
    def __init__(self):
        self.pressed: list[str] = []
        self.error: Exception | None = None

    async def press(self, key: str):
        if self.error:
            raise self.error
        self.pressed.append(key)


class FakeMouse:
    def __init__(self):
        self.clicks: list[tuple[int, int]] = []

    async def click(self, x: int, y: int):
        self.clicks.append((x, y))


class FakeLocator:
    """Implements the slice of playwright's async Locator API the agent uses."""

    def __init__(self, page: "FakePage", selector: str, pattern=None):
        self.page = page
        self.selector = selector
        self.pattern = pattern

    def _matches(self) -> list[FakeElement]:
        found = []
        for element in self.page.elements:
            if not element.present:
                continue
            if self.selector not in element.selectors and self.selector != element.tag:
                continue
            if self.pattern is not None and not re.search(self.pattern, element.text):
                continue
            found.append(element)
        return found

    @property
    def first(self) -> "FakeLocator":
        return self

    def filter(self, has_text=None) -> "FakeLocator":
        return FakeLocator(self.page, self.selector, has_text)

    async def count(self) -> int:
        return len(self._matches())

    async def wait_for(self, state: str = "visible", timeout: float | None = None):
        self.page.wait_for_calls.append((self.selector, state, timeout))
        matches = self._matches()
        if matches and state == "visible" and not matches[0].visible:
            element = matches[0]
            appears_in_time = element.visible_after_ms is not None and element.visible_after_ms <= (timeout or 0)
            if appears_in_time:
                element.visible = True
        if matches and (state != "visible" or matches[0].visible):
            return
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {self.selector}")

    async def is_visible(self) -> bool:
        matches = self._matches()
        return bool(matches) and matches[0].visible

    async def get_attribute(self, name: str):
        matches = self._matches()
        if not matches:
            raise PlaywrightTimeoutError(f"No element for {self.selector}")
        return matches[0].attributes.get(name)

    async def click(self, **kwargs):
        matches = self._matches()
        if not matches:
            raise PlaywrightTimeoutError(f"No element to click for {self.selector}")
        element = matches[0]
        element.clicks += 1
        self.page.clicked.append(self.selector)
        if element.on_click:
            element.on_click()


class FakePage:
    """
    Synthetic page for the locator. `panel` is "collapsed", "expanded" or None
    (no panel header at all). Elements created with `after_expand=True` only
    appear once the panel header is clicked.
    """

    def __init__(self, elements=(), panel: str | None = "expanded"):
        self.elements: list[FakeElement] = []
        self.keyboard = FakeKeyboard()
        self.mouse = FakeMouse()
        self.waits: list[int] = []
        self.wait_for_calls: list[tuple] = []
        self.clicked: list[str] = []
        self.evaluate_calls = 0
        self.screenshots: list[str] = []
        self.closed = False
        self.url = "https://pje.example/pje/PessoaPerito/cadastro"

        self.header = None
        if panel is not None:
            self.header = FakeElement(
                text="Órgãos Julgadores",
                selectors={PANEL_HEADER},
                tag="mat-expansion-panel-header",
                attributes={"aria-expanded": "true" if panel == "expanded" else "false"},
            )
            self.header.on_click = self._expand_panel
            self.elements.append(self.header)

        self._hidden_until_expanded: list[FakeElement] = []
        for element_kwargs in elements:
            self.add(**element_kwargs)

    def add(
        self,
        text="",
        selectors=(),
        visible=True,
        after_expand=False,
        tag="button",
        visible_after_ms=None,
    ):
        element = FakeElement(
            text=text,
            selectors=selectors,
            tag=tag,
            visible=visible,
            present=not after_expand,
            visible_after_ms=visible_after_ms,
        )
        if after_expand:
            self._hidden_until_expanded.append(element)
        self.elements.append(element)
        return element

    def _expand_panel(self):
        self.header.attributes["aria-expanded"] = "true"
        for element in self._hidden_until_expanded:
            element.present = True

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    async def evaluate(self, expression: str, arg=None):
        self.evaluate_calls += 1
        if "innerHTML" in expression:
            return 42
        # The button scan: same predicate the scanner exposes for use outside a browser.
        verb, nouns = arg
        scanner = ButtonTextScanner(verb=verb, nouns=nouns)
        for element in self.elements:
            if not element.present or element.tag != "button":
                continue
            if scanner.matches(element.text):
                return element.text.strip()
        return None

    async def wait_for_timeout(self, timeout: float):
        self.waits.append(timeout)

    def is_closed(self) -> bool:
        return self.closed

    async def screenshot(self, path=None, **kwargs):
        self.screenshots.append(path)
        Path(path).write_bytes(b"png")
        return b"png"


@pytest.fixture
def make_page():
    """Factory for FakePage instances: make_page(elements=[{...}], panel="collapsed")."""

    def _make(elements=(), panel: str | None = "expanded") -> FakePage:
        return FakePage(elements=elements, panel=panel)

    return _make


@pytest.fixture
def interval_ms(app_config: AutomationConfig) -> int:
    """The inter-attempt interval the locator will read from the process config."""
    return app_config.retry.interval_ms

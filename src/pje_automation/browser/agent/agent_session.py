from datetime import datetime, timezone
from pathlib import Path

from playwright.async_api import Page
import structlog

from ...config import get_config
from ...utils import ensure_dir
from .locator_resolver import ElementLocator
from .models import LocateResult, StrategyProbe
from .wait_handler import WaitHandler

logger = structlog.get_logger(__name__)

# Appears once the "Adicionar Órgão Julgador" form has opened.
ORGAN_SELECT_SELECTOR = 'mat-select[name="idOrgaoJulgadorSelecionado"]'


class AgentSession:
    """
    Manages the state and actions for a single PJe page, orchestrating the
    element locator and the wait handler.
    """

    def __init__(self, screenshots_dir: Path | None = None):
        self.page: Page | None = None
        self.locator: ElementLocator | None = None
        self.wait_handler: WaitHandler | None = None
        self.screenshots_dir = screenshots_dir
        self.screenshot_on_failure = True

    async def initialize(self, page: Page, default_timeout: int = 30000):
        """Receives the active Page and initializes all helpers."""
        self.page = page
        self.locator = ElementLocator()
        self.wait_handler = WaitHandler(page, default_timeout)
        logger.info("AgentSession initialized with page and all helpers.")

    def _require_ready(self):
        if not self.page or not self.locator or not self.wait_handler:
            raise RuntimeError("AgentSession is not fully initialized.")

    async def open(self, url: str):
        self._require_ready()
        await self.wait_handler.wait_for_navigation(
            trigger_action=lambda: self.page.goto(url, wait_until="commit"),
            wait_until="load",
        )

    async def find_add_organ_button(self) -> LocateResult:
        self._require_ready()
        try:
            return await self.locator.locate_with_report(self.page)
        except Exception:
            await self._screenshot_on_failure("locate")
            raise

    async def add_organ(self) -> LocateResult:
        """
        Locates and clicks "Adicionar Órgão Julgador", then waits until the
        organ selector of the add form is visible.
        """
        result = await self.find_add_organ_button()
        log = logger.bind(strategy=result.strategy.name, attempt=result.attempt_number)
        try:
            await self.wait_handler.wait_for_dynamic_update(
                trigger_action=result.element.click,
                expected_selector=ORGAN_SELECT_SELECTOR,
            )
        except Exception as e:
            log.error("Add organ form did not open.", error=str(e))
            await self._screenshot_on_failure("add_organ")
            raise
        log.info("Add organ form opened.")
        return result

    async def probe(self) -> list[StrategyProbe]:
        self._require_ready()
        return await self.locator.probe(self.page)

    async def take_screenshot(self, reason: str) -> Path | None:
        """Saves a full-page screenshot and returns its path, or None on failure."""
        if not self.page or self.page.is_closed():
            return None
        target_dir = ensure_dir(
            self.screenshots_dir or get_config().resolved_screenshots_dir()
        )
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        path = target_dir / f"{reason}-{stamp}.png"
        try:
            await self.page.screenshot(path=str(path), full_page=True, timeout=5000)
        except Exception as e:
            logger.warning("Failed to take screenshot.", reason=reason, error=str(e))
            return None
        logger.info("Screenshot taken.", reason=reason, path=str(path))
        return path

    async def _screenshot_on_failure(self, reason: str):
        if self.screenshot_on_failure:
            await self.take_screenshot(f"on_failure-{reason}")

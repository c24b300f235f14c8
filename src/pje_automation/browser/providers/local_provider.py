from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)
import structlog

from .base_provider import BaseBrowserProvider

logger = structlog.get_logger(__name__)

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")
# PJe renders labels ("Órgãos Julgadores", "Adicionar") in Portuguese only.
PJE_LOCALE = "pt-BR"


class LocalBrowserProvider(BaseBrowserProvider):
    """Starts a local Playwright browser with one pt-BR context and one page."""

    def __init__(self):
        self.playwright: Playwright | None = None
        self.browser: Browser | None = None

    async def get_browser(
        self,
        browser_type: str = "chromium",
        headless: bool = True,
        default_timeout_ms: int | None = None,
    ) -> tuple[Browser, Page]:
        """
        Args:
            browser_type: One of 'chromium', 'firefox' or 'webkit'.
            headless: Run without a visible window.
            default_timeout_ms: Applied to every Playwright action on the page.
        """
        if browser_type not in SUPPORTED_BROWSERS:
            raise ValueError(f"Unsupported browser_type: {browser_type}")

        log = logger.bind(browser_type=browser_type, headless=headless)
        log.info("Launching local browser.")
        self.playwright = await async_playwright().start()
        launcher = getattr(self.playwright, browser_type)

        self.browser = await launcher.launch(headless=headless)
        context: BrowserContext = await self.browser.new_context(locale=PJE_LOCALE)
        page: Page = await context.new_page()
        if default_timeout_ms:
            page.set_default_timeout(default_timeout_ms)
        log.debug("Page ready.", default_timeout_ms=default_timeout_ms)
        return self.browser, page

    async def close(self):
        if self.browser and self.browser.is_connected():
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()
        self.browser = None
        self.playwright = None
        logger.info("Local browser closed.")

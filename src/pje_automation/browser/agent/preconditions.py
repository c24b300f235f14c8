"""
Best-effort steps that put the form into a searchable state before the
location cascade runs. Neither step ever raises; each reports a
PreconditionOutcome instead.
"""

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
import structlog

from .models import PreconditionOutcome

logger = structlog.get_logger(__name__)


class PanelExpander:
    """Makes sure a mat-expansion-panel, found by its header text, is expanded."""

    HEADER_TIMEOUT_MS = 5000
    EXPAND_SETTLE_MS = 2000

    def __init__(self, header_text: str = "Órgãos Julgadores"):
        self.header_text = header_text
        self.header_selector = f'mat-expansion-panel-header:has-text("{header_text}")'

    async def ensure_expanded(self, page: Page) -> PreconditionOutcome:
        log = logger.bind(panel=self.header_text)
        header = page.locator(self.header_selector).first

        try:
            await header.wait_for(timeout=self.HEADER_TIMEOUT_MS)
            expanded = await header.get_attribute("aria-expanded")
        except PlaywrightTimeoutError:
            log.warning(
                "Panel header did not appear; expansion unconfirmed.",
                timeout_ms=self.HEADER_TIMEOUT_MS,
            )
            return PreconditionOutcome.UNCONFIRMED
        except Exception as e:
            log.warning(
                "Could not inspect panel header.",
                error=f"{type(e).__name__}: {e}",
            )
            return PreconditionOutcome.UNCONFIRMED

        if expanded == "true":
            log.debug("Panel already expanded.")
            return PreconditionOutcome.CONFIRMED

        log.info("Expanding panel.", aria_expanded=expanded)
        try:
            await header.click()
            await page.wait_for_timeout(self.EXPAND_SETTLE_MS)
        except Exception as e:
            log.warning("Panel expansion click failed.", error=f"{type(e).__name__}: {e}")
            return PreconditionOutcome.ACTION_FAILED

        try:
            expanded = await header.get_attribute("aria-expanded")
        except Exception as e:
            log.warning("Could not re-read panel state.", error=str(e))
            return PreconditionOutcome.UNCONFIRMED

        if expanded != "true":
            log.warning("Panel still not reported as expanded.", aria_expanded=expanded)
            return PreconditionOutcome.UNCONFIRMED
        return PreconditionOutcome.CONFIRMED


class OverlayClearer:
    """Closes open mat-select dropdowns and tooltips that may cover the target."""

    DISMISS_KEY = "Escape"
    NEUTRAL_POINT = (10, 10)
    SETTLE_MS = 500

    async def clear(self, page: Page) -> PreconditionOutcome:
        try:
            await page.keyboard.press(self.DISMISS_KEY)
            await page.wait_for_timeout(self.SETTLE_MS)

            x, y = self.NEUTRAL_POINT
            await page.mouse.click(x, y)
            await page.wait_for_timeout(self.SETTLE_MS)
        except Exception as e:
            logger.warning("Overlay clearing failed.", error=f"{type(e).__name__}: {e}")
            return PreconditionOutcome.ACTION_FAILED

        logger.debug("Overlays cleared.")
        return PreconditionOutcome.CONFIRMED

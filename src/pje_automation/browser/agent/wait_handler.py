# Standard Library Imports
import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

# Playwright Imports
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
import structlog

# Local Imports
from .exceptions import (
    ActionFailedError,
    NavigationTimeoutError,
    PageClosedError,
    WaitTimeoutError,
)

logger = structlog.get_logger(__name__)


class WaitHandler:
    """
    Waits for navigations and for the form to react to an action, using
    structured logging.
    """

    DEFAULT_NAV_TIMEOUT = 30000
    DEFAULT_UPDATE_TIMEOUT = 10000
    STABILITY_CHECK_INTERVAL_MS = 300
    STABILITY_CHECK_DURATION_MS = 1500

    def __init__(self, page: Page, default_timeout: int | None = None):
        if not page:
            raise ValueError("Page object is required for WaitHandler.")
        self.page = page

        if default_timeout is None:
            self.default_navigation_timeout = self.DEFAULT_NAV_TIMEOUT
            self.default_update_timeout = self.DEFAULT_UPDATE_TIMEOUT
        else:
            self.default_navigation_timeout = max(10000, default_timeout)
            self.default_update_timeout = max(5000, int(default_timeout * 0.5))

    async def wait_for_navigation(
        self,
        trigger_action: Callable[[], Awaitable[Any]],
        wait_until: str = "load",
        timeout: int | None = None,
    ) -> bool:
        """Runs `trigger_action` and waits for the resulting page load state."""
        if self.page.is_closed():
            raise PageClosedError("Cannot wait for navigation, page is closed.")

        wait_timeout = timeout if timeout is not None else self.default_navigation_timeout
        log = logger.bind(timeout_ms=wait_timeout, wait_until=wait_until)
        log.info("Waiting for navigation.")
        start_time = time.time()

        try:
            await trigger_action()
            await self.page.wait_for_load_state(state=wait_until, timeout=wait_timeout)
        except PlaywrightTimeoutError as e:
            elapsed = (time.time() - start_time) * 1000
            log.error("Navigation wait FAILED.", elapsed_ms=round(elapsed))
            raise NavigationTimeoutError(
                f"Navigation timed out after {elapsed:.0f}ms."
            ) from e

        elapsed = (time.time() - start_time) * 1000
        log.info("Navigation finished.", url=self.page.url, elapsed_ms=round(elapsed))
        return True

    async def wait_for_dynamic_update(
        self,
        trigger_action: Callable[[], Awaitable[Any]] | None = None,
        expected_selector: Locator | str | None = None,
        expected_selector_state: str = "visible",
        wait_for_stability: bool = True,
        timeout: int | None = None,
    ) -> bool:
        """
        Performs `trigger_action` (if given) and waits for the page to react:
        the expected selector reaching its state, then an optional DOM
        stability window.

        Raises:
            ActionFailedError: the trigger action itself raised.
            WaitTimeoutError: the expected selector never reached its state.
        """
        if self.page.is_closed():
            raise PageClosedError("Cannot wait for dynamic update, page is closed.")

        wait_timeout = timeout if timeout is not None else self.default_update_timeout
        log = logger.bind(timeout_ms=wait_timeout)
        log.info("Waiting for dynamic update.")
        start_time = time.time()

        if trigger_action:
            try:
                await trigger_action()
            except PlaywrightError as e:
                raise ActionFailedError(f"Trigger action failed: {e}") from e
            log.debug("Trigger action completed.")

        if expected_selector is not None:
            selector_timeout = int(wait_timeout * 0.8)
            locator = (
                expected_selector
                if isinstance(expected_selector, Locator)
                else self.page.locator(expected_selector).first
            )
            try:
                await locator.wait_for(
                    state=expected_selector_state, timeout=selector_timeout
                )
            except PlaywrightTimeoutError as e:
                log.error(
                    "Dynamic update wait FAILED.",
                    expected_state=expected_selector_state,
                )
                raise WaitTimeoutError(
                    f"Expected selector did not reach state '{expected_selector_state}' "
                    f"within {selector_timeout}ms."
                ) from e
            log.debug("Expected selector reached state.", state=expected_selector_state)

        if wait_for_stability:
            elapsed = (time.time() - start_time) * 1000
            remaining = max(500, wait_timeout - int(elapsed))
            if not await self._wait_for_stable_dom(
                min(self.STABILITY_CHECK_DURATION_MS, remaining)
            ):
                log.warning("DOM stability check failed (content might still be changing).")

        elapsed = (time.time() - start_time) * 1000
        log.info("Dynamic update finished.", elapsed_ms=round(elapsed))
        return True

    async def _wait_for_stable_dom(self, duration_ms: int) -> bool:
        """True once document.body's innerHTML length holds still for `duration_ms`."""
        try:
            last_html_len = await self.page.evaluate(
                "() => document.body?.innerHTML.length ?? 0"
            )
        except Exception as e:
            # Assume stable if the initial check fails.
            logger.warning("Could not get initial DOM length.", error=str(e))
            return True

        stable_since = time.time()
        # A DOM that never settles gives up after three windows.
        deadline = stable_since + (duration_ms * 3) / 1000
        while (time.time() - stable_since) * 1000 < duration_ms:
            if time.time() >= deadline:
                return False
            await asyncio.sleep(self.STABILITY_CHECK_INTERVAL_MS / 1000)
            try:
                current_html_len = await self.page.evaluate(
                    "() => document.body?.innerHTML.length ?? 0"
                )
            except Exception as e:
                logger.warning("Error during DOM stability check.", error=str(e))
                return False
            if current_html_len != last_html_len:
                logger.debug(
                    "DOM changed; resetting stability timer.",
                    previous=last_html_len,
                    current=current_html_len,
                )
                stable_since = time.time()
                last_html_len = current_html_len

        logger.debug("DOM appears stable.")
        return True

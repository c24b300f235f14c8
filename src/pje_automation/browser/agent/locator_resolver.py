import re

from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
import structlog

from ...config import get_config
from .exceptions import NotFoundError, PageClosedError
from .models import (
    LocateResult,
    LocationStrategy,
    RetryState,
    StrategyKind,
    StrategyProbe,
)
from .preconditions import OverlayClearer, PanelExpander
from .text_scanner import ButtonTextScanner

logger = structlog.get_logger(__name__)

TARGET_LABEL = "Adicionar Órgão Julgador"

# Precision first: selectors scoped to the expanded panel, then looser
# Material selectors, then the free-text scan over every button.
ADD_ORGAN_STRATEGIES: tuple[LocationStrategy, ...] = (
    LocationStrategy(
        name="expanded_panel_button",
        selector='mat-expansion-panel[aria-expanded="true"] button:has-text("Adicionar")',
    ),
    LocationStrategy(
        name="panel_content_full_label",
        selector=f'mat-expansion-panel-content button:has-text("{TARGET_LABEL}")',
    ),
    LocationStrategy(
        name="accordion_child_button",
        selector='#cdk-accordion-child-8 button:has-text("Adicionar")',
    ),
    LocationStrategy(
        name="mat_button",
        selector='button[mat-button]:has-text("Adicionar")',
    ),
    LocationStrategy(
        name="panel_content_mat_button",
        selector='.mat-expansion-panel-content .mat-button:has-text("Adicionar")',
    ),
    LocationStrategy(
        name="button_text_scan",
        kind=StrategyKind.PREDICATE,
        selector="button",
        text_pattern="Adicionar.*Órgão|Adicionar.*Julgador",
    ),
)

_CLOSED_PAGE_MARKERS = ("has been closed", "context was destroyed", "Target closed")


class ElementLocator:
    """
    Finds one element through an ordered cascade of strategies.

    Every attempt expands the panel, clears overlays and walks the cascade;
    the first strategy producing a visible candidate wins. A failed attempt is
    followed by the configured interval and a complete new attempt, up to
    MAX_ATTEMPTS.
    """

    CANDIDATE_TIMEOUT_MS = 3000
    MAX_ATTEMPTS = 3

    def __init__(
        self,
        strategies: tuple[LocationStrategy, ...] = ADD_ORGAN_STRATEGIES,
        panel_expander: PanelExpander | None = None,
        overlay_clearer: OverlayClearer | None = None,
        scanner: ButtonTextScanner | None = None,
        interval_ms: int | None = None,
    ):
        if not strategies:
            raise ValueError("ElementLocator needs at least one strategy.")
        self.strategies = tuple(strategies)
        self.panel_expander = panel_expander or PanelExpander()
        self.overlay_clearer = overlay_clearer or OverlayClearer()
        self.scanner = scanner or ButtonTextScanner()
        self._interval_ms = interval_ms

    async def locate(self, page: Page, attempt_number: int = 1) -> Locator:
        """Returns the target Locator or raises NotFoundError."""
        result = await self.locate_with_report(page, attempt_number)
        return result.element

    async def locate_with_report(
        self, page: Page, attempt_number: int = 1
    ) -> LocateResult:
        retry = RetryState(
            attempt_number=attempt_number,
            # Resuming at or past the limit still gets exactly one attempt.
            max_attempts=max(self.MAX_ATTEMPTS, attempt_number),
            interval_ms=(
                self._interval_ms
                if self._interval_ms is not None
                else get_config().retry.interval_ms
            ),
        )

        while True:
            log = logger.bind(attempt=retry.attempt_number, max_attempts=retry.max_attempts)
            log.info("Locate attempt started.", target=TARGET_LABEL)
            self._ensure_open(page)

            panel_outcome = await self.panel_expander.ensure_expanded(page)
            overlay_outcome = await self.overlay_clearer.clear(page)

            for strategy in self.strategies:
                element = await self._try_strategy(page, strategy, log)
                if element is not None:
                    log.info("Element located.", strategy=strategy.name)
                    return LocateResult(
                        element=element,
                        strategy=strategy,
                        attempt_number=retry.attempt_number,
                        panel_outcome=panel_outcome,
                        overlay_outcome=overlay_outcome,
                    )

            if retry.exhausted:
                break

            log.info(
                "All strategies missed; waiting before next attempt.",
                interval_ms=retry.interval_ms,
            )
            await page.wait_for_timeout(retry.interval_ms)
            retry.advance()

        tried = [strategy.name for strategy in self.strategies]
        message = (
            f"Button '{TARGET_LABEL}' not found after {retry.attempt_number} attempt(s); "
            f"strategies tried: {', '.join(tried)}"
        )
        logger.error("Locate FAILED.", attempts=retry.attempt_number, strategies=tried)
        raise NotFoundError(message, strategies_tried=tried, attempts=retry.attempt_number)

    async def probe(self, page: Page) -> list[StrategyProbe]:
        """
        Reports what every strategy currently sees, without preconditions,
        waiting or retries. Nothing on the page is clicked.
        """
        self._ensure_open(page)
        report: list[StrategyProbe] = []
        for strategy in self.strategies:
            probe = StrategyProbe(
                name=strategy.name, kind=strategy.kind, selector=strategy.selector
            )
            try:
                candidate = await self._resolve(page, strategy)
                if candidate is not None:
                    query = self._query(page, strategy)
                    probe.count = await query.count()
                    probe.visible = probe.count > 0 and await candidate.is_visible()
            except Exception as e:
                probe.error = f"{type(e).__name__}: {e}"
            report.append(probe)
        return report

    def _query(self, page: Page, strategy: LocationStrategy) -> Locator:
        """Full (not yet narrowed to .first) Locator described by the strategy."""
        locator = page.locator(strategy.selector)
        if strategy.kind is StrategyKind.STRUCTURAL:
            return locator
        return locator.filter(has_text=re.compile(strategy.text_pattern))

    async def _resolve(self, page: Page, strategy: LocationStrategy) -> Locator | None:
        if strategy.kind is StrategyKind.PREDICATE:
            label = await self.scanner.find_label(page)
            if label is None:
                return None
        return self._query(page, strategy).first

    async def _try_strategy(
        self, page: Page, strategy: LocationStrategy, log
    ) -> Locator | None:
        log = log.bind(strategy=strategy.name)
        log.debug("Trying strategy.", selector=strategy.selector)
        try:
            candidate = await self._resolve(page, strategy)
            if candidate is None:
                log.info("Strategy missed.", reason="no_text_match")
                return None

            await candidate.wait_for(state="visible", timeout=self.CANDIDATE_TIMEOUT_MS)
            if await candidate.is_visible():
                return candidate
            log.info("Strategy missed.", reason="hidden")
        except PlaywrightTimeoutError:
            log.info(
                "Strategy missed.", reason="timeout", timeout_ms=self.CANDIDATE_TIMEOUT_MS
            )
        except Exception as e:
            if self._page_gone(page, e):
                raise PageClosedError("Page closed while locating element.") from e
            log.warning("Strategy missed.", reason="error", error=f"{type(e).__name__}: {e}")
        return None

    @staticmethod
    def _page_gone(page: Page, error: Exception) -> bool:
        if page.is_closed():
            return True
        return any(marker in str(error) for marker in _CLOSED_PAGE_MARKERS)

    @staticmethod
    def _ensure_open(page: Page):
        if page.is_closed():
            raise PageClosedError("Cannot locate element, page is closed.")


async def find_add_organ_button(page: Page) -> Locator:
    """Locates the "Adicionar Órgão Julgador" button on the perito/servidor form."""
    return await ElementLocator().locate(page)

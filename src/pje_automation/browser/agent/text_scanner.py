from collections.abc import Sequence

from playwright.async_api import Page
import structlog

logger = structlog.get_logger(__name__)

# Runs inside the page. Returns the trimmed text of the first matching button, or null.
_SCAN_BUTTONS_JS = """
([verb, nouns]) => {
    const buttons = Array.from(document.querySelectorAll('button'));
    const hit = buttons.find(btn => {
        const text = btn.textContent || '';
        return text.includes(verb) && nouns.some(noun => text.includes(noun));
    });
    return hit ? (hit.textContent || '').trim() : null;
}
"""


class ButtonTextScanner:
    """
    Document-wide text search over every <button>.

    A button matches when its text contains the action verb together with at
    least one of the nouns. The scan only proves existence; callers must
    re-resolve an actionable Locator themselves.
    """

    def __init__(
        self, verb: str = "Adicionar", nouns: Sequence[str] = ("Órgão", "Julgador")
    ):
        if not verb or not nouns:
            raise ValueError("ButtonTextScanner needs a verb and at least one noun.")
        self.verb = verb
        self.nouns = tuple(nouns)

    def matches(self, text: str | None) -> bool:
        """Same predicate as the in-page script, for use outside a browser."""
        if not text:
            return False
        return self.verb in text and any(noun in text for noun in self.nouns)

    async def find_label(self, page: Page) -> str | None:
        """Returns the text of the first matching button on the page, or None."""
        label = await page.evaluate(_SCAN_BUTTONS_JS, [self.verb, list(self.nouns)])
        if label:
            logger.debug("Button text scan hit.", label=label)
        return label or None

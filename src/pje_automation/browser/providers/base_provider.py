from abc import ABC, abstractmethod

from playwright.async_api import Browser, Page


class BaseBrowserProvider(ABC):
    """Where the browser driving the PJe form comes from."""

    @abstractmethod
    async def get_browser(
        self, browser_type: str, headless: bool, default_timeout_ms: int | None = None
    ) -> tuple[Browser, Page]:
        """Launches a browser and returns it with a fresh Page."""
        raise NotImplementedError

    @abstractmethod
    async def close(self):
        """Releases the browser and everything it started."""
        raise NotImplementedError

import structlog

from .base_provider import BaseBrowserProvider
from .local_provider import LocalBrowserProvider

logger = structlog.get_logger(__name__)

_PROVIDERS: dict[str, type[BaseBrowserProvider]] = {
    "local": LocalBrowserProvider,
}


class BrowserManager:
    """Factory for browser providers."""

    @staticmethod
    def get_provider(provider_name: str = "local") -> BaseBrowserProvider:
        logger.debug("Creating browser provider.", provider=provider_name)
        try:
            return _PROVIDERS[provider_name]()
        except KeyError:
            raise ValueError(f"Unsupported browser provider: '{provider_name}'") from None

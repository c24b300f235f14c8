"""
Custom exceptions used by the browser automation agent.
"""


class BrowserAgentError(Exception):
    """Base exception for all agent-related errors."""

    pass


class ConfigurationError(BrowserAgentError):
    """Error related to agent configuration."""

    pass


class PageClosedError(BrowserAgentError):
    """The page was closed (or its context destroyed) while the agent was using it."""

    pass


class ElementNotFoundError(BrowserAgentError):
    """Failed to find a specific element."""

    pass


class NotFoundError(ElementNotFoundError):
    """Every location strategy failed on every allowed attempt."""

    def __init__(self, message: str, strategies_tried: list[str], attempts: int):
        super().__init__(message)
        self.strategies_tried = strategies_tried
        self.attempts = attempts


class ActionFailedError(BrowserAgentError):
    """An action (click, etc.) on a located element failed."""

    pass


class NavigationTimeoutError(BrowserAgentError):
    """A page navigation or explicit wait for navigation timed out."""

    pass


class WaitTimeoutError(BrowserAgentError):
    """A general wait condition (e.g., for dynamic update, element state) timed out."""

    pass

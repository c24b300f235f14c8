from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .config import AutomationConfig


class AppState:
    """A simple singleton-like class to hold global application state."""

    def __init__(self):
        self.verbose_mode: bool = False
        self.config: Optional["AutomationConfig"] = None


# Create a single, global instance that all modules can import.
APP_STATE = AppState()

"""
Pydantic models and enums describing location strategies, precondition
outcomes and the results handed back by the locator.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StrategyKind(str, Enum):
    """How a strategy turns its descriptor into a candidate element."""

    STRUCTURAL = "structural"  # plain selector, first match
    TEXT_FILTER = "text_filter"  # selector narrowed by a text regex
    PREDICATE = "predicate"  # in-page text scan gates a text-filtered query


class PreconditionOutcome(str, Enum):
    """Result of a best-effort precondition step."""

    CONFIRMED = "confirmed"
    UNCONFIRMED = "unconfirmed"
    ACTION_FAILED = "action_failed"


class LocationStrategy(BaseModel):
    """One way of finding the target element. Position in the cascade is its priority."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Identifier used in logs and results.")
    kind: StrategyKind = StrategyKind.STRUCTURAL
    selector: str = Field(..., description="Playwright selector resolved against the page.")
    text_pattern: str | None = Field(
        None, description="Regex applied with Locator.filter(has_text=...)."
    )

    @model_validator(mode="after")
    def _pattern_required_for_text_kinds(self) -> "LocationStrategy":
        if self.kind is not StrategyKind.STRUCTURAL and not self.text_pattern:
            raise ValueError(f"Strategy '{self.name}' of kind {self.kind.value} needs a text_pattern.")
        return self


class RetryState(BaseModel):
    """Attempt bookkeeping for one top-level locate call."""

    attempt_number: int = Field(1, ge=1)
    max_attempts: int = Field(3, ge=1)
    interval_ms: int = Field(0, ge=0)

    @property
    def exhausted(self) -> bool:
        return self.attempt_number >= self.max_attempts

    def advance(self) -> int:
        if self.exhausted:
            raise RuntimeError("Retry budget already spent.")
        self.attempt_number += 1
        return self.attempt_number


class LocateResult(BaseModel):
    """The located element together with how it was found."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    element: Any = Field(..., description="The Playwright Locator of the target.")
    strategy: LocationStrategy
    attempt_number: int
    panel_outcome: PreconditionOutcome
    overlay_outcome: PreconditionOutcome


class StrategyProbe(BaseModel):
    """Diagnostic snapshot of what a single strategy sees on the current page."""

    name: str
    kind: StrategyKind
    selector: str
    count: int = 0
    visible: bool = False
    error: str | None = None

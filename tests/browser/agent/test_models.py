import pytest
from pydantic import ValidationError

from pje_automation.browser.agent.models import LocationStrategy, RetryState, StrategyKind


def test_strategy_is_immutable():
    strategy = LocationStrategy(name="s", selector="button")

    with pytest.raises(ValidationError):
        strategy.selector = "a"


def test_text_kinds_need_a_pattern():
    with pytest.raises(ValidationError):
        LocationStrategy(name="s", kind=StrategyKind.TEXT_FILTER, selector="button")

    strategy = LocationStrategy(
        name="s", kind="text_filter", selector="button", text_pattern="Adicionar"
    )
    assert strategy.kind is StrategyKind.TEXT_FILTER


def test_retry_state_is_bounded():
    retry = RetryState(attempt_number=1, max_attempts=3, interval_ms=10)

    assert retry.advance() == 2
    assert retry.advance() == 3
    assert retry.exhausted
    with pytest.raises(RuntimeError):
        retry.advance()

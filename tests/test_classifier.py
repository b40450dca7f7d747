import pytest

from hashgate.classifier import ExitCodeFilter, should_keep
from hashgate.schema import RunConfig


@pytest.mark.parametrize("exit_code", [-1, 0, 1, 2, 127, 255])
def test_filter_disabled_keeps_every_code(exit_code):
    assert should_keep(exit_code, {0}, {1}, filter_enabled=False)


@pytest.mark.parametrize(
    "exit_code, expected",
    [
        (0, True),
        (1, True),
        (2, True),
        (3, False),
        (-1, False),
    ],
)
def test_filter_keeps_codes_in_either_set(exit_code, expected):
    assert should_keep(exit_code, {0}, {1, 2}, filter_enabled=True) is expected


def test_overlapping_sets_keep_shared_code():
    assert should_keep(1, {0, 1}, {1}, filter_enabled=True)


def test_sentinel_kept_when_listed_as_error():
    assert should_keep(-1, {0}, {-1}, filter_enabled=True)


def test_enabled_filter_with_empty_sets_discards_everything():
    assert not should_keep(0, set(), set(), filter_enabled=True)
    assert not should_keep(-1, set(), set(), filter_enabled=True)


def test_exit_code_filter_from_config():
    config = RunConfig(command="x", success_codes={0}, error_codes={2}, workers=1)
    exit_filter = ExitCodeFilter.from_config(config)

    assert exit_filter.enabled
    assert exit_filter.keep(0)
    assert exit_filter.keep(2)
    assert not exit_filter.keep(1)


def test_exit_code_filter_disabled_without_codes():
    exit_filter = ExitCodeFilter.from_config(RunConfig(command="x", workers=1))

    assert not exit_filter.enabled
    assert exit_filter.keep(-1)
    assert not exit_filter.needs_failure_hint(-1)


def test_failure_hint_only_for_dropped_sentinel():
    exit_filter = ExitCodeFilter(
        success_codes=frozenset({0}), error_codes=frozenset({1}), enabled=True
    )
    assert exit_filter.needs_failure_hint(-1)
    assert not exit_filter.needs_failure_hint(3)

    allowed = ExitCodeFilter(
        success_codes=frozenset({0}), error_codes=frozenset({-1}), enabled=True
    )
    assert not allowed.needs_failure_hint(-1)

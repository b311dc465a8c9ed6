"""
Test suite for scoped conversion settings.

Validates per-caller storage, scope release on every exit path, nested
scopes and isolation between threads.
"""

import threading

import pytest

from dtomap.core.config import DEFAULT_DATE_PATTERN, reset_settings
from dtomap.core.exceptions import InvalidArgumentError
from dtomap.mapping.context import (
    ConversionContext,
    consume_date_pattern,
    consume_decimal_scale,
    consume_lenient,
    conversion_scope,
    current_context,
    in_scope,
    reset_scope,
    set_date_pattern,
    set_decimal_scale,
    set_lenient,
    with_context,
)


class TestStoredContext:
    """Setting and consuming per-caller overrides."""

    def test_defaults_come_from_settings(self):
        assert consume_date_pattern() == DEFAULT_DATE_PATTERN
        assert consume_decimal_scale() is None
        assert consume_lenient() is False

    def test_environment_defaults(self, monkeypatch):
        monkeypatch.setenv("DTOMAP_DATE_PATTERN", "dd/MM/yyyy")
        monkeypatch.setenv("DTOMAP_DECIMAL_SCALE", "4")
        monkeypatch.setenv("DTOMAP_LENIENT_DATES", "true")
        reset_settings()

        assert consume_date_pattern() == "dd/MM/yyyy"
        assert consume_decimal_scale() == 4
        assert consume_lenient() is True

    def test_set_and_consume(self):
        set_date_pattern("yyyy/MM/dd")
        set_decimal_scale(3)
        set_lenient(True)

        assert consume_date_pattern() == "yyyy/MM/dd"
        assert consume_decimal_scale() == 3
        assert consume_lenient() is True
        # Consuming does not clear
        assert consume_decimal_scale() == 3

    def test_reset_scope(self):
        set_decimal_scale(3)

        reset_scope()

        assert consume_decimal_scale() is None
        assert current_context() == ConversionContext()

    def test_contexts_are_replaced_not_mutated(self):
        set_decimal_scale(1)
        before = current_context()

        set_decimal_scale(2)

        assert before.decimal_scale == 1
        assert current_context().decimal_scale == 2

    @pytest.mark.parametrize("scale", [-1, 1.5, "2", True, None])
    def test_invalid_scale(self, scale):
        with pytest.raises(InvalidArgumentError):
            set_decimal_scale(scale)

    def test_empty_pattern(self):
        with pytest.raises(InvalidArgumentError):
            set_date_pattern("")

    def test_zero_scale_is_allowed(self):
        set_decimal_scale(0)

        assert consume_decimal_scale() == 0


class TestConversionScope:
    """Scope release and nesting."""

    def test_scope_releases_primed_context(self):
        set_decimal_scale(3)

        with conversion_scope() as active:
            assert active.decimal_scale == 3
            assert in_scope()

        assert not in_scope()
        assert consume_decimal_scale() is None

    def test_scope_installs_explicit_context(self):
        with conversion_scope(ConversionContext(date_pattern="HH:mm")) as active:
            assert active.date_pattern == "HH:mm"
            assert consume_date_pattern() == "HH:mm"

        assert consume_date_pattern() == DEFAULT_DATE_PATTERN

    def test_scope_releases_on_error(self):
        set_decimal_scale(3)

        with pytest.raises(RuntimeError):
            with conversion_scope():
                raise RuntimeError("boom")

        assert consume_decimal_scale() is None
        assert not in_scope()

    def test_nested_scope_does_not_reset(self):
        set_decimal_scale(3)

        with conversion_scope():
            with conversion_scope():
                pass
            assert consume_decimal_scale() == 3

        assert consume_decimal_scale() is None

    def test_nested_explicit_context_is_restored(self):
        with conversion_scope(ConversionContext(decimal_scale=1)):
            with conversion_scope(ConversionContext(decimal_scale=5)):
                assert consume_decimal_scale() == 5
            assert consume_decimal_scale() == 1

    def test_with_context(self):
        result = with_context(ConversionContext(decimal_scale=2), consume_decimal_scale)

        assert result == 2
        assert consume_decimal_scale() is None

    def test_with_context_passes_arguments_and_releases_on_error(self):
        def fail(message, *, code):
            raise ValueError(f"{message}:{code}")

        with pytest.raises(ValueError, match="bad:7"):
            with_context(ConversionContext(decimal_scale=2), fail, "bad", code=7)

        assert consume_decimal_scale() is None


class TestThreadIsolation:
    """Each thread sees only its own overrides."""

    def test_threads_do_not_share_context(self):
        barrier = threading.Barrier(4)
        seen = {}
        errors = []

        def worker(scale):
            try:
                set_decimal_scale(scale)
                barrier.wait(timeout=5)
                seen[scale] = consume_decimal_scale()
            except Exception as e:  # surfaced through the assertion below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(scale,)) for scale in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert not errors
        assert seen == {0: 0, 1: 1, 2: 2, 3: 3}
        assert consume_decimal_scale() is None


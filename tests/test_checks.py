"""Validate null checks on arguments and record fields."""

import pytest

from dtomap.core.exceptions import InvalidArgumentError
from dtomap.mapping.checks import assert_no_null_fields, assert_not_null, check_not_null, check_null_fields
from sample_records import Account, Child


class TestArgumentChecks:
    def test_check_not_null(self):
        assert check_not_null(1, "a", 0, "")
        assert not check_not_null(1, None)
        assert check_not_null()

    def test_assert_not_null_names_the_argument(self):
        with pytest.raises(InvalidArgumentError) as excinfo:
            assert_not_null("a", None, "c")

        assert excinfo.value.details == {"index": 1}

        assert_not_null("a", 0)


class TestRecordChecks:
    def test_complete_record(self):
        account = Account(name="a", balance=0, opened=None, visits=1, score=1.0)

        assert not check_null_fields(account)

        account.opened = "2024-01-01"
        assert check_null_fields(account)

    def test_own_fields_only_by_default(self):
        child = Child()
        child.child_name = "c"

        assert check_null_fields(child)
        assert not check_null_fields(child, include_ancestors=True)

        child.base_id = 1
        assert check_null_fields(child, include_ancestors=True)

    def test_assert_lists_missing_fields(self):
        with pytest.raises(InvalidArgumentError) as excinfo:
            assert_no_null_fields(Account(name="a", visits=1))

        assert excinfo.value.details == {"fields": ["balance", "opened", "score"]}
        assert "balance, opened, score" in str(excinfo.value)

    def test_assert_passes_for_complete_record(self):
        child = Child()
        child.child_name = "c"

        assert_no_null_fields(child)

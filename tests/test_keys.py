"""Validate camel-case conversion and key normalization."""

import pytest

from dtomap.mapping.keys import normalize_key, normalize_keys, to_camel_case


class TestToCamelCase:
    """Validate the underscore-hump rewrite."""

    @pytest.mark.parametrize(
        "key,expected",
        [
            ("user_name", "userName"),
            ("created_at_utc", "createdAtUtc"),
            ("UserName", "userName"),
            ("userName", "userName"),
            ("name", "name"),
            ("", ""),
            ("_private", "private"),
        ],
    )
    def test_basic_conversion(self, key, expected):
        assert to_camel_case(key) == expected

    def test_only_lowercase_after_underscore_is_a_hump(self):
        assert to_camel_case("user_Name") == "user_Name"
        assert to_camel_case("user_1") == "user_1"
        assert to_camel_case("user-name") == "user-name"
        assert to_camel_case("user.name") == "user.name"

    @pytest.mark.parametrize(
        "key",
        ["user_name", "User_Name", "__a", "a__b", "A_b_c", "_x_y", "ÄBC_def", "x_", "", "already"],
    )
    def test_idempotent(self, key):
        once = to_camel_case(key)
        assert to_camel_case(once) == once


class TestNormalizeKeys:
    """Validate in-place key rewriting."""

    def test_database_style_keys(self):
        assert normalize_key("USER_NAME") == "userName"
        assert normalize_key("ID") == "id"
        assert normalize_key("user_id") == "userId"
        assert normalize_key("userName") == "userName"

    def test_rewrites_in_place(self):
        row = {"user_name": "ann", "AGE": 31, "email": "a@example.com"}

        result = normalize_keys(row)

        assert result is row
        assert row == {"email": "a@example.com", "userName": "ann", "age": 31}

    def test_collision_keeps_rewritten_value(self):
        row = {"user_name": 1, "userName": 2}

        normalize_keys(row)

        assert row == {"userName": 1}
        assert len(row) == 1

    def test_already_normal_keys_untouched(self):
        row = {"userName": 1, "age": 2}
        keys_before = list(row)

        normalize_keys(row)

        assert list(row) == keys_before

    def test_list_of_maps(self):
        rows = [{"first_name": "a"}, {"LAST_NAME": "b"}, {}]

        result = normalize_keys(rows)

        assert result is rows
        assert rows == [{"firstName": "a"}, {"lastName": "b"}, {}]

    def test_non_string_keys_skipped(self):
        row = {1: "one", "snake_case": "two"}

        normalize_keys(row)

        assert row == {1: "one", "snakeCase": "two"}

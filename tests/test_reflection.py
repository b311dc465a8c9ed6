"""Validate record field reflection and the shared field cache."""

import threading
import time
from typing import ClassVar, List, Optional
from unittest.mock import patch

import pytest

from dtomap.core.exceptions import InvalidArgumentError
from dtomap.mapping.kinds import SemanticKind
from dtomap.mapping.reflection import FieldReflector, default_reflector, fields_of, readable_fields_of
from sample_records import (
    Account,
    Audited,
    Child,
    Customer,
    FrozenCustomer,
    Member,
    Moments,
    Narrow,
    Snapshot,
    Status,
)


def _kinds(cls):
    return {field.name: field.kind for field in readable_fields_of(cls)}


class TestFieldDescriptors:
    """Kinds and finality resolved from annotations."""

    def test_plain_annotations(self):
        assert _kinds(Account) == {
            "name": SemanticKind.STRING,
            "balance": SemanticKind.BIG_DECIMAL,
            "opened": SemanticKind.DATE_ONLY,
            "visits": SemanticKind.INT64,
            "score": SemanticKind.FLOAT64,
        }

    def test_field_order_follows_declaration(self):
        assert [field.name for field in fields_of(Account)] == ["name", "balance", "opened", "visits", "score"]

    def test_annotated_aliases(self):
        assert _kinds(Narrow) == {
            "tiny": SemanticKind.INT8,
            "small": SemanticKind.INT16,
            "medium": SemanticKind.INT32,
            "huge": SemanticKind.BIG_INTEGER,
            "single": SemanticKind.FLOAT32,
            "initial": SemanticKind.CHAR,
        }

    def test_date_family(self):
        assert _kinds(Moments) == {
            "day": SemanticKind.DATE_ONLY,
            "clock": SemanticKind.TIME_ONLY,
            "stamp": SemanticKind.DATE_TIME,
            "moment": SemanticKind.INSTANT,
        }

    def test_enum_and_opaque_fields(self):
        fields = {field.name: field for field in readable_fields_of(Member)}

        assert fields["status"].kind is SemanticKind.ENUM
        assert fields["status"].enum_type is Status
        assert fields["tags"].kind is None
        assert fields["tags"].python_type == List[str]

    def test_dataclass_final_fields(self):
        assert [field.name for field in fields_of(Audited)] == ["name"]
        assert [field.name for field in readable_fields_of(Audited)] == ["name", "created_by", "revision"]

    def test_frozen_dataclass_has_no_assignable_fields(self):
        assert fields_of(Snapshot) == ()
        assert len(readable_fields_of(Snapshot)) == 2

    def test_plain_class_includes_ancestors_first(self):
        assert [field.name for field in readable_fields_of(Child)] == ["base_id", "child_name", "version"]
        assert [field.name for field in fields_of(Child)] == ["base_id", "child_name"]

    def test_pydantic_model(self):
        fields = {field.name: field for field in readable_fields_of(Customer)}

        assert fields["customer_id"].kind is SemanticKind.INT64
        assert fields["limit"].kind is SemanticKind.INT32
        assert fields["joined"].kind is SemanticKind.DATE_ONLY
        assert fields["region"].is_final
        assert "region" not in [field.name for field in fields_of(Customer)]

    def test_frozen_pydantic_model(self):
        assert fields_of(FrozenCustomer) == ()
        assert len(readable_fields_of(FrozenCustomer)) == 2

    def test_class_vars_are_skipped(self):
        class Registry:
            count: ClassVar[int] = 0
            label: Optional[str] = None

        assert [field.name for field in readable_fields_of(Registry)] == ["label"]

    def test_non_class_is_rejected(self):
        with pytest.raises(InvalidArgumentError):
            fields_of(Account())
        with pytest.raises(InvalidArgumentError):
            fields_of(None)


class TestFieldCache:
    """Memoization and concurrent first access."""

    def test_cached_per_type(self):
        first = fields_of(Account)

        assert fields_of(Account) is first
        assert Account in default_reflector.cached_types()

    def test_clear(self):
        fields_of(Account)

        default_reflector.clear()

        assert default_reflector.cached_types() == ()

    def test_concurrent_first_access_describes_once(self):
        reflector = FieldReflector()
        original = FieldReflector.describe
        barrier = threading.Barrier(8)
        results = []

        def slow_describe(cls):
            time.sleep(0.05)
            return original(cls)

        def worker():
            barrier.wait(timeout=5)
            results.append(reflector.fields_of(Account))

        with patch.object(FieldReflector, "describe", side_effect=slow_describe) as describe:
            threads = [threading.Thread(target=worker) for _ in range(8)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        assert describe.call_count == 1
        assert len(results) == 8
        assert all(result is results[0] for result in results)

    def test_distinct_types_cached_separately(self):
        reflector = FieldReflector()

        reflector.fields_of(Account)
        reflector.fields_of(Member)

        assert set(reflector.cached_types()) == {Account, Member}

"""Tests for {{ path }} token resolution."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass

from stepflow.executor.resolver import (
    VariableResolver,
    find_unresolved,
    is_missing,
    lookup_path,
    stringify,
)


@dataclass
class Customer:
    name: str
    _secret: str = "hidden"


class TestLookupPath:
    """Tests for dotted path lookup."""

    def test_nested_mapping(self) -> None:
        assert lookup_path({"a": {"b": {"c": 1}}}, "a.b.c") == 1

    def test_list_index(self) -> None:
        assert lookup_path({"items": [10, 20, 30]}, "items.1") == 20

    def test_list_index_out_of_range(self) -> None:
        assert is_missing(lookup_path({"items": [10]}, "items.3"))

    def test_attribute_access(self) -> None:
        assert lookup_path({"customer": Customer("Ada")}, "customer.name") == "Ada"

    def test_private_attributes_are_not_reachable(self) -> None:
        assert is_missing(lookup_path({"customer": Customer("Ada")}, "customer._secret"))

    def test_missing_key(self) -> None:
        assert is_missing(lookup_path({"a": {}}, "a.b"))

    def test_none_in_the_middle(self) -> None:
        assert is_missing(lookup_path({"a": None}, "a.b"))

    def test_none_value_is_not_missing(self) -> None:
        assert lookup_path({"a": None}, "a") is None


class TestStringify:
    """Tests for embedding values in text."""

    def test_values(self) -> None:
        assert stringify("text") == "text"
        assert stringify(5) == "5"
        assert stringify(True) == "true"
        assert stringify(None) == "null"
        assert stringify({"a": 1}) == '{"a": 1}'
        assert stringify([1, 2]) == "[1, 2]"


class TestVariableResolver:
    """Tests for VariableResolver.resolve."""

    def setup_method(self) -> None:
        self.resolver = VariableResolver()
        self.scope = {
            "inputs": {"x": 5, "name": "Ada", "tags": ["a", "b"]},
            "steps": {"s1": {"output": {"total": 42}, "status": "completed"}},
        }

    def test_single_token_keeps_type(self) -> None:
        """Test that a whole-string token yields the raw value."""
        assert self.resolver.resolve("{{inputs.x}}", self.scope) == 5
        assert self.resolver.resolve("{{ inputs.tags }}", self.scope) == ["a", "b"]

    def test_missing_token_left_verbatim(self) -> None:
        """Test that an unresolvable token is returned unchanged."""
        assert self.resolver.resolve("{{inputs.missing}}", self.scope) == "{{inputs.missing}}"

    def test_embedded_tokens_are_stringified(self) -> None:
        result = self.resolver.resolve(
            "Hi {{ inputs.name }}, total={{ steps.s1.output.total }}", self.scope
        )
        assert result == "Hi Ada, total=42"

    def test_embedded_missing_token_left_verbatim(self) -> None:
        result = self.resolver.resolve("x={{ inputs.x }} y={{ inputs.y }}", self.scope)
        assert result == "x=5 y={{ inputs.y }}"

    def test_nested_structures(self) -> None:
        config = {
            "url": "https://api/{{ inputs.name }}",
            "body": {"amount": "{{ steps.s1.output.total }}", "flags": ["{{ inputs.x }}", 7]},
            "enabled": True,
        }

        assert self.resolver.resolve(config, self.scope) == {
            "url": "https://api/Ada",
            "body": {"amount": 42, "flags": [5, 7]},
            "enabled": True,
        }

    def test_non_string_scalars_pass_through(self) -> None:
        assert self.resolver.resolve(3.5, self.scope) == 3.5
        assert self.resolver.resolve(None, self.scope) is None

    def test_input_is_not_mutated(self) -> None:
        config = {"a": "{{ inputs.x }}"}
        self.resolver.resolve(config, self.scope)
        assert config == {"a": "{{ inputs.x }}"}

    def test_now_token(self) -> None:
        value = self.resolver.resolve("{{now}}", self.scope)
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", value)

    def test_uuid_tokens_are_fresh_per_occurrence(self) -> None:
        """Test that each uuid token produces its own identifier."""
        first, second = self.resolver.resolve(["{{uuid}}", "{{ uuid }}"], self.scope)

        assert uuid.UUID(first)
        assert uuid.UUID(second)
        assert first != second

    def test_uuid_tokens_in_one_string_differ(self) -> None:
        value = self.resolver.resolve("{{uuid}}|{{uuid}}", self.scope)
        left, right = value.split("|")
        assert left != right


class TestFindUnresolved:
    """Tests for find_unresolved."""

    def test_lists_tokens_in_order(self) -> None:
        value = {"a": "{{ inputs.y }}", "b": ["ok", "x={{ steps.z.output }}"]}
        assert find_unresolved(value) == ["inputs.y", "steps.z.output"]

    def test_nothing_left(self) -> None:
        assert find_unresolved({"a": 1, "b": "plain"}) == []


class TestBind:
    """Tests for VariableResolver.bind."""

    def setup_method(self) -> None:
        self.resolver = VariableResolver()
        self.scope = {
            "inputs": {"x": 5, "note": "{{ inputs.x }} or 1"},
            "steps": {"s1": {"output": {"total": 42}}},
        }

    def test_bare_tokens_become_names(self) -> None:
        bound = self.resolver.bind("{{ inputs.x }} < {{ steps.s1.output.total }}", self.scope)

        assert bound.text == "token_0 < token_1"
        assert bound.values == {"token_0": 5, "token_1": 42}
        assert bound.missing == []

    def test_quoted_literal_becomes_one_name(self) -> None:
        bound = self.resolver.bind("'x={{ inputs.x }}' == 'x=5'", self.scope)

        assert bound.text == "token_0 == 'x=5'"
        assert bound.values == {"token_0": "x=5"}

    def test_values_are_not_resolved_again(self) -> None:
        bound = self.resolver.bind("'{{ inputs.note }}'", self.scope)
        assert bound.values == {"token_0": "{{ inputs.x }} or 1"}

    def test_reserved_names_are_not_shadowed(self) -> None:
        bound = self.resolver.bind("{{ inputs.x }}", self.scope, reserved={"token_0"})
        assert bound.values == {"token_0_": 5}

    def test_missing_paths_are_reported(self) -> None:
        bound = self.resolver.bind("{{ inputs.y }} and '{{ steps.z.output }}'", self.scope)
        assert bound.missing == ["inputs.y", "steps.z.output"]

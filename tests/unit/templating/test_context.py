"""Unit tests for variable contexts and scopes."""

from types import MappingProxyType

import pytest

from stencil.templating import Scope, VariableContext, compose_context


class TestVariableContext:
    def test_values_are_frozen(self) -> None:
        raw = {"Items": ["a"]}
        context = VariableContext(raw)
        raw["Items"].append("b")

        assert context["Items"] == ("a",)

    def test_context_value_is_read_only(self) -> None:
        context = VariableContext({"A": 1})
        with pytest.raises(TypeError):
            context.value["A"] = 2  # pyright: ignore[reportIndexIssue]

    def test_to_dict_returns_plain_copy(self) -> None:
        context = VariableContext({"M": {"k": [1]}})
        data = context.to_dict()

        assert data == {"M": {"k": [1]}}
        assert isinstance(data["M"], dict)

    def test_empty(self) -> None:
        context = VariableContext()
        assert len(context) == 0
        assert "A" not in context


class TestComposeContext:
    def test_later_layers_override(self) -> None:
        context = compose_context({"A": 1, "B": 1}, None, {"B": 2})
        assert dict(context) == {"A": 1, "B": 2}

    def test_accepts_contexts(self) -> None:
        base = VariableContext({"A": {"x": 1}})
        context = compose_context(base, {"A": {"y": 2}})
        assert context.to_dict() == {"A": {"y": 2}}


class TestScope:
    def test_root_frame(self) -> None:
        context = VariableContext({"A": 1})
        scope = Scope.for_context(context)

        assert scope.dot is context.value
        assert scope.lookup("") == (True, context.value)
        assert scope.lookup("x") == (False, None)

    def test_bindings_shadow_without_mutating_parent(self) -> None:
        root = Scope.for_context(VariableContext())
        outer = root.bind({"x": 1})
        inner = outer.bind({"x": 2})

        assert inner.lookup("x") == (True, 2)
        assert outer.lookup("x") == (True, 1)
        assert root.lookup("x") == (False, None)

    def test_dots_from_innermost_outward(self) -> None:
        context = VariableContext({"A": 1})
        item = MappingProxyType({"B": 2})
        scope = Scope.for_context(context).bind({"v": 1}).enter(item)

        assert list(scope.dots()) == [item, context.value]

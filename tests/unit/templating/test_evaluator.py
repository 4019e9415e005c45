"""Unit tests for template evaluation."""

import pytest

from stencil.exceptions import (
    FilterTypeMismatchError,
    MalformedExpressionError,
    UndefinedVariableError,
)
from stencil.templating import (
    Evaluator,
    MissingKeyPolicy,
    Scope,
    VariableContext,
    default_registry,
    parse_template,
    render_template_string,
)


class TestFieldLookup:
    def test_top_level_field(self) -> None:
        assert render_template_string("Hello {{ .Name }}!", {"Name": "World"}) == (
            "Hello World!"
        )

    def test_nested_field(self) -> None:
        assert render_template_string("{{ .A.B }}", {"A": {"B": "x"}}) == "x"

    def test_missing_key_raises(self) -> None:
        with pytest.raises(
            UndefinedVariableError, match='map has no entry for key "Missing"'
        ) as exc:
            render_template_string("{{ .Missing }}", {})

        assert exc.value.expression == ".Missing"
        assert exc.value.template == "<string>"

    def test_missing_key_zero_policy(self) -> None:
        result = render_template_string(
            "[{{ .Missing }}]", {}, on_missing_key=MissingKeyPolicy.ZERO
        )
        assert result == "[<no value>]"

    def test_field_on_scalar(self) -> None:
        with pytest.raises(
            UndefinedVariableError, match="can't evaluate field First in type string"
        ):
            render_template_string("{{ .Name.First }}", {"Name": "x"})

    def test_field_on_nil_chain(self) -> None:
        with pytest.raises(UndefinedVariableError, match="nil value"):
            render_template_string('{{ (index .M "zz").Name }}', {"M": {}})

    def test_field_on_parenthesized_pipeline(self) -> None:
        context = {"Maps": {"a": {"Name": "n"}}}
        assert render_template_string('{{ (index .Maps "a").Name }}', context) == "n"


class TestPipelines:
    def test_filters_apply_left_to_right(self) -> None:
        result = render_template_string(
            "{{ .CompanyName | dasherize | downcase }}", {"CompanyName": "Acme Corp"}
        )
        assert result == "acme-corp"

    def test_filter_order_matters(self) -> None:
        data = {"A": "AcmeCorp"}
        dashed_first = render_template_string("{{ .A | dasherize | downcase }}", data)
        lowered_first = render_template_string("{{ .A | downcase | dasherize }}", data)
        assert dashed_first == "acme-corp"
        assert lowered_first == "acmecorp"

    def test_piped_value_is_last_argument(self) -> None:
        result = render_template_string(
            '{{ .Items | join ", " }}', {"Items": ["a", "b"]}
        )
        assert result == "a, b"

    def test_filter_call_without_pipe(self) -> None:
        assert render_template_string("{{ plus 1 2 }}", {}) == "3"

    def test_parenthesized_argument(self) -> None:
        result = render_template_string(
            "{{ if gt (len .Items) 1 }}many{{ end }}", {"Items": [1, 2]}
        )
        assert result == "many"

    def test_filter_error_is_located(self) -> None:
        with pytest.raises(FilterTypeMismatchError) as exc:
            render_template_string("line1\n{{ .A | dasherize }}", {"A": 5})

        error = exc.value
        assert error.line == 2
        assert error.expression == ".A | dasherize"
        assert "dasherize expects string, got int" in str(error)

    def test_first_error_in_document_order(self) -> None:
        with pytest.raises(UndefinedVariableError, match='"A"'):
            render_template_string("{{ .A }}{{ .B }}", {})


class TestPrinting:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1.5, "1.5"),
            (42, "42"),
            (True, "true"),
            (["a", 1], "[a 1]"),
            ({"b": 1, "a": True}, "map[a:true b:1]"),
        ],
    )
    def test_value_formatting(self, value: object, expected: str) -> None:
        assert render_template_string("{{ .V }}", {"V": value}) == expected

    def test_comments_render_nothing(self) -> None:
        assert render_template_string("a{{/* c */}}b", {}) == "ab"


class TestVariables:
    def test_declaration_prints_nothing(self) -> None:
        result = render_template_string(
            "{{ $n := .Name }}{{ $n }}{{ $n }}", {"Name": "x"}
        )
        assert result == "xx"

    def test_root_variable_inside_range(self) -> None:
        result = render_template_string(
            "{{ range .Items }}{{ $.Prefix }}{{ . }}{{ end }}",
            {"Prefix": "p", "Items": ["a", "b"]},
        )
        assert result == "papb"

    def test_declaration_does_not_leak_from_block(self) -> None:
        with pytest.raises(MalformedExpressionError, match="undefined variable"):
            render_template_string("{{ if true }}{{ $x := 1 }}{{ end }}{{ $x }}", {})

    def test_if_declaration_visible_in_both_branches(self) -> None:
        template = "{{ if $v := .V }}yes {{ $v }}{{ else }}no {{ $v }}{{ end }}"
        assert render_template_string(template, {"V": "a"}) == "yes a"
        assert render_template_string(template, {"V": ""}) == "no "


class TestIf:
    @pytest.mark.parametrize(
        ("a", "b", "expected"),
        [(True, False, "a"), (False, True, "b"), (False, False, "c")],
    )
    def test_else_if_chain(self, a: bool, b: bool, expected: str) -> None:
        template = "{{ if .A }}a{{ else if .B }}b{{ else }}c{{ end }}"
        assert render_template_string(template, {"A": a, "B": b}) == expected

    @pytest.mark.parametrize("value", ["", 0, 0.0, [], {}, None, False])
    def test_falsy_values(self, value: object) -> None:
        template = "{{ if .V }}true{{ else }}false{{ end }}"
        assert render_template_string(template, {"V": value}) == "false"

    @pytest.mark.parametrize("value", ["x", 1, -0.5, [0], {"k": None}, True])
    def test_truthy_values(self, value: object) -> None:
        template = "{{ if .V }}true{{ else }}false{{ end }}"
        assert render_template_string(template, {"V": value}) == "true"


class TestRange:
    def test_sequence_rebinds_dot(self) -> None:
        result = render_template_string(
            "{{ range .Items }}[{{ . }}]{{ end }}", {"Items": ["x", "y"]}
        )
        assert result == "[x][y]"

    def test_index_and_value_over_sorted_keys(self) -> None:
        result = render_template_string(
            "{{ range $i, $k := .M | keys }}{{ $i }}={{ $k }};{{ end }}",
            {"M": {"b": 1, "a": 2}},
        )
        assert result == "0=a;1=b;"

    def test_mapping_iterates_in_key_order(self) -> None:
        result = render_template_string(
            "{{ range $k, $v := .M }}{{ $k }}:{{ $v }} {{ end }}",
            {"M": {"b": 1, "a": 2}},
        )
        assert result == "a:2 b:1 "

    def test_fields_fall_through_to_outer_context(self) -> None:
        result = render_template_string(
            "{{ range .Items }}{{ .Name }}-{{ .Sep }} {{ end }}",
            {"Items": [{"Name": "a"}], "Sep": "/"},
        )
        assert result == "a-/ "

    @pytest.mark.parametrize("items", [[], None, {}])
    def test_else_branch_when_empty(self, items: object) -> None:
        template = "{{ range .Items }}x{{ else }}empty{{ end }}"
        assert render_template_string(template, {"Items": items}) == "empty"

    def test_integer_counts_from_zero(self) -> None:
        assert render_template_string("{{ range 3 }}{{ . }}{{ end }}", {}) == "012"

    @pytest.mark.parametrize("value", ["abc", True])
    def test_non_iterable_raises(self, value: object) -> None:
        with pytest.raises(FilterTypeMismatchError, match="range can't iterate"):
            render_template_string("{{ range .V }}{{ end }}", {"V": value})

    def test_nested_ranges(self) -> None:
        result = render_template_string(
            "{{ range $r := .Rows }}{{ range $r }}{{ . }}{{ end }};{{ end }}",
            {"Rows": [[1, 2], [3]]},
        )
        assert result == "12;3;"


class TestEvaluator:
    def test_render_nodes_directly(self) -> None:
        nodes = parse_template("{{ .A | upcase }}")
        evaluator = Evaluator(default_registry(), template="direct.txt")
        scope = Scope.for_context(VariableContext({"A": "x"}))

        assert evaluator.render(nodes, scope) == "X"

    def test_errors_carry_template_name(self) -> None:
        nodes = parse_template("{{ .A }}")
        evaluator = Evaluator(default_registry(), template="direct.txt")

        with pytest.raises(UndefinedVariableError) as exc:
            evaluator.render(nodes, Scope.for_context(VariableContext()))
        assert exc.value.template == "direct.txt"

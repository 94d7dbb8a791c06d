"""Tests for {{placeholder}} resolution."""

import json

from flowchat.engine.variable_resolver import VariableResolver

resolver = VariableResolver()

CONTEXT = {
    "env": {"API_TOKEN": "tok-123"},
    "chatContext": {"userMessage": "hello", "history": [{"role": "user", "content": "hi"}]},
    "agent-1": {"response": "Sure thing", "done": True, "count": 3},
}


def test_replaces_every_placeholder_in_a_string():
    result = resolver.resolve("Bearer {{env.API_TOKEN}} / {{chatContext.userMessage}}", CONTEXT)
    assert result == "Bearer tok-123 / hello"


def test_unknown_paths_become_empty_string():
    assert resolver.resolve("x={{nope.nothing}};y={{env.MISSING}}", CONTEXT) == "x=;y="


def test_falls_back_to_case_insensitive_keys():
    assert resolver.resolve("{{ENV.api_token}}", CONTEXT) == "tok-123"


def test_exact_key_wins_over_case_insensitive_match():
    context = {"Name": "upper", "name": "lower"}
    assert resolver.resolve("{{name}}", context) == "lower"


def test_list_indices_and_scalar_conversion():
    assert resolver.resolve("{{chatContext.history.0.content}}", CONTEXT) == "hi"
    assert resolver.resolve("{{agent-1.done}}/{{agent-1.count}}", CONTEXT) == "true/3"


def test_whole_placeholder_returns_structured_value():
    result = resolver.resolve("{{chatContext.history}}", CONTEXT)
    assert result == [{"role": "user", "content": "hi"}]
    result.append("mutated")
    assert len(CONTEXT["chatContext"]["history"]) == 1


def test_structured_value_inside_template_is_serialized():
    result = resolver.resolve("history: {{chatContext.history}}", CONTEXT)
    assert result == 'history: [{"role": "user", "content": "hi"}]'


def test_non_string_values_pass_through():
    assert resolver.resolve(42, CONTEXT) == 42
    assert resolver.resolve(None, CONTEXT) is None
    assert resolver.resolve(False, CONTEXT) is False


def test_nested_structures_resolve_through_json():
    value = {"text": "{{agent-1.response}}", "meta": {"tags": ["{{env.API_TOKEN}}", 7]}}
    assert resolver.resolve(value, CONTEXT) == {
        "text": "Sure thing",
        "meta": {"tags": ["tok-123", 7]},
    }


def test_structure_resolution_matches_string_round_trip():
    value = {"a": "{{agent-1.response}}", "b": ["{{env.API_TOKEN}}"]}
    round_trip = json.loads(resolver.resolve_template(json.dumps(value), CONTEXT))
    assert resolver.resolve(value, CONTEXT) == round_trip


def test_substituted_quotes_keep_structures_valid():
    context = {"msg": 'He said "hi"\nthen left'}
    assert resolver.resolve({"text": "{{msg}}"}, context) == {"text": 'He said "hi"\nthen left'}


def test_resolve_inputs_handles_every_field():
    inputs = {"url": "https://api.test/{{agent-1.count}}", "body": {"q": "{{chatContext.userMessage}}"}, "n": 5}
    assert resolver.resolve_inputs(inputs, CONTEXT) == {
        "url": "https://api.test/3",
        "body": {"q": "hello"},
        "n": 5,
    }


def test_malformed_placeholders_never_raise():
    for template in ["{{", "}}", "{{}}", "{{ }}", "{{a..b}}", "{{{x}}}"]:
        assert isinstance(resolver.resolve(template, CONTEXT), str)


class TestFieldMap:
    def test_composes_data_for_data_table(self):
        inputs = {"tableId": "t1", "fieldMap.name": "Ada", "fieldMap.email": "ada@example.com", "fieldMap.phone": ""}
        composed = resolver.compose_field_map(inputs, "data-table")
        assert composed["data"] == {"name": "Ada", "email": "ada@example.com"}
        assert composed["tableId"] == "t1"

    def test_leaves_inputs_alone_when_every_mapped_field_is_empty(self):
        inputs = {"fieldMap.name": "", "data": '{"x": 1}'}
        assert resolver.compose_field_map(inputs, "data-table") == inputs

    def test_only_applies_to_data_table(self):
        inputs = {"fieldMap.name": "Ada"}
        assert resolver.compose_field_map(inputs, "http-request") == inputs

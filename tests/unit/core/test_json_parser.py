import pytest

from ideagraph.utils.json_parser import parse_json_safely


@pytest.mark.parametrize(
    "text,expected",
    [
        ('{"a": 1}', {"a": 1}),
        ('  [1, 2]  ', [1, 2]),
        ('```json\n{"a": 1}\n```', {"a": 1}),
        ('```\n{"a": 1}\n```', {"a": 1}),
        ('{"a": 1}\n\nHope this helps!', {"a": 1}),
        ('Here is the result: {"a": {"b": [1]}}', {"a": {"b": [1]}}),
    ],
)
def test_parses_common_model_output(text, expected):
    assert parse_json_safely(text) == expected


@pytest.mark.parametrize("text", ["", None, "no json here", "{broken"])
def test_returns_none_for_unparseable(text):
    assert parse_json_safely(text) is None

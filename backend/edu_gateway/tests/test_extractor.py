"""Tests for JSON extraction from free-form model output."""

from edu_gateway.services.extractor import (
    ExtractedJson,
    ExtractionError,
    ExtractionErrorKind,
    JsonShape,
    extract,
    strip_code_fence,
)


def test_fenced_object_with_prose():
    result = extract('prefix text ```json {"a":1} ``` suffix')

    assert isinstance(result, ExtractedJson)
    assert result.value == {"a": 1}
    assert result.shape is JsonShape.OBJECT
    assert result.ok


def test_array_with_trailing_noise():
    result = extract("[1,2,3] trailing noise")

    assert isinstance(result, ExtractedJson)
    assert result.value == [1, 2, 3]
    assert result.shape is JsonShape.ARRAY


def test_no_json_is_typed_failure():
    result = extract("no json here")

    assert isinstance(result, ExtractionError)
    assert result.kind is ExtractionErrorKind.NO_JSON_FOUND
    assert not result.ok


def test_greedy_span_reaches_last_closing_bracket():
    text = 'first {"a": 1} then {"b": 2} end'

    result = extract(text)

    # Two fragments are sliced as one span, which is not valid JSON
    assert isinstance(result, ExtractionError)
    assert result.kind is ExtractionErrorKind.SYNTAX_ERROR
    assert result.snippet == '{"a": 1} then {"b": 2}'


def test_nested_object_with_commentary_after_it():
    text = '好的，教案如下：{"topic": "分数", "process": [{"phase": "导入"}]} 希望对你有帮助！'

    result = extract(text)

    assert isinstance(result, ExtractedJson)
    assert result.value == {"topic": "分数", "process": [{"phase": "导入"}]}


def test_earlier_bracket_decides_shape():
    result = extract('Here: [{"q": 1}, {"q": 2}]')

    assert isinstance(result, ExtractedJson)
    assert result.shape is JsonShape.ARRAY
    assert result.value == [{"q": 1}, {"q": 2}]


def test_object_containing_arrays_stays_object():
    result = extract('{"options": [1, 2], "answer": [0]}')

    assert isinstance(result, ExtractedJson)
    assert result.shape is JsonShape.OBJECT


def test_truncated_output_is_unbalanced():
    result = extract('```json\n{"score": 90, "feedback": "写得很')

    assert isinstance(result, ExtractionError)
    assert result.kind is ExtractionErrorKind.UNBALANCED_BRACKETS
    assert result.snippet.startswith('{"score": 90')


def test_closer_before_opener_is_unbalanced():
    result = extract('} oops {"a": 1')

    assert isinstance(result, ExtractionError)
    assert result.kind is ExtractionErrorKind.UNBALANCED_BRACKETS


def test_syntax_error_snippet_is_capped():
    text = "{" + "x" * 500 + "}"

    result = extract(text)

    assert isinstance(result, ExtractionError)
    assert result.kind is ExtractionErrorKind.SYNTAX_ERROR
    assert len(result.snippet) == 200


def test_plain_fence_without_language():
    result = extract('```\n{"score": 88, "feedback": "好"}\n```')

    assert isinstance(result, ExtractedJson)
    assert result.value == {"score": 88, "feedback": "好"}


def test_strip_code_fence_only_touches_outer_markers():
    assert strip_code_fence("```json\n[1]\n```") == "\n[1]\n"
    assert strip_code_fence("no fences") == "no fences"


def test_fence_inside_string_value_is_kept():
    text = '{"notes": "示例：```python\\nprint(1)\\n```"}'

    result = extract(text)

    assert isinstance(result, ExtractedJson)
    assert result.value == {"notes": "示例：```python\nprint(1)\n```"}


def test_outer_fence_stripped_but_inner_fence_kept():
    text = '```json\n{"notes": "```python\\nprint(1)\\n```"}\n```'

    result = extract(text)

    assert isinstance(result, ExtractedJson)
    assert result.value == {"notes": "```python\nprint(1)\n```"}

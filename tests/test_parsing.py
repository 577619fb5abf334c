import pytest

from interview_prep.errors import OutputParseError
from interview_prep.parsing import extract_json_object, strip_reasoning


def test_extracts_object_surrounded_by_prose():
    text = 'Sure! Here is your question:\n{"questionText": "Why us?"}\nGood luck.'
    assert extract_json_object(text) == {"questionText": "Why us?"}


def test_reasoning_block_with_braces_is_ignored():
    text = '<think>The format is {"questionText": ...} so I will</think>{"questionText": "Real one"}'
    assert extract_json_object(text) == {"questionText": "Real one"}


def test_unclosed_reasoning_block_is_dropped():
    assert strip_reasoning('{"a": 1} <think>still thinking {') == '{"a": 1}'


def test_skips_balanced_but_invalid_block():
    text = '{not json} and then {"a": 1}'
    assert extract_json_object(text) == {"a": 1}


def test_braces_inside_strings_do_not_break_balance():
    text = 'prefix {"q": "use {x} and }", "n": {"k": 2}} suffix'
    assert extract_json_object(text) == {"q": "use {x} and }", "n": {"k": 2}}


def test_markdown_fence():
    text = '```json\n{"scores": {"situation": 4}}\n```'
    assert extract_json_object(text) == {"scores": {"situation": 4}}


@pytest.mark.parametrize("text", ["", "no json here", "{unbalanced", "<think>{\"a\": 1}</think>"])
def test_no_usable_object_raises(text):
    with pytest.raises(OutputParseError):
        extract_json_object(text)

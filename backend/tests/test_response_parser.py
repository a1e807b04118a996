"""
Unit tests for generation response normalization.
"""

from skinscan.llm.response_parser import parse_generation_response


def test_bare_array():
    parsed = parse_generation_response('[{"name": "A"}, {"name": "B"}]')
    assert parsed.ok
    assert [i["name"] for i in parsed.items] == ["A", "B"]


def test_wrapped_array():
    parsed = parse_generation_response('{"ingredients": [{"name": "A"}]}')
    assert parsed.ok
    assert parsed.items == [{"name": "A"}]


def test_single_record_object():
    parsed = parse_generation_response('{"name": "A", "description": "x"}')
    assert parsed.ok
    assert parsed.items == [{"name": "A", "description": "x"}]


def test_markdown_fences_are_stripped():
    parsed = parse_generation_response('```json\n[{"name": "A"}]\n```')
    assert parsed.ok
    assert parsed.items[0]["name"] == "A"


def test_json_embedded_in_prose():
    parsed = parse_generation_response('Here you go: [{"name": "A"}] Hope this helps.')
    assert parsed.ok
    assert parsed.items[0]["name"] == "A"


def test_non_object_entries_keep_their_position():
    parsed = parse_generation_response('[{"name": "A"}, "oops", {"name": "C"}]')
    assert parsed.ok
    assert parsed.items[1] is None
    assert parsed.items[2]["name"] == "C"


def test_invalid_json_is_reported_not_raised():
    parsed = parse_generation_response('[{"name": "A", ...')
    assert not parsed.ok
    assert parsed.items == []
    assert "invalid JSON" in parsed.error


def test_empty_response():
    assert not parse_generation_response("").ok
    assert not parse_generation_response(None).ok


def test_unexpected_shape():
    parsed = parse_generation_response('{"status": "ok"}')
    assert not parsed.ok
    assert "unexpected response shape" in parsed.error


def test_non_text_content_is_reported_not_raised():
    parsed = parse_generation_response({"ingredients": []})
    assert not parsed.ok
    assert "unexpected response type" in parsed.error

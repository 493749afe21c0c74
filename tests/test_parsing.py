# tests/test_parsing.py
import pytest

from app.parsing import Err, Ok, decode_expansion, decode_fact, decode_indices


def test_expansion_json_object_keeps_order():
    reply = '{"translations": ["gravity", "gravitation"], "keywords": ["spacetime curvature"]}'
    assert decode_expansion(reply) == Ok(["gravity", "gravitation", "spacetime curvature"])


def test_expansion_fenced_json_with_prose():
    reply = 'Sure! Here you go:\n```json\n{"translations": ["photosynthesis"], "keywords": ["chlorophyll", "Photosynthesis"]}\n```'
    assert decode_expansion(reply) == Ok(["photosynthesis", "chlorophyll"])


def test_expansion_comma_separated_list():
    assert decode_expansion("volcano, lava,  magma ") == Ok(["volcano", "lava", "magma"])


@pytest.mark.parametrize("reply", [None, "", "   ", '{"translations": [', '{"other": 1}', "[1, 2]", '{"translations": "x", "keywords": 3}'])
def test_expansion_unusable_replies(reply):
    assert isinstance(decode_expansion(reply), Err)


def test_indices_are_one_based_and_sorted():
    assert decode_indices("3, 1", 3) == Ok([0, 2])


@pytest.mark.parametrize("reply", ["NONE", "none", "None.", "```\nNONE\n```"])
def test_indices_none_token(reply):
    assert decode_indices(reply, 5) == Ok([])


def test_indices_drop_garbage_and_out_of_range():
    assert decode_indices("0, 2, seven, 4, -1, 2, 99, [3]", 3) == Ok([1, 2])


def test_indices_never_leave_range():
    for n in range(0, 6):
        reply = ", ".join(str(i) for i in range(-3, 10)) + ", x, 1.5"
        decoded = decode_indices(reply, n)
        assert isinstance(decoded, Ok)
        assert all(0 <= i < n for i in decoded.value)


def test_indices_empty_reply_is_err():
    assert isinstance(decode_indices("  ", 3), Err)
    assert isinstance(decode_indices(None, 3), Err)


def test_fact_fenced_json():
    reply = '```json\n{"title": "Spadające jabłko", "fact": "Newton ponoć...", "source": "https://pl.wikipedia.org/wiki/Grawitacja"}\n```'
    assert decode_fact(reply) == Ok({
        "title": "Spadające jabłko",
        "fact": "Newton ponoć...",
        "source": "https://pl.wikipedia.org/wiki/Grawitacja",
    })


def test_fact_without_source():
    assert decode_fact('{"title": "T", "fact": "F", "source": 42}') == Ok({"title": "T", "fact": "F", "source": ""})


@pytest.mark.parametrize("reply", [None, "  ", "Grawitacja to siła.", '{"title": "T"}', '{"title": "", "fact": "F"}', '{"title": "T", "fact": ["F"]}', '{"title": "T", "fact": '])
def test_fact_unusable_replies(reply):
    assert isinstance(decode_fact(reply), Err)

"""Tests for QueryTokenizer: initial token, shrinking, message body."""

import pytest

from nickdial.application import QueryTokenizer, word_count
from nickdial.domain import MESSAGE_MODE, VOICE_MODE, ResolutionRequest


@pytest.fixture
def tokenizer():
    return QueryTokenizer()


def test_initial_prefers_payload(tokenizer):
    request = ResolutionRequest(mode=MESSAGE_MODE, nickname="bob", payload="mary hi")
    assert tokenizer.initial(request) == "mary hi"


def test_initial_falls_back_to_nickname(tokenizer):
    request = ResolutionRequest(mode=VOICE_MODE, nickname="  uncle   bob ")
    assert tokenizer.initial(request) == "uncle bob"


def test_initial_drops_leading_command_word(tokenizer):
    request = ResolutionRequest(mode=MESSAGE_MODE, payload="Text mary jones pick up milk")
    assert tokenizer.initial(request) == "mary jones pick up milk"


def test_lone_command_word_is_kept_as_a_name(tokenizer):
    request = ResolutionRequest(mode=MESSAGE_MODE, payload="text")
    assert tokenizer.initial(request) == "text"


def test_custom_command_words():
    tokenizer = QueryTokenizer(["ping"])
    request = ResolutionRequest(mode=MESSAGE_MODE, payload="ping text buddy")
    assert tokenizer.initial(request) == "text buddy"


def test_shrink_drops_last_word(tokenizer):
    assert tokenizer.shrink("mary jones pick up") == "mary jones pick"
    assert tokenizer.shrink("mary jones") == "mary"


def test_shrink_stops_at_one_word(tokenizer):
    assert tokenizer.shrink("mary") is None
    assert tokenizer.shrink("") is None


def test_shrink_sequence_never_empty(tokenizer):
    token = "a b c d e"
    seen = [token]
    while (token := tokenizer.shrink(token)) is not None:
        seen.append(token)
    assert seen == ["a b c d e", "a b c d", "a b c", "a b", "a"]
    assert all(word_count(t) >= 1 for t in seen)


def test_word_count():
    assert word_count("") == 0
    assert word_count("one") == 1
    assert word_count(" two  words ") == 2


def test_message_body_follows_nickname(tokenizer):
    assert tokenizer.message_body("text jessica pick up the milk", "jessica") == "pick up the milk"
    assert tokenizer.message_body("mary jones", "mary jones") == ""


def test_message_body_is_word_aligned(tokenizer):
    assert tokenizer.message_body("joe see you", "jo") == ""
    assert tokenizer.message_body("hey jo see you", "jo") == "see you"


def test_message_body_without_payload(tokenizer):
    assert tokenizer.message_body(None, "bob") == ""

"""Tests for the action dispatchers."""

import logging

from nickdial.domain import MESSAGE_MODE, VOICE_MODE, ComposeMessage, ContactEntity, Dial
from nickdial.infrastructure import LoggingDispatcher, RecordingDispatcher

MOM = ContactEntity(nickname="mom", voice_number="+12025551234", sms_number="+12025559876")


def test_recording_dispatcher_builds_actions():
    dispatcher = RecordingDispatcher()
    assert dispatcher.last is None

    dispatcher.dispatch(VOICE_MODE, MOM, None)
    dispatcher.dispatch(MESSAGE_MODE, MOM, "on my way")

    assert dispatcher.actions == [
        Dial(number="+12025551234"),
        ComposeMessage(number="+12025559876", body="on my way"),
    ]
    assert dispatcher.contacts == [MOM, MOM]
    assert dispatcher.last.uri == "sms:+12025559876"


def test_logging_dispatcher_logs_uris_and_keeps_nothing(caplog):
    dispatcher = LoggingDispatcher()

    with caplog.at_level(logging.INFO, logger="nickdial.infrastructure.dispatch"):
        for _ in range(500):
            dispatcher.dispatch(VOICE_MODE, MOM, None)
        dispatcher.dispatch(MESSAGE_MODE, MOM, "late")

    assert "Dial tel:+12025551234 for 'mom'" in caplog.text
    assert "Compose sms:+12025559876 for 'mom': 'late'" in caplog.text
    assert vars(dispatcher) == {}

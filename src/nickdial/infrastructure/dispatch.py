"""ActionDispatcher adapters. Placing the call or opening the composer is the host's job."""

import logging

from nickdial.domain import Action, ContactEntity, ComposeMessage, to_action

logger = logging.getLogger(__name__)


class RecordingDispatcher:
    """Keeps every dispatched action, newest last. For tests and demos."""

    def __init__(self) -> None:
        self.actions: list[Action] = []
        self.contacts: list[ContactEntity] = []

    def dispatch(self, mode: str, contact: ContactEntity, message_body: str | None) -> None:
        self.actions.append(to_action(mode, contact, message_body))
        self.contacts.append(contact)

    @property
    def last(self) -> Action | None:
        return self.actions[-1] if self.actions else None


class LoggingDispatcher:
    """Logs the tel:/sms: URI a device would open. Keeps nothing."""

    def dispatch(self, mode: str, contact: ContactEntity, message_body: str | None) -> None:
        action = to_action(mode, contact, message_body)
        if isinstance(action, ComposeMessage):
            logger.info("Compose %s for %r: %r", action.uri, contact.nickname, action.body or "")
        else:
            logger.info("Dial %s for %r", action.uri, contact.nickname)

"""Derive directory query tokens from a nickname or an utterance payload."""

from nickdial.domain import ResolutionRequest

DEFAULT_COMMAND_WORDS = ("text", "message", "sms", "call", "dial", "phone")


def word_count(token: str) -> int:
    return len(token.split())


def _normalize(text: str | None) -> str:
    return " ".join((text or "").split())


class QueryTokenizer:
    """Initial token and last-word shrinking. Pure, no state besides config."""

    def __init__(self, command_words=DEFAULT_COMMAND_WORDS) -> None:
        self._command_words = frozenset(w.strip().lower() for w in command_words if w.strip())

    def _strip_command(self, text: str) -> str:
        # "text mary jones hi" -> "mary jones hi"; a lone "text" is kept as a name.
        head, _, rest = text.partition(" ")
        if rest and head.lower() in self._command_words:
            return rest
        return text

    def initial(self, request: ResolutionRequest) -> str:
        """Payload if present, else nickname."""
        payload = _normalize(request.payload)
        if payload:
            return self._strip_command(payload)
        return _normalize(request.nickname)

    def shrink(self, token: str) -> str | None:
        """Drop the last word. None when only one word is left."""
        words = token.split()
        if len(words) <= 1:
            return None
        return " ".join(words[:-1])

    def message_body(self, payload: str | None, nickname: str) -> str:
        """Text that follows nickname inside payload, or "" if none."""
        text = self._strip_command(_normalize(payload))
        name = _normalize(nickname)
        if not text or not name:
            return ""
        if text == name or text.startswith(name + " "):
            return text[len(name):].strip()
        _, found, rest = f" {text} ".partition(f" {name} ")
        return rest.strip() if found else ""

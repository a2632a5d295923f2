"""Error collection for a validation pass."""

from __future__ import annotations

from typing import Any, Iterator

from ruleforge.validation.types import MODEL_LEVEL, ErrorKey

# Key used for model-level errors when errors leave the process as plain dicts.
WIRE_MODEL_KEY = "*"


class ErrorCollector:
    """Attribute-keyed, insertion-ordered multimap of error messages.

    Multiple messages per key are kept in insertion order with no
    deduplication. Plain strings passed as keys always name attributes;
    model-level errors use MODEL_LEVEL. Messages are also logged flat, so
    ``all_messages`` reports them in the order they were recorded across keys.
    """

    def __init__(self) -> None:
        self._errors: dict[ErrorKey, list[str]] = {}
        self._log: list[tuple[ErrorKey, str]] = []

    def add(self, key: str | ErrorKey, message: str) -> None:
        key = ErrorKey.coerce(key)
        self._errors.setdefault(key, []).append(message)
        self._log.append((key, message))

    def merge(self, errors: dict[str | ErrorKey, list[str] | str]) -> None:
        """Add several messages, e.g. from a previous result."""
        for key, messages in errors.items():
            if isinstance(messages, str):
                messages = [messages]
            for message in messages:
                self.add(key, message)

    def has_errors(self, key: str | ErrorKey | None = None) -> bool:
        if key is None:
            return any(self._errors.values())
        return bool(self._errors.get(ErrorKey.coerce(key)))

    def messages_for(self, key: str | ErrorKey) -> list[str]:
        return list(self._errors.get(ErrorKey.coerce(key), []))

    def first_message_per_attribute(self) -> dict[str, str]:
        """First message of every attribute that has errors (model-level excluded)."""
        return {
            key.attribute: messages[0]
            for key, messages in self._errors.items()
            if messages and key.attribute is not None
        }

    def all_messages(self) -> list[str]:
        """Every message in recording order."""
        return [message for _key, message in self._log]

    def summary(self, show_all: bool = False) -> list[str]:
        """Flat message list: every message, or only the first per key."""
        if show_all:
            return self.all_messages()
        return [messages[0] for messages in self._errors.values() if messages]

    def items(self) -> Iterator[tuple[ErrorKey, list[str]]]:
        for key, messages in self._errors.items():
            if messages:
                yield key, list(messages)

    def clear(self, key: str | ErrorKey | None = None) -> None:
        if key is None:
            self._errors.clear()
            self._log.clear()
        else:
            key = ErrorKey.coerce(key)
            self._errors.pop(key, None)
            self._log = [entry for entry in self._log if entry[0] != key]

    def to_dict(self) -> dict[str, list[str]]:
        """Attribute name -> messages, omitting keys without errors."""
        result: dict[str, Any] = {}
        for key, messages in self.items():
            name = WIRE_MODEL_KEY if key == MODEL_LEVEL else key.attribute
            result[name] = messages
        return result

    def __len__(self) -> int:
        return sum(len(messages) for messages in self._errors.values())

    def __bool__(self) -> bool:
        return self.has_errors()

    def __repr__(self) -> str:
        return f"ErrorCollector({self.to_dict()!r})"

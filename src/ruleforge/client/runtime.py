"""Reference interpreter for client validation descriptors.

Evaluates a ClientFormSpec against submitted values the way a browser
runtime would: synchronous fragments immediately, deferred (remote)
fragments as asyncio tasks behind a single gate. The outcome of every
fragment kind matches the corresponding server validator.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence

from ruleforge.client.bridge import ClientFormSpec
from ruleforge.exceptions import ConfigurationError, RuleForgeError
from ruleforge.validation.registry import is_empty
from ruleforge.validation.types import ClientFragment
from ruleforge.validation.validators.builtin import compare_values, loose_key

logger = logging.getLogger(__name__)

# async (payload) -> {attribute: [messages]}; payload is {scenario, attributes, only}
RemoteValidator = Callable[[dict[str, Any]], Awaitable[dict[str, list[str]]]]

# (attribute, values) -> bool
ClientCondition = Callable[[str, dict[str, Any]], bool]


class SubmissionCancelled(RuleForgeError):
    """The submission was cancelled before its deferred checks completed."""
    pass


@dataclass
class ClientResult:
    """Outcome of a client-side submission."""

    success: bool
    messages: dict[str, list[str]] = field(default_factory=dict)

    def first_messages(self) -> dict[str, str]:
        return {name: messages[0] for name, messages in self.messages.items() if messages}


class ClientSubmission:
    """One in-flight submission.

    Synchronous messages are known immediately; ``result()`` waits for every
    deferred check.
    """

    def __init__(
        self,
        messages: dict[str, list[str]],
        tasks: list[asyncio.Task],
    ):
        self.messages = messages
        self._tasks = tasks
        self._gate = asyncio.gather(*tasks)
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def done(self) -> bool:
        return self._cancelled or self._gate.done()

    def cancel(self) -> None:
        """Cancel pending deferred checks. Their results are discarded."""
        if self._cancelled:
            return
        self._cancelled = True
        self._gate.cancel()
        for task in self._tasks:
            task.cancel()

    async def result(self) -> ClientResult:
        """Wait for deferred checks and combine all messages.

        Raises:
            SubmissionCancelled: If the submission was cancelled
        """
        if self._cancelled:
            raise SubmissionCancelled("Submission was cancelled")
        try:
            deferred = await self._gate
        except asyncio.CancelledError:
            if self._cancelled:
                raise SubmissionCancelled("Submission was cancelled") from None
            raise
        except Exception:
            for task in self._tasks:
                task.cancel()
            raise

        messages = {name: list(items) for name, items in self.messages.items()}
        # The server re-validated the whole attribute; its messages replace the local ones
        for attribute, attribute_messages in deferred:
            messages[attribute] = list(attribute_messages)

        messages = {name: items for name, items in messages.items() if items}
        return ClientResult(success=not messages, messages=messages)


class ClientValidationSession:
    """Interprets a ClientFormSpec.

    Args:
        form_spec: Descriptor built by ClientValidationBridge
        remote: Async callable used by deferred fragments (the AJAX endpoint)
        conditions: Named client conditions referenced by ``when_client``
    """

    def __init__(
        self,
        form_spec: ClientFormSpec,
        remote: RemoteValidator | None = None,
        conditions: dict[str, ClientCondition] | None = None,
    ):
        self.form_spec = form_spec
        self.remote = remote
        self.conditions = conditions or {}
        self._current: ClientSubmission | None = None

    async def submit(
        self,
        values: dict[str, Any],
        only: Sequence[str] | None = None,
    ) -> ClientSubmission:
        """Start validating ``values``. A still-running previous submission is cancelled."""
        if self._current is not None and not self._current.done():
            logger.debug("Cancelling previous submission of %s", self.form_spec.form)
            self._current.cancel()

        values = dict(values)
        messages: dict[str, list[str]] = {}
        tasks: list[asyncio.Task] = []

        for attribute, spec in self.form_spec.attributes.items():
            if only is not None and attribute not in only:
                continue
            attribute_messages: list[str] = []
            remote_scheduled = False
            for fragment in spec.fragments:
                if not self._should_run(fragment, attribute, values, attribute_messages):
                    continue
                if fragment.deferred:
                    if self.remote is None:
                        for task in tasks:
                            task.cancel()
                        raise ConfigurationError(
                            f"Attribute '{attribute}' has a deferred check but no remote validator is set"
                        )
                    # One server round trip covers every rule of the attribute
                    if not remote_scheduled:
                        tasks.append(asyncio.create_task(self._run_deferred(attribute, dict(values))))
                        remote_scheduled = True
                    continue
                message = self._check(fragment, attribute, values)
                if message is not None:
                    attribute_messages.append(message)
            if attribute_messages:
                messages[attribute] = attribute_messages

        self._current = ClientSubmission(messages, tasks)
        return self._current

    async def validate(self, values: dict[str, Any]) -> ClientResult:
        """Submit and wait for the result."""
        submission = await self.submit(values)
        return await submission.result()

    # -------------------------------------------------------------------------

    def _should_run(
        self,
        fragment: ClientFragment,
        attribute: str,
        values: dict[str, Any],
        attribute_messages: list[str],
    ) -> bool:
        if fragment.condition is not None:
            condition = self.conditions.get(fragment.condition)
            if condition is None:
                raise ConfigurationError(f"Unknown client condition '{fragment.condition}'")
            if not condition(attribute, values):
                return False
        if fragment.skip_on_empty and is_empty(values.get(attribute)):
            return False
        if fragment.skip_on_error and attribute_messages:
            return False
        return True

    async def _run_deferred(self, attribute: str, values: dict[str, Any]) -> tuple[str, list[str]]:
        payload = {
            "scenario": self.form_spec.scenario,
            "attributes": values,
            "only": [attribute],
        }
        errors = await self.remote(payload)
        return attribute, list(errors.get(attribute, []))

    def _check(self, fragment: ClientFragment, attribute: str, values: dict[str, Any]) -> str | None:
        handler = getattr(self, f"_check_{fragment.kind}", None)
        if handler is None:
            raise ConfigurationError(f"Unsupported client fragment kind '{fragment.kind}'")
        value = values.get(attribute)
        failed = handler(fragment.params, attribute, value, values)
        if failed is None or failed is False:
            return None
        template = fragment.message if failed is True else fragment.messages.get(failed, fragment.message)
        return template.replace("{value}", "" if value is None else str(value))

    # Handlers return False when valid, True for the main message, or the
    # name of an alternate message.

    def _check_required(self, params, attribute, value, values):
        required_value = params.get("requiredValue")
        strict = params.get("strict", False)
        if required_value is None:
            if strict:
                return value is None
            return is_empty(value.strip() if isinstance(value, str) else value)
        if strict:
            return not (type(value) is type(required_value) and value == required_value)
        return str(value) != str(required_value)

    def _check_string(self, params, attribute, value, values):
        if not isinstance(value, str):
            return True
        if "min" in params and len(value) < params["min"]:
            return "tooShort"
        if "max" in params and len(value) > params["max"]:
            return "tooLong"
        if "length" in params and len(value) != params["length"]:
            return "notEqual"
        return False

    def _check_number(self, params, attribute, value, values):
        if isinstance(value, bool):
            return True
        if isinstance(value, float) and params.get("integerOnly") and not value.is_integer():
            return True
        if isinstance(value, str):
            if not re.match(params["pattern"], value):
                return True
            number = float(value)
        elif isinstance(value, (int, float)):
            number = value
        else:
            return True
        if "min" in params and number < params["min"]:
            return "tooSmall"
        if "max" in params and number > params["max"]:
            return "tooBig"
        return False

    def _check_boolean(self, params, attribute, value, values):
        accepted = (params.get("trueValue", True), params.get("falseValue", False))
        if params.get("strict"):
            return not any(type(value) is type(a) and value == a for a in accepted)
        return loose_key(value) not in [loose_key(a) for a in accepted]

    def _check_match(self, params, attribute, value, values):
        if not isinstance(value, str):
            return True
        matched = re.search(params["pattern"], value) is not None
        return matched == params.get("not", False)

    def _check_email(self, params, attribute, value, values):
        return not (isinstance(value, str) and re.match(params["pattern"], value))

    def _check_url(self, params, attribute, value, values):
        flags = re.IGNORECASE if params.get("ignoreCase") else 0
        return not (
            isinstance(value, str) and len(value) < 2000 and re.match(params["pattern"], value, flags)
        )

    def _check_range(self, params, attribute, value, values):
        allowed = params.get("range", [])

        def contains(item: Any) -> bool:
            if params.get("strict"):
                return any(type(a) is type(item) and a == item for a in allowed)
            return any(loose_key(a) == loose_key(item) for a in allowed)

        if params.get("allowArray") and isinstance(value, (list, tuple)):
            found = all(contains(item) for item in value)
        elif isinstance(value, (list, tuple, dict)):
            found = False
        else:
            found = contains(value)
        return found == params.get("not", False)

    def _check_compare(self, params, attribute, value, values):
        if "compareValue" in params:
            compare_value = params["compareValue"]
        else:
            compare_value = values.get(params["compareAttribute"])
        return not compare_values(params["operator"], params["type"], value, compare_value)

    def _check_trim(self, params, attribute, value, values):
        if isinstance(value, (list, tuple, dict)) and params.get("skipOnArray", True):
            return False
        if isinstance(value, str):
            values[attribute] = value.strip(params.get("chars"))
        return False

"""Tests for errly_sdk.normalizer."""

import json

from errly_sdk.normalizer import (
    UNSERIALIZABLE,
    ArgumentKind,
    NormalizedEvent,
    classify,
    normalize_event,
    render_argument,
)


def _raised(exc):
    try:
        raise exc
    except Exception as caught:
        return caught


class TestClassify:
    def test_kinds(self):
        assert classify(ValueError("x")) is ArgumentKind.ERROR
        assert classify(None) is ArgumentKind.NULLISH
        assert classify("text") is ArgumentKind.PRIMITIVE
        assert classify(3) is ArgumentKind.PRIMITIVE
        assert classify(False) is ArgumentKind.PRIMITIVE
        assert classify({"a": 1}) is ArgumentKind.OBJECT
        assert classify([1, 2]) is ArgumentKind.OBJECT


class TestRenderArgument:
    def test_object_is_compact_json(self):
        assert render_argument({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'

    def test_none_renders_as_null(self):
        assert render_argument(None) == "null"

    def test_unserializable_object(self):
        assert render_argument({1, 2}) == UNSERIALIZABLE

    def test_circular_object(self):
        cyclic = {}
        cyclic["self"] = cyclic
        assert render_argument(cyclic) == UNSERIALIZABLE


class TestNormalizeEvent:
    def test_defaults_to_error_level(self):
        event = normalize_event("payment failed")

        assert event.level == "error"
        assert event.message == "payment failed"
        assert event.stack_trace is None
        assert event.metadata == {"args": ["payment failed"]}

    def test_leading_level_token_is_consumed(self):
        event = normalize_event("WARN", "disk at", 93.5, "%")

        assert event.level == "warn"
        assert event.message == "disk at 93.5 %"
        assert event.metadata == {"args": ["disk at", 93.5, "%"]}

    def test_level_token_only_counts_in_first_position(self):
        event = normalize_event("cache", "info")

        assert event.level == "error"
        assert event.message == "cache info"

    def test_non_level_word_is_message_text(self):
        event = normalize_event("warning", "low memory")

        assert event.level == "error"
        assert event.message == "warning low memory"

    def test_exception_supplies_message_and_stack(self):
        exc = _raised(ValueError("order id missing"))

        event = normalize_event("checkout failed:", exc)

        assert event.message == "checkout failed: order id missing"
        assert "Traceback (most recent call last)" in event.stack_trace
        assert "ValueError: order id missing" in event.stack_trace
        assert event.metadata == {"args": ["checkout failed:"]}

    def test_stack_comes_from_first_exception(self):
        first = _raised(KeyError("user"))
        second = _raised(RuntimeError("retry exhausted"))

        event = normalize_event(first, second)

        assert "KeyError" in event.stack_trace
        assert "RuntimeError" not in event.stack_trace

    def test_exception_without_message_uses_type_name(self):
        event = normalize_event(_raised(TimeoutError()))

        assert event.message == "TimeoutError"
        assert event.metadata is None

    def test_none_and_objects(self):
        event = normalize_event("info", "user", None, {"id": 42})

        assert event.level == "info"
        assert event.message == 'user null {"id":42}'
        assert event.metadata == {"args": ["user", None, {"id": 42}]}

    def test_circular_reference_does_not_raise(self):
        cyclic = {"name": "loop"}
        cyclic["self"] = cyclic

        event = normalize_event("log", "state", cyclic)

        assert event.level == "log"
        assert event.message == f"state {UNSERIALIZABLE}"
        assert event.metadata == {"args": ["state", UNSERIALIZABLE]}

    def test_nan_inside_object_is_unserializable(self):
        event = normalize_event("ratio", {"r": float("nan")})

        assert event.message == f"ratio {UNSERIALIZABLE}"
        assert event.metadata == {"args": ["ratio", UNSERIALIZABLE]}

    def test_infinite_number_keeps_text_but_not_metadata(self):
        event = normalize_event("warn", "latency", float("inf"))

        assert event.message == "latency inf"
        assert event.metadata == {"args": ["latency", UNSERIALIZABLE]}
        # The payload must encode as strict JSON.
        json.dumps(event.to_payload("errly_abc"), allow_nan=False)

    def test_no_arguments(self):
        event = normalize_event()

        assert event == NormalizedEvent(level="error", message="")


class TestPayload:
    def test_optional_fields_are_omitted(self):
        payload = NormalizedEvent(level="info", message="hi").to_payload("errly_abc")

        assert payload == {"apiKey": "errly_abc", "message": "hi", "level": "info"}

    def test_full_payload_uses_wire_names(self):
        event = NormalizedEvent(
            level="error",
            message="boom",
            stack_trace="Traceback ...",
            metadata={"args": [1]},
        )

        assert event.to_payload("errly_abc") == {
            "apiKey": "errly_abc",
            "message": "boom",
            "level": "error",
            "stackTrace": "Traceback ...",
            "metadata": {"args": [1]},
        }

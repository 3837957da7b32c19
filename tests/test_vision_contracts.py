import json
import math

import pytest
from pydantic import ValidationError

from taskproof.services.ai.common.json_tools import extract_json_object
from taskproof.services.ai.vision.contracts import (
    VERIFY_TOOL,
    VERIFY_TOOL_CHOICE,
    Completeness,
    Relevance,
    VerificationResult,
)
from taskproof.services.ai.vision.service import (
    JsonTextArguments,
    StructuredArguments,
    build_messages,
    build_user_prompt,
    extract_verification,
    normalize_rating,
    read_tool_arguments,
)

from fakes import tool_call_message

ARGS = {"rating": 8, "feedback": "Desk is clear", "relevance": "high", "completeness": "complete"}


class TestNormalizeRating:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (13.7, 10),
            (-2, 0),
            (7.5, 8),
            (7.49, 7),
            (0.5, 1),
            ("6", 6),
            ("not a number", 5),
            (None, 5),
            (math.nan, 5),
            (math.inf, 10),
            (-math.inf, 0),
        ],
    )
    def test_rounds_and_clamps(self, raw, expected):
        assert normalize_rating(raw) == expected

    def test_every_output_is_an_int_in_range(self):
        for raw in [x / 4 for x in range(-40, 80)]:
            rating = normalize_rating(raw)
            assert isinstance(rating, int)
            assert 0 <= rating <= 10


class TestReadToolArguments:
    def test_string_arguments(self):
        args = read_tool_arguments(tool_call_message(json.dumps(ARGS)))
        assert isinstance(args, JsonTextArguments)

    def test_object_arguments(self):
        args = read_tool_arguments(tool_call_message(ARGS))
        assert isinstance(args, StructuredArguments)

    @pytest.mark.parametrize("arguments", ["", "   ", None, 42])
    def test_empty_or_unusable_arguments(self, arguments):
        assert read_tool_arguments(tool_call_message(arguments)) is None

    def test_no_tool_calls(self):
        assert read_tool_arguments({"role": "assistant", "content": "hi"}) is None
        assert read_tool_arguments({"role": "assistant", "tool_calls": []}) is None


class TestExtractVerification:
    def test_string_and_object_arguments_give_identical_results(self):
        from_text = extract_verification(tool_call_message(json.dumps(ARGS)))
        from_object = extract_verification(tool_call_message(ARGS))
        assert from_text == from_object
        assert from_text.rating == 8
        assert from_text.relevance is Relevance.HIGH
        assert from_text.completeness is Completeness.COMPLETE

    @pytest.mark.parametrize(
        "arguments",
        [
            {},
            {"rating": 3},
            {"feedback": "Only half the desk", "relevance": "LOW"},
            {"rating": "7.5", "completeness": "minimal", "extra": [1, 2]},
        ],
    )
    def test_text_and_object_agree_on_sparse_arguments(self, arguments):
        from_text = extract_verification(tool_call_message(json.dumps(arguments), content="model said hi"))
        from_object = extract_verification(tool_call_message(arguments, content="model said hi"))
        assert from_text == from_object

    def test_empty_arguments_degrade_to_content(self):
        result = extract_verification(tool_call_message("{}", content="model said hi"))
        assert result.feedback == "model said hi"
        assert result.rating == 5

    def test_rating_above_range_is_clamped(self):
        result = extract_verification(tool_call_message({**ARGS, "rating": 13.7}))
        assert result.rating == 10

    def test_negative_rating_is_clamped(self):
        result = extract_verification(tool_call_message(json.dumps({**ARGS, "rating": -2})))
        assert result.rating == 0

    def test_missing_tool_call_degrades_to_content(self):
        result = extract_verification({"role": "assistant", "content": "looks good"})
        assert result.model_dump(mode="json") == {
            "rating": 5,
            "feedback": "looks good",
            "relevance": "medium",
            "completeness": "partial",
        }

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_missing_tool_call_without_content(self, content):
        result = extract_verification({"role": "assistant", "content": content})
        assert result.feedback == "Verification completed"
        assert result.rating == 5

    def test_malformed_json_arguments_degrade(self):
        result = extract_verification(tool_call_message('{"rating": 9, "feedback"', content="partial answer"))
        assert result.rating == 5
        assert result.feedback == "partial answer"

    def test_unknown_enum_values_fall_back(self):
        result = extract_verification(tool_call_message({**ARGS, "relevance": "very", "completeness": 3}))
        assert result.relevance is Relevance.MEDIUM
        assert result.completeness is Completeness.PARTIAL

    def test_missing_enum_fields_fall_back(self):
        result = extract_verification(tool_call_message({"rating": 8, "feedback": "ok"}))
        assert result.relevance is Relevance.MEDIUM
        assert result.completeness is Completeness.PARTIAL
        assert result.rating == 8

    @pytest.mark.parametrize("value", [None, 0, ["high"], {"v": "high"}])
    def test_non_string_enum_values_fall_back(self, value):
        result = extract_verification(tool_call_message({**ARGS, "relevance": value}))
        assert result.relevance is Relevance.MEDIUM

    def test_enum_values_are_case_insensitive(self):
        result = extract_verification(tool_call_message({**ARGS, "relevance": " LOW "}))
        assert result.relevance is Relevance.LOW

    def test_blank_feedback_gets_default(self):
        result = extract_verification(tool_call_message({**ARGS, "feedback": "  "}))
        assert result.feedback == "Verification completed"


class TestContracts:
    def test_result_rejects_out_of_range_rating(self):
        with pytest.raises(ValidationError):
            VerificationResult(rating=11, feedback="x", relevance="high", completeness="complete")

    def test_tool_declaration_requires_all_fields(self):
        params = VERIFY_TOOL["function"]["parameters"]
        assert set(params["required"]) == {"rating", "feedback", "relevance", "completeness"}
        assert params["properties"]["relevance"]["enum"] == ["high", "medium", "low", "none"]
        assert params["properties"]["completeness"]["enum"] == ["complete", "partial", "minimal", "unrelated"]
        assert VERIFY_TOOL_CHOICE["function"]["name"] == VERIFY_TOOL["function"]["name"]

    def test_user_prompt_uses_placeholder_without_description(self):
        prompt = build_user_prompt("Clean desk", None)
        assert "Task Title: Clean desk" in prompt
        assert "Task Description: No description provided" in prompt

    def test_messages_embed_image_as_data_url(self):
        messages = build_messages("Clean desk", "Everything off", mime_type="image/png", content=b"\x89PNG")
        assert messages[0]["role"] == "system"
        parts = messages[1]["content"]
        assert parts[0]["type"] == "text"
        assert "Everything off" in parts[0]["text"]
        assert parts[1]["image_url"]["url"] == "data:image/png;base64,iVBORw=="


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"rating": 3}') == {"rating": 3}

    def test_object_inside_prose(self):
        assert extract_json_object('Result: {"a": {"b": 1}} done') == {"a": {"b": 1}}

    @pytest.mark.parametrize("text", ["", "[1, 2]", "{broken", "plain text"])
    def test_non_objects_return_none(self, text):
        assert extract_json_object(text) is None

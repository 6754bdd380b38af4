"""Tests for the scoring oracle adapter: reply parsing and the HTTP boundary."""

import json

import httpx
import pytest

from audit_app.catalog import PRINCIPLE_IDS, applicable_principles
from audit_app.errors import ConfigurationError, OracleError, ValidationError
from audit_app.gemini_client import GeminiClient
from audit_app.oracle import (
    ScoringOracle,
    complete_scores,
    extract_json_object,
    parse_refined,
    parse_scores,
    validate_images,
)
from audit_app.schemas import FollowUpAnswer, ImageBlob, OriginalScore, ScoreResult
from audit_app.section_types import SectionType
from audit_app.settings import settings


def scores_reply(ids, score=4):
    return json.dumps({
        "scores": {pid: {"score": score, "reasoning": "ok", "confidence": "high", "notApplicable": False} for pid in ids}
    })


def gemini_envelope(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestExtractJson:
    """Model replies are located inside surrounding prose."""

    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_object_wrapped_in_prose_and_fences(self):
        text = 'Here you go:\n```json\n{"scores": {"x": {"score": 2}}}\n```\nThanks!'
        assert extract_json_object(text) == {"scores": {"x": {"score": 2}}}

    def test_braces_inside_strings_do_not_confuse_the_scan(self):
        text = 'note {"reasoning": "uses {curly} braces", "n": 1} trailing }'
        assert extract_json_object(text) == {"reasoning": "uses {curly} braces", "n": 1}

    def test_skips_non_json_braces(self):
        assert extract_json_object("{not json} then {\"ok\": true}") == {"ok": True}

    def test_no_object_raises(self):
        with pytest.raises(OracleError):
            extract_json_object("I could not analyze these images.")


class TestParseScores:
    """Replies are validated against the requested principle set."""

    def test_returns_requested_ids_only(self):
        ids = ["chunking", "elaboration"]
        text = scores_reply(ids + ["growth-mindset"])
        parsed = parse_scores(text, ids)
        assert list(parsed) == ids
        assert parsed["chunking"].score == 4
        assert parsed["chunking"].confidence == "high"

    def test_missing_scores_key(self):
        with pytest.raises(OracleError, match="scores"):
            parse_scores('{"result": {}}', ["chunking"])

    def test_omitted_principle_fails_closed(self):
        with pytest.raises(OracleError, match="elaboration"):
            parse_scores(scores_reply(["chunking"]), ["chunking", "elaboration"])

    def test_out_of_range_score_is_rejected(self):
        text = json.dumps({"scores": {"chunking": {"score": 9, "reasoning": "?"}}})
        with pytest.raises(OracleError):
            parse_scores(text, ["chunking"])

    def test_string_score_is_not_coerced(self):
        text = json.dumps({"scores": {"chunking": {"score": "3", "reasoning": "ok", "confidence": "high"}}})
        with pytest.raises(OracleError, match="malformed"):
            parse_scores(text, ["chunking"])

    @pytest.mark.parametrize("dropped", ["reasoning", "confidence"])
    def test_entry_missing_a_field_is_rejected(self, dropped):
        entry = {"score": 3, "reasoning": "ok", "confidence": "high"}
        del entry[dropped]
        with pytest.raises(OracleError, match="malformed"):
            parse_scores(json.dumps({"scores": {"chunking": entry}}), ["chunking"])

    def test_not_applicable_flag_is_carried(self):
        text = json.dumps({"scores": {"chunking": {
            "score": 0, "reasoning": "no content", "confidence": "low", "notApplicable": True,
        }}})
        assert parse_scores(text, ["chunking"])["chunking"].not_applicable

    def test_parse_refined(self):
        text = json.dumps({"refinedScores": [{
            "principleId": "chunking", "originalScore": 2, "refinedScore": 4,
            "refinedReasoning": "Cards are short", "specificActions": ["a", "b"],
        }]})
        refined = parse_refined(text)
        assert refined[0].principle_id == "chunking"
        assert refined[0].refined_score == 4
        assert refined[0].specific_actions == ["a", "b"]

    def test_parse_refined_without_key(self):
        with pytest.raises(OracleError):
            parse_refined('{"scores": {}}')


class TestCompleteScores:
    """Every section result covers the whole catalog."""

    def test_fills_not_applicable_entries(self):
        applicable = applicable_principles(SectionType.PRACTICE)
        partial = {pid: ScoreResult(score=3, reasoning="seen") for pid in applicable}
        complete = complete_scores(partial, SectionType.PRACTICE)
        assert list(complete) == list(PRINCIPLE_IDS)
        filler = complete["spaced-repetition"]
        assert filler.not_applicable
        assert filler.score == 0
        assert filler.confidence == "high"
        assert filler.reasoning == "Not applicable to practice sections"
        assert complete["deliberate-practice"].score == 3

    def test_missing_applicable_principle_raises(self):
        applicable = applicable_principles(SectionType.PRACTICE)
        partial = {pid: ScoreResult(score=3, reasoning="seen") for pid in applicable[1:]}
        with pytest.raises(OracleError, match=applicable[0]):
            complete_scores(partial, SectionType.PRACTICE)


class TestValidateImages:
    """Image limits are enforced before any external call."""

    def test_rejects_empty(self):
        with pytest.raises(ValidationError):
            validate_images([])

    def test_rejects_too_many(self, png_blob):
        with pytest.raises(ValidationError, match="Maximum"):
            validate_images([png_blob] * (settings.max_images_per_section + 1))

    def test_rejects_unsupported_type(self):
        with pytest.raises(ValidationError, match="Unsupported"):
            validate_images([ImageBlob(data=b"BM....", media_type="image/bmp")])


class TestScoringOracleHttp:
    """The adapter talks to the Gemini REST endpoint through httpx."""

    def _factory(self, handler, seen_models=None):
        def factory(**kwargs):
            if seen_models is not None:
                seen_models.append(kwargs.get("model"))
            return GeminiClient(api_key="test-key", transport=httpx.MockTransport(handler), **kwargs)
        return factory

    @pytest.mark.asyncio
    async def test_score_sends_images_then_prompt(self, png_blob):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["key"] = request.url.params.get("key")
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_envelope("Sure!\n" + scores_reply(["chunking"], 5)))

        oracle = ScoringOracle(client_factory=self._factory(handler))
        result = await oracle.score([png_blob], "score this", ["chunking"])

        assert result["chunking"].score == 5
        assert captured["key"] == "test-key"
        parts = captured["body"]["contents"][0]["parts"]
        assert parts[0]["inline_data"]["mime_type"] == "image/png"
        assert parts[-1] == {"text": "score this"}

    @pytest.mark.asyncio
    async def test_http_error_is_reported_as_unreachable(self, png_blob):
        def handler(request):
            return httpx.Response(503, json={"error": "overloaded"})

        oracle = ScoringOracle(client_factory=self._factory(handler))
        with pytest.raises(OracleError) as info:
            await oracle.score([png_blob], "p", ["chunking"])
        assert info.value.unreachable

    @pytest.mark.asyncio
    async def test_network_error_is_reported_as_unreachable(self, png_blob):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        oracle = ScoringOracle(client_factory=self._factory(handler))
        with pytest.raises(OracleError) as info:
            await oracle.score([png_blob], "p", ["chunking"])
        assert info.value.unreachable

    @pytest.mark.asyncio
    async def test_bad_envelope_is_an_oracle_error(self, png_blob):
        def handler(request):
            return httpx.Response(200, json={"candidates": []})

        oracle = ScoringOracle(client_factory=self._factory(handler))
        with pytest.raises(OracleError) as info:
            await oracle.score([png_blob], "p", ["chunking"])
        assert not info.value.unreachable

    @pytest.mark.asyncio
    async def test_refine_uses_text_call(self, monkeypatch):
        monkeypatch.setattr(settings, "gemini_model_refine", "gemini-refine")
        bodies = []
        models = []

        def handler(request):
            bodies.append(json.loads(request.content))
            reply = {"refinedScores": [{"principleId": "chunking", "refinedScore": 3, "refinedReasoning": "r"}]}
            return httpx.Response(200, json=gemini_envelope(json.dumps(reply)))

        oracle = ScoringOracle(client_factory=self._factory(handler, models))
        refined = await oracle.refine(
            [OriginalScore(principle_id="chunking", title="Chunking", score=2)],
            [FollowUpAnswer(principle_id="chunking", free_text="cards")],
        )
        assert refined[0].refined_score == 3
        assert models == ["gemini-refine"]
        assert "inline_data" not in json.dumps(bodies[0])

    @pytest.mark.asyncio
    async def test_refine_without_scores_is_rejected(self):
        oracle = ScoringOracle(client_factory=self._factory(lambda r: httpx.Response(500)))
        with pytest.raises(ValidationError):
            await oracle.refine([], [])


class TestGeminiClientConfig:
    def test_missing_key_is_a_configuration_error(self, monkeypatch):
        monkeypatch.setattr(settings, "gemini_api_key", None)
        with pytest.raises(ConfigurationError):
            GeminiClient()

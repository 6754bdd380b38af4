"""
Scoring Oracle Adapter
======================

Wraps the vision model behind two calls:

- `score(images, prompt, expected_ids)`: screenshot scoring for one section
- `refine(original_scores, answers)`: text-only re-scoring of gap principles

Model output is untrusted. Replies are located inside any surrounding prose
(first brace-balanced object), then validated against a strict schema; any
mismatch raises `OracleError` rather than producing a partial result.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Sequence

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as SchemaError

from .catalog import PRINCIPLE_IDS, applicable_principles
from .errors import OracleError, ValidationError
from .gemini_client import GeminiClient
from .prompts import build_refine_prompt
from .schemas import Confidence, FollowUpAnswer, ImageBlob, OriginalScore, RefinedScore, ScoreResult
from .section_types import SectionType
from .settings import settings

logger = logging.getLogger(__name__)

ALLOWED_MEDIA_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")


class _ScoreEntry(BaseModel):
	# no coercion: "3" is not a score and every field the prompt asks for is required
	model_config = ConfigDict(extra="ignore", strict=True, populate_by_name=True)

	score: int = Field(ge=0, le=5)
	reasoning: str
	confidence: Confidence
	not_applicable: bool = Field(default=False, alias="notApplicable")

	def to_result(self) -> ScoreResult:
		return ScoreResult(
			score=self.score,
			reasoning=self.reasoning,
			confidence=self.confidence,
			not_applicable=self.not_applicable,
		)


class _ScoresReply(BaseModel):
	model_config = ConfigDict(extra="ignore", strict=True)

	scores: Dict[str, _ScoreEntry]


class _RefinedReply(BaseModel):
	model_config = ConfigDict(extra="ignore", populate_by_name=True)

	refinedScores: List[RefinedScore]


_scores_adapter = TypeAdapter(_ScoresReply)
_refined_adapter = TypeAdapter(_RefinedReply)


def extract_json_object(text: str) -> Dict[str, Any]:
	"""Return the first top-level brace-balanced JSON object found in `text`."""
	start = text.find("{")
	while start != -1:
		depth = 0
		in_string = False
		escaped = False
		for i in range(start, len(text)):
			ch = text[i]
			if in_string:
				if escaped:
					escaped = False
				elif ch == "\\":
					escaped = True
				elif ch == '"':
					in_string = False
				continue
			if ch == '"':
				in_string = True
			elif ch == "{":
				depth += 1
			elif ch == "}":
				depth -= 1
				if depth == 0:
					candidate = text[start : i + 1]
					try:
						data = json.loads(candidate)
					except json.JSONDecodeError:
						break
					if isinstance(data, dict):
						return data
					break
		start = text.find("{", start + 1)
	raise OracleError("Scoring service returned unparseable output (no JSON object found)")


def parse_scores(text: str, expected_ids: Iterable[str]) -> Dict[str, ScoreResult]:
	data = extract_json_object(text)
	if "scores" not in data:
		raise OracleError("Scoring service returned JSON without a \"scores\" key")
	try:
		reply = _scores_adapter.validate_python(data)
	except SchemaError as exc:
		raise OracleError(f"Scoring service returned malformed scores: {exc.error_count()} field error(s)") from exc
	expected = list(expected_ids)
	missing = [pid for pid in expected if pid not in reply.scores]
	if missing:
		raise OracleError(f"Scoring service omitted principles: {', '.join(missing)}")
	extra = set(reply.scores) - set(expected)
	if extra:
		logger.info("Ignoring scores for principles that were not requested: %s", sorted(extra))
	return {pid: reply.scores[pid].to_result() for pid in expected}


def parse_refined(text: str) -> List[RefinedScore]:
	data = extract_json_object(text)
	if "refinedScores" not in data:
		raise OracleError("Refinement reply lacks a \"refinedScores\" key")
	try:
		return _refined_adapter.validate_python(data).refinedScores
	except SchemaError as exc:
		raise OracleError(f"Refinement reply was malformed: {exc.error_count()} field error(s)") from exc


def complete_scores(scores: Dict[str, ScoreResult], section_type: SectionType) -> Dict[str, ScoreResult]:
	"""Fill every principle that was not sent to the oracle with a not-applicable entry.

	Post-condition: the result has exactly one entry per catalog principle.
	"""
	applicable = set(applicable_principles(section_type))
	missing = [pid for pid in PRINCIPLE_IDS if pid in applicable and pid not in scores]
	if missing:
		raise OracleError(f"Scoring service omitted principles: {', '.join(missing)}")
	complete: Dict[str, ScoreResult] = {}
	for pid in PRINCIPLE_IDS:
		if pid in applicable:
			complete[pid] = scores[pid]
		else:
			complete[pid] = ScoreResult(
				score=0,
				reasoning=f"Not applicable to {section_type.value} sections",
				confidence="high",
				not_applicable=True,
			)
	if list(complete) != list(PRINCIPLE_IDS):
		raise OracleError("Section result does not cover the whole principle catalog")
	return complete


def validate_images(images: Sequence[ImageBlob]) -> None:
	if not images:
		raise ValidationError("No images provided", step="analyze")
	limit = settings.max_images_per_section
	if len(images) > limit:
		raise ValidationError(f"Maximum {limit} images allowed per section", step="analyze")
	for img in images:
		if img.media_type not in ALLOWED_MEDIA_TYPES:
			raise ValidationError(f"Unsupported image type: {img.media_type}", step="analyze")
		if len(img.data) > settings.max_image_bytes:
			raise ValidationError(f"Image exceeds {settings.max_image_bytes} bytes", step="analyze")


class ScoringOracle:
	"""Gemini-backed scoring. Each call opens and closes its own HTTP client."""

	def __init__(self, client_factory=GeminiClient) -> None:
		self._client_factory = client_factory

	async def score(self, images: Sequence[ImageBlob], prompt: str, expected_ids: Sequence[str]) -> Dict[str, ScoreResult]:
		validate_images(images)
		client = self._client_factory()
		try:
			logger.info("Scoring %d principle(s) from %d image(s)", len(expected_ids), len(images))
			text = await client.generate_with_images(prompt, images)
		finally:
			await client.aclose()
		return parse_scores(text, expected_ids)

	async def refine(self, original_scores: Sequence[OriginalScore], answers: Sequence[FollowUpAnswer]) -> List[RefinedScore]:
		if not original_scores:
			raise ValidationError("No scores provided", step="refine")
		client = self._client_factory(model=settings.gemini_model_refine or None)
		try:
			logger.info("Refining %d principle(s)", len(original_scores))
			text = await client.generate(build_refine_prompt(original_scores, answers))
		finally:
			await client.aclose()
		return parse_refined(text)


def get_oracle() -> ScoringOracle:
	return ScoringOracle()



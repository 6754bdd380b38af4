"""
Audit pipeline
==============

Section name -> section type -> applicable principles -> prompt -> oracle ->
complete score map, then aggregation across sections and the follow-up flow.

Sections are analyzed one at a time, each oracle call awaited before the next
starts. The oracle is rate-limited and an audit rarely has more than ten
sections. The first failure aborts the run and discards every result from it,
so a stored run always has a full score map for every section.
"""

from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Mapping, Optional, Sequence

from .aggregation import aggregate, key_takeaways, ratings_from_manual, ratings_map, summarize
from .catalog import applicable_principles
from .errors import AuditError, NotFoundError, OracleError, ValidationError
from .follow_up import FlowState, FollowUpFlow
from .oracle import complete_scores
from .prompts import build_prompt
from .schemas import (
	AggregatedRating,
	AuditResults,
	ImageBlob,
	KeyTakeaways,
	Report,
	ScoreResult,
	SectionResult,
	UpfrontAnswer,
)
from .section_types import SectionType, resolve_section_type
from .settings import settings

logger = logging.getLogger(__name__)


async def analyze_section(
	oracle,
	images: Sequence[ImageBlob],
	*,
	section_name: Optional[str] = None,
	section_type: Optional[SectionType] = None,
	section_notes: Optional[str] = None,
	upfront_context: Optional[Mapping[str, UpfrontAnswer]] = None,
) -> Dict[str, ScoreResult]:
	"""Score one section and return an entry for every principle in the catalog."""
	resolved = resolve_section_type(section_name, section_type)
	expected = applicable_principles(resolved)
	prompt = build_prompt(section_name, resolved, section_notes, upfront_context)
	logger.info("Analyzing section %r as %s (%d principles)", section_name or "<overall>", resolved.value, len(expected))
	scores = await oracle.score(images, prompt, expected)
	return complete_scores(scores, resolved)


class Section:
	def __init__(self, name: str, *, notes: str = "", section_type: Optional[SectionType] = None) -> None:
		name = (name or "").strip()
		if not name:
			raise ValidationError("Section name is required", step="sections")
		self.id = uuid.uuid4().hex
		self.name = name
		self.notes = notes
		self.type_override = section_type
		self.images: List[ImageBlob] = []

	@property
	def section_type(self) -> SectionType:
		return resolve_section_type(self.name, self.type_override)

	def add_images(self, images: Sequence[ImageBlob]) -> None:
		limit = settings.max_images_per_section
		if len(self.images) + len(images) > limit:
			raise ValidationError(f"Maximum {limit} images allowed per section", step="upload", section=self.name)
		self.images.extend(images)

	def summary(self) -> dict:
		return {
			"id": self.id,
			"name": self.name,
			"sectionType": self.section_type.value,
			"imageCount": len(self.images),
			"notes": self.notes,
		}


class AuditSession:
	"""One user's audit: sections, results and follow-up state. Never shared."""

	def __init__(self) -> None:
		self.id = uuid.uuid4().hex
		self.sections: List[Section] = []
		self.upfront_context: Dict[str, UpfrontAnswer] = {}
		self.section_results: List[SectionResult] = []
		self.ratings: Dict[str, AggregatedRating] = {}
		self.follow_up: Optional[FollowUpFlow] = None
		self.analyzing = False
		# bumped on reset; a run started under an older generation is dropped
		self.generation = 0

	def add_section(self, name: str, *, notes: str = "", section_type: Optional[SectionType] = None) -> Section:
		section = Section(name, notes=notes, section_type=section_type)
		self.sections.append(section)
		return section

	def get_section(self, section_id: str) -> Section:
		for s in self.sections:
			if s.id == section_id:
				return s
		raise NotFoundError("Section not found", step="sections")

	def remove_section(self, section_id: str) -> None:
		section = self.get_section(section_id)
		self.sections = [s for s in self.sections if s.id != section.id]

	def section_types(self) -> set[SectionType]:
		return {s.section_type for s in self.sections}

	def reset(self) -> None:
		self.generation += 1
		self.analyzing = False
		self.sections = []
		self.upfront_context = {}
		self._clear_results()

	def _clear_results(self) -> None:
		self.section_results = []
		self.ratings = {}
		self.follow_up = None

	def set_manual_ratings(self, scores: Mapping[str, Optional[int]]) -> None:
		self._clear_results()
		self.ratings = ratings_from_manual(scores)

	async def analyze(self, oracle) -> List[SectionResult]:
		"""Analyze every section that has images, in order, failing fast."""
		pending = [s for s in self.sections if s.images]
		if not pending:
			raise ValidationError("Add screenshots to at least one section before analyzing", step="analyze")
		if self.analyzing:
			raise ValidationError("Analysis already in progress", step="analyze")
		self.analyzing = True
		generation = self.generation
		self._clear_results()
		results: List[SectionResult] = []
		try:
			for section in pending:
				if self.generation != generation:
					break
				try:
					scores = await analyze_section(
						oracle,
						section.images,
						section_name=section.name,
						section_type=section.type_override,
						section_notes=section.notes or None,
						upfront_context=self.upfront_context or None,
					)
				except OracleError as exc:
					logger.warning("Analysis failed for section %r: %s", section.name, exc.message)
					raise OracleError(
						f"Analysis failed for {section.name}: {exc.message}",
						unreachable=exc.unreachable,
						step="analyze",
						section=section.name,
					) from exc
				except AuditError as exc:
					exc.section = exc.section or section.name
					raise
				results.append(SectionResult(
					section_id=section.id,
					section_name=section.name,
					section_type=section.section_type,
					scores=scores,
				))
		finally:
			if self.generation == generation:
				self.analyzing = False
		if self.generation != generation:
			logger.info("Audit %s was reset during analysis; dropping %d section results", self.id, len(results))
			return []
		self.section_results = results
		summary = aggregate(results)
		self.ratings = dict(summary.ratings)
		self.follow_up = FollowUpFlow(self.ratings, summary.gaps)
		return results

	def results(self) -> AuditResults:
		return summarize(self.ratings)

	def takeaways(self) -> Optional[KeyTakeaways]:
		return key_takeaways(self.results().gaps)

	async def refine(self, oracle) -> Dict[str, AggregatedRating]:
		if self.follow_up is None:
			raise ValidationError("Nothing to refine; run an analysis first", step="refine")
		self.ratings = await self.follow_up.refine(oracle)
		return self.ratings

	def to_report(self) -> Report:
		results = self.results()
		if not results.total_rated:
			raise ValidationError("Rate at least one principle before sharing", step="report")
		refined = None
		if self.follow_up is not None and self.follow_up.state == FlowState.DONE:
			refined = self.follow_up.refined
		return Report(
			overall_score=results.average,
			ratings=ratings_map(self.ratings),
			section_results=self.section_results or None,
			key_takeaways=key_takeaways(results.gaps),
			refined_scores=refined,
		)


_audits: Dict[str, AuditSession] = {}


def create_audit() -> AuditSession:
	audit = AuditSession()
	_audits[audit.id] = audit
	return audit


def get_audit(audit_id: str) -> AuditSession:
	audit = _audits.get(audit_id)
	if audit is None:
		raise NotFoundError("Audit not found", step="audit")
	return audit


def discard_audit(audit_id: str) -> None:
	_audits.pop(audit_id, None)

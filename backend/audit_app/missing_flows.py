from __future__ import annotations
from typing import Iterable, List, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .schemas import Priority
from .section_types import SectionType


class MissingFlowRecommendation(BaseModel):
	model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

	section_type: SectionType
	priority: Priority
	headline: str
	recommendation: str
	why_it_matters: str
	affected_principles: Tuple[str, ...]


_PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}

MISSING_FLOW_RECOMMENDATIONS: Tuple[MissingFlowRecommendation, ...] = (
	MissingFlowRecommendation(
		section_type=SectionType.PRACTICE,
		priority=Priority.HIGH,
		headline="Practice Activities",
		recommendation="Add activities where learners apply concepts with immediate feedback.",
		why_it_matters="Active practice with feedback is one of the most effective ways to build lasting skills.",
		affected_principles=("deliberate-practice", "retrieval-practice", "interleaving"),
	),
	MissingFlowRecommendation(
		section_type=SectionType.QUIZ,
		priority=Priority.HIGH,
		headline="Knowledge Checks / Quizzes",
		recommendation="Add quizzes that require learners to recall information from memory.",
		why_it_matters="Retrieval practice strengthens memory and helps identify gaps in understanding.",
		affected_principles=("retrieval-practice", "desirable-difficulties"),
	),
	MissingFlowRecommendation(
		section_type=SectionType.PRE_QUIZ,
		priority=Priority.MEDIUM,
		headline="Diagnostic Assessment",
		recommendation="A pre-assessment can personalize learning paths and activate prior knowledge.",
		why_it_matters="Diagnostic assessments help calibrate instruction to learner needs.",
		affected_principles=("metacognition",),
	),
	MissingFlowRecommendation(
		section_type=SectionType.POST_QUIZ,
		priority=Priority.MEDIUM,
		headline="Summative Assessment",
		recommendation="Add a final assessment to measure learning outcomes and provide closure.",
		why_it_matters="Summative assessments verify mastery and provide meaningful feedback on progress.",
		affected_principles=("retrieval-practice", "metacognition"),
	),
	MissingFlowRecommendation(
		section_type=SectionType.REVIEW,
		priority=Priority.MEDIUM,
		headline="Review / Spaced Practice",
		recommendation="Include activities that revisit content over time to combat forgetting.",
		why_it_matters="Spaced review dramatically improves long-term retention.",
		affected_principles=("spaced-repetition",),
	),
)


def recommend_missing(present_types: Iterable[SectionType]) -> List[MissingFlowRecommendation]:
	"""Recommend phases the audited experience appears to lack, most important first."""
	present = set(present_types)
	any_quiz = SectionType.PRE_QUIZ in present or SectionType.POST_QUIZ in present
	kept = [
		rec for rec in MISSING_FLOW_RECOMMENDATIONS
		if rec.section_type not in present
		and not (rec.section_type == SectionType.QUIZ and any_quiz)
	]
	# sorted() is stable, so table order decides within a priority
	return sorted(kept, key=lambda r: _PRIORITY_ORDER[r.priority])

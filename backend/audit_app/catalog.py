"""
Principle Catalog
=================

Static table of the learning-science principles an experience is audited
against. Each principle carries a five-level rubric, the recommendation shown
when it scores low, and the section types it is relevant to.

The catalog is loaded once at import and exposed read-only. Its iteration
order is part of the legacy share-link format (see `share_link.py`) and must
not be reordered.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import NotFoundError
from .section_types import SectionType


CATEGORIES: Tuple[str, ...] = (
	"Memory & Retention",
	"Practice & Skill Building",
	"Motivation & Engagement",
	"Cognitive Load",
	"Feedback & Assessment",
	"Transfer & Application",
)

RUBRIC_LEVELS = (1, 2, 3, 4, 5)


class RubricLevel(BaseModel):
	model_config = ConfigDict(frozen=True)

	label: str
	description: str


class Principle(BaseModel):
	model_config = ConfigDict(frozen=True)

	id: str
	title: str
	category: str
	prompt: str
	recommendation: str
	rubric: Mapping[int, RubricLevel]
	# Empty means the principle applies to every section type
	applies_to: Tuple[SectionType, ...] = Field(default_factory=tuple)

	@model_validator(mode="after")
	def _check_complete(self) -> "Principle":
		if self.category not in CATEGORIES:
			raise ValueError(f"{self.id}: unknown category {self.category!r}")
		missing = [lvl for lvl in RUBRIC_LEVELS if lvl not in self.rubric]
		if missing:
			raise ValueError(f"{self.id}: rubric missing levels {missing}")
		return self

	def applies_to_type(self, section_type: SectionType) -> bool:
		return not self.applies_to or section_type in self.applies_to


def _rubric(*levels: Tuple[str, str]) -> Mapping[int, RubricLevel]:
	return MappingProxyType({i + 1: RubricLevel(label=label, description=desc) for i, (label, desc) in enumerate(levels)})


_ALL_PHASES = (
	SectionType.PRE_QUIZ, SectionType.POST_QUIZ, SectionType.QUIZ, SectionType.LESSON,
	SectionType.PRACTICE, SectionType.REVIEW, SectionType.ONBOARDING, SectionType.OVERALL,
)

_PRINCIPLES: List[Principle] = [
	Principle(
		id="spaced-repetition",
		title="Spaced Repetition",
		category="Memory & Retention",
		prompt="How well does your design distribute learning over time?",
		recommendation="Consider adding review schedules, reminder systems, or spacing out practice sessions to leverage the spacing effect for better long-term retention.",
		rubric=_rubric(
			("Not implemented", "All content is presented in a single session with no planned review or follow-up."),
			("Minimal", "Some content is revisited, but timing is arbitrary or inconsistent."),
			("Partial", "Review sessions exist but intervals are not optimized based on spacing principles."),
			("Well implemented", "Content is systematically spaced with intentional intervals between sessions."),
			("Fully integrated", "Adaptive spacing adjusts review timing based on learner performance and forgetting curves."),
		),
		applies_to=(SectionType.REVIEW, SectionType.OVERALL),
	),
	Principle(
		id="retrieval-practice",
		title="Retrieval Practice",
		category="Memory & Retention",
		prompt="How often do learners actively recall information from memory?",
		recommendation="Add practice quizzes, flashcards, or recall exercises. Replace passive re-reading with active retrieval opportunities.",
		rubric=_rubric(
			("Not implemented", "Learners only read, watch, or listen, with no opportunities to recall from memory."),
			("Minimal", "Occasional review questions, but mostly recognition-based (multiple choice) rather than recall."),
			("Partial", "Some retrieval practice exists but is not the primary learning activity."),
			("Well implemented", "Regular opportunities to recall information with feedback on accuracy."),
			("Fully integrated", "Retrieval is the core learning mechanism, with varied formats and immediate feedback."),
		),
		applies_to=(SectionType.POST_QUIZ, SectionType.QUIZ, SectionType.PRACTICE, SectionType.REVIEW, SectionType.OVERALL),
	),
	Principle(
		id="elaboration",
		title="Elaboration",
		category="Memory & Retention",
		prompt="How well do you prompt learners to explain and connect new information?",
		recommendation="Include reflection prompts, ask \"why\" and \"how\" questions, or have learners explain concepts to others or write summaries.",
		rubric=_rubric(
			("Not implemented", "Content is presented without prompts for explanation or connection to prior knowledge."),
			("Minimal", "Occasional \"think about\" prompts but no structured elaboration activities."),
			("Partial", "Some opportunities to explain concepts, but connections to prior knowledge are not explicit."),
			("Well implemented", "Regular prompts to explain \"why\" and \"how,\" with explicit links to prior knowledge."),
			("Fully integrated", "Learners consistently generate explanations, make connections, and teach concepts to others."),
		),
		applies_to=(SectionType.POST_QUIZ, SectionType.QUIZ, SectionType.LESSON, SectionType.PRACTICE, SectionType.OVERALL),
	),
	Principle(
		id="interleaving",
		title="Interleaving",
		category="Practice & Skill Building",
		prompt="How much do you mix different topics or problem types during practice?",
		recommendation="Mix related concepts within practice sessions. Vary problem types to improve discrimination and transfer.",
		rubric=_rubric(
			("Not implemented", "Topics are practiced in isolated blocks, one type at a time until mastery."),
			("Minimal", "Some variety within sessions, but topics are mostly grouped together."),
			("Partial", "Topics are sometimes mixed, but blocking is still the dominant pattern."),
			("Well implemented", "Practice regularly interleaves different topics or problem types within sessions."),
			("Fully integrated", "Systematic interleaving across all practice, requiring learners to discriminate between approaches."),
		),
		applies_to=(SectionType.POST_QUIZ, SectionType.QUIZ, SectionType.PRACTICE, SectionType.REVIEW, SectionType.OVERALL),
	),
	Principle(
		id="desirable-difficulties",
		title="Desirable Difficulties",
		category="Practice & Skill Building",
		prompt="Does your design include productive challenges that may slow initial learning but boost retention?",
		recommendation="Introduce appropriate difficulty through spacing, interleaving, varied practice, or generation tasks that create productive struggle.",
		rubric=_rubric(
			("Not implemented", "Learning is made as easy as possible, with no intentional challenges or struggle."),
			("Minimal", "Some challenging elements exist but are seen as obstacles rather than features."),
			("Partial", "A few productive difficulties are included, but ease is still prioritized."),
			("Well implemented", "Strategic challenges are built in (generation, variation, spacing) with learner support."),
			("Fully integrated", "Productive struggle is a design principle; difficulty is calibrated to maximize long-term learning."),
		),
		applies_to=(SectionType.POST_QUIZ, SectionType.QUIZ, SectionType.PRACTICE, SectionType.OVERALL),
	),
	Principle(
		id="deliberate-practice",
		title="Deliberate Practice",
		category="Practice & Skill Building",
		prompt="How well do you target specific weaknesses with focused practice and feedback?",
		recommendation="Identify skill gaps and provide focused practice on weak areas. Ensure immediate, specific feedback on performance.",
		rubric=_rubric(
			("Not implemented", "Practice is generic: the same activities for all learners regardless of skill level."),
			("Minimal", "Some differentiation exists, but practice does not target individual weaknesses."),
			("Partial", "Weaknesses can be identified, but targeted practice is limited or optional."),
			("Well implemented", "Practice focuses on specific skill gaps with immediate, actionable feedback."),
			("Fully integrated", "Continuous diagnosis of weaknesses with adaptive practice at the edge of ability."),
		),
		applies_to=(SectionType.PRACTICE, SectionType.OVERALL),
	),
	Principle(
		id="cognitive-load-theory",
		title="Cognitive Load Theory",
		category="Cognitive Load",
		prompt="How well do you manage information presentation to avoid overwhelming working memory?",
		recommendation="Break complex content into smaller pieces, eliminate extraneous information, and use worked examples to reduce cognitive load.",
		rubric=_rubric(
			("Not implemented", "Dense content with no consideration for working memory limits; information overload."),
			("Minimal", "Some awareness of complexity, but content still overwhelms novice learners."),
			("Partial", "Content is organized but may still include extraneous information or split attention."),
			("Well implemented", "Information is streamlined, integrated, and presented in digestible amounts."),
			("Fully integrated", "Load is carefully managed with worked examples, fading, and scaffolding matched to expertise."),
		),
		applies_to=_ALL_PHASES,
	),
	Principle(
		id="chunking",
		title="Chunking",
		category="Cognitive Load",
		prompt="How well do you group complex information into meaningful, manageable pieces?",
		recommendation="Group related information into meaningful chunks. Use hierarchies, categories, or patterns to organize content.",
		rubric=_rubric(
			("Not implemented", "Information is presented as a continuous stream without clear organization."),
			("Minimal", "Some grouping exists but chunks are arbitrary or too large to be useful."),
			("Partial", "Content is divided into sections, but relationships between chunks are unclear."),
			("Well implemented", "Information is grouped into meaningful chunks with clear hierarchies and connections."),
			("Fully integrated", "Chunking leverages learner schemas; patterns and relationships are made explicit."),
		),
		applies_to=(SectionType.LESSON, SectionType.ONBOARDING, SectionType.OVERALL),
	),
	Principle(
		id="growth-mindset",
		title="Growth Mindset",
		category="Motivation & Engagement",
		prompt="How well does your messaging emphasize that abilities develop through effort?",
		recommendation="Praise effort and strategy over innate ability. Frame challenges as opportunities to grow. Normalize productive struggle.",
		rubric=_rubric(
			("Not implemented", "Messaging implies fixed ability: success attributed to talent, failure to lack of ability."),
			("Minimal", "Effort is occasionally mentioned but not consistently reinforced."),
			("Partial", "Growth mindset language is present but may conflict with other fixed-mindset cues."),
			("Well implemented", "Consistent messaging that effort and strategy lead to improvement; struggle is normalized."),
			("Fully integrated", "Growth mindset is embedded throughout; feedback, framing, and culture all reinforce it."),
		),
		applies_to=(SectionType.PRE_QUIZ, SectionType.POST_QUIZ, SectionType.QUIZ, SectionType.LESSON, SectionType.PRACTICE, SectionType.ONBOARDING, SectionType.OVERALL),
	),
	Principle(
		id="self-efficacy",
		title="Self-Efficacy",
		category="Motivation & Engagement",
		prompt="How well do you build learner confidence through achievable challenges and success?",
		recommendation="Sequence tasks for early wins. Provide mastery experiences, positive feedback, and models of success.",
		rubric=_rubric(
			("Not implemented", "Tasks are too difficult early on; learners experience repeated failure."),
			("Minimal", "Some easy tasks exist but difficulty progression is inconsistent."),
			("Partial", "Early wins are possible, but confidence-building is not systematically designed."),
			("Well implemented", "Tasks are sequenced for success; positive feedback and models build confidence."),
			("Fully integrated", "Mastery experiences are central; learners build genuine competence through graduated challenges."),
		),
		applies_to=(SectionType.PRE_QUIZ, SectionType.POST_QUIZ, SectionType.QUIZ, SectionType.LESSON, SectionType.PRACTICE, SectionType.ONBOARDING, SectionType.OVERALL),
	),
	Principle(
		id="metacognition",
		title="Metacognition",
		category="Feedback & Assessment",
		prompt="How well do you prompt learners to reflect on and monitor their own learning?",
		recommendation="Add self-assessment tools, planning prompts, or reflection questions. Help learners recognize what they know and don't know.",
		rubric=_rubric(
			("Not implemented", "No prompts for self-reflection; learners are not asked to think about their thinking."),
			("Minimal", "Occasional reflection prompts, but no structured metacognitive practice."),
			("Partial", "Some self-assessment opportunities, but learners rarely act on insights."),
			("Well implemented", "Regular prompts to plan, monitor, and evaluate learning with actionable feedback."),
			("Fully integrated", "Metacognition is taught explicitly; learners develop awareness of their learning processes."),
		),
		applies_to=(SectionType.PRE_QUIZ, SectionType.POST_QUIZ, SectionType.QUIZ, SectionType.LESSON, SectionType.PRACTICE, SectionType.REVIEW, SectionType.OVERALL),
	),
	Principle(
		id="self-explanation",
		title="Self-Explanation",
		category="Feedback & Assessment",
		prompt="How well do you encourage learners to explain material to themselves?",
		recommendation="Include prompts for learners to explain their reasoning, clarify steps, or articulate why solutions work.",
		rubric=_rubric(
			("Not implemented", "Learners consume content passively, with no prompts to explain or articulate understanding."),
			("Minimal", "Occasional \"why\" questions, but self-explanation is not a regular practice."),
			("Partial", "Some self-explanation prompts exist but are easy to skip or ignore."),
			("Well implemented", "Regular prompts to explain reasoning, with scaffolding for effective explanations."),
			("Fully integrated", "Self-explanation is a core activity; learners articulate understanding at each step."),
		),
		applies_to=(SectionType.POST_QUIZ, SectionType.QUIZ, SectionType.LESSON, SectionType.PRACTICE, SectionType.OVERALL),
	),
	Principle(
		id="transfer-of-learning",
		title="Transfer of Learning",
		category="Transfer & Application",
		prompt="How well do you help learners apply knowledge to new and varied contexts?",
		recommendation="Use varied examples, highlight underlying principles, and provide practice in multiple contexts to promote transfer.",
		rubric=_rubric(
			("Not implemented", "Learning is context-bound, with no varied examples or application to new situations."),
			("Minimal", "A few different examples, but underlying principles are not made explicit."),
			("Partial", "Some transfer activities exist, but practice mostly stays in the original context."),
			("Well implemented", "Varied examples and contexts; underlying principles are highlighted for transfer."),
			("Fully integrated", "Transfer is designed in; learners practice applying knowledge across diverse situations."),
		),
		applies_to=(SectionType.LESSON, SectionType.PRACTICE, SectionType.OVERALL),
	),
]

PRINCIPLES: Mapping[str, Principle] = MappingProxyType({p.id: p for p in _PRINCIPLES})
PRINCIPLE_IDS: Tuple[str, ...] = tuple(PRINCIPLES)


def get_principle(principle_id: str) -> Principle:
	try:
		return PRINCIPLES[principle_id]
	except KeyError:
		raise NotFoundError(f"Unknown principle: {principle_id}", step="catalog") from None


def applicable_principles(
	section_type: SectionType,
	catalog: Mapping[str, Principle] = PRINCIPLES,
) -> List[str]:
	"""Ids of the principles relevant to `section_type`, in catalog order."""
	return [pid for pid, p in catalog.items() if p.applies_to_type(section_type)]


def principles_by_category(catalog: Mapping[str, Principle] = PRINCIPLES) -> Dict[str, List[Principle]]:
	grouped: Dict[str, List[Principle]] = {c: [] for c in CATEGORIES}
	for p in catalog.values():
		grouped[p.category].append(p)
	return grouped


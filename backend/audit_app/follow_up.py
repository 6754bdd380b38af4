"""
Follow-Up Refinement Flow
=========================

After aggregation, every gap principle (score <= 3) gets a short follow-up
question about behavior screenshots cannot show. The user walks through them
one at a time; the answers and original scores go back to the oracle in a
single request, and refined scores are overlaid on the originals.

State machine per audit run:

	idle -> awaiting-answers -> refining -> done
	                 \\              \\
	                  -> skipped     -> skipped (refinement failed)
"""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from pydantic import BaseModel, ConfigDict

from .aggregation import apply_refinements
from .errors import AuditError, ValidationError
from .schemas import AggregatedRating, FollowUpAnswer, OriginalScore, RefinedScore
from .section_types import SectionType, classify_all, matches_types

logger = logging.getLogger(__name__)


class FollowUpQuestion(BaseModel):
	model_config = ConfigDict(frozen=True)

	options: Tuple[str, ...]
	free_text_prompt: str
	applies_to: Tuple[SectionType, ...]


_ANY_QUIZ = (SectionType.QUIZ, SectionType.PRE_QUIZ, SectionType.POST_QUIZ)

FOLLOW_UP_QUESTIONS: Mapping[str, FollowUpQuestion] = MappingProxyType({
	"spaced-repetition": FollowUpQuestion(
		options=(
			"Users receive reminders or notifications to return and review",
			"Previously learned content reappears in later sessions",
			"There is a dedicated review or practice mode users can access anytime",
			"The app tracks performance and resurfaces content users struggled with",
			"Review intervals are based on how well users remembered content",
		),
		free_text_prompt="Describe any spaced learning or review features not visible in the screenshots:",
		applies_to=(SectionType.REVIEW, SectionType.OVERALL),
	),
	"retrieval-practice": FollowUpQuestion(
		options=(
			"Users must recall answers before seeing them (not just recognize from options)",
			"Quizzes or knowledge checks are included throughout the experience",
			"Flashcards or recall-based exercises are available",
			"Users type, speak, or write answers from memory",
			"Practice questions require applying knowledge, not just recognition",
		),
		free_text_prompt="Describe any recall-based or retrieval activities:",
		applies_to=_ANY_QUIZ + (SectionType.PRACTICE, SectionType.REVIEW),
	),
	"elaboration": FollowUpQuestion(
		options=(
			"Users are prompted to explain concepts in their own words",
			"\"Why\" and \"how\" questions are asked throughout the content",
			"Learners connect new information to things they already know",
			"Reflection or journaling prompts are included",
			"Users teach or explain concepts to others (peers, AI, etc.)",
		),
		free_text_prompt="Describe how learners are encouraged to explain or elaborate on content:",
		applies_to=_ANY_QUIZ + (SectionType.LESSON, SectionType.PRACTICE),
	),
	"interleaving": FollowUpQuestion(
		options=(
			"Different topics or problem types are mixed within practice sessions",
			"Questions from previous lessons appear alongside new content",
			"Users cannot predict which type of problem will come next",
			"Related but distinct concepts are compared side-by-side",
			"Practice requires choosing which strategy or approach to use",
		),
		free_text_prompt="Describe how different topics or skills are mixed in practice:",
		# Not pre-quiz: unlearned content cannot be interleaved
		applies_to=(SectionType.QUIZ, SectionType.POST_QUIZ, SectionType.PRACTICE, SectionType.REVIEW),
	),
	"desirable-difficulties": FollowUpQuestion(
		options=(
			"Learners must generate answers before seeing solutions",
			"Content intentionally includes productive struggle or challenge",
			"Hints are available but not given automatically",
			"Practice gets harder as learners improve",
			"Learners work through difficulties before receiving help",
		),
		free_text_prompt="Describe any intentional challenges designed to improve long-term learning:",
		applies_to=(SectionType.QUIZ, SectionType.POST_QUIZ, SectionType.PRACTICE),
	),
	"deliberate-practice": FollowUpQuestion(
		options=(
			"The system identifies specific skills or knowledge gaps",
			"Practice focuses on areas where the learner is weakest",
			"Immediate, specific feedback is provided on performance",
			"Difficulty adjusts based on individual learner performance",
			"Learners can target specific skills they want to improve",
		),
		free_text_prompt="Describe how practice targets individual weaknesses:",
		applies_to=(SectionType.PRACTICE,),
	),
	"cognitive-load-theory": FollowUpQuestion(
		options=(
			"Complex information is broken into smaller, sequential steps",
			"Extraneous or decorative elements have been minimized",
			"Text and visuals are integrated (not separated)",
			"Worked examples show step-by-step solutions",
			"Learners can control the pace of information delivery",
		),
		free_text_prompt="Describe how you manage complexity for learners:",
		applies_to=_ANY_QUIZ + (SectionType.LESSON, SectionType.PRACTICE, SectionType.ONBOARDING),
	),
	"chunking": FollowUpQuestion(
		options=(
			"Content is organized into clear modules, units, or sections",
			"Related information is grouped together meaningfully",
			"Progress indicators show where learners are in the overall structure",
			"Each chunk can be completed in a reasonable amount of time",
			"Summaries or overviews help learners see how pieces connect",
		),
		free_text_prompt="Describe how content is organized and grouped:",
		applies_to=(SectionType.LESSON, SectionType.ONBOARDING),
	),
	"growth-mindset": FollowUpQuestion(
		options=(
			"Feedback emphasizes effort and strategy, not just correctness",
			"Mistakes are framed as learning opportunities",
			"Messaging encourages persistence through challenges",
			"Success stories highlight growth and improvement over time",
			"Language avoids fixed-ability labels (smart, talented, etc.)",
		),
		free_text_prompt="Describe messaging or feedback that promotes a growth mindset:",
		applies_to=_ANY_QUIZ + (SectionType.LESSON, SectionType.PRACTICE, SectionType.ONBOARDING),
	),
	"self-efficacy": FollowUpQuestion(
		options=(
			"Early tasks are designed to be achievable for beginners",
			"Difficulty gradually increases as skills develop",
			"Positive feedback celebrates progress and achievements",
			"Learners can see examples of others succeeding",
			"There are clear indicators of progress and improvement",
		),
		free_text_prompt="Describe how you build learner confidence:",
		applies_to=_ANY_QUIZ + (SectionType.LESSON, SectionType.PRACTICE, SectionType.ONBOARDING),
	),
	"metacognition": FollowUpQuestion(
		options=(
			"Learners are prompted to plan before starting a task",
			"Self-assessment or confidence ratings are collected",
			"Reflection prompts ask learners what they learned",
			"Learners can see their own performance patterns over time",
			"Prompts help learners identify what they know vs. don't know",
		),
		free_text_prompt="Describe how learners monitor or reflect on their own learning:",
		applies_to=_ANY_QUIZ + (SectionType.LESSON, SectionType.PRACTICE, SectionType.REVIEW),
	),
	"self-explanation": FollowUpQuestion(
		options=(
			"Learners are asked to explain their reasoning for answers",
			"Prompts ask \"why\" an answer is correct or incorrect",
			"Learners articulate steps in a process or solution",
			"Explanations are required before moving forward",
			"Learners compare their reasoning to expert explanations",
		),
		free_text_prompt="Describe how learners explain content to themselves:",
		applies_to=_ANY_QUIZ + (SectionType.LESSON, SectionType.PRACTICE),
	),
	"transfer-of-learning": FollowUpQuestion(
		options=(
			"The same concept is shown in multiple different contexts",
			"Underlying principles or patterns are made explicit",
			"Learners apply knowledge to novel or real-world scenarios",
			"Examples vary in surface features while sharing deep structure",
			"Connections to other domains or applications are highlighted",
		),
		free_text_prompt="Describe how learners apply knowledge to new contexts:",
		applies_to=(SectionType.LESSON, SectionType.PRACTICE, SectionType.OVERALL),
	),
})


def follow_up_principles_for_types(principle_ids: Iterable[str], types: Set[SectionType]) -> List[str]:
	return [
		pid for pid in principle_ids
		if pid in FOLLOW_UP_QUESTIONS and matches_types(FOLLOW_UP_QUESTIONS[pid].applies_to, types)
	]


def relevant_follow_up_principles(principle_ids: Iterable[str], section_names: Iterable[str]) -> List[str]:
	return follow_up_principles_for_types(principle_ids, classify_all(section_names))


class FlowState(str, Enum):
	IDLE = "idle"
	AWAITING_ANSWERS = "awaiting-answers"
	REFINING = "refining"
	DONE = "done"
	SKIPPED = "skipped"


class FollowUpFlow:
	"""Walks the user through gap principles, then refines their scores once."""

	def __init__(self, ratings: Mapping[str, AggregatedRating], gaps: Sequence[AggregatedRating]) -> None:
		self.ratings: Dict[str, AggregatedRating] = dict(ratings)
		# Snapshot of the pre-refinement scores; never updated afterwards
		self.gaps: List[AggregatedRating] = list(gaps)
		self.state = FlowState.IDLE
		self.index = 0
		self.answers: List[FollowUpAnswer] = [FollowUpAnswer(principle_id=g.principle_id) for g in self.gaps]
		self.refined: List[RefinedScore] = []
		self.error: Optional[str] = None
		if self.gaps:
			self.state = FlowState.AWAITING_ANSWERS

	@property
	def gap_ids(self) -> List[str]:
		return [g.principle_id for g in self.gaps]

	@property
	def is_last(self) -> bool:
		return self.index == len(self.gaps) - 1

	def _require(self, state: FlowState) -> None:
		if self.state != state:
			raise ValidationError(f"Follow-up is {self.state.value}, expected {state.value}", step="follow-up")

	def current(self) -> Tuple[AggregatedRating, FollowUpAnswer]:
		self._require(FlowState.AWAITING_ANSWERS)
		return self.gaps[self.index], self.answers[self.index]

	def _advance(self) -> None:
		if self.is_last:
			self.state = FlowState.REFINING
		else:
			self.index += 1

	def answer(self, selected_options: Sequence[str] = (), free_text: str = "") -> None:
		gap, _ = self.current()
		question = FOLLOW_UP_QUESTIONS.get(gap.principle_id)
		allowed = set(question.options) if question else set()
		unknown = [o for o in selected_options if o not in allowed]
		if unknown:
			raise ValidationError(f"Unknown option(s) for {gap.principle_id}: {unknown}", step="follow-up")
		# keep first-seen order, drop duplicates
		selected = list(dict.fromkeys(selected_options))
		self.answers[self.index] = FollowUpAnswer(
			principle_id=gap.principle_id,
			selected_options=selected,
			free_text=free_text or "",
		)
		self._advance()

	def skip_question(self) -> None:
		self.current()
		self._advance()

	def previous(self) -> None:
		self._require(FlowState.AWAITING_ANSWERS)
		self.index = max(0, self.index - 1)

	def finish(self) -> None:
		self._require(FlowState.AWAITING_ANSWERS)
		self.state = FlowState.REFINING

	def skip(self) -> None:
		if self.state in (FlowState.DONE, FlowState.SKIPPED):
			return
		self.state = FlowState.SKIPPED

	def original_scores(self) -> List[OriginalScore]:
		return [
			OriginalScore(principle_id=g.principle_id, title=g.title, score=g.score, reasoning=g.reasoning)
			for g in self.gaps
		]

	async def refine(self, oracle) -> Dict[str, AggregatedRating]:
		"""Send all answers in one request; fall back to the original scores on failure."""
		self._require(FlowState.REFINING)
		try:
			refined = await oracle.refine(self.original_scores(), self.answers)
		except AuditError as exc:
			logger.warning("Refinement failed, keeping original scores: %s", exc.message)
			self.error = exc.message
			self.state = FlowState.SKIPPED
			return self.ratings
		self.ratings, self.refined = apply_refinements(self.ratings, refined, self.gap_ids)
		self.state = FlowState.DONE
		logger.info("Refined %d of %d gap principle(s)", len(self.refined), len(self.gaps))
		return self.ratings

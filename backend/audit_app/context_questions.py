"""Clarifying questions asked before analysis.

Screenshots cannot show timing or adaptivity, so the user can answer a few
multiple-choice questions up front. Each answered question turns into a
scoring hint for the principles it names (see `prompts.build_upfront_context`).
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Iterable, List, Mapping, Set, Tuple

from pydantic import BaseModel, ConfigDict

from .section_types import SectionType, classify_all, matches_types


class ContextOption(BaseModel):
	model_config = ConfigDict(frozen=True)

	value: str
	label: str
	scoring_hint: str


class ContextQuestion(BaseModel):
	model_config = ConfigDict(frozen=True)

	id: str
	principle_ids: Tuple[str, ...]
	question: str
	options: Tuple[ContextOption, ...]
	free_text_prompt: str
	applies_to: Tuple[SectionType, ...]

	def option(self, value: str) -> ContextOption | None:
		for o in self.options:
			if o.value == value:
				return o
		return None


def _opts(*rows: Tuple[str, str, str]) -> Tuple[ContextOption, ...]:
	return tuple(ContextOption(value=v, label=l, scoring_hint=h) for v, l, h in rows)


CONTEXT_QUESTIONS: Tuple[ContextQuestion, ...] = (
	# Whole-experience questions
	ContextQuestion(
		id="spaced-learning",
		principle_ids=("spaced-repetition",),
		question="How does your learning experience handle review and repetition over time?",
		applies_to=(SectionType.OVERALL, SectionType.REVIEW),
		options=_opts(
			("none", "Learning happens in a single session with no planned follow-up", "No spaced repetition implemented - score 1"),
			("manual-review", "Users can return to review content, but timing is up to them", "Minimal spacing - user-directed only - score 2"),
			("reminders", "The system sends reminders or notifications to return and practice", "Some spaced repetition via reminders - score 3"),
			("scheduled-review", "Content automatically resurfaces for review at set intervals", "Structured spaced repetition with fixed intervals - score 4"),
			("adaptive-spacing", "Review timing adapts based on how well the user remembered content", "Adaptive spaced repetition (e.g., SM-2 algorithm) - score 5"),
		),
		free_text_prompt="Describe any other spacing or review features:",
	),
	# Quiz / assessment
	ContextQuestion(
		id="quiz-feedback",
		principle_ids=("retrieval-practice", "elaboration"),
		question="What kind of feedback do learners receive on quiz questions?",
		applies_to=(SectionType.QUIZ, SectionType.PRE_QUIZ, SectionType.POST_QUIZ),
		options=_opts(
			("none", "No feedback - just a final score", "No feedback on individual questions - retrieval practice score 2, elaboration score 1"),
			("correct-incorrect", "Shows whether each answer was correct or incorrect", "Basic correctness feedback - retrieval practice score 3, elaboration score 2"),
			("correct-answer", "Shows the correct answer after incorrect responses", "Answer revelation feedback - retrieval practice score 3-4, elaboration score 2-3"),
			("explanation", "Explains WHY the answer is correct or incorrect", "Explanatory feedback - retrieval practice score 4, elaboration score 4"),
			("adaptive-explanation", "Provides personalized explanations based on the specific mistake", "Adaptive explanatory feedback - retrieval practice score 5, elaboration score 5"),
		),
		free_text_prompt="Describe the feedback learners receive:",
	),
	ContextQuestion(
		id="quiz-randomization",
		principle_ids=("interleaving", "desirable-difficulties"),
		question="How are questions presented in this quiz?",
		# Not pre-quiz: untaught topics cannot be interleaved
		applies_to=(SectionType.QUIZ, SectionType.POST_QUIZ),
		options=_opts(
			("fixed", "Same questions in the same order every time", "Fixed question order - interleaving score 1-2"),
			("shuffled", "Question order is randomized", "Randomized order - interleaving score 3"),
			("pool", "Questions are drawn from a larger pool", "Question pool with variation - interleaving score 3-4"),
			("mixed-topics", "Questions from different topics are mixed together", "Topic interleaving within quiz - interleaving score 4"),
			("adaptive-selection", "Questions are selected based on learner performance", "Adaptive question selection - interleaving score 4-5, desirable-difficulties score 4-5"),
		),
		free_text_prompt="Describe how questions are selected or ordered:",
	),
	# Practice / activity
	ContextQuestion(
		id="practice-difficulty",
		principle_ids=("deliberate-practice", "desirable-difficulties"),
		question="How does difficulty progress in practice activities?",
		applies_to=(SectionType.PRACTICE,),
		options=_opts(
			("fixed", "Same difficulty throughout", "No difficulty progression - deliberate-practice score 1-2"),
			("user-selected", "User chooses difficulty level", "User-controlled difficulty - deliberate-practice score 2-3"),
			("linear", "Difficulty increases as user progresses", "Linear difficulty progression - deliberate-practice score 3"),
			("adaptive", "Difficulty adjusts based on performance", "Adaptive difficulty - deliberate-practice score 4"),
			("targeted", "System targets weak areas with appropriate challenge", "Targeted practice at edge of ability - deliberate-practice score 5"),
		),
		free_text_prompt="Describe how difficulty is managed:",
	),
	ContextQuestion(
		id="practice-mixing",
		principle_ids=("interleaving",),
		question="How are different skills or topics mixed in practice?",
		applies_to=(SectionType.PRACTICE,),
		options=_opts(
			("blocked", "One skill/topic at a time until mastered", "Blocked practice - interleaving score 1-2"),
			("sequential", "Topics introduced one at a time but occasionally revisited", "Sequential with some review - interleaving score 2-3"),
			("mixed", "Multiple topics/skills mixed within sessions", "Interleaved practice - interleaving score 3-4"),
			("randomized", "Random mixing of topics - learner can't predict what's next", "Randomized interleaving - interleaving score 4"),
			("cumulative", "All previously learned topics can appear at any time", "Cumulative interleaving - interleaving score 5"),
		),
		free_text_prompt="Describe how topics are mixed in practice:",
	),
	# Lesson / instruction
	ContextQuestion(
		id="lesson-pacing",
		principle_ids=("cognitive-load-theory", "chunking"),
		question="How is content paced and chunked in lessons?",
		applies_to=(SectionType.LESSON,),
		options=_opts(
			("continuous", "Content flows continuously without breaks", "No chunking or pacing control - cognitive-load score 2, chunking score 1-2"),
			("sections", "Content is divided into sections but auto-advances", "Some structure but no user control - cognitive-load score 3, chunking score 3"),
			("self-paced", "Learner controls when to move to next section", "Self-paced with chunks - cognitive-load score 4, chunking score 4"),
			("interactive-chunks", "Small chunks with interactions/checks between them", "Interactive chunking - cognitive-load score 4-5, chunking score 4-5"),
			("adaptive-pacing", "Pacing adapts based on learner comprehension", "Adaptive pacing - cognitive-load score 5, chunking score 5"),
		),
		free_text_prompt="Describe how content is paced:",
	),
	ContextQuestion(
		id="lesson-elaboration",
		principle_ids=("elaboration", "self-explanation"),
		question="How does the lesson encourage deeper processing?",
		applies_to=(SectionType.LESSON,),
		options=_opts(
			("passive", "Content is presented for passive consumption (reading/watching)", "Passive learning only - elaboration score 1-2, self-explanation score 1"),
			("examples", "Includes worked examples showing how concepts apply", "Examples provided - elaboration score 2-3, self-explanation score 2"),
			("questions", "Asks comprehension questions throughout", "Embedded questions - elaboration score 3, self-explanation score 3"),
			("explain-prompts", "Prompts learners to explain concepts in their own words", "Self-explanation prompts - elaboration score 4, self-explanation score 4"),
			("generation", "Learners must generate examples or explanations before seeing answers", "Generation before instruction - elaboration score 5, self-explanation score 5"),
		),
		free_text_prompt="Describe how learners engage with content:",
	),
	# Onboarding
	ContextQuestion(
		id="onboarding-efficacy",
		principle_ids=("self-efficacy", "growth-mindset"),
		question="How does onboarding build learner confidence?",
		applies_to=(SectionType.ONBOARDING,),
		options=_opts(
			("none", "Jumps straight into content without confidence building", "No confidence scaffolding - self-efficacy score 1-2"),
			("overview", "Provides an overview of what will be learned", "Goal orientation only - self-efficacy score 2-3"),
			("easy-wins", "Starts with easy tasks to build early success", "Early wins for confidence - self-efficacy score 4"),
			("personalized", "Assesses prior knowledge and starts at appropriate level", "Personalized starting point - self-efficacy score 4-5"),
			("growth-framing", "Explicitly frames learning as growth, normalizes mistakes", "Growth mindset framing - self-efficacy score 5, growth-mindset score 4-5"),
		),
		free_text_prompt="Describe how onboarding builds confidence:",
	),
)

CONTEXT_QUESTIONS_BY_ID: Mapping[str, ContextQuestion] = MappingProxyType({q.id: q for q in CONTEXT_QUESTIONS})


def questions_for_types(types: Set[SectionType]) -> List[ContextQuestion]:
	return [q for q in CONTEXT_QUESTIONS if matches_types(q.applies_to, types)]


def relevant_questions(section_names: Iterable[str]) -> List[ContextQuestion]:
	return questions_for_types(classify_all(section_names))

from __future__ import annotations
import re
from enum import Enum
from typing import Iterable, Pattern, Set, Tuple


class SectionType(str, Enum):
	PRE_QUIZ = "pre-quiz"
	POST_QUIZ = "post-quiz"
	QUIZ = "quiz"
	LESSON = "lesson"
	PRACTICE = "practice"
	REVIEW = "review"
	ONBOARDING = "onboarding"
	# Synthetic: the whole experience rather than one phase
	OVERALL = "overall"


SECTION_TYPE_LABELS = {
	SectionType.PRE_QUIZ: "Pre-Quiz / Diagnostic",
	SectionType.POST_QUIZ: "Post-Quiz / Assessment",
	SectionType.QUIZ: "Quiz / Test",
	SectionType.LESSON: "Lesson / Instruction",
	SectionType.PRACTICE: "Practice / Activity",
	SectionType.REVIEW: "Review / Summary",
	SectionType.ONBOARDING: "Onboarding / Intro",
	SectionType.OVERALL: "Overall Experience",
}

# Evaluated top to bottom; first match wins. The specific quiz phases must
# stay ahead of the generic quiz group.
_PATTERNS: Tuple[Tuple[SectionType, Pattern[str]], ...] = (
	(SectionType.PRE_QUIZ, re.compile(r"pre[- ]?(lesson|quiz|test|assessment)|diagnostic|baseline|placement")),
	(SectionType.POST_QUIZ, re.compile(r"post[- ]?(lesson|quiz|test|assessment)|final|summative")),
	(SectionType.QUIZ, re.compile(r"quiz|test|assessment|exam|check|question")),
	(SectionType.PRACTICE, re.compile(r"practice|exercise|activity|game|drill|challenge")),
	(SectionType.REVIEW, re.compile(r"review|summary|recap|revisit|refresh")),
	(SectionType.ONBOARDING, re.compile(r"onboard|welcome|intro|getting started|tutorial")),
	(SectionType.LESSON, re.compile(r"lesson|instruction|content|learn|module|video|lecture|read")),
)

DEFAULT_SECTION_TYPE = SectionType.LESSON


def classify(name: str) -> SectionType:
	"""Map a free-text section name to its section type (defaults to lesson)."""
	lowered = (name or "").lower()
	for section_type, pattern in _PATTERNS:
		if pattern.search(lowered):
			return section_type
	return DEFAULT_SECTION_TYPE


def classify_all(names: Iterable[str]) -> Set[SectionType]:
	return {classify(n) for n in names}


def resolve_section_type(section_name: str | None, override: SectionType | None = None) -> SectionType:
	if override is not None:
		return override
	if section_name:
		return classify(section_name)
	return SectionType.OVERALL


def includes_overall(types: Set[SectionType]) -> bool:
	"""Whole-experience questions are relevant once more than one phase is audited."""
	return len(types) > 1


def matches_types(applies_to: Iterable[SectionType], types: Set[SectionType]) -> bool:
	applies = set(applies_to)
	if applies & types:
		return True
	return includes_overall(types) and SectionType.OVERALL in applies

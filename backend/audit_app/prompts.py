from __future__ import annotations
from typing import Dict, List, Mapping, Optional, Sequence

from .catalog import PRINCIPLES, RUBRIC_LEVELS, Principle, applicable_principles
from .context_questions import CONTEXT_QUESTIONS_BY_ID
from .schemas import FollowUpAnswer, OriginalScore, UpfrontAnswer
from .section_types import SectionType


SCORES_FORMAT = (
	"Respond in valid JSON format only, with no additional text:\n"
	"{\n"
	'  "scores": {\n'
	'    "principle-id": {\n'
	'      "score": <1-5>,\n'
	'      "reasoning": "<brief explanation>",\n'
	'      "confidence": "<high|medium|low>",\n'
	'      "notApplicable": false\n'
	"    },\n"
	"    ...\n"
	"  }\n"
	"}\n"
)

REFINED_FORMAT = (
	"Respond in valid JSON format only, with no additional text:\n"
	"{\n"
	'  "refinedScores": [\n'
	"    {\n"
	'      "principleId": "<principle-id>",\n'
	'      "originalScore": <1-5>,\n'
	'      "refinedScore": <1-5>,\n'
	'      "refinedReasoning": "<updated reasoning incorporating new context>",\n'
	'      "specificActions": ["<action 1>", "<action 2>", "<action 3>"]\n'
	"    },\n"
	"    ...\n"
	"  ]\n"
	"}\n"
)


def render_rubric(principle: Principle, indent: str = "  ") -> str:
	return "".join(
		f"{indent}{lvl} - {principle.rubric[lvl].label}: {principle.rubric[lvl].description}\n"
		for lvl in RUBRIC_LEVELS
	)


def build_upfront_context(upfront_context: Optional[Mapping[str, UpfrontAnswer]]) -> str:
	"""Turn answered clarifying questions into scoring hints.

	Unknown question ids and questions without a recognised selected option
	contribute nothing.
	"""
	if not upfront_context:
		return ""
	blocks: List[str] = []
	for question_id, answer in upfront_context.items():
		question = CONTEXT_QUESTIONS_BY_ID.get(question_id)
		if question is None:
			continue
		option = question.option(answer.selected_option)
		if option is None:
			continue
		block = (
			f"**{question.question}**\n"
			f"User selected: \"{option.label}\"\n"
			f"Scoring guidance: {option.scoring_hint}\n"
			f"Affects principles: {', '.join(question.principle_ids)}\n"
		)
		if answer.free_text.strip():
			block += f"Additional context: \"{answer.free_text.strip()}\"\n"
		blocks.append(block)
	if not blocks:
		return ""
	return (
		"\nIMPORTANT CONTEXT ABOUT THE OVERALL LEARNING EXPERIENCE:\n"
		"The user has provided information about behaviors that cannot be assessed from screenshots alone. "
		"Use this context to inform your scoring of the relevant principles.\n\n"
		+ "\n".join(blocks)
		+ "\nUse this context when scoring the affected principles. These principles may receive higher scores "
		"if the user's context indicates implementation beyond what's visible in screenshots.\n\n"
	)


def build_prompt(
	section_name: Optional[str],
	section_type: SectionType,
	section_notes: Optional[str] = None,
	upfront_context: Optional[Mapping[str, UpfrontAnswer]] = None,
) -> str:
	"""Assemble the scoring instructions for one oracle call.

	Only principles applicable to `section_type` are listed; the rest are
	filled in as not-applicable after the call.
	"""
	principle_ids = applicable_principles(section_type)
	count = len(principle_ids)

	if section_name:
		prompt = (
			"You are an expert in learning science and instructional design. "
			"You are analyzing screenshots from ONE SECTION of a larger learning experience.\n\n"
			f"This section is: \"{section_name}\" (detected type: {section_type.value})\n"
		)
		prompt += build_upfront_context(upfront_context)
		if section_notes and section_notes.strip():
			prompt += (
				"\nThe user has provided additional section-specific context:\n"
				f"\"{section_notes.strip()}\"\n\n"
				"Consider BOTH the screenshots AND this context when scoring.\n\n"
			)
		prompt += (
			f"\nFor each of the {count} learning science principles below "
			f"(pre-filtered to be relevant for \"{section_type.value}\" sections):\n"
			"1. Provide a score from 1-5 based on the rubric criteria\n"
			"2. Provide brief reasoning (1-2 sentences) explaining your score\n"
			"3. Provide confidence level: \"high\", \"medium\", or \"low\"\n"
			"4. Set \"notApplicable\" to false (these principles were pre-selected as applicable)\n\n"
			"Note: Principles not applicable to this section type have already been filtered out.\n\n"
		)
	else:
		prompt = (
			"You are an expert in learning science and instructional design. "
			"Analyze the provided screenshots of a learning experience and evaluate it against each of the "
			f"following {count} essential learning science principles.\n\n"
			"For each principle, provide:\n"
			"1. A score from 1-5 based on the rubric criteria below\n"
			"2. A brief reasoning (1-2 sentences) explaining your score based on what you observe\n"
			"3. A confidence level: \"high\" if clearly visible, \"medium\" if partially visible, "
			"\"low\" if you're inferring or can't fully assess from screenshots\n\n"
			"IMPORTANT: Some principles (like spaced repetition timing or long-term transfer) may not be fully "
			"assessable from static screenshots. Use \"low\" confidence for these and note what you cannot determine.\n\n"
		)
		prompt += build_upfront_context(upfront_context)
		if section_notes and section_notes.strip():
			prompt += (
				"The user has provided additional context:\n"
				f"\"{section_notes.strip()}\"\n\n"
				"Consider BOTH the screenshots AND this context when scoring.\n\n"
			)

	prompt += f"Here are the {count} principles with their scoring rubrics:\n\n"
	for pid in principle_ids:
		principle = PRINCIPLES[pid]
		prompt += f"## {pid}\nQuestion: {principle.prompt}\nRubric:\n{render_rubric(principle)}\n"

	prompt += "\n" + SCORES_FORMAT + "\nAnalyze the screenshots now and provide your assessment."
	return prompt


def _render_answer(answer: Optional[FollowUpAnswer]) -> str:
	if answer is None:
		return ""
	if answer.is_empty:
		return "**User provided no additional context for this principle.**\n\n"
	out = ""
	if answer.selected_options:
		bullets = "\n".join(f"- {o}" for o in answer.selected_options)
		out += f"**User indicates the experience includes:**\n{bullets}\n\n"
	if answer.free_text.strip():
		out += f"**Additional context from user:**\n\"{answer.free_text.strip()}\"\n\n"
	return out


def build_refine_prompt(original_scores: Sequence[OriginalScore], answers: Sequence[FollowUpAnswer]) -> str:
	by_principle: Dict[str, FollowUpAnswer] = {a.principle_id: a for a in answers}
	prompt = (
		"You are an expert in learning science. You previously analyzed a learning experience and scored it "
		"on several principles. The user has now provided additional context about features that may not have "
		"been visible in screenshots.\n\n"
		"For each principle below, consider the new information and:\n"
		"1. Decide if the score should be adjusted (it can stay the same, go up, or rarely go down)\n"
		"2. Provide updated reasoning that incorporates the new context\n"
		"3. Provide 2-3 specific, actionable recommendations for improvement\n\n"
		"Here are the principles that need refinement:\n\n"
	)
	for original in original_scores:
		prompt += (
			"---\n"
			f"## {original.title} (ID: {original.principle_id})\n\n"
			f"**Original Score:** {original.score}/5\n"
			f"**Original Reasoning:** \"{original.reasoning}\"\n\n"
		)
		principle = PRINCIPLES.get(original.principle_id)
		if principle is not None:
			prompt += f"**Scoring Rubric:**\n{render_rubric(principle)}\n"
		prompt += _render_answer(by_principle.get(original.principle_id))

	prompt += (
		"\n---\n\n"
		+ REFINED_FORMAT
		+ "\nBe specific in your recommendations. Reference the user's context when adjusting scores. "
		"If no new information warrants a score change, keep the same score but still provide specific actions."
	)
	return prompt

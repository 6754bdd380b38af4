from __future__ import annotations
from typing import List, Optional

from .schemas import AggregatedRating, AuditResults, KeyTakeaways


def _score_text(rating: AggregatedRating) -> str:
	# refined scores keep the original visible as a strikethrough
	if rating.original_score is not None and rating.original_score != rating.score:
		return f"~~{rating.original_score}~~ {rating.score}/5"
	return f"{rating.score}/5"


def render_markdown(results: AuditResults, takeaways: Optional[KeyTakeaways] = None) -> str:
	"""Plain-text summary suitable for pasting into a doc or ticket."""
	average = results.average or 0.0
	lines: List[str] = [
		"# Learning Science Audit Results",
		"",
		f"**Overall Score: {average:.1f} / 5.0**",
		f"{results.total_rated}/{results.total_principles} principles rated",
		"",
	]

	if takeaways is not None:
		p = takeaways.priority_category
		lines += ["## Key Takeaways", "", f"**Priority Focus:** {p.category} (avg {p.avg:.1f}/5)", "", "**Top Actions:**"]
		for i, action in enumerate(takeaways.top_actions, start=1):
			lines.append(f"{i}. **{action.title}** ({action.score}/5) - {action.recommendation}")
		if takeaways.quick_wins:
			lines += ["", f"**Quick Wins:** {', '.join(w.title for w in takeaways.quick_wins)}"]
		lines.append("")

	if results.gaps:
		lines += ["## Areas for Improvement", ""]
		for gap in results.gaps:
			lines.append(f"- **{gap.title}** ({_score_text(gap)})")
			lines.append(f"  {gap.recommendation}")
			for action in gap.specific_actions:
				lines.append(f"  - {action}")
		lines.append("")

	if results.strengths:
		lines += ["## Strengths", ""]
		for s in results.strengths:
			lines.append(f"- {s.title} ({_score_text(s)})")

	return "\n".join(lines)

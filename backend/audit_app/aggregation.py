"""
Section Result Aggregator
=========================

Combines per-section oracle output into one rating per principle and derives
the summary views shown on the results page.

Rules:
- A principle's overall rating is the highest applicable (score > 0) score
  across sections; the first section wins exact ties.
- Principles with no applicable score are unrated. They are excluded from the
  average and from gaps/strengths, never counted as zero.
- Gaps are ratings <= 3 (worst first); strengths are ratings >= 4 (best first).
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .catalog import PRINCIPLE_IDS, PRINCIPLES
from .schemas import (
	AggregatedRating,
	AuditResults,
	CategoryPriority,
	KeyTakeaways,
	RefinedScore,
	SectionResult,
)


GAP_THRESHOLD = 3
STRENGTH_THRESHOLD = 4
QUICK_WIN_RANGE = (2, 3)
TOP_ACTIONS = 3


def _rating(principle_id: str, score: int, **extra) -> AggregatedRating:
	principle = PRINCIPLES[principle_id]
	return AggregatedRating(
		principle_id=principle_id,
		title=principle.title,
		category=principle.category,
		score=score,
		recommendation=principle.recommendation,
		**extra,
	)


def combine_sections(section_results: Sequence[SectionResult]) -> Dict[str, AggregatedRating]:
	"""Best applicable score per principle, annotated with the section it came from."""
	combined: Dict[str, AggregatedRating] = {}
	for pid in PRINCIPLE_IDS:
		best = None
		best_section: Optional[str] = None
		for result in section_results:
			entry = result.scores.get(pid)
			if entry is None or not entry.qualifies:
				continue
			# strict > keeps the earliest section on ties
			if best is None or entry.score > best.score:
				best = entry
				best_section = result.section_name
		if best is not None:
			combined[pid] = _rating(
				pid,
				best.score,
				reasoning=best.reasoning,
				confidence=best.confidence,
				contributing_section=best_section,
			)
	return combined


def ratings_from_manual(scores: Mapping[str, Optional[int]]) -> Dict[str, AggregatedRating]:
	"""Manual mode: the user's own 1-5 scores, None meaning unrated."""
	ratings: Dict[str, AggregatedRating] = {}
	for pid in PRINCIPLE_IDS:
		value = scores.get(pid)
		if value is None or value <= 0:
			continue
		ratings[pid] = _rating(pid, int(value))
	return ratings


def summarize(ratings: Mapping[str, AggregatedRating]) -> AuditResults:
	rated = [ratings[pid] for pid in PRINCIPLE_IDS if pid in ratings]
	average = sum(r.score for r in rated) / len(rated) if rated else None
	gaps = sorted((r for r in rated if r.score <= GAP_THRESHOLD), key=lambda r: r.score)
	strengths = sorted((r for r in rated if r.score >= STRENGTH_THRESHOLD), key=lambda r: r.score, reverse=True)
	return AuditResults(
		ratings=dict((r.principle_id, r) for r in rated),
		average=average,
		total_rated=len(rated),
		total_principles=len(PRINCIPLE_IDS),
		gaps=gaps,
		strengths=strengths,
	)


def aggregate(section_results: Sequence[SectionResult]) -> AuditResults:
	return summarize(combine_sections(section_results))


def key_takeaways(gaps: Sequence[AggregatedRating]) -> Optional[KeyTakeaways]:
	if not gaps:
		return None
	# dicts keep first-seen order, which breaks ties between equal averages
	by_category: Dict[str, List[int]] = {}
	for gap in gaps:
		by_category.setdefault(gap.category, []).append(gap.score)
	priorities = [
		CategoryPriority(category=cat, avg=sum(scores) / len(scores), count=len(scores))
		for cat, scores in by_category.items()
	]
	priority = min(priorities, key=lambda p: p.avg)
	lo, hi = QUICK_WIN_RANGE
	return KeyTakeaways(
		priority_category=priority,
		top_actions=list(gaps[:TOP_ACTIONS]),
		quick_wins=[g for g in gaps if lo <= g.score <= hi],
	)


def apply_refinements(
	ratings: Mapping[str, AggregatedRating],
	refined: Iterable[RefinedScore],
	gap_ids: Iterable[str],
) -> tuple[Dict[str, AggregatedRating], List[RefinedScore]]:
	"""Overlay refined scores on the gap ratings they belong to.

	The original score is taken from `ratings`, never from the oracle's echo,
	and kept on the rating as `original_score`. Entries for principles outside
	the gap set are dropped.
	"""
	allowed = set(gap_ids)
	updated = dict(ratings)
	accepted: List[RefinedScore] = []
	for r in refined:
		if r.principle_id not in allowed or r.principle_id not in ratings:
			continue
		before = ratings[r.principle_id]
		record = r.model_copy(update={"original_score": before.score})
		accepted.append(record)
		updated[r.principle_id] = before.model_copy(update={
			"score": record.refined_score,
			"original_score": before.score,
			"reasoning": record.refined_reasoning or before.reasoning,
			"specific_actions": list(record.specific_actions),
		})
	return updated, accepted


def ratings_map(ratings: Mapping[str, AggregatedRating]) -> Dict[str, Optional[int]]:
	"""Full principle -> score map with None for unrated, in catalog order."""
	return {pid: (ratings[pid].score if pid in ratings else None) for pid in PRINCIPLE_IDS}

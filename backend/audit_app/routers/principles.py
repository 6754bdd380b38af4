from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Query

from ..catalog import PRINCIPLES, applicable_principles, get_principle, principles_by_category
from ..context_questions import relevant_questions
from ..section_types import SECTION_TYPE_LABELS, SectionType, classify, includes_overall, classify_all


router = APIRouter(tags=["principles"])


def _principle_view(pid: str) -> dict:
	p = get_principle(pid)
	return {
		"id": p.id,
		"title": p.title,
		"category": p.category,
		"summary": p.prompt,
		"recommendation": p.recommendation,
		"rubric": {str(lvl): {"label": r.label, "description": r.description} for lvl, r in p.rubric.items()},
		"appliesTo": [t.value for t in p.applies_to],
	}


@router.get("/principles")
def list_principles(section_type: Optional[SectionType] = Query(default=None, alias="sectionType")):
	ids = applicable_principles(section_type) if section_type else list(PRINCIPLES)
	grouped = principles_by_category()
	return {
		"categories": [
			{"name": name, "principleIds": [p.id for p in members if p.id in ids]}
			for name, members in grouped.items()
		],
		"principles": [_principle_view(pid) for pid in ids],
	}


@router.get("/principles/{principle_id}")
def principle_detail(principle_id: str):
	return _principle_view(principle_id)


@router.get("/section-types")
def section_types():
	return [{"value": t.value, "label": label} for t, label in SECTION_TYPE_LABELS.items()]


@router.get("/section-types/classify")
def classify_section(name: str):
	return {"name": name, "sectionType": classify(name).value}


@router.get("/context-questions")
def context_questions(sections: List[str] = Query(default=[])):
	types = classify_all(sections)
	return {
		"sectionTypes": sorted(t.value for t in types),
		"includesOverall": includes_overall(types),
		"questions": [q.model_dump() for q in relevant_questions(sections)],
	}

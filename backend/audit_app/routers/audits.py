from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import Field
from sqlalchemy.orm import Session

from ..aggregation import ratings_map
from ..captures import group_captures, parse_capture_import
from ..context_questions import CONTEXT_QUESTIONS_BY_ID, questions_for_types
from ..db import get_db
from ..errors import ValidationError
from ..export import render_markdown
from ..follow_up import FOLLOW_UP_QUESTIONS, FlowState, FollowUpFlow, follow_up_principles_for_types
from ..images import load_image
from ..missing_flows import recommend_missing
from ..oracle import ScoringOracle, get_oracle
from ..pipeline import AuditSession, create_audit, discard_audit, get_audit
from ..report_store import put_report
from ..schemas import UpfrontAnswer, WireModel
from ..section_types import SectionType, includes_overall
from ..settings import settings
from ..share_link import legacy_share_url


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audits", tags=["audits"])


class SectionCreate(WireModel):
	name: str
	notes: str = ""
	section_type: Optional[SectionType] = None


class SectionUpdate(WireModel):
	name: Optional[str] = None
	notes: Optional[str] = None
	section_type: Optional[SectionType] = None


class ContextRequest(WireModel):
	answers: Dict[str, UpfrontAnswer] = Field(default_factory=dict)


class ManualRatingsRequest(WireModel):
	ratings: Dict[str, Optional[int]] = Field(default_factory=dict)


class FollowUpAnswerRequest(WireModel):
	selected_options: List[str] = Field(default_factory=list)
	free_text: str = ""


class CaptureImportRequest(WireModel):
	document: Dict[str, Any]
	# capture id or index -> section name
	assignments: Dict[str, str] = Field(default_factory=dict)


def _dump(model) -> Any:
	return model.model_dump(by_alias=True, mode="json")


def _audit_view(audit: AuditSession) -> dict:
	types = audit.section_types()
	return {
		"id": audit.id,
		"sections": [s.summary() for s in audit.sections],
		"sectionTypes": sorted(t.value for t in types),
		"includesOverall": includes_overall(types),
		"upfrontContext": {qid: _dump(a) for qid, a in audit.upfront_context.items()},
		"analyzed": bool(audit.ratings),
		"followUpState": audit.follow_up.state.value if audit.follow_up else None,
	}


def _results_view(audit: AuditSession) -> dict:
	results = audit.results()
	takeaways = audit.takeaways()
	flow = audit.follow_up
	return {
		"results": _dump(results),
		"keyTakeaways": _dump(takeaways) if takeaways else None,
		"sectionResults": [_dump(r) for r in audit.section_results],
		"followUp": _follow_up_view(audit) if flow else None,
	}


def _flow(audit: AuditSession) -> FollowUpFlow:
	if audit.follow_up is None:
		raise ValidationError("No follow-up available; run an analysis first", step="follow-up")
	return audit.follow_up


def _follow_up_view(audit: AuditSession) -> dict:
	flow = _flow(audit)
	view: Dict[str, Any] = {
		"state": flow.state.value,
		"total": len(flow.gaps),
		"index": flow.index,
		"error": flow.error,
		"refinedScores": [_dump(r) for r in flow.refined],
	}
	if flow.state == FlowState.AWAITING_ANSWERS:
		gap, answer = flow.current()
		question = FOLLOW_UP_QUESTIONS.get(gap.principle_id)
		view["current"] = {
			"principleId": gap.principle_id,
			"title": gap.title,
			"score": gap.score,
			"reasoning": gap.reasoning,
			"freeTextPrompt": question.free_text_prompt if question else None,
			"options": list(question.options) if question else [],
			"answer": _dump(answer),
			"isLast": flow.is_last,
			"matchesSections": bool(follow_up_principles_for_types([gap.principle_id], audit.section_types())),
		}
	return view


async def _refine_if_ready(audit: AuditSession, oracle: ScoringOracle) -> None:
	if audit.follow_up is not None and audit.follow_up.state == FlowState.REFINING:
		await audit.refine(oracle)


@router.post("")
def new_audit():
	audit = create_audit()
	logger.info("Created audit %s", audit.id)
	return _audit_view(audit)


@router.get("/{audit_id}")
def audit_detail(audit_id: str):
	return _audit_view(get_audit(audit_id))


@router.delete("/{audit_id}")
def delete_audit(audit_id: str):
	get_audit(audit_id)
	discard_audit(audit_id)
	return {"ok": True}


@router.post("/{audit_id}/sections")
def add_section(audit_id: str, req: SectionCreate):
	audit = get_audit(audit_id)
	return audit.add_section(req.name, notes=req.notes, section_type=req.section_type).summary()


@router.patch("/{audit_id}/sections/{section_id}")
def update_section(audit_id: str, section_id: str, req: SectionUpdate):
	section = get_audit(audit_id).get_section(section_id)
	if req.name is not None:
		name = req.name.strip()
		if not name:
			raise ValidationError("Section name is required", step="sections")
		section.name = name
	if req.notes is not None:
		section.notes = req.notes
	if "section_type" in req.model_fields_set:
		section.type_override = req.section_type
	return section.summary()


@router.delete("/{audit_id}/sections/{section_id}")
def delete_section(audit_id: str, section_id: str):
	get_audit(audit_id).remove_section(section_id)
	return {"ok": True}


@router.post("/{audit_id}/sections/{section_id}/images")
async def upload_images(audit_id: str, section_id: str, files: List[UploadFile] = File(...)):
	section = get_audit(audit_id).get_section(section_id)
	if len(section.images) + len(files) > settings.max_images_per_section:
		raise ValidationError(
			f"Maximum {settings.max_images_per_section} images allowed per section",
			step="upload",
			section=section.name,
		)
	blobs = []
	for f in files:
		data = await f.read()
		try:
			blobs.append(load_image(data))
		except ValidationError as exc:
			exc.section = section.name
			raise
	section.add_images(blobs)
	return section.summary()


@router.delete("/{audit_id}/sections/{section_id}/images/{index}")
def delete_image(audit_id: str, section_id: str, index: int):
	section = get_audit(audit_id).get_section(section_id)
	if not 0 <= index < len(section.images):
		raise ValidationError("No image at that position", step="upload", section=section.name)
	del section.images[index]
	return section.summary()


@router.post("/{audit_id}/captures")
def import_captures(audit_id: str, req: CaptureImportRequest):
	audit = get_audit(audit_id)
	groups = group_captures(parse_capture_import(req.document), req.assignments)
	by_name = {s.name: s for s in audit.sections}
	for name, blobs in groups.items():
		section = by_name.get(name) or audit.add_section(name)
		by_name[name] = section
		section.add_images(blobs)
	logger.info("Imported %d capture group(s) into audit %s", len(groups), audit.id)
	return _audit_view(audit)


@router.get("/{audit_id}/context-questions")
def audit_context_questions(audit_id: str):
	audit = get_audit(audit_id)
	return [q.model_dump() for q in questions_for_types(audit.section_types())]


@router.put("/{audit_id}/context")
def set_context(audit_id: str, req: ContextRequest):
	audit = get_audit(audit_id)
	unknown = [qid for qid in req.answers if qid not in CONTEXT_QUESTIONS_BY_ID]
	if unknown:
		raise ValidationError(f"Unknown context question(s): {unknown}", step="context")
	audit.upfront_context = dict(req.answers)
	return _audit_view(audit)


@router.post("/{audit_id}/analyze")
async def analyze_audit(audit_id: str, oracle: ScoringOracle = Depends(get_oracle)):
	audit = get_audit(audit_id)
	await audit.analyze(oracle)
	return _results_view(audit)


@router.put("/{audit_id}/manual")
def manual_ratings(audit_id: str, req: ManualRatingsRequest):
	audit = get_audit(audit_id)
	bad = [pid for pid, v in req.ratings.items() if v is not None and not 0 <= v <= 5]
	if bad:
		raise ValidationError(f"Scores must be between 0 and 5: {bad}", step="manual")
	audit.set_manual_ratings(req.ratings)
	return _results_view(audit)


@router.get("/{audit_id}/results")
def audit_results(audit_id: str):
	return _results_view(get_audit(audit_id))


@router.get("/{audit_id}/follow-up")
def follow_up(audit_id: str):
	return _follow_up_view(get_audit(audit_id))


@router.post("/{audit_id}/follow-up/answer")
async def follow_up_answer(audit_id: str, req: FollowUpAnswerRequest, oracle: ScoringOracle = Depends(get_oracle)):
	audit = get_audit(audit_id)
	_flow(audit).answer(req.selected_options, req.free_text)
	await _refine_if_ready(audit, oracle)
	return _follow_up_view(audit)


@router.post("/{audit_id}/follow-up/skip-question")
async def follow_up_skip_question(audit_id: str, oracle: ScoringOracle = Depends(get_oracle)):
	audit = get_audit(audit_id)
	_flow(audit).skip_question()
	await _refine_if_ready(audit, oracle)
	return _follow_up_view(audit)


@router.post("/{audit_id}/follow-up/previous")
def follow_up_previous(audit_id: str):
	audit = get_audit(audit_id)
	_flow(audit).previous()
	return _follow_up_view(audit)


@router.post("/{audit_id}/follow-up/finish")
async def follow_up_finish(audit_id: str, oracle: ScoringOracle = Depends(get_oracle)):
	audit = get_audit(audit_id)
	_flow(audit).finish()
	await _refine_if_ready(audit, oracle)
	return _follow_up_view(audit)


@router.post("/{audit_id}/follow-up/skip")
def follow_up_skip(audit_id: str):
	audit = get_audit(audit_id)
	_flow(audit).skip()
	return _follow_up_view(audit)


@router.get("/{audit_id}/missing-flows")
def missing_flows(audit_id: str):
	audit = get_audit(audit_id)
	return [_dump(r) for r in recommend_missing(audit.section_types())]


@router.post("/{audit_id}/reset")
def reset_audit(audit_id: str):
	audit = get_audit(audit_id)
	audit.reset()
	return _audit_view(audit)


@router.get("/{audit_id}/export", response_class=PlainTextResponse)
def export_markdown(audit_id: str):
	audit = get_audit(audit_id)
	return render_markdown(audit.results(), audit.takeaways())


@router.get("/{audit_id}/share-link")
def share_link(audit_id: str):
	audit = get_audit(audit_id)
	return {"url": legacy_share_url(ratings_map(audit.ratings))}


@router.post("/{audit_id}/report")
def share_report(audit_id: str, db: Session = Depends(get_db)):
	report_id = put_report(db, get_audit(audit_id).to_report())
	return {"id": report_id, "url": f"{settings.public_base_url.rstrip('/')}/audit/{report_id}"}

from __future__ import annotations
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from ..errors import ValidationError
from ..images import decode_base64_image
from ..oracle import ScoringOracle, get_oracle
from ..pipeline import analyze_section
from ..schemas import FollowUpAnswer, OriginalScore, RefinedScore, ScoreResult, UpfrontAnswer, WireModel
from ..section_types import SectionType, resolve_section_type
from ..settings import settings


router = APIRouter(tags=["analyze"])


class ImagePayload(WireModel):
	data: str
	media_type: Optional[str] = None


class AnalyzeRequest(WireModel):
	images: List[ImagePayload] = Field(default_factory=list)
	section_name: Optional[str] = None
	section_type: Optional[SectionType] = None
	section_notes: Optional[str] = None
	upfront_context: Optional[Dict[str, UpfrontAnswer]] = None


class AnalyzeResponse(WireModel):
	section_type: SectionType
	scores: Dict[str, ScoreResult]


class RefineRequest(WireModel):
	original_scores: List[OriginalScore] = Field(default_factory=list)
	answers: List[FollowUpAnswer] = Field(default_factory=list)


class RefineResponse(WireModel):
	refined_scores: List[RefinedScore]


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(req: AnalyzeRequest, oracle: ScoringOracle = Depends(get_oracle)):
	if not req.images:
		raise ValidationError("No images provided", step="analyze")
	limit = settings.max_images_per_section
	if len(req.images) > limit:
		raise ValidationError(f"Maximum {limit} images allowed per section", step="analyze")
	# the declared media type is advisory; bytes decide
	images = [decode_base64_image(img.data) for img in req.images]
	resolved = resolve_section_type(req.section_name, req.section_type)
	scores = await analyze_section(
		oracle,
		images,
		section_name=req.section_name,
		section_type=req.section_type,
		section_notes=req.section_notes,
		upfront_context=req.upfront_context,
	)
	return AnalyzeResponse(section_type=resolved, scores=scores)


@router.post("/refine-analysis", response_model=RefineResponse)
async def refine_analysis(req: RefineRequest, oracle: ScoringOracle = Depends(get_oracle)):
	if not req.original_scores:
		raise ValidationError("No scores provided", step="refine")
	originals = {s.principle_id: s.score for s in req.original_scores}
	refined = await oracle.refine(req.original_scores, req.answers)
	# originals come from the request, not the oracle's echo
	kept = [
		r.model_copy(update={"original_score": originals[r.principle_id]})
		for r in refined
		if r.principle_id in originals
	]
	return RefineResponse(refined_scores=kept)

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .section_types import SectionType


Confidence = Literal["high", "medium", "low"]


class WireModel(BaseModel):
	# camelCase on the wire, snake_case in Python
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageBlob(WireModel):
	data: bytes
	media_type: str


class ScoreResult(WireModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

	score: int = Field(ge=0, le=5)
	reasoning: str = ""
	confidence: Confidence = "medium"
	not_applicable: bool = False

	@property
	def qualifies(self) -> bool:
		return not self.not_applicable and self.score > 0


class SectionResult(WireModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

	section_id: str
	section_name: str
	section_type: Optional[SectionType] = None
	scores: Dict[str, ScoreResult]


class AggregatedRating(WireModel):
	principle_id: str
	title: str
	category: str
	score: int
	reasoning: str = ""
	confidence: Optional[Confidence] = None
	recommendation: str = ""
	# Name of the section whose score won, None for manual ratings
	contributing_section: Optional[str] = None
	original_score: Optional[int] = None
	specific_actions: List[str] = Field(default_factory=list)


class AuditResults(WireModel):
	ratings: Dict[str, AggregatedRating]
	average: Optional[float] = None
	total_rated: int = 0
	total_principles: int = 0
	gaps: List[AggregatedRating] = Field(default_factory=list)
	strengths: List[AggregatedRating] = Field(default_factory=list)


class CategoryPriority(WireModel):
	category: str
	avg: float
	count: int


class KeyTakeaways(WireModel):
	priority_category: CategoryPriority
	top_actions: List[AggregatedRating]
	quick_wins: List[AggregatedRating]


class OriginalScore(WireModel):
	principle_id: str
	title: str
	score: int
	reasoning: str = ""


class FollowUpAnswer(WireModel):
	principle_id: str
	selected_options: List[str] = Field(default_factory=list)
	free_text: str = ""

	@property
	def is_empty(self) -> bool:
		return not self.selected_options and not self.free_text.strip()


class RefinedScore(WireModel):
	principle_id: str
	# overwritten from the pre-refinement rating
	original_score: int = 0
	refined_score: int = Field(ge=1, le=5)
	refined_reasoning: str = ""
	specific_actions: List[str] = Field(default_factory=list)


class UpfrontAnswer(WireModel):
	selected_option: str = ""
	free_text: str = ""


class Priority(str, Enum):
	HIGH = "high"
	MEDIUM = "medium"
	LOW = "low"


class Report(WireModel):
	id: Optional[str] = None
	created_at: Optional[datetime] = None
	overall_score: Optional[float] = None
	ratings: Dict[str, Optional[int]]
	section_results: Optional[List[SectionResult]] = None
	key_takeaways: Optional[KeyTakeaways] = None
	refined_scores: Optional[List[RefinedScore]] = None

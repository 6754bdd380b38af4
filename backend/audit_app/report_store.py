from __future__ import annotations
import json
import logging
import uuid
from typing import Any, Optional

from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from .errors import NotFoundError
from .models import AuditReport
from .schemas import KeyTakeaways, RefinedScore, Report, SectionResult
from .settings import settings

logger = logging.getLogger(__name__)

_section_results = TypeAdapter(list[SectionResult])
_refined_scores = TypeAdapter(list[RefinedScore])


def _new_id() -> str:
	return uuid.uuid4().hex[: settings.report_id_length]


def _dump(value: Any, adapter: Optional[TypeAdapter] = None) -> Optional[str]:
	if value is None:
		return None
	if adapter is not None:
		return adapter.dump_json(value, by_alias=True).decode("utf-8")
	if hasattr(value, "model_dump_json"):
		return value.model_dump_json(by_alias=True)
	return json.dumps(value)


def put_report(db: Session, report: Report) -> str:
	"""Store a finished report under a fresh id. Reports are never updated."""
	report_id = _new_id()
	# ids are short; re-roll on the rare collision instead of overwriting
	while db.get(AuditReport, report_id) is not None:
		report_id = _new_id()
	row = AuditReport(
		id=report_id,
		overall_score=report.overall_score,
		ratings_json=json.dumps(report.ratings),
		section_results_json=_dump(report.section_results, _section_results),
		key_takeaways_json=_dump(report.key_takeaways),
		refined_scores_json=_dump(report.refined_scores, _refined_scores),
	)
	db.add(row)
	db.commit()
	logger.info("Stored report %s", report_id)
	return report_id


def get_report(db: Session, report_id: str) -> Report:
	row = db.get(AuditReport, report_id)
	if row is None:
		logger.info("Report %s not found", report_id)
		raise NotFoundError("Report not found", step="report")
	return Report(
		id=row.id,
		created_at=row.created_at,
		overall_score=row.overall_score,
		ratings=json.loads(row.ratings_json),
		section_results=_section_results.validate_json(row.section_results_json) if row.section_results_json else None,
		key_takeaways=KeyTakeaways.model_validate_json(row.key_takeaways_json) if row.key_takeaways_json else None,
		refined_scores=_refined_scores.validate_json(row.refined_scores_json) if row.refined_scores_json else None,
	)

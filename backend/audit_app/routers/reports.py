from __future__ import annotations
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..aggregation import key_takeaways, ratings_from_manual, summarize
from ..db import get_db
from ..report_store import get_report, put_report
from ..schemas import Report
from ..settings import settings
from ..share_link import decode_legacy


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("")
def create_report(report: Report, db: Session = Depends(get_db)):
	# ids and timestamps are assigned by the store, never by the client
	report_id = put_report(db, report.model_copy(update={"id": None, "created_at": None}))
	return {"id": report_id, "url": f"{settings.public_base_url.rstrip('/')}/audit/{report_id}"}


@router.get("/legacy")
def legacy_report(r: str = Query(default="")):
	"""Rebuild a read-only result view from an old `?r=4,0,2` share link."""
	ratings = decode_legacy(r)
	results = summarize(ratings_from_manual(ratings))
	takeaways = key_takeaways(results.gaps)
	return {
		"ratings": ratings,
		"results": results.model_dump(by_alias=True, mode="json"),
		"keyTakeaways": takeaways.model_dump(by_alias=True, mode="json") if takeaways else None,
	}


@router.get("/{report_id}", response_model=Report, response_model_by_alias=True)
def read_report(report_id: str, db: Session = Depends(get_db)):
	return get_report(db, report_id)

from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Float, Text
from .db import Base


class AuditReport(Base):
	__tablename__ = "audit_reports"
	# Short random id used in the share URL
	id = Column(String(32), primary_key=True, index=True)
	overall_score = Column(Float, nullable=True)
	ratings_json = Column(Text, nullable=False)  # principle id -> score or null
	section_results_json = Column(Text, nullable=True)
	key_takeaways_json = Column(Text, nullable=True)
	refined_scores_json = Column(Text, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

"""Tests for the write-once report store."""

import pytest

from audit_app import report_store
from audit_app.aggregation import aggregate, key_takeaways, ratings_map
from audit_app.errors import NotFoundError
from audit_app.models import AuditReport
from audit_app.schemas import RefinedScore, Report, ScoreResult, SectionResult


def sample_report():
    section = SectionResult(
        section_id="s1",
        section_name="Practice",
        section_type="practice",
        scores={"chunking": ScoreResult(score=2, reasoning="dense"), "elaboration": ScoreResult(score=4)},
    )
    results = aggregate([section])
    return Report(
        overall_score=results.average,
        ratings=ratings_map(results.ratings),
        section_results=[section],
        key_takeaways=key_takeaways(results.gaps),
        refined_scores=[RefinedScore(principle_id="chunking", original_score=2, refined_score=3)],
    )


class TestReportStore:
    def test_put_then_get_returns_same_content(self, db_session):
        report = sample_report()
        report_id = report_store.put_report(db_session, report)
        loaded = report_store.get_report(db_session, report_id)

        assert loaded.id == report_id
        assert loaded.created_at is not None
        assert loaded.overall_score == pytest.approx(3.0)
        assert loaded.ratings == report.ratings
        assert loaded.section_results == report.section_results
        assert loaded.key_takeaways == report.key_takeaways
        assert loaded.refined_scores == report.refined_scores

    def test_ids_are_short_and_unique(self, db_session):
        ids = {report_store.put_report(db_session, sample_report()) for _ in range(5)}
        assert len(ids) == 5
        assert all(len(i) == 10 for i in ids)

    def test_collision_rerolls_instead_of_overwriting(self, db_session, monkeypatch):
        first = report_store.put_report(db_session, sample_report())
        rolls = iter([first, "freshid123"])
        monkeypatch.setattr(report_store, "_new_id", lambda: next(rolls))
        second = report_store.put_report(db_session, sample_report())
        assert second == "freshid123"
        assert db_session.query(AuditReport).count() == 2

    def test_unknown_id_is_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            report_store.get_report(db_session, "missing")

    def test_minimal_report_round_trips(self, db_session):
        report_id = report_store.put_report(db_session, Report(ratings={"chunking": 3}))
        loaded = report_store.get_report(db_session, report_id)
        assert loaded.section_results is None
        assert loaded.key_takeaways is None
        assert loaded.ratings == {"chunking": 3}

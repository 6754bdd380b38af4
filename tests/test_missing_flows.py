"""Tests for recommending learning phases the audit does not cover."""

from audit_app.missing_flows import recommend_missing
from audit_app.schemas import Priority
from audit_app.section_types import SectionType


def types_of(recs):
    return [r.section_type for r in recs]


class TestRecommendMissing:
    def test_lesson_only_recommends_everything_high_first(self):
        recs = recommend_missing({SectionType.LESSON})
        assert types_of(recs) == [
            SectionType.PRACTICE,
            SectionType.QUIZ,
            SectionType.PRE_QUIZ,
            SectionType.POST_QUIZ,
            SectionType.REVIEW,
        ]
        assert [r.priority for r in recs[:2]] == [Priority.HIGH, Priority.HIGH]

    def test_present_types_are_not_recommended(self):
        recs = recommend_missing({SectionType.LESSON, SectionType.PRACTICE, SectionType.REVIEW})
        assert SectionType.PRACTICE not in types_of(recs)
        assert SectionType.REVIEW not in types_of(recs)

    def test_any_quiz_phase_suppresses_generic_quiz(self):
        recs = recommend_missing({SectionType.LESSON, SectionType.POST_QUIZ})
        assert SectionType.QUIZ not in types_of(recs)
        assert SectionType.PRE_QUIZ in types_of(recs)

    def test_full_coverage_recommends_nothing(self):
        present = {
            SectionType.PRACTICE, SectionType.QUIZ, SectionType.PRE_QUIZ,
            SectionType.POST_QUIZ, SectionType.REVIEW,
        }
        assert recommend_missing(present) == []

    def test_serializes_camel_case(self):
        data = recommend_missing(set())[0].model_dump(by_alias=True, mode="json")
        assert data["sectionType"] == "practice"
        assert "whyItMatters" in data
        assert data["affectedPrinciples"]

    def test_pre_quiz_alone_suppresses_quiz_but_empty_audit_does_not(self):
        assert SectionType.QUIZ not in types_of(recommend_missing({SectionType.PRE_QUIZ}))
        assert SectionType.QUIZ in types_of(recommend_missing(set()))

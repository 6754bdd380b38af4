"""Tests for combining section results and deriving the summary views."""

import pytest

from audit_app.aggregation import (
    aggregate,
    apply_refinements,
    combine_sections,
    key_takeaways,
    ratings_from_manual,
    ratings_map,
    summarize,
)
from audit_app.catalog import PRINCIPLE_IDS
from audit_app.schemas import RefinedScore, ScoreResult, SectionResult


def section(name, scores, not_applicable=()):
    entries = {pid: ScoreResult(score=s, reasoning=f"{name} {pid}") for pid, s in scores.items()}
    for pid in not_applicable:
        entries[pid] = ScoreResult(score=0, reasoning="n/a", confidence="high", not_applicable=True)
    return SectionResult(section_id=name.lower(), section_name=name, scores=entries)


class TestCombineSections:
    """A principle's rating is its best applicable score across sections."""

    def test_takes_maximum_and_remembers_section(self):
        combined = combine_sections([
            section("Lesson", {"chunking": 2, "elaboration": 4}),
            section("Practice", {"chunking": 5, "elaboration": 3}),
        ])
        assert combined["chunking"].score == 5
        assert combined["chunking"].contributing_section == "Practice"
        assert combined["elaboration"].score == 4
        assert combined["elaboration"].contributing_section == "Lesson"

    def test_first_section_wins_ties(self):
        combined = combine_sections([
            section("First", {"chunking": 3}),
            section("Second", {"chunking": 3}),
        ])
        assert combined["chunking"].contributing_section == "First"

    def test_not_applicable_and_zero_scores_are_ignored(self):
        combined = combine_sections([
            section("Quiz", {"elaboration": 2}, not_applicable=["chunking"]),
            section("Other", {"chunking": 0}),
        ])
        assert "chunking" not in combined
        assert combined["elaboration"].score == 2

    def test_ratings_carry_catalog_metadata(self):
        rating = combine_sections([section("Lesson", {"chunking": 2})])["chunking"]
        assert rating.title
        assert rating.category
        assert rating.recommendation


class TestSummarize:
    """Average, gaps and strengths over rated principles only."""

    def test_unrated_principles_do_not_count_as_zero(self):
        results = aggregate([section("Lesson", {"chunking": 4, "elaboration": 2})])
        assert results.total_rated == 2
        assert results.total_principles == len(PRINCIPLE_IDS)
        assert results.average == pytest.approx(3.0)

    def test_gap_and_strength_boundaries(self):
        results = aggregate([section("Lesson", {"chunking": 3, "elaboration": 4, "interleaving": 1, "transfer-of-learning": 5})])
        assert [g.principle_id for g in results.gaps] == ["interleaving", "chunking"]
        assert [s.principle_id for s in results.strengths] == ["transfer-of-learning", "elaboration"]

    def test_nothing_rated(self):
        results = summarize({})
        assert results.average is None
        assert results.gaps == []
        assert results.strengths == []


class TestManualRatings:
    def test_zero_and_none_are_unrated(self):
        ratings = ratings_from_manual({"chunking": 0, "elaboration": None, "interleaving": 4})
        assert list(ratings) == ["interleaving"]
        assert ratings["interleaving"].contributing_section is None


class TestKeyTakeaways:
    """Priority category, top actions and quick wins from the gap list."""

    def test_no_gaps_means_no_takeaways(self):
        assert key_takeaways([]) is None

    def test_priority_category_has_lowest_average(self):
        results = aggregate([section("Lesson", {
            "spaced-repetition": 3,  # Memory & Retention
            "elaboration": 3,        # Memory & Retention
            "chunking": 2,           # Cognitive Load
            "cognitive-load-theory": 1,  # Cognitive Load
        })])
        takeaways = key_takeaways(results.gaps)
        assert takeaways.priority_category.category == "Cognitive Load"
        assert takeaways.priority_category.avg == pytest.approx(1.5)
        assert takeaways.priority_category.count == 2

    def test_tied_categories_keep_first_seen(self):
        results = aggregate([section("Lesson", {"chunking": 2, "growth-mindset": 2})])
        first_category = results.gaps[0].category
        takeaways = key_takeaways(results.gaps)
        assert takeaways.priority_category.category == first_category

    def test_top_actions_and_quick_wins(self):
        results = aggregate([section("Lesson", {
            "spaced-repetition": 1,
            "retrieval-practice": 2,
            "elaboration": 3,
            "interleaving": 3,
        })])
        takeaways = key_takeaways(results.gaps)
        assert [a.score for a in takeaways.top_actions] == [1, 2, 3]
        assert {w.principle_id for w in takeaways.quick_wins} == {"retrieval-practice", "elaboration", "interleaving"}


class TestApplyRefinements:
    """Refined scores overlay gaps; the original is taken from the ratings."""

    def test_original_score_comes_from_ratings(self):
        ratings = combine_sections([section("Lesson", {"chunking": 2, "elaboration": 5})])
        refined = [
            RefinedScore(principle_id="chunking", original_score=4, refined_score=4, refined_reasoning="cards"),
            RefinedScore(principle_id="elaboration", original_score=5, refined_score=1),
        ]
        updated, accepted = apply_refinements(ratings, refined, ["chunking"])
        assert updated["chunking"].score == 4
        assert updated["chunking"].original_score == 2
        assert updated["chunking"].reasoning == "cards"
        # not a gap: left untouched
        assert updated["elaboration"].score == 5
        assert [r.principle_id for r in accepted] == ["chunking"]
        assert accepted[0].original_score == 2

    def test_ratings_map_covers_catalog(self):
        ratings = ratings_from_manual({"chunking": 3})
        mapped = ratings_map(ratings)
        assert list(mapped) == list(PRINCIPLE_IDS)
        assert mapped["chunking"] == 3
        assert mapped["elaboration"] is None


class TestMaxAcrossThreeSections:
    def test_not_applicable_section_never_wins(self):
        combined = combine_sections([
            section("A", {"retrieval-practice": 3}),
            section("B", {"retrieval-practice": 4}),
            section("C", {}, not_applicable=["retrieval-practice"]),
        ])
        assert combined["retrieval-practice"].score == 4
        assert combined["retrieval-practice"].contributing_section == "B"

    def test_gaps_and_strengths_are_disjoint(self):
        scores = {pid: (i % 5) + 1 for i, pid in enumerate(PRINCIPLE_IDS)}
        results = aggregate([section("All", scores)])
        gap_ids = {g.principle_id for g in results.gaps}
        strength_ids = {s.principle_id for s in results.strengths}
        assert not gap_ids & strength_ids
        assert gap_ids | strength_ids == set(results.ratings)
        assert all(g.score <= 3 for g in results.gaps)
        assert all(s.score >= 4 for s in results.strengths)

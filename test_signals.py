"""
Tests for the scoring signals: relevance, trending, controversy,
engagement, complexity and evidence quality.
"""

import math

import pytest

from conftest import NOW, make_item
from topic_engine.topics.signals import (
    activity_multiplier,
    complexity_score,
    compute_all_scores,
    compute_relevance,
    controversy_score,
    engagement_score,
    evidence_quality_score,
    trending_score,
)


class TestTrending:

    def test_strictly_decreases_with_age(self):
        scores = [
            trending_score(post_count=10, participant_count=6, hours_since_created=h,
                           hours_since_activity=30, controversy=0.4)
            for h in (0, 1, 5, 24, 48, 200)
        ]
        assert all(a > b for a, b in zip(scores, scores[1:]))

    def test_formula(self):
        score = trending_score(post_count=10, participant_count=5, hours_since_created=48,
                               hours_since_activity=0.5, controversy=1.0)
        assert score == pytest.approx((1.0 + 1.0) * 2.0 * math.exp(-1) * 1.5)

    @pytest.mark.parametrize("hours,expected", [(0.2, 2.0), (3, 1.5), (12, 1.2), (30, 1.0)])
    def test_activity_multiplier(self, hours, expected):
        assert activity_multiplier(hours) == expected

    def test_never_negative(self):
        assert trending_score(10, 5, 10, 10, controversy=-5) == 0.0


class TestControversyAndEngagement:

    def test_controversy_balance(self):
        assert controversy_score(3, 3) == 1.0
        assert controversy_score(4, 0) == 0.0
        assert controversy_score(1, 3) == pytest.approx(0.5)
        assert controversy_score(0, 0) == 0.0

    def test_engagement_recency_boost(self):
        fresh = make_item("a", [1, 0], likes=2, comments=1, hours_ago=0)
        stale = make_item("b", [1, 0], likes=2, comments=1, hours_ago=48)
        assert engagement_score([fresh], NOW) == pytest.approx(8.0)
        assert engagement_score([stale], NOW) == pytest.approx(4.0)
        assert engagement_score([fresh, stale], NOW) == pytest.approx(6.0)
        assert engagement_score([], NOW) == 0.0


class TestRelevance:

    def test_components(self):
        item = make_item("a", [1, 0], likes=2, comments=1, hours_ago=2)
        expected = math.exp(-2 / 48) * 10 + 2 * 2 + 1 * 3 + 5
        assert compute_relevance([item], now=NOW) == pytest.approx(expected)

    def test_no_velocity_bonus_after_six_hours(self):
        item = make_item("a", [1, 0], hours_ago=7)
        assert compute_relevance([item], now=NOW) == pytest.approx(math.exp(-7 / 48) * 10)

    def test_geographic_bonus(self):
        members = [
            make_item("a", [1, 0], hours_ago=10, state="CA", city="Oakland"),
            make_item("b", [1, 0], hours_ago=10, state="CA", city="Fresno"),
            make_item("c", [1, 0], hours_ago=10, state="NV", city="Reno"),
        ]
        base = compute_relevance(members, "national", now=NOW)
        assert compute_relevance(members, "local", "CA", "Oakland", now=NOW) == pytest.approx(base + 10)
        assert compute_relevance(members, "state", "CA", now=NOW) == pytest.approx(base + 14)


class TestContentSignals:

    def test_complexity(self):
        members = [
            make_item("a", [1, 0], content="However the budget is tight? " + "word " * 40),
            make_item("b", [1, 0], content="Personally my experience says research matters"),
        ]
        # 4 argument families, 1 question over 2 members, avg words ~26
        words = (len(members[0].content.split()) + len(members[1].content.split())) / 2
        expected = min(0.3, words / 100) + min(0.3, 0.5 * 2) + min(0.4, 4 / 5)
        assert complexity_score(members) == pytest.approx(min(1.0, expected))

    def test_complexity_empty_text(self):
        assert complexity_score([make_item("a", [1, 0], content=" ")]) == 0.0

    def test_evidence_quality(self):
        members = [
            make_item("a", [1, 0], content="According to a university study, 40% agree http://x.org"),
            make_item("b", [1, 0], content="just my opinion"),
        ]
        # a: according to, university, study (0.6) + link 0.3 + figure 0.2 → capped 1.0
        assert evidence_quality_score(members) == pytest.approx(0.5)

    def test_evidence_currency(self):
        members = [make_item("a", [1, 0], content="It will cost $1,200,000 a year")]
        assert evidence_quality_score(members) == pytest.approx(0.2)


class TestComputeAllScores:

    def test_merged_keys(self):
        members = [
            make_item("a", [1, 0], author="u1", hours_ago=1),
            make_item("b", [1, 0], author="u1", hours_ago=3),
            make_item("c", [1, 0], author="u2", hours_ago=5),
        ]
        scores = compute_all_scores(members, support_count=1, oppose_count=1, now=NOW)
        assert scores["participant_count"] == 2
        assert scores["controversy_score"] == 1.0
        assert scores["last_activity"] == members[0].created_at
        assert scores["trending_score"] > 0
        assert scores["relevance_score"] > 0

    def test_override_controversy(self):
        members = [make_item("a", [1, 0])]
        scores = compute_all_scores(members, 3, 3, controversy_override=0.25, now=NOW)
        assert scores["controversy_score"] == 0.25

    def test_empty_members_defaults(self):
        scores = compute_all_scores([])
        assert scores["trending_score"] == 0.0
        assert scores["participant_count"] == 0

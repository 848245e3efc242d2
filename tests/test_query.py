"""Tests for filtering, relevance ranking and source grouping."""

from __future__ import annotations

from health_feed.query import (
    NEUTRAL_SCORE,
    apply_source_limit,
    filter_articles,
    group_by_source,
    rank_articles,
    relevance_score,
)

from conftest import NOW, make_article


def test_relevance_orders_exact_then_substring_then_summary():
    a = make_article("a", title="diabetes")
    b = make_article("b", title="Tips for diabetes care at home")
    c = make_article("c", title="Weekly roundup", summary="diabetes news, diabetes research and diabetes diets")

    ranked = rank_articles([c, b, a], "diabetes", NOW)

    assert [item.article.id for item in ranked] == ["a", "b", "c"]
    assert ranked[0].relevance_score > ranked[1].relevance_score > ranked[2].relevance_score


def test_no_keyword_scores_neutral():
    article = make_article("a", title="Anything", age_hours=1)

    assert relevance_score(article, "", NOW) == NEUTRAL_SCORE


def test_recency_bonus_decays_over_first_day():
    fresh = make_article("fresh", title="Flu season", age_hours=0)
    older = make_article("older", title="Flu season", age_hours=12)
    stale = make_article("stale", title="Flu season", age_hours=30)

    assert relevance_score(fresh, "flu", NOW) - relevance_score(stale, "flu", NOW) == 12
    assert relevance_score(older, "flu", NOW) - relevance_score(stale, "flu", NOW) == 6


def test_filters_are_combined():
    articles = [
        make_article("1", title="Heart health", category="Heart Disease", source_key="bbc"),
        make_article("2", title="Heart health", category="Heart Disease", source_key="guardian"),
        make_article("3", title="Sleep tips", category="General Health", source_key="bbc"),
    ]

    matched = filter_articles(articles, keyword="HEART", category="heart disease", source="bbc")

    assert [article.id for article in matched] == ["1"]


def test_keyword_matches_category():
    articles = [make_article("1", title="New study", category="Cancer")]

    assert filter_articles(articles, keyword="cancer") == articles


def test_group_by_source_keeps_empty_buckets_in_order():
    scored = rank_articles([make_article("1", source_key="guardian")])

    buckets = group_by_source(scored, ["healthywomen", "healthcom", "guardian", "bbc"])

    assert list(buckets) == ["healthywomen", "healthcom", "guardian", "bbc"]
    assert len(buckets["guardian"]) == 1
    assert buckets["bbc"] == []


def test_apply_source_limit_spreads_limit_across_buckets():
    articles = [make_article(str(i), source_key="bbc") for i in range(10)]
    buckets = group_by_source(rank_articles(articles), ["healthywomen", "healthcom", "guardian", "bbc"])

    limited = apply_source_limit(buckets, 10)

    # ceil(10 / 4) == 3
    assert len(limited["bbc"]) == 3
    assert apply_source_limit(buckets, 0) is buckets

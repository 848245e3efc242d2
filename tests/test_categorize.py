"""Tests for keyword categorization and the dynamic category set."""

from __future__ import annotations

from health_feed.categorize import DEFAULT_CATEGORY, Categorizer


def test_insulin_and_glucose_categorize_as_diabetes():
    categorizer = Categorizer()

    label = categorizer.categorize("New insulin pump", "Better glucose control for patients")

    assert label == "Diabetes"


def test_unmatched_text_falls_back_to_default():
    categorizer = Categorizer()

    assert categorizer.categorize("City council meeting", "Road works next week") == DEFAULT_CATEGORY


def test_tie_keeps_first_declared_category():
    categorizer = Categorizer()

    # One hit for Mental Health ("stress") and one for Nutrition ("diet")
    label = categorizer.categorize("Stress and diet", "")

    assert label == "Mental Health"


def test_health_terms_are_collected_as_dynamic_categories():
    categorizer = Categorizer()

    categorizer.categorize("Clinical trial results", "A new treatment for chronic disease")

    dynamic = categorizer.dynamic_categories()
    assert "Clinical" in dynamic
    assert "Treatment" in dynamic
    assert "Disease" in dynamic


def test_categories_are_sorted_and_unique():
    categorizer = Categorizer(seed=["Treatment", "Cancer"])

    labels = categorizer.categories()

    assert labels == sorted(set(labels))
    assert labels.count("Cancer") == 1
    assert "Treatment" in labels
    assert DEFAULT_CATEGORY in labels

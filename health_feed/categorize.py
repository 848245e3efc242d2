"""
Keyword-based article categorization.

Each predefined category owns a keyword list; an article goes to the category
with the most keyword hits (first declared wins ties), or DEFAULT_CATEGORY when
nothing matches. Categorizing also mines generic health terms from the text into
an append-only set of dynamic category labels offered to callers for filtering.
"""

from __future__ import annotations

import re
import threading
from typing import Iterable


DEFAULT_CATEGORY = "General Health"

PREDEFINED_CATEGORIES: dict[str, tuple[str, ...]] = {
    "Mental Health": ("anxiety", "depression", "stress", "mental", "therapy", "psychology", "mood", "suicide"),
    "Nutrition": ("diet", "food", "nutrition", "vitamin", "mineral", "eating", "recipe", "weight"),
    "Heart Disease": ("heart", "cardiac", "cardiovascular", "blood pressure", "cholesterol", "stroke"),
    "Diabetes": ("diabetes", "blood sugar", "insulin", "glucose", "diabetic"),
    "Fitness": ("exercise", "workout", "fitness", "gym", "physical activity", "sports"),
    "Cancer": ("cancer", "tumor", "oncology", "chemotherapy", "radiation", "malignant"),
    "Women's Health": ("pregnancy", "menstruation", "menopause", "breast", "ovarian", "maternal"),
    "Public Health": ("epidemic", "pandemic", "vaccination", "immunization", "outbreak", "disease prevention"),
    "Infectious Diseases": ("virus", "bacteria", "infection", "flu", "covid", "malaria", "tuberculosis"),
}

HEALTH_TERM_RE = re.compile(
    r"\b(disease|health|medical|clinical|treatment|symptom|diagnosis|therapy|cure|prevention)\w*\b"
)


class Categorizer:
    """Assigns categories and owns the dynamic category set.

    Only the categorizer writes the dynamic set; readers get sorted copies.
    """

    def __init__(
        self,
        predefined: dict[str, tuple[str, ...]] | None = None,
        seed: Iterable[str] = (),
    ):
        self._predefined = dict(PREDEFINED_CATEGORIES if predefined is None else predefined)
        self._dynamic: set[str] = set()
        self._lock = threading.Lock()
        self.seed(seed)

    def seed(self, labels: Iterable[str]) -> None:
        """Initialize the dynamic set from persisted labels."""
        with self._lock:
            self._dynamic.update(label for label in labels if label)

    def categorize(self, title: str, summary: str) -> str:
        text = f"{title or ''} {summary or ''}".lower()
        self._collect_terms(text)

        best_label: str | None = None
        best_strength = 0
        for label, keywords in self._predefined.items():
            strength = sum(1 for keyword in keywords if keyword in text)
            # Strictly greater keeps the first-declared category on ties
            if strength > best_strength:
                best_label, best_strength = label, strength

        return best_label or DEFAULT_CATEGORY

    def _collect_terms(self, text: str) -> None:
        terms = {match.group(0) for match in HEALTH_TERM_RE.finditer(text)}
        if not terms:
            return
        with self._lock:
            self._dynamic.update(term[0].upper() + term[1:] for term in terms)

    @property
    def predefined(self) -> list[str]:
        return list(self._predefined)

    def dynamic_categories(self) -> list[str]:
        with self._lock:
            return sorted(self._dynamic)

    def categories(self) -> list[str]:
        """All known labels: predefined, dynamic and the default, sorted."""
        labels = set(self._predefined)
        labels.update(self.dynamic_categories())
        labels.add(DEFAULT_CATEGORY)
        return sorted(labels)

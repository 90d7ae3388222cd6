"""
Category, place and purpose classification for expense messages.

Two strategies share one contract (best label or "Other"):

- keyword scoring against a taxonomy table loaded from JSON
- fixed rule chains, used when the table is unavailable or its path blows up
"""

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .utils import FALLBACK_LABEL

DEFAULT_TAXONOMY_PATH = Path(__file__).resolve().parent.parent / "data" / "expense_categories.json"

SECTIONS = ("categories", "places", "purposes")

TaxonomySection = Tuple[Tuple[str, Tuple[str, ...]], ...]


class TaxonomyError(Exception):
    """Raised when a taxonomy table cannot be read."""


@dataclass(frozen=True)
class Taxonomy:
    """Immutable keyword tables, one ordered section per classified field."""
    categories: TaxonomySection
    places: TaxonomySection
    purposes: TaxonomySection

    @property
    def category_labels(self) -> List[str]:
        return [label for label, _ in self.categories]

    def labels(self, section: str) -> List[str]:
        return [label for label, _ in getattr(self, section)]


def _section_from_json(raw) -> TaxonomySection:
    if not isinstance(raw, dict):
        raise TaxonomyError(f"Taxonomy section must be an object, got {type(raw).__name__}")
    entries = []
    for label, data in raw.items():
        keywords = data.get("keywords", []) if isinstance(data, dict) else data
        if not isinstance(keywords, list):
            raise TaxonomyError(f"Keywords for {label!r} must be a list")
        entries.append((str(label), tuple(str(k).lower() for k in keywords if str(k).strip())))
    return tuple(entries)


def taxonomy_from_dict(data: Dict) -> Taxonomy:
    """
    Build a Taxonomy from a parsed table.

    Args:
        data: Table with format:
            {
              "categories": {"Food": {"keywords": ["lunch", "pizza"]}},
              "places": {"Cafe": ["cafe", "starbucks"]},
              "purposes": {...}
            }
            Sections may be missing; label order is kept as written.
    """
    if not isinstance(data, dict):
        raise TaxonomyError("Taxonomy table must be a JSON object")
    return Taxonomy(**{name: _section_from_json(data.get(name, {})) for name in SECTIONS})


def load_taxonomy(path: Path) -> Taxonomy:
    """Load a taxonomy table from a JSON file."""
    path = Path(path)
    if not path.exists():
        raise TaxonomyError(f"Taxonomy file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise TaxonomyError(f"Invalid taxonomy JSON in {path}: {e}") from e
    return taxonomy_from_dict(data)


@lru_cache(maxsize=None)
def default_taxonomy(path: Optional[str] = None) -> Taxonomy:
    """Load (once per path) the taxonomy shipped with the package or the one at ``path``."""
    return load_taxonomy(Path(path) if path else DEFAULT_TAXONOMY_PATH)


def score_labels(text: str, section: TaxonomySection) -> List[Tuple[str, int]]:
    """Count, per label, how many of its keywords occur in the text."""
    t = (text or "").lower()
    return [(label, sum(1 for kw in keywords if kw in t)) for label, keywords in section]


def classify(text: str, section: TaxonomySection) -> Tuple[str, int]:
    """
    Pick the label with the most keyword hits.

    Ties keep the label listed first. No hits at all gives "Other".

    Returns:
        Tuple of (label, score)
    """
    best_label, best_score = FALLBACK_LABEL, 0
    for label, score in score_labels(text, section):
        if score > best_score:
            best_label, best_score = label, score
    return best_label, best_score


def classify_all(text: str, taxonomy: Taxonomy) -> Dict[str, Tuple[str, int]]:
    """Classify text against every taxonomy section."""
    return {name: classify(text, getattr(taxonomy, name)) for name in SECTIONS}


# Rule chains

Predicate = Callable[[str], bool]
RuleChain = Sequence[Tuple[str, Predicate]]


def any_of(*words: str) -> Predicate:
    return lambda t: any(w in t for w in words)


def all_of(*predicates: Predicate) -> Predicate:
    return lambda t: all(p(t) for p in predicates)


def either(*predicates: Predicate) -> Predicate:
    return lambda t: any(p(t) for p in predicates)


# Order matters: keyword sets overlap and the first matching rule wins.
CATEGORY_RULES: RuleChain = (
    ("Food", any_of("food", "lunch", "dinner", "breakfast", "meal", "restaurant",
                    "cafe", "coffee", "drink", "kimchi", "stew", "pizza", "burger",
                    "sandwich", "salad")),
    ("Transportation", any_of("transport", "subway", "bus", "taxi", "gas", "train", "metro",
                              "uber", "lyft", "drive", "car", "bike")),
    ("Medical", any_of("hospital", "medicine", "medical", "doctor", "pharmacy", "clinic",
                       "health", "treatment", "prescription")),
    ("Shopping", either(
        any_of("shopping", "clothes", "shoes", "store", "mall", "buy", "purchase", "shop", "retail"),
        all_of(any_of("online"), any_of("shop", "buy", "purchase")),
    )),
    ("Communication", either(
        any_of("phone", "internet", "communication", "mobile", "wifi", "data", "call",
               "message", "text"),
        all_of(any_of("online"), any_of("call", "message", "internet")),
    )),
    ("Education", any_of("book", "school", "education", "study", "course", "university",
                         "college", "learn", "class")),
    ("Culture", any_of("movie", "cinema", "culture", "entertainment", "game", "music",
                       "theater", "concert", "show")),
)

PLACE_RULES: RuleChain = (
    ("Home", any_of("home", "house", "apartment")),
    ("Office", any_of("office", "work", "company")),
    ("Cafe", any_of("cafe", "coffee", "starbucks")),
    ("Restaurant", any_of("restaurant", "dining", "food")),
    ("Mart", any_of("mart", "supermarket", "grocery", "store")),
    ("Online", any_of("online", "internet", "website", "app")),
    ("Hospital", any_of("hospital", "clinic", "medical")),
    ("School", any_of("school", "university", "college")),
)

PURPOSE_RULES: RuleChain = (
    ("Meal", any_of("meal", "lunch", "dinner", "breakfast")),
    ("Snack", any_of("snack", "dessert", "candy", "coffee", "drink")),
    ("Meeting", any_of("meeting", "business", "work", "party", "gathering")),
    ("Personal Items", any_of("personal", "cosmetics", "supplies", "clothes", "shoes")),
    ("Household Items", any_of("household", "cleaning", "home")),
    ("Clothing", any_of("clothing", "clothes", "shoes", "fashion")),
    ("Transportation", any_of("transport", "travel", "commute")),
    ("Medical", any_of("medical", "health", "medicine", "doctor")),
    ("Education", any_of("education", "study", "book", "course")),
    ("Culture", any_of("culture", "entertainment", "movie", "game")),
)


def rules_taxonomy() -> Taxonomy:
    """Labels of the rule chains as a keyword-less Taxonomy."""
    return Taxonomy(
        categories=tuple((label, ()) for label, _ in CATEGORY_RULES),
        places=tuple((label, ()) for label, _ in PLACE_RULES),
        purposes=tuple((label, ()) for label, _ in PURPOSE_RULES),
    )


def apply_rule_chain(text: str, rules: RuleChain) -> str:
    """Return the label of the first rule whose predicate matches, else "Other"."""
    t = (text or "").lower()
    for label, predicate in rules:
        if predicate(t):
            return label
    return FALLBACK_LABEL


def classify_with_rules(text: str) -> Dict[str, str]:
    """Classify text with the fixed rule chains."""
    return {
        "categories": apply_rule_chain(text, CATEGORY_RULES),
        "places": apply_rule_chain(text, PLACE_RULES),
        "purposes": apply_rule_chain(text, PURPOSE_RULES),
    }

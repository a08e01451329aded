# classification/categories.py
"""Keyword tables shared by every image classifier.

All providers map their raw labels through the same tables so a photo gets the
same civic category whichever provider happened to answer.
"""
from __future__ import annotations
from typing import Dict, List, Optional, Sequence, Tuple

from ..errors import ProviderError
from ..models import Category, ClassificationResult, Label, Priority

TOP_K = 5

# order matters: the first keyword a label matches decides its category
CATEGORY_KEYWORDS: Dict[str, Category] = {
    # water
    "water": Category.WATER,
    "pipe": Category.WATER,
    "plumbing": Category.WATER,
    "leak": Category.WATER,
    "flood": Category.WATER,
    "puddle": Category.WATER,
    "fountain": Category.WATER,
    "waterfall": Category.WATER,
    "river": Category.WATER,
    "lake": Category.WATER,
    "ocean": Category.WATER,
    "drain": Category.WATER,
    # electricity
    "streetlight": Category.ELECTRICITY,
    "light": Category.ELECTRICITY,
    "lamp": Category.ELECTRICITY,
    "bulb": Category.ELECTRICITY,
    "pole": Category.ELECTRICITY,
    "wire": Category.ELECTRICITY,
    "cable": Category.ELECTRICITY,
    "electric": Category.ELECTRICITY,
    "power": Category.ELECTRICITY,
    "transformer": Category.ELECTRICITY,
    # roads
    "pothole": Category.ROADS,
    "road": Category.ROADS,
    "street": Category.ROADS,
    "highway": Category.ROADS,
    "sidewalk": Category.ROADS,
    "pavement": Category.ROADS,
    "asphalt": Category.ROADS,
    "path": Category.ROADS,
    "manhole": Category.ROADS,
    "crack": Category.ROADS,
    # infrastructure
    "building": Category.INFRASTRUCTURE,
    "bridge": Category.INFRASTRUCTURE,
    "construction": Category.INFRASTRUCTURE,
    "architecture": Category.INFRASTRUCTURE,
    "wall": Category.INFRASTRUCTURE,
    "concrete": Category.INFRASTRUCTURE,
    "house": Category.INFRASTRUCTURE,
    # sanitation
    "garbage": Category.SANITATION,
    "trash": Category.SANITATION,
    "waste": Category.SANITATION,
    "litter": Category.SANITATION,
    "dumpster": Category.SANITATION,
    "dump": Category.SANITATION,
    "bin": Category.SANITATION,
    "debris": Category.SANITATION,
    "sewage": Category.SANITATION,
    "dirt": Category.SANITATION,
}

TITLE_PHRASES: Dict[Category, List[Tuple[Tuple[str, ...], str]]] = {
    Category.WATER: [(("leak", "pipe"), "Water Leakage"), (("flood",), "Water Flooding")],
    Category.ELECTRICITY: [(("light", "lamp"), "Streetlight Issue"), (("power",), "Power Issue")],
    Category.ROADS: [(("pothole",), "Road Pothole"), (("damage", "crack"), "Road Damage")],
    Category.SANITATION: [(("garbage", "trash"), "Garbage Disposal Issue")],
    Category.INFRASTRUCTURE: [(("building",), "Building Issue"), (("bridge",), "Bridge Problem")],
    Category.OTHERS: [],
}

GENERIC_TITLES: Dict[Category, str] = {
    Category.WATER: "Water Issue",
    Category.ELECTRICITY: "Electrical Problem",
    Category.ROADS: "Road Issue",
    Category.SANITATION: "Sanitation Problem",
    Category.INFRASTRUCTURE: "Infrastructure Issue",
    Category.OTHERS: "Civic Issue Detected",
}

# (urgent words, high words, priority when neither matches)
PRIORITY_RULES: Dict[Category, Tuple[Tuple[str, ...], Tuple[str, ...], Priority]] = {
    Category.WATER: (("burst", "major", "severe"), ("leak", "dripping"), Priority.MEDIUM),
    Category.ELECTRICITY: (("dangerous", "hanging", "exposed"), ("outage", "not working"), Priority.MEDIUM),
    Category.ROADS: (("accident", "dangerous", "large"), ("pothole", "damage"), Priority.MEDIUM),
    Category.SANITATION: ((), ("overflowing", "blocking", "health"), Priority.LOW),
    Category.INFRASTRUCTURE: (("collapse", "dangerous", "unsafe"), ("crack", "damage"), Priority.MEDIUM),
    Category.OTHERS: ((), (), Priority.MEDIUM),
}

# keywords used when a provider answers in prose rather than labels
TEXT_CATEGORY_HINTS: List[Tuple[Category, Tuple[str, ...]]] = [
    (Category.WATER, ("water", "leak", "pipe", "flood")),
    (Category.ELECTRICITY, ("light", "electric", "power", "wire")),
    (Category.ROADS, ("road", "pothole", "street", "pavement")),
    (Category.SANITATION, ("garbage", "trash", "waste", "sanitation")),
    (Category.INFRASTRUCTURE, ("building", "bridge", "construction", "structure")),
]


def match_category(label: str) -> Optional[Category]:
    name = (label or "").strip().lower()
    if not name:
        return None
    for keyword, category in CATEGORY_KEYWORDS.items():
        if keyword in name:
            return category
    return None


def pick_category(labels: Sequence[Label], top_k: int = TOP_K) -> Tuple[Category, Optional[Label]]:
    """Highest-scoring matched label among the top K; ties keep first-seen order."""
    top = list(labels)[:top_k]
    best_category = Category.OTHERS
    best_label: Optional[Label] = None
    for label in top:
        category = match_category(label.name)
        if category is None:
            continue
        if best_label is None or label.score > best_label.score:
            best_category, best_label = category, label
    if best_label is None and top:
        best_label = top[0]
    return best_category, best_label


def make_title(category: Category, labels: Sequence[Label], winner: Optional[Label] = None) -> str:
    names = [l.name.lower() for l in labels]
    if winner is not None:
        names.insert(0, winner.name.lower())
    for words, title in TITLE_PHRASES.get(category, []):
        for name in names:
            if any(w in name for w in words):
                return title
    return GENERIC_TITLES[category]


def estimate_priority(category: Category, text: str) -> Priority:
    urgent, high, default = PRIORITY_RULES[category]
    lower = (text or "").lower()
    if any(w in lower for w in urgent):
        return Priority.URGENT
    if any(w in lower for w in high):
        return Priority.HIGH
    return default


def category_from_text(text: str) -> Category:
    lower = (text or "").lower()
    for category, words in TEXT_CATEGORY_HINTS:
        if any(w in lower for w in words):
            return category
    return Category.OTHERS


def labels_to_result(labels: Sequence[Label], provider: str, top_k: int = TOP_K) -> ClassificationResult:
    top = [l for l in list(labels)[:top_k] if l.name]
    if not top:
        raise ProviderError(provider, "no labels in response")
    category, winner = pick_category(top, top_k)
    detected = ", ".join(f"{l.name} ({l.score * 100:.1f}%)" for l in top)
    return ClassificationResult(
        title=make_title(category, top, winner),
        category=category,
        description=f"AI detected: {detected}",
        confidence=winner.score,
        priority=estimate_priority(category, " ".join(l.name for l in top)),
        provider=provider,
    )

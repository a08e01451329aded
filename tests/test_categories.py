import pytest

from civicgo.classification.categories import (
    category_from_text,
    estimate_priority,
    labels_to_result,
    make_title,
    match_category,
    pick_category,
)
from civicgo.errors import ProviderError
from civicgo.models import Category, ClassificationResult, Label, Priority


def L(name, score):
    return Label(name=name, score=score)


class TestMatchCategory:
    @pytest.mark.parametrize("label,expected", [
        ("pothole", Category.ROADS),
        ("Water Pipe", Category.WATER),
        ("streetlight", Category.ELECTRICITY),
        ("garbage truck", Category.SANITATION),
        ("suspension bridge", Category.INFRASTRUCTURE),
    ])
    def test_known_labels(self, label, expected):
        assert match_category(label) == expected

    def test_unknown_and_empty(self):
        assert match_category("golden retriever") is None
        assert match_category("") is None
        assert match_category("   ") is None


class TestPickCategory:
    def test_highest_score_wins(self):
        labels = [L("tree", 0.99), L("road", 0.40), L("garbage", 0.70)]
        category, winner = pick_category(labels)
        assert category == Category.SANITATION
        assert winner.name == "garbage"

    def test_tie_keeps_first_seen(self):
        labels = [L("garbage", 0.5), L("road", 0.5)]
        category, winner = pick_category(labels)
        assert category == Category.SANITATION
        assert winner.name == "garbage"

    def test_only_top_k_considered(self):
        labels = [L("tree", 0.9), L("sky", 0.8), L("cloud", 0.7), L("grass", 0.6), L("dog", 0.5), L("road", 0.4)]
        category, winner = pick_category(labels, top_k=5)
        assert category == Category.OTHERS
        assert winner.name == "tree"

    def test_empty(self):
        assert pick_category([]) == (Category.OTHERS, None)


class TestTitles:
    def test_phrase_from_winning_label(self):
        assert make_title(Category.ROADS, [L("pothole", 0.9)], L("pothole", 0.9)) == "Road Pothole"
        assert make_title(Category.WATER, [L("leaking pipe", 0.9)]) == "Water Leakage"

    def test_generic_fallback(self):
        assert make_title(Category.ROADS, [L("highway", 0.9)]) == "Road Issue"
        assert make_title(Category.OTHERS, [L("cat", 0.9)]) == "Civic Issue Detected"


class TestPriority:
    def test_heuristics(self):
        assert estimate_priority(Category.WATER, "a burst main") == Priority.URGENT
        assert estimate_priority(Category.WATER, "slow leak") == Priority.HIGH
        assert estimate_priority(Category.WATER, "puddle") == Priority.MEDIUM
        assert estimate_priority(Category.SANITATION, "bin") == Priority.LOW
        assert estimate_priority(Category.OTHERS, "dangerous") == Priority.MEDIUM

    def test_category_from_text(self):
        assert category_from_text("There is a large pothole on the street") == Category.ROADS
        assert category_from_text("A cat on a sofa") == Category.OTHERS


class TestLabelsToResult:
    def test_pothole_scenario(self):
        result = labels_to_result([L("pothole", 0.91), L("asphalt", 0.6), L("car", 0.3)], "clarifai")
        assert result.category == Category.ROADS
        assert result.title == "Road Pothole"
        assert result.confidence == pytest.approx(0.91)
        assert result.description.startswith("AI detected: pothole (91.0%)")
        assert result.provider == "clarifai"
        assert not result.is_mock

    def test_no_match_uses_top_label_score(self):
        result = labels_to_result([L("cat", 0.8), L("sofa", 0.1)], "huggingface")
        assert result.category == Category.OTHERS
        assert result.confidence == pytest.approx(0.8)

    def test_empty_labels_raise(self):
        with pytest.raises(ProviderError):
            labels_to_result([], "huggingface")


class TestCategoryClosure:
    @pytest.mark.parametrize("raw", ["water", "ROADS", "Potholes", "", None, 42, "others"])
    def test_result_category_is_always_known(self, raw):
        result = ClassificationResult(title="x", category=raw)
        assert result.category in set(Category)

    def test_unknown_label_maps_to_others(self):
        assert ClassificationResult(title="x", category="Parks").category == Category.OTHERS
        assert ClassificationResult(title="x", category="water").category == Category.WATER

    def test_priority_and_confidence_coercion(self):
        result = ClassificationResult(title="t" * 80, priority="critical", confidence=1.7)
        assert result.priority == Priority.MEDIUM
        assert result.confidence == 1.0
        assert len(result.title) <= 50

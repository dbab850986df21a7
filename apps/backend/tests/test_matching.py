from catalog.matching import candidate_name, find_best_match, find_containing_match
from catalog.models import SubcategoryRecord


CANDIDATES = [
    {"id": "1", "name": "Staff Chairs"},
    {"id": "2", "name": "Executive Chairs"},
    {"id": "3", "name": "executive,  chairs"},
]


def test_exact_match_returns_first_in_input_order():
    assert find_best_match("Executive Chairs", CANDIDATES)["id"] == "2"


def test_match_ignores_case_punctuation_and_typos():
    records = [SubcategoryRecord(id="a", name="Office Firniture")]
    assert find_best_match("office furniture", records).id == "a"
    assert find_best_match("craft-chair-upvc", [{"name": "Craft Chair UPVC"}])["name"] == "Craft Chair UPVC"


def test_empty_target_never_matches():
    assert find_best_match("", CANDIDATES) is None
    assert find_best_match(None, CANDIDATES) is None
    assert find_best_match(" / ", [{"name": ""}]) is None


def test_no_candidates():
    assert find_best_match("Executive Chairs", []) is None


def test_plural_is_not_an_exact_match():
    assert find_best_match("Executive Chair", CANDIDATES) is None


def test_containing_match_falls_back_to_slug_containment():
    assert find_containing_match("Executive Chair", CANDIDATES)["id"] == "2"
    assert find_containing_match("office", [{"name": "Dining"}, {"name": "Office Furniture"}])["name"] == "Office Furniture"
    assert find_containing_match("", CANDIDATES) is None


def test_candidate_name_handles_missing_names():
    assert candidate_name(object()) == ""
    assert candidate_name({"name": None}) == ""

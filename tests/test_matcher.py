import pytest

from insumo_matcher.errors import CatalogLoadError
from insumo_matcher.matcher import (
    ACTION_MERGE,
    ACTION_REJECT,
    ACTION_REVIEW,
    TIER_HIGH,
    TIER_LOW,
    TIER_MEDIUM,
    CatalogIndex,
    analyze,
    analyze_payload,
    classify,
    find_best_match,
    preview_candidates,
    similarity_percentage,
)
from insumo_matcher.models import CatalogItem
from insumo_matcher.similarity import jaro_winkler

ACCENTED = "Aguja Hipod\u00e9rmica 20G"


def _items(*pairs, **attributes):
    return [CatalogItem(id=item_id, name=name, attributes=dict(attributes)) for item_id, name in pairs]


def _scan_best(name, items):
    """Reference best-match: plain scan, strictly greater wins."""
    best, best_score = None, 0.0
    for item in items:
        score = jaro_winkler(name, item.name)
        if score > best_score:
            best, best_score = item, score
    return best, best_score


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "similarity, pct, tier, action",
    [
        (1.0, 100, TIER_HIGH, ACTION_MERGE),
        (0.90, 90, TIER_HIGH, ACTION_MERGE),
        (0.8951, 90, TIER_HIGH, ACTION_MERGE),
        (0.894, 89, TIER_MEDIUM, ACTION_REVIEW),
        (0.70, 70, TIER_MEDIUM, ACTION_REVIEW),
        (0.6951, 70, TIER_MEDIUM, ACTION_REVIEW),
        (0.694, 69, TIER_LOW, ACTION_REJECT),
        (0.0, 0, TIER_LOW, ACTION_REJECT),
    ],
)
def test_classify_boundaries(similarity, pct, tier, action):
    assert classify(similarity) == (pct, tier, action)


def test_percentage_rounds_half_up():
    assert similarity_percentage(0.125) == 13
    assert similarity_percentage(0.625) == 63


# ---------------------------------------------------------------------------
# Best match
# ---------------------------------------------------------------------------

def test_tie_on_exact_name_keeps_first_seen():
    new_items = _items(("1", "ABC"), ("2", "ABC"))
    best, score = find_best_match("ABC", new_items)
    assert best.id == "1"
    assert score == 1.0


@pytest.mark.parametrize("order", [("a", "b"), ("b", "a")])
def test_tie_on_partial_score_keeps_first_seen(order):
    names = {"a": "jeringas", "b": "jeringaz"}
    new_items = _items(*[(key, names[key]) for key in order])
    best, score = find_best_match("jeringa", new_items)
    assert best.id == order[0]
    assert score == pytest.approx(0.975)


def test_no_positive_score_means_no_candidate():
    best, score = find_best_match("xyz", _items(("n1", "Jeringa 10ml")))
    assert best is None
    assert score == 0.0


def test_empty_new_catalog():
    assert find_best_match("Jeringa", []) == (None, 0.0)


@pytest.mark.parametrize(
    "name",
    ["  JERINGA 10ML ", "Jeringa 10ml", "Jeringa 1ml", "Aguja Hipodermica 20G", "xyz", ""],
)
def test_index_returns_same_candidate_as_plain_scan(name):
    new_items = _items(
        ("x", "Jeringa 5ml"),
        ("y", "jeringa 10ml"),
        ("z", "Jeringa 10ml"),
        ("w", ACCENTED),
    )
    assert find_best_match(name, CatalogIndex(new_items)) == _scan_best(name, new_items)


def test_index_ignores_empty_names():
    index = CatalogIndex(_items(("n1", ""), ("n2", "Jeringa")))
    assert index.exact("") is None
    assert index.exact(" JERINGA ").id == "n2"
    assert len(index) == 2


# ---------------------------------------------------------------------------
# Full analysis
# ---------------------------------------------------------------------------

def test_accented_name_is_a_high_match():
    old_items = _items(("o1", "Aguja Hipodermica 20G"))
    new_items = _items(("n1", ACCENTED), ("n2", "Jeringa 10ml"))

    result = analyze(old_items, new_items).results[0]

    assert result.new_id == "n1"
    assert result.new_name == ACCENTED
    assert result.similarity >= 0.90
    assert result.similarity_pct == 98
    assert result.tier == TIER_HIGH
    assert result.suggested_action == ACTION_MERGE


def test_empty_new_catalog_gives_low_for_every_old_item():
    old_items = _items(("o1", "Jeringa"), ("o2", "Sonda"), ("o3", "Aguja"))

    analysis = analyze(old_items, [])

    assert len(analysis.results) == 3
    for result in analysis.results:
        assert result.new_id == ""
        assert result.new_name == ""
        assert result.similarity == 0.0
        assert result.tier == TIER_LOW
        assert result.new_attributes == {}
    assert analysis.statistics.match_bajo == 3
    assert analysis.statistics.no_unificar == 3
    assert analysis.statistics.total_insumos_nuevos == 0


def test_empty_old_catalog():
    analysis = analyze([], _items(("n1", "Jeringa")))
    assert analysis.results == []
    stats = analysis.statistics.to_dict()
    assert stats["total_insumos_nuevos"] == 1
    assert all(value == 0 for key, value in stats.items() if key != "total_insumos_nuevos")


def test_missing_name_is_low_reject():
    old_items = [CatalogItem(id="o1", name=""), CatalogItem(id="o2", name=None)]
    new_items = _items(("n1", "Jeringa"), ("n2", ""))

    for result in analyze(old_items, new_items).results:
        assert result.new_id == ""
        assert result.tier == TIER_LOW
        assert result.suggested_action == ACTION_REJECT


def test_results_sorted_by_percentage_keeping_old_order_on_ties():
    old_items = _items(("o1", "xyz"), ("o2", "Jeringa 10ml"), ("o3", "qqq"))
    new_items = _items(("n1", "Jeringa 10ml"))

    results = analyze(old_items, new_items).results

    assert [r.old_id for r in results] == ["o2", "o1", "o3"]


def test_statistics_add_up():
    old_items = _items(
        ("o1", "Aguja Hipodermica 20G"),
        ("o2", "Jeringa 10ml"),
        ("o3", "Sonda Foley 14Fr"),
        ("o4", "Guantes"),
    )
    new_items = _items(("n1", ACCENTED), ("n2", "Jeringa 5ml"))

    analysis = analyze(old_items, new_items)
    stats = analysis.statistics

    assert stats.match_alto + stats.match_medio + stats.match_bajo == len(analysis.results) == len(old_items)
    assert stats.para_unificar == stats.match_alto
    assert stats.para_revisar == stats.match_medio
    assert stats.no_unificar == stats.match_bajo
    assert stats.total_insumos_antiguos == 4
    assert stats.total_insumos_nuevos == 2


def test_new_attributes_are_carried_over():
    new_items = _items(("n1", "Jeringa 10ml"), tipo="Material", categoria="Jeringas")
    result = analyze(_items(("o1", "jeringa 10ml")), new_items).results[0]
    assert result.new_attributes == {"tipo": "Material", "categoria": "Jeringas"}


def test_payload_on_success():
    payload = analyze_payload(
        lambda: _items(("o1", "Jeringa 10ml")),
        lambda: _items(("n1", "Jeringa 10ml")),
    )

    assert payload["success"] is True
    assert payload["message"]
    assert payload["statistics"]["match_alto"] == 1
    assert payload["results"][0]["new_id"] == "n1"
    assert payload["results"][0]["tier"] == TIER_HIGH


def test_payload_on_load_failure_has_no_results():
    def load_new():
        raise CatalogLoadError("Error reading insumos_catalogo")

    payload = analyze_payload(lambda: _items(("o1", "Jeringa")), load_new)

    assert payload == {"success": False, "error": "Error reading insumos_catalogo"}


# ---------------------------------------------------------------------------
# Candidate preview
# ---------------------------------------------------------------------------

def test_preview_ranks_candidates():
    new_items = _items(
        ("n1", ACCENTED),
        ("n2", "Jeringa 10ml"),
        ("n3", "Aguja Hipod\u00e9rmica 22G"),
    )

    preview = preview_candidates("Aguja Hipodermica 20G", new_items, limit=2)

    assert [c["new_id"] for c in preview["candidates"]] == ["n1", "n3"]
    assert preview["candidates"][0]["tier"] == TIER_HIGH
    assert preview["candidates"][0]["similarity"] >= preview["candidates"][1]["similarity"]


def test_preview_empty_name():
    preview = preview_candidates("   ", _items(("n1", "Jeringa")))
    assert "error" in preview
    assert preview["candidates"] == []

"""
Core matching engine for reconciling the old supply catalog with the new one.

Matching Approach:
    - Every old item is scored against every new item with Jaro-Winkler
      (see ``similarity.jaro_winkler``) on lowercased, trimmed names
    - The best candidate is the one with the strictly greatest score; when two
      new items tie, the one seen first in the new catalog wins
    - Exact name hits are answered from an index built once per run, and the
      scan stops as soon as a perfect score is found. Both shortcuts return
      the same candidate the full scan would.

Threshold / Confidence Tiers (on round-half-up percentage):
    - >= 90%: HIGH   -> MERGE   (safe to unify the two items)
    - 70-89%: MEDIUM -> REVIEW  (needs a person to confirm)
    - < 70%:  LOW    -> REJECT  (different supplies)
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rapidfuzz import process

from insumo_matcher.errors import InsumoMatcherError
from insumo_matcher.models import AnalysisResult, CatalogItem, MatchResult, MatchStatistics
from insumo_matcher.similarity import jaro_winkler, normalize_name, rapidfuzz_scorer

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
HIGH_CONFIDENCE_THRESHOLD = 90    # Percentage at or above which items are unified
MEDIUM_CONFIDENCE_THRESHOLD = 70  # Percentage at or above which items go to review

TIER_HIGH = "HIGH"
TIER_MEDIUM = "MEDIUM"
TIER_LOW = "LOW"

ACTION_MERGE = "MERGE"
ACTION_REVIEW = "REVIEW"
ACTION_REJECT = "REJECT"

TIER_ACTIONS = {
    TIER_HIGH: ACTION_MERGE,
    TIER_MEDIUM: ACTION_REVIEW,
    TIER_LOW: ACTION_REJECT,
}

SUCCESS_MESSAGE = "Análisis de similitud completado exitosamente"


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def similarity_percentage(similarity: float) -> int:
    """Round a [0, 1] score to a whole percentage, halves rounding up."""
    return int(math.floor(similarity * 100 + 0.5))


def classify(similarity: float) -> Tuple[int, str, str]:
    """
    Classify a raw similarity score.

    Returns:
        (percentage, tier, suggested_action)
    """
    pct = similarity_percentage(similarity)
    if pct >= HIGH_CONFIDENCE_THRESHOLD:
        tier = TIER_HIGH
    elif pct >= MEDIUM_CONFIDENCE_THRESHOLD:
        tier = TIER_MEDIUM
    else:
        tier = TIER_LOW
    return pct, tier, TIER_ACTIONS[tier]


# ---------------------------------------------------------------------------
# New catalog index
# ---------------------------------------------------------------------------

class CatalogIndex:
    """
    The new catalog plus a lookup of normalized name -> first item with it.

    Only identical normalized names score 1.0, so the first item in the
    lookup is exactly the candidate a full first-seen scan would keep.
    """

    def __init__(self, items: Sequence[CatalogItem]) -> None:
        self.items: List[CatalogItem] = list(items)
        self._exact: Dict[str, CatalogItem] = {}
        for item in self.items:
            key = normalize_name(item.name)
            if key and key not in self._exact:
                self._exact[key] = item

    def __len__(self) -> int:
        return len(self.items)

    def exact(self, name: Optional[str]) -> Optional[CatalogItem]:
        key = normalize_name(name)
        if not key:
            return None
        return self._exact.get(key)


def find_best_match(
    name: Optional[str],
    new_items,
) -> Tuple[Optional[CatalogItem], float]:
    """
    Find the best new-catalog candidate for one old item name.

    Args:
        name: the old item's name
        new_items: a CatalogIndex or any ordered sequence of CatalogItem

    Returns:
        (best_item or None, similarity). None with 0.0 when the catalog is
        empty or nothing scores above zero.
    """
    index = new_items if isinstance(new_items, CatalogIndex) else CatalogIndex(new_items)

    hit = index.exact(name)
    if hit is not None:
        return hit, 1.0

    best_item: Optional[CatalogItem] = None
    best_score = 0.0
    for candidate in index.items:
        score = jaro_winkler(name, candidate.name)
        if score > best_score:
            best_item, best_score = candidate, score
            if best_score >= 1.0:
                break
    return best_item, best_score


def match_item(old_item: CatalogItem, index: CatalogIndex) -> MatchResult:
    """Score one old item against the new catalog and classify the best hit."""
    best, similarity = find_best_match(old_item.name, index)
    pct, tier, action = classify(similarity)
    return MatchResult(
        old_id=old_item.id,
        old_name=old_item.name,
        new_id=best.id if best is not None else "",
        new_name=best.name if best is not None else "",
        similarity=similarity,
        similarity_pct=pct,
        tier=tier,
        suggested_action=action,
        new_attributes=dict(best.attributes) if best is not None else {},
    )


# ---------------------------------------------------------------------------
# Full run
# ---------------------------------------------------------------------------

def compute_statistics(
    results: Sequence[MatchResult],
    total_old: int,
    total_new: int,
) -> MatchStatistics:
    stats = MatchStatistics(total_insumos_antiguos=total_old, total_insumos_nuevos=total_new)
    for result in results:
        if result.tier == TIER_HIGH:
            stats.match_alto += 1
        elif result.tier == TIER_MEDIUM:
            stats.match_medio += 1
        else:
            stats.match_bajo += 1

        if result.suggested_action == ACTION_MERGE:
            stats.para_unificar += 1
        elif result.suggested_action == ACTION_REVIEW:
            stats.para_revisar += 1
        else:
            stats.no_unificar += 1
    return stats


def run_matching(
    old_items: Sequence[CatalogItem],
    new_items: Sequence[CatalogItem],
) -> List[MatchResult]:
    """One MatchResult per old item, in old-catalog order."""
    index = CatalogIndex(new_items)
    return [match_item(old_item, index) for old_item in old_items]


def analyze(
    old_items: Sequence[CatalogItem],
    new_items: Sequence[CatalogItem],
) -> AnalysisResult:
    """
    Reconcile the old catalog against the new one.

    Steps:
        1. Best match + classification for every old item
        2. Statistics over all results
        3. Stable sort by percentage, highest first (equal percentages keep
           old-catalog order)
    """
    logger.info(
        "Analyzing %d old items against %d new items", len(old_items), len(new_items)
    )
    results = run_matching(old_items, new_items)
    stats = compute_statistics(results, len(old_items), len(new_items))
    results.sort(key=lambda r: r.similarity_pct, reverse=True)
    logger.info("Analysis complete: %s", stats.to_dict())
    return AnalysisResult(results=results, statistics=stats)


def analyze_payload(load_old, load_new) -> Dict[str, Any]:
    """
    Run an analysis and wrap it in the JSON payload returned to callers.

    ``load_old`` / ``load_new`` are zero-argument callables returning the
    catalogs, so that a failed fetch is reported the same way as any other
    failure: ``{"success": false, "error": message}`` with no partial results.
    """
    try:
        old_items = load_old()
        new_items = load_new()
        analysis = analyze(old_items, new_items)
    except InsumoMatcherError as exc:
        logger.error("Similarity analysis failed: %s", exc)
        return {"success": False, "error": str(exc)}

    payload = {"success": True}
    payload.update(analysis.to_dict())
    payload["message"] = SUCCESS_MESSAGE
    return payload


# ---------------------------------------------------------------------------
# Single-name preview (manual review helper)
# ---------------------------------------------------------------------------

def preview_candidates(
    name: str,
    new_items: Sequence[CatalogItem],
    limit: int = 3,
) -> Dict[str, Any]:
    """
    Top ``limit`` new-catalog candidates for a single name.

    Used when reviewing MEDIUM matches: shows which other items were close.
    Scores come from the same Jaro-Winkler function as the full run.
    """
    query = normalize_name(name)
    if not query:
        return {
            'query': query,
            'error': 'Empty name after normalization',
            'candidates': [],
        }

    names = [item.name or "" for item in new_items]
    ranked = process.extract(
        name,
        names,
        scorer=rapidfuzz_scorer,
        processor=None,
        limit=limit,
    )

    candidates = []
    for _, score, position in ranked:
        item = new_items[position]
        pct, tier, action = classify(score)
        candidates.append({
            'new_id': item.id,
            'new_name': item.name,
            'similarity': score,
            'similarity_pct': pct,
            'tier': tier,
            'suggested_action': action,
        })

    return {
        'query': query,
        'candidates': candidates,
    }

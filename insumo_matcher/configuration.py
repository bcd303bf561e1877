"""
Carry per-anesthesia quantity limits over from the old catalog to the new one.

Only HIGH matches are trusted: an old item whose best candidate is MEDIUM or
LOW keeps its configuration out of the new catalog and is reported as
unmapped instead.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from insumo_matcher.errors import InsumoMatcherError
from insumo_matcher.matcher import TIER_HIGH, run_matching
from insumo_matcher.models import (
    CatalogItem,
    ConfigurationRecord,
    MatchResult,
    RemappedConfiguration,
)

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 5
SUCCESS_MESSAGE = "Matriz maestra de configuración creada exitosamente"


@dataclass
class PropagationResult:
    mapping: Dict[str, str]
    records: List[RemappedConfiguration]
    unmapped: List[str]
    high_matches: List[MatchResult]
    statistics: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statistics": dict(self.statistics),
            "records": [r.to_dict() for r in self.records],
            "unmapped": list(self.unmapped),
            "matches_altos_sample": [
                {
                    "antiguo": m.old_name,
                    "nuevo": m.new_name,
                    "similitud": m.similarity_pct,
                }
                for m in self.high_matches[:SAMPLE_SIZE]
            ],
        }


def build_high_mapping(results: Sequence[MatchResult]) -> Dict[str, str]:
    """old id -> new id for every HIGH match."""
    return {r.old_id: r.new_id for r in results if r.tier == TIER_HIGH and r.new_id}


def remap_record(record: ConfigurationRecord, new_id: str) -> RemappedConfiguration:
    return RemappedConfiguration(
        insumo_catalogo_id=new_id,
        tipo_anestesia=record.tipo_anestesia,
        min_anestesia=record.cantidad_minima,
        max_anestesia=record.cantidad_maxima,
        cantidad_default=record.cantidad_default,
        tipo_limite=record.tipo_limite,
        grupo_exclusivo=record.grupo_exclusivo,
        condicionante=record.condicionante,
        nota=record.nota,
    )


def remap_configuration(
    records: Sequence[ConfigurationRecord],
    mapping: Dict[str, str],
):
    """
    Re-key configuration records onto new ids.

    Records without an old item id are skipped. Records whose old item has
    no HIGH match are listed (by old id) as unmapped.

    Returns:
        (remapped records, unmapped old ids)
    """
    remapped: List[RemappedConfiguration] = []
    unmapped: List[str] = []
    for record in records:
        if not record.old_item_id:
            continue
        new_id = mapping.get(record.old_item_id)
        if new_id is None:
            unmapped.append(record.old_item_id)
            continue
        remapped.append(remap_record(record, new_id))
    return remapped, unmapped


def propagate_configuration(
    old_items: Sequence[CatalogItem],
    new_items: Sequence[CatalogItem],
    records: Sequence[ConfigurationRecord],
) -> PropagationResult:
    """Match both catalogs, keep HIGH matches and remap the configuration."""
    logger.info(
        "Matching %d old items against %d new items for configuration",
        len(old_items), len(new_items),
    )
    results = run_matching(old_items, new_items)
    mapping = build_high_mapping(results)
    high_matches = [r for r in results if r.old_id in mapping]
    logger.info("Generated %d HIGH mappings", len(mapping))

    remapped, unmapped = remap_configuration(records, mapping)
    if unmapped:
        logger.warning("%d configuration records have no HIGH match", len(unmapped))

    stats = {
        "total_insumos_antiguos": len(old_items),
        "total_insumos_nuevos": len(new_items),
        "mapeos_match_alto": len(mapping),
        "registros_configuracion": len(records),
        "registros_remapeados": len(remapped),
        "no_mapeados": len(unmapped),
    }
    logger.info("Configuration propagation complete: %s", stats)
    return PropagationResult(
        mapping=mapping,
        records=remapped,
        unmapped=unmapped,
        high_matches=high_matches,
        statistics=stats,
    )


def populate_payload(load_old, load_new, load_records) -> Dict[str, Any]:
    """JSON payload wrapper around :func:`propagate_configuration`."""
    try:
        result = propagate_configuration(load_old(), load_new(), load_records())
    except InsumoMatcherError as exc:
        logger.error("Configuration propagation failed: %s", exc)
        return {"success": False, "error": str(exc)}

    payload = {"success": True, "message": SUCCESS_MESSAGE}
    payload.update(result.to_dict())
    return payload

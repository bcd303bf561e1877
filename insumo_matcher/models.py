"""Records flowing through a reconciliation run."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class CatalogItem:
    """An entry of the old or the new supply catalog."""

    id: str
    name: str
    attributes: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MatchResult:
    """Best new-catalog candidate for one old item."""

    old_id: str
    old_name: str
    new_id: str
    new_name: str
    similarity: float
    similarity_pct: int
    tier: str
    suggested_action: str
    new_attributes: Mapping[str, str] = field(default_factory=dict)

    @property
    def has_candidate(self) -> bool:
        return bool(self.new_id)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["new_attributes"] = dict(self.new_attributes)
        return data


@dataclass
class MatchStatistics:
    """Per-run counts; keys mirror the report consumed by the supply team."""

    total_insumos_antiguos: int = 0
    total_insumos_nuevos: int = 0
    match_alto: int = 0
    match_medio: int = 0
    match_bajo: int = 0
    para_unificar: int = 0
    para_revisar: int = 0
    no_unificar: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class AnalysisResult:
    results: List[MatchResult]
    statistics: MatchStatistics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statistics": self.statistics.to_dict(),
            "results": [r.to_dict() for r in self.results],
        }


@dataclass(frozen=True)
class ConfigurationRecord:
    """Quantity limits of one old item for one anesthesia type."""

    old_item_id: Optional[str]
    tipo_anestesia: Optional[str] = None
    cantidad_minima: Optional[float] = None
    cantidad_maxima: Optional[float] = None
    cantidad_default: Optional[float] = None
    tipo_limite: Optional[str] = None
    grupo_exclusivo: Optional[str] = None
    condicionante: Optional[str] = None
    nota: Optional[str] = None


@dataclass(frozen=True)
class RemappedConfiguration:
    """Configuration row keyed on the new catalog id."""

    insumo_catalogo_id: str
    tipo_anestesia: Optional[str]
    min_anestesia: Optional[float]
    max_anestesia: Optional[float]
    cantidad_default: Optional[float]
    tipo_limite: Optional[str]
    grupo_exclusivo: Optional[str]
    condicionante: Optional[str]
    nota: Optional[str]
    min_global_inventario: Optional[float] = None
    max_global_inventario: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

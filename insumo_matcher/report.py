"""
Excel reports for reconciliation runs.

Workbook layout (analysis):
    - Resultados: every MatchResult, highest similarity first
    - Resumen:    the run statistics, one row per counter
    - Revisar:    MEDIUM matches, for manual review
    - Sin match:  LOW matches

Workbook layout (configuration):
    - Configuracion: remapped configuration rows
    - No mapeados:   old ids that had no HIGH match
    - Resumen:       propagation statistics
"""

import logging
from typing import List

import pandas as pd

from insumo_matcher.configuration import PropagationResult
from insumo_matcher.matcher import TIER_LOW, TIER_MEDIUM
from insumo_matcher.models import AnalysisResult, MatchResult

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    'old_id', 'old_name', 'new_id', 'new_name',
    'similarity', 'similarity_pct', 'tier', 'suggested_action',
]

EXCEL_SHEET_NAME_LIMIT = 31


def results_to_frame(results: List[MatchResult]) -> pd.DataFrame:
    """
    Flatten MatchResults into a DataFrame.

    New-item attributes become extra columns prefixed with ``new_`` (e.g.
    ``new_tipo``, ``new_categoria``), so a reviewer sees them next to the
    matched name.
    """
    rows = []
    attribute_cols: List[str] = []
    for result in results:
        row = {col: getattr(result, col) for col in RESULT_COLUMNS}
        for key, value in result.new_attributes.items():
            col = f"new_{key}"
            if col not in attribute_cols:
                attribute_cols.append(col)
            row[col] = value
        rows.append(row)
    return pd.DataFrame(rows, columns=RESULT_COLUMNS + attribute_cols)


def _stats_frame(stats: dict) -> pd.DataFrame:
    return pd.DataFrame(
        [{'Metric': key, 'Value': value} for key, value in stats.items()]
    )


def write_analysis_excel(path: str, analysis: AnalysisResult) -> None:
    df_results = results_to_frame(analysis.results)

    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        df_results.to_excel(writer, sheet_name='Resultados', index=False)
        _stats_frame(analysis.statistics.to_dict()).to_excel(writer, sheet_name='Resumen', index=False)

        # Only add review sheets when there is something to review
        for tier, sheet_name in ((TIER_MEDIUM, 'Revisar'), (TIER_LOW, 'Sin match')):
            subset = df_results[df_results['tier'] == tier]
            if len(subset) > 0:
                subset.to_excel(writer, sheet_name=sheet_name[:EXCEL_SHEET_NAME_LIMIT], index=False)

    logger.info("Wrote analysis report with %d rows to %s", len(df_results), path)


def write_configuration_excel(path: str, result: PropagationResult) -> None:
    df_records = pd.DataFrame(
        [r.to_dict() for r in result.records],
        columns=[
            'insumo_catalogo_id', 'tipo_anestesia', 'min_anestesia', 'max_anestesia',
            'cantidad_default', 'tipo_limite', 'grupo_exclusivo', 'condicionante', 'nota',
            'min_global_inventario', 'max_global_inventario',
        ],
    )
    df_unmapped = pd.DataFrame({'insumo_id': result.unmapped})

    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        df_records.to_excel(writer, sheet_name='Configuracion', index=False)
        if len(df_unmapped) > 0:
            df_unmapped.to_excel(writer, sheet_name='No mapeados', index=False)
        _stats_frame(result.statistics).to_excel(writer, sheet_name='Resumen', index=False)

    logger.info("Wrote %d configuration rows to %s", len(df_records), path)

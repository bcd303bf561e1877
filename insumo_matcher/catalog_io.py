"""
Loading catalogs and configuration tables from CSV / Excel files.

Conventions:
    - ``.csv`` files are read with pandas.read_csv, ``.xlsx``/``.xls`` with
      pandas.read_excel (openpyxl engine). Every cell is read as text so ids
      like ``0012`` keep their leading zeros.
    - If the id / name columns are not given they are detected from the
      header, the same keyword approach used for uploaded asset sheets.
    - Catalogs are ordered by name (stable) unless asked otherwise, which is
      how the catalogs are fetched from the database.
    - Any failure to read a table raises CatalogLoadError.
"""

import logging
import os
from typing import Dict, List, Optional

import pandas as pd

from insumo_matcher.errors import CatalogLoadError
from insumo_matcher.models import CatalogItem, ConfigurationRecord

logger = logging.getLogger(__name__)

# Checked against lowercased headers, first hit wins.
ID_KEYWORDS = ['id', 'codigo', 'clave']
NAME_KEYWORDS = ['nombre', 'name', 'descripcion', 'insumo']

CONFIG_OLD_ID_COLUMN = 'insumo_id'
CONFIG_TEXT_COLUMNS = ['tipo_anestesia', 'tipo_limite', 'grupo_exclusivo', 'condicionante', 'nota']
CONFIG_NUMERIC_COLUMNS = ['cantidad_minima', 'cantidad_maxima', 'cantidad_default']

EXCEL_SUFFIXES = ('.xlsx', '.xlsm', '.xls')


# ---------------------------------------------------------------------------
# Raw tables
# ---------------------------------------------------------------------------

def load_table(path: str, sheet: Optional[str] = None) -> pd.DataFrame:
    """Read a CSV or Excel sheet into a DataFrame of strings (NaN for blanks)."""
    if not os.path.exists(path):
        raise CatalogLoadError(f"File not found: {path}")

    suffix = os.path.splitext(path)[1].lower()
    try:
        if suffix in EXCEL_SUFFIXES:
            return pd.read_excel(path, sheet_name=sheet or 0, dtype=str)
        return pd.read_csv(path, dtype=str)
    except (ValueError, OSError, KeyError, pd.errors.ParserError) as exc:
        # read_excel raises ValueError for a missing sheet
        raise CatalogLoadError(f"Error reading {path}: {exc}") from exc


def _detect_column(columns: List[str], keywords: List[str], exclude: Optional[str] = None) -> Optional[str]:
    """
    Pick the first column whose lowercased header matches a keyword.

    An exact header match beats a substring match, so ``id`` is preferred
    over ``insumo_id`` when both exist.
    """
    cols_lower = {col: str(col).lower().strip() for col in columns if col != exclude}
    for kw in keywords:
        for col, low in cols_lower.items():
            if low == kw:
                return col
    for kw in keywords:
        for col, low in cols_lower.items():
            if kw in low:
                return col
    return None


def _cell_text(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


# ---------------------------------------------------------------------------
# Catalogs
# ---------------------------------------------------------------------------

def catalog_from_frame(
    df: pd.DataFrame,
    id_col: Optional[str] = None,
    name_col: Optional[str] = None,
    order_by_name: bool = True,
) -> List[CatalogItem]:
    """
    Convert a DataFrame into CatalogItems.

    Every column other than id and name ends up in ``attributes`` as text.
    Rows with an empty id are dropped; rows with an empty name are kept
    (they will score 0.0 against everything) and counted in a warning.
    """
    columns = list(df.columns)
    id_col = id_col or _detect_column(columns, ID_KEYWORDS)
    name_col = name_col or _detect_column(columns, NAME_KEYWORDS, exclude=id_col)

    for label, col in (('id', id_col), ('name', name_col)):
        if col is None or col not in df.columns:
            raise CatalogLoadError(
                f"Catalog {label} column {col!r} not found (columns: {columns})"
            )

    df = df.copy()
    df[id_col] = df[id_col].map(_cell_text)
    df = df[df[id_col] != ''].copy()
    df[name_col] = df[name_col].map(_cell_text)

    empty_names = int((df[name_col] == '').sum())
    if empty_names:
        logger.warning("%d catalog rows have an empty %r", empty_names, name_col)

    if order_by_name:
        df = df.sort_values(by=name_col, kind='stable')

    extra_cols = [c for c in columns if c not in (id_col, name_col)]
    items = []
    for row in df.to_dict(orient='records'):
        attributes: Dict[str, str] = {str(c): _cell_text(row.get(c)) for c in extra_cols}
        items.append(CatalogItem(id=row[id_col], name=row[name_col], attributes=attributes))
    return items


def load_catalog(
    path: str,
    sheet: Optional[str] = None,
    id_col: Optional[str] = None,
    name_col: Optional[str] = None,
    order_by_name: bool = True,
) -> List[CatalogItem]:
    df = load_table(path, sheet)
    items = catalog_from_frame(df, id_col=id_col, name_col=name_col, order_by_name=order_by_name)
    logger.info("Loaded %d catalog items from %s", len(items), path)
    return items


# ---------------------------------------------------------------------------
# Configuration records
# ---------------------------------------------------------------------------

def _cell_number(value) -> Optional[float]:
    text = _cell_text(value)
    if not text:
        return None
    try:
        return float(text)
    except ValueError as exc:
        raise CatalogLoadError(f"Invalid quantity {text!r}") from exc


def configuration_from_frame(
    df: pd.DataFrame,
    old_id_col: str = CONFIG_OLD_ID_COLUMN,
) -> List[ConfigurationRecord]:
    """Convert anesthesia limit rows into ConfigurationRecords."""
    if old_id_col not in df.columns:
        raise CatalogLoadError(
            f"Configuration column {old_id_col!r} not found (columns: {list(df.columns)})"
        )

    records = []
    for row in df.to_dict(orient='records'):
        text = {c: (_cell_text(row.get(c)) or None) for c in CONFIG_TEXT_COLUMNS}
        numbers = {c: _cell_number(row.get(c)) for c in CONFIG_NUMERIC_COLUMNS}
        records.append(ConfigurationRecord(
            old_item_id=_cell_text(row.get(old_id_col)) or None,
            **text,
            **numbers,
        ))
    return records


def load_configuration(
    path: str,
    sheet: Optional[str] = None,
    old_id_col: str = CONFIG_OLD_ID_COLUMN,
) -> List[ConfigurationRecord]:
    records = configuration_from_frame(load_table(path, sheet), old_id_col=old_id_col)
    logger.info("Loaded %d configuration records from %s", len(records), path)
    return records

"""
Shareholder register parsers for the rights issue portal.

Registrars export the register of members from their share
administration system as comma or tab separated text.  Column headings
vary between exports, so this module maps the common variants onto a
canonical set of columns (``reg_account_number``, ``name``,
``holdings``, ``chn`` and, when the export already carries them, the
computed ``rights_issue``, ``holdings_after`` and ``amount_due``).  A
simple detection function chooses the right reader based on the file
extension and content heuristics.
"""

from __future__ import annotations

import io
import logging
import re
from typing import Any, Dict, List, Optional

import pandas as pd  # type: ignore

logger = logging.getLogger(__name__)

REGISTER_COLUMNS = [
    'reg_account_number', 'name', 'holdings', 'rights_issue',
    'holdings_after', 'amount_due', 'chn',
]

COLUMN_MAP: Dict[str, str] = {
    'reg account': 'reg_account_number',
    'reg account number': 'reg_account_number',
    'reg_account_number': 'reg_account_number',
    'account no': 'reg_account_number',
    'account number': 'reg_account_number',
    'accountno': 'reg_account_number',
    'acct no': 'reg_account_number',
    'name': 'name',
    'names': 'name',
    'shareholder name': 'name',
    'holder name': 'name',
    'holdings': 'holdings',
    'holding': 'holdings',
    'units': 'holdings',
    'units held': 'holdings',
    'shares held': 'holdings',
    'rights': 'rights_issue',
    'rights issue': 'rights_issue',
    'rights_issue': 'rights_issue',
    'rights due': 'rights_issue',
    'holdings after': 'holdings_after',
    'holdings_after': 'holdings_after',
    'amount due': 'amount_due',
    'amount_due': 'amount_due',
    'amount payable': 'amount_due',
    'chn': 'chn',
    'clearing house number': 'chn',
}


def normalize_units(value: Any) -> Optional[int]:
    """Coerce a register cell such as ``"1,250"`` or ``1250.0`` into an integer.

    Returns ``None`` for blanks and values that are not whole numbers.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, (int, float)):
        return int(value) if float(value).is_integer() else None
    text = str(value).strip().replace(',', '').replace(' ', '')
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


def normalize_amount(value: Any) -> Optional[float]:
    """Coerce a naira amount such as ``"N1,234.50"`` into a float."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, (int, float)):
        return round(float(value), 2)
    text = re.sub(r'[^\d.\-]', '', str(value))
    if not text:
        return None
    try:
        return round(float(text), 2)
    except ValueError:
        return None


def _canonical_columns(df: pd.DataFrame) -> pd.DataFrame:
    renames: Dict[str, str] = {}
    for column in df.columns:
        key = re.sub(r'\s+', ' ', str(column).strip().lower().replace('.', ''))
        if key in COLUMN_MAP:
            renames[column] = COLUMN_MAP[key]
    df = df.rename(columns=renames)
    # keep only the first column when two headings map to the same name
    df = df.loc[:, ~df.columns.duplicated()]
    for col in REGISTER_COLUMNS:
        if col not in df.columns:
            df[col] = None
    return df[REGISTER_COLUMNS].copy()


def _blank(v: Any) -> bool:
    return v is None or (not isinstance(v, str) and pd.isna(v))


def _text_column(values: pd.Series, clean) -> pd.Series:
    # object dtype keeps strings and None as-is; newer pandas would infer a string dtype with NaN
    return pd.Series([clean(v) for v in values], index=values.index, dtype=object)


def _clean_frame(df: pd.DataFrame) -> pd.DataFrame:
    df = _canonical_columns(df)
    df['reg_account_number'] = _text_column(
        df['reg_account_number'], lambda v: '' if _blank(v) else str(v).strip()
    )
    df['name'] = _text_column(
        df['name'], lambda v: '' if _blank(v) else re.sub(r'\s+', ' ', str(v)).strip()
    )
    for col in ('holdings', 'rights_issue', 'holdings_after'):
        df[col] = pd.Series([normalize_units(v) for v in df[col]], index=df.index, dtype=object)
    df['amount_due'] = pd.Series([normalize_amount(v) for v in df['amount_due']], index=df.index, dtype=object)
    df['chn'] = _text_column(
        df['chn'], lambda v: None if _blank(v) or not str(v).strip() else str(v).strip()
    )
    return df


def parse_csv(file_obj: io.TextIOBase, sep: str = ',') -> pd.DataFrame:
    """Parse a register export with a header row."""
    df = pd.read_csv(file_obj, sep=sep, dtype=str, keep_default_na=False)
    return _clean_frame(df)


def detect_format(filename: str, content: bytes) -> str:
    """Attempt to detect the register file format based on filename and content."""
    filename_lower = filename.lower()
    if filename_lower.endswith('.csv'):
        return 'csv'
    if filename_lower.endswith('.tsv'):
        return 'tsv'
    # plain text exports and files without an extension are sniffed by their header row
    if filename_lower.endswith('.txt') or '.' not in filename_lower:
        snippet = content.decode('utf-8', errors='ignore')[:2000]
        first_line = snippet.splitlines()[0] if snippet.strip() else ''
        if '\t' in first_line:
            return 'tsv'
        if ',' in first_line:
            return 'csv'
    return 'unknown'


def parse_register(file_obj: io.BufferedIOBase, filename: str) -> pd.DataFrame:
    """Detect the format of a register file and dispatch to the proper reader."""
    content = file_obj.read()
    if isinstance(content, str):
        content = content.encode('utf-8')
    file_format = detect_format(filename, content)
    text = content.decode('utf-8-sig', errors='ignore')
    if file_format == 'csv':
        return parse_csv(io.StringIO(text))
    if file_format == 'tsv':
        return parse_csv(io.StringIO(text), sep='\t')
    raise ValueError(f"Unsupported register format: {file_format}")


def parse_stockbrokers(file_obj: io.BufferedIOBase) -> List[Dict[str, str]]:
    """Read a two column ``code,name`` stockbroker list."""
    content = file_obj.read()
    if isinstance(content, bytes):
        content = content.decode('utf-8-sig', errors='ignore')
    df = pd.read_csv(io.StringIO(content), dtype=str, keep_default_na=False)
    df.columns = [str(c).strip().lower() for c in df.columns]
    if 'code' not in df.columns or 'name' not in df.columns:
        raise ValueError("Stockbroker list must have 'code' and 'name' columns")
    brokers = [
        {'code': row['code'].strip(), 'name': row['name'].strip()}
        for _, row in df.iterrows()
        if row['code'].strip() and row['name'].strip()
    ]
    logger.info(f"Parsed {len(brokers)} stockbrokers")
    return brokers

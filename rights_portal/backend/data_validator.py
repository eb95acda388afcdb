"""
Data validation for shareholder register rows.

The goal of this module is to verify the integrity of the register
before it is loaded into the database.  Rows with missing account
numbers, names or holdings are flagged, duplicated accounts are
reported, and the rights entitlement columns are filled in (or
corrected) from the active offer.  A summary report describing the
data quality is returned alongside the validated DataFrame.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd  # type: ignore

from ..offer import RightsOffer, compute_entitlement, load_offer

logger = logging.getLogger(__name__)


class RegisterValidator:
    """Validate and complete a shareholder register.

    Each instance of the validator tracks summary statistics about the
    rows it processes.  The primary entry point is
    ``validate_register`` which accepts a Pandas DataFrame and returns a
    (validated_df, report) tuple.  The report contains counts of
    various issues and recommendations to improve data quality.
    """

    def __init__(self, offer: Optional[RightsOffer] = None) -> None:
        self.offer = offer or load_offer()
        self.validation_results: List[Dict[str, Any]] = []
        self.seen_accounts: set[str] = set()
        self.stats: Dict[str, int] = {
            'total': 0,
            'valid': 0,
            'missing_account': 0,
            'missing_name': 0,
            'invalid_holdings': 0,
            'duplicate_account': 0,
            'computed': 0,
            'corrected': 0,
        }

    def validate_register(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, Any]]:
        """Validate each register row in a DataFrame.

        For each row the validator checks the account number, name and
        holdings, then derives the entitlement columns.  After all rows
        have been processed a summary report is generated.

        Args:
            df: DataFrame in the canonical register layout.

        Returns:
            A tuple of (validated DataFrame, report dictionary).
        """
        self.stats['total'] = len(df)
        validated_rows: List[Dict[str, Any]] = []
        for idx, row in df.iterrows():
            validated_row, issues = self.validate_single_row(row.to_dict())
            if issues:
                self.validation_results.append({
                    'row': int(idx) + 1 if isinstance(idx, int) else idx,
                    'reg_account_number': validated_row.get('reg_account_number') or 'Unknown',
                    'name': (validated_row.get('name') or 'Unknown')[:50],
                    'issues': issues,
                })
            validated_rows.append(validated_row)
        validated_df = pd.DataFrame(validated_rows, columns=list(df.columns))
        report = self.generate_validation_report()
        return validated_df, report

    def validate_single_row(self, row: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
        """Validate a single register row dictionary."""
        issues: List[str] = []
        usable = True
        account = str(row.get('reg_account_number') or '').strip()
        if not account or account.lower() == 'nan':
            issues.append('Missing registration account number')
            self.stats['missing_account'] += 1
            usable = False
        elif account in self.seen_accounts:
            issues.append(f'Duplicate account number: {account}')
            self.stats['duplicate_account'] += 1
        else:
            self.seen_accounts.add(account)
        name = str(row.get('name') or '').strip()
        if not name or name.lower() == 'nan':
            issues.append('Missing shareholder name')
            self.stats['missing_name'] += 1
            usable = False
        holdings = row.get('holdings')
        if holdings is None or pd.isna(holdings) or int(holdings) < 0:
            issues.append(f'Invalid holdings: {holdings}')
            self.stats['invalid_holdings'] += 1
            row['holdings'] = 0
            row.update(compute_entitlement(0, self.offer))
            usable = False
        else:
            row['holdings'] = int(holdings)
            self._apply_entitlement(row, issues)
        if usable:
            self.stats['valid'] += 1
        return row, issues

    def _apply_entitlement(self, row: Dict[str, Any], issues: List[str]) -> None:
        expected = compute_entitlement(row['holdings'], self.offer)
        supplied = {key: row.get(key) for key in expected}
        if all(value is None or pd.isna(value) for value in supplied.values()):
            row.update(expected)
            self.stats['computed'] += 1
            return
        mismatched = []
        for key, value in expected.items():
            given = supplied[key]
            if given is None or pd.isna(given):
                row[key] = value
            elif round(float(given), 2) != round(float(value), 2):
                mismatched.append(f"{key} {given} -> {value}")
                row[key] = value
        if mismatched:
            issues.append('Corrected entitlement: ' + ', '.join(mismatched))
            self.stats['corrected'] += 1

    def generate_validation_report(self) -> Dict[str, Any]:
        """Compile a report of validation statistics and recommendations."""
        total = self.stats['total']
        quality_score = (self.stats['valid'] / total * 100) if total > 0 else 0
        report: Dict[str, Any] = {
            'summary': self.stats.copy(),
            'quality_score': quality_score,
            'critical_issues': {
                'missing_accounts': self.stats['missing_account'],
                'invalid_holdings': self.stats['invalid_holdings'],
                'duplicate_accounts': self.stats['duplicate_account'],
            },
            'recommendations': [],
            'problematic_rows': self.validation_results[:10],
        }
        if self.stats['missing_account'] or self.stats['missing_name']:
            report['recommendations'].append(
                'Some rows have no account number or name and will be skipped. Check the register export.'
            )
        if self.stats['duplicate_account']:
            report['recommendations'].append(
                f'{self.stats["duplicate_account"]} duplicated account numbers found; the last row for each account wins.'
            )
        if self.stats['corrected']:
            report['recommendations'].append(
                f'Entitlements for {self.stats["corrected"]} rows disagreed with the offer terms '
                f'({self.offer.ratio_label} at N{self.offer.price:,.2f}) and were recomputed.'
            )
        return report

"""
Consistency checks for lodged rights submissions.

These helpers analyse a submission the way a registrar's reviewer
would before marking it completed: do the accepted and renounced
units add up to the provisional allotment, does the amount paid match
the units at the offer price, are the receipt and signatures present,
and do the mandate details look like valid Nigerian bank identifiers.
Nothing here rejects a submission; issues are reported to the admin
pages with a severity and a suggestion.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Any, Dict, List, Optional

from ..offer import RightsOffer, price_for


def _num(value: Any) -> Optional[float]:
    if value in (None, ''):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _issue(kind: str, severity: str, description: str, suggestion: str) -> Dict[str, Any]:
    return {
        'type': kind,
        'severity': severity,
        'description': description,
        'suggestion': suggestion,
    }


def analyze_submission(submission: Dict[str, Any], offer: RightsOffer) -> Dict[str, Any]:
    """Analyse one submission for internal consistency issues.

    Args:
        submission: A stored submission dictionary (see
            ``database.fetch_submission``).
        offer: The offer terms used to price units.

    Returns:
        A dictionary with ``issues`` (list of issue dictionaries) and
        ``summary`` (counts by severity).
    """
    issues: List[Dict[str, Any]] = []
    entitlement = _num(submission.get('rights_issue')) or 0
    action = submission.get('action_type')
    if action == 'renunciation_partial':
        accepted = _num(submission.get('shares_accepted')) or 0
        renounced = _num(submission.get('shares_renounced')) or 0
        if accepted > entitlement:
            issues.append(_issue(
                'accepted_exceeds_entitlement', 'high',
                f'Shares accepted ({accepted:,.0f}) exceed the provisional allotment ({entitlement:,.0f})',
                'Treat the excess as an application for additional shares or contact the shareholder',
            ))
        elif accepted + renounced != entitlement:
            issues.append(_issue(
                'allotment_not_balanced', 'medium',
                f'Accepted ({accepted:,.0f}) plus renounced ({renounced:,.0f}) does not equal the allotment ({entitlement:,.0f})',
                'Confirm how the unaccounted rights should be treated',
            ))
        payable = _num(submission.get('amount_payable'))
        expected = price_for(accepted, offer)
        if payable is None or round(payable, 2) != expected:
            issues.append(_issue(
                'payment_mismatch', 'medium',
                f'Amount payable {payable or 0:,.2f} differs from {accepted:,.0f} units at N{offer.price:,.2f} ({expected:,.2f})',
                'Reconcile the receipt amount before completing',
            ))
    elif action == 'full_acceptance':
        if not submission.get('accept_full'):
            issues.append(_issue(
                'full_acceptance_not_confirmed', 'high',
                'Full acceptance selected but the acceptance box was not confirmed',
                'Confirm the shareholder intends to accept in full',
            ))
        additional = _num(submission.get('additional_shares')) or 0
        if submission.get('apply_additional') and additional <= 0:
            issues.append(_issue(
                'additional_without_units', 'medium',
                'Additional allotment requested without a number of units',
                'Ask the shareholder how many additional units they want',
            ))
        expected = round((_num(submission.get('amount_due')) or 0) + price_for(additional, offer), 2)
        payable = _num(submission.get('amount_payable'))
        if payable is None or round(payable, 2) != expected:
            issues.append(_issue(
                'payment_mismatch', 'medium',
                f'Total payable {payable or 0:,.2f} differs from amount due plus additional units ({expected:,.2f})',
                'Reconcile the receipt amount before completing',
            ))
    else:
        issues.append(_issue(
            'unknown_action', 'high',
            f'Unrecognised participation type: {action!r}',
            'Contact the shareholder to confirm their instruction',
        ))
    if not submission.get('receipt_path'):
        issues.append(_issue(
            'missing_receipt', 'high',
            'No payment receipt uploaded',
            'Request proof of payment',
        ))
    signatures = [s for s in submission.get('signature_paths') or [] if s]
    if not signatures:
        issues.append(_issue(
            'missing_signature', 'high',
            'No signature uploaded',
            'Request a signed form',
        ))
    elif submission.get('signature_type') == 'joint' and len(signatures) < 2:
        issues.append(_issue(
            'joint_signatures_incomplete', 'medium',
            'Joint signature type with fewer than two signatures',
            'Request signatures from all joint holders',
        ))
    bvn = str(submission.get('bvn') or '').strip()
    if bvn and not re.fullmatch(r'\d{11}', bvn):
        issues.append(_issue(
            'invalid_bvn', 'low',
            'BVN should be 11 digits',
            'Verify the BVN before setting up the e-dividend mandate',
        ))
    account = str(submission.get('account_number') or '').strip()
    if account and not re.fullmatch(r'\d{10}', account):
        issues.append(_issue(
            'invalid_account_number', 'low',
            'Bank account number should be a 10 digit NUBAN',
            'Verify the account number before setting up the e-dividend mandate',
        ))
    summary = {
        'total_issues': len(issues),
        'high_severity': sum(1 for i in issues if i['severity'] == 'high'),
        'medium_severity': sum(1 for i in issues if i['severity'] == 'medium'),
        'low_severity': sum(1 for i in issues if i['severity'] == 'low'),
    }
    return {'issues': issues, 'summary': summary}


def summarize_submissions(submissions: List[Dict[str, Any]], offer: RightsOffer) -> Dict[str, Any]:
    """Aggregate issue counts over many submissions."""
    issue_types: Counter = Counter()
    flagged = 0
    for submission in submissions:
        analysis = analyze_submission(submission, offer)
        if analysis['issues']:
            flagged += 1
        issue_types.update(issue['type'] for issue in analysis['issues'])
    return {
        'total_submissions': len(submissions),
        'flagged_submissions': flagged,
        'issue_types': dict(issue_types),
        'action_distribution': dict(Counter(s.get('action_type', 'unknown') for s in submissions)),
    }

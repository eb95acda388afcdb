"""
State helpers for the online rights application wizard.

The wizard walks a shareholder through eight steps, from confirming
their register details to reviewing a summary before submission.
Form state is a plain dictionary kept in the Streamlit session; the
functions here create it, apply field changes (recomputing derived
amounts), validate each step, track uploaded attachments and build the
multipart payload posted to the API.  Nothing in this module touches
Streamlit, which keeps the rules testable on their own.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from ..backend.storage import validate_upload
from ..offer import RightsOffer, price_for

STEPS: List[Dict[str, Any]] = [
    {'id': 1, 'title': 'Ownership & Records', 'description': 'Confirm your shareholder information'},
    {'id': 2, 'title': 'Guidelines & Instructions', 'description': 'Important information for participation'},
    {'id': 3, 'title': 'Stockbroker Information', 'description': 'CHN and Broker details'},
    {'id': 4, 'title': 'Participation Type', 'description': 'Choose how to participate'},
    {'id': 5, 'title': 'Payment Details', 'description': 'Amount and proof of payment'},
    {'id': 6, 'title': 'Mandate & Contact', 'description': 'Personal and banking details'},
    {'id': 7, 'title': 'Signature & Documentation', 'description': 'Sign and upload proof'},
    {'id': 8, 'title': 'Application Summary', 'description': 'Review and submit'},
]
FIRST_STEP = 1
LAST_STEP = len(STEPS)

ACTION_TYPES = {
    'full_acceptance': 'Full Acceptance',
    'renunciation_partial': 'Partial Acceptance / Renunciation',
}

FILE_FIELDS = ('receipt', 'signatures')

# Keys copied from the register record into a new form
REGISTER_FIELDS = ('reg_account_number', 'name', 'holdings', 'rights_issue', 'holdings_after', 'amount_due')


def new_form(shareholder: Dict[str, Any]) -> Dict[str, Any]:
    """Create a blank application pre-filled from the register record."""
    form: Dict[str, Any] = {
        'reg_account_number': '',
        'name': '',
        'holdings': '',
        'rights_issue': '',
        'holdings_after': '',
        'amount_due': '',
        'instructions_read': False,
        'stockbroker': '',
        'chn': '',
        'action_type': '',
        'accept_full': False,
        'apply_additional': False,
        'additional_shares': '',
        'additional_amount': '',
        'accept_smaller_allotment': False,
        'payment_amount': '',
        'bank_name': '',
        'cheque_number': '',
        'branch': '',
        'shares_accepted': '',
        'amount_payable': '',
        'shares_renounced': '',
        'accept_partial': False,
        'renounce_rights': False,
        'trade_rights': False,
        'contact_name': '',
        'next_of_kin': '',
        'daytime_phone': '',
        'mobile_phone': '',
        'email': '',
        'bank_name_edividend': '',
        'bank_branch_edividend': '',
        'account_number': '',
        'bvn': '',
        'corporate_signatory_names': '',
        'corporate_designations': '',
        'signature_type': 'single',
        'receipt': None,
        'signatures': [None],
    }
    for key in REGISTER_FIELDS:
        if shareholder.get(key) is not None:
            form[key] = shareholder[key]
    form['contact_name'] = shareholder.get('name') or ''
    if shareholder.get('chn'):
        form['chn'] = shareholder['chn']
    return form


def _number(value: Any) -> float:
    """Parse a form value as a number; blanks and junk count as zero."""
    if value in (None, ''):
        return 0.0
    try:
        return float(str(value).replace(',', ''))
    except ValueError:
        return 0.0


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def update_field(form: Dict[str, Any], name: str, value: Any, offer: RightsOffer) -> Dict[str, Any]:
    """Apply a single field change and recompute derived amounts.

    * ``additional_shares`` / ``apply_additional`` recompute
      ``additional_amount`` (blank when no additional units are applied for).
    * ``shares_accepted`` fills ``amount_payable`` and ``shares_renounced``
      when the shareholder has not entered them.
    """
    if name in FILE_FIELDS:
        raise ValueError(f"Use attach_file to set {name}")
    if name not in form:
        raise KeyError(name)
    form[name] = value
    if name in ('additional_shares', 'apply_additional'):
        if form['apply_additional'] and not _is_blank(form['additional_shares']):
            form['additional_amount'] = f"{price_for(_number(form['additional_shares']), offer):.2f}"
        else:
            form['additional_amount'] = ''
    elif name == 'shares_accepted' and not _is_blank(value):
        accepted = _number(value)
        if _is_blank(form['amount_payable']):
            form['amount_payable'] = f"{price_for(accepted, offer):.2f}"
        if _is_blank(form['shares_renounced']):
            form['shares_renounced'] = str(max(int(_number(form['rights_issue']) - accepted), 0))
    return form


def calculate_total_payment(form: Dict[str, Any]) -> str:
    """Amount due plus any additional application, as a 2 dp string."""
    return f"{_number(form.get('amount_due')) + _number(form.get('additional_amount')):.2f}"


def validate_step(form: Dict[str, Any], step: int) -> List[str]:
    """Return the problems that block leaving ``step``; empty when valid."""
    errors: List[str] = []
    if step == 2:
        if not form.get('instructions_read'):
            errors.append('Please confirm you have read the participation guidelines')
    elif step == 3:
        if _is_blank(form.get('stockbroker')):
            errors.append('Select your stockbroker')
        if _is_blank(form.get('chn')):
            errors.append('Enter your CHN')
    elif step == 4:
        if form.get('action_type') not in ACTION_TYPES:
            errors.append('Choose how you want to participate')
    elif step == 5:
        if form.get('action_type') == 'full_acceptance':
            if not form.get('accept_full'):
                errors.append('Confirm that you accept your entitlement in full')
            if _is_blank(form.get('bank_name')):
                errors.append('Enter the bank used for payment')
            if form.get('apply_additional') and _number(form.get('additional_shares')) <= 0:
                errors.append('Enter the number of additional units requested')
        else:
            accepted = form.get('shares_accepted')
            if _is_blank(accepted):
                errors.append('Enter the number of units accepted')
            elif _number(accepted) > _number(form.get('rights_issue')):
                errors.append('Units accepted cannot exceed your provisional allotment')
            if _is_blank(form.get('amount_payable')):
                errors.append('Enter the amount payable')
            if not (form.get('accept_partial') or form.get('renounce_rights')):
                errors.append('Confirm partial allotment or authorise rights trading')
    elif step == 6:
        required = {
            'contact_name': 'Legal beneficiary name',
            'mobile_phone': 'Mobile number',
            'email': 'Email address',
            'bank_name_edividend': 'Mandate bank',
            'account_number': 'Account number',
            'bvn': 'BVN',
        }
        for key, label in required.items():
            if _is_blank(form.get(key)):
                errors.append(f'{label} is required')
    elif step == 7:
        signatures = form.get('signatures') or []
        if not form.get('receipt'):
            errors.append('Upload your payment receipt')
        if form.get('signature_type') == 'joint':
            if len(signatures) < 2 or any(s is None for s in signatures):
                errors.append('Joint applications need every signature uploaded (at least two)')
        elif not signatures or not signatures[0]:
            errors.append('Upload your signature')
    return errors


def is_step_valid(form: Dict[str, Any], step: int) -> bool:
    return not validate_step(form, step)


def next_step(step: int, form: Dict[str, Any]) -> Tuple[int, List[str]]:
    """Advance when the current step validates; otherwise stay and report why."""
    errors = validate_step(form, step)
    if errors:
        return step, errors
    return min(step + 1, LAST_STEP), []


def previous_step(step: int) -> int:
    return max(step - 1, FIRST_STEP)


def attach_file(
    form: Dict[str, Any],
    field: str,
    name: str,
    content_type: str,
    content: bytes,
    index: Optional[int] = None,
) -> Optional[str]:
    """Store an upload as the receipt or in a signature slot.

    Returns an error message and leaves the form untouched when the
    file is rejected.
    """
    error = validate_upload(name, content_type, len(content))
    if error:
        return error
    attachment = {'name': name, 'type': content_type, 'size': len(content), 'content': content}
    if field == 'signatures':
        slot = 0 if index is None else index
        if slot < 0 or slot >= len(form['signatures']):
            raise IndexError(f"No signature slot {slot}")
        form['signatures'][slot] = attachment
    elif field == 'receipt':
        form['receipt'] = attachment
    else:
        raise ValueError(f"{field} is not a file field")
    return None


def set_signature_type(form: Dict[str, Any], kind: str) -> None:
    """Switch between single and joint signing, clearing the signature slots."""
    if kind not in ('single', 'joint'):
        raise ValueError(f"Unknown signature type: {kind}")
    form['signature_type'] = kind
    form['signatures'] = [None] if kind == 'single' else [None, None]


def add_signature_slot(form: Dict[str, Any]) -> None:
    form['signatures'].append(None)


def remove_signature_slot(form: Dict[str, Any], index: int) -> None:
    """Drop a signature slot; a form always keeps one (two when joint)."""
    minimum = 2 if form.get('signature_type') == 'joint' else 1
    if len(form['signatures']) <= minimum:
        return
    del form['signatures'][index]


def _as_form_value(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def build_submission(
    form: Dict[str, Any],
    shareholder_id: int,
) -> Tuple[Dict[str, str], Dict[str, Tuple[str, bytes, str]]]:
    """Build the multipart payload for ``PortalClient.submit_rights_form``.

    Every non-file field that is not ``None`` is sent as a string, plus
    the shareholder id.  The receipt is sent as ``receipt`` and each
    filled signature slot as ``signature_<index>``.
    """
    data = {
        key: _as_form_value(value)
        for key, value in form.items()
        if key not in FILE_FIELDS and value is not None
    }
    data['shareholder_id'] = str(shareholder_id)
    files: Dict[str, Tuple[str, bytes, str]] = {}
    receipt = form.get('receipt')
    if receipt:
        files['receipt'] = (receipt['name'], receipt['content'], receipt['type'])
    for idx, signature in enumerate(form.get('signatures') or []):
        if signature:
            files[f'signature_{idx}'] = (signature['name'], signature['content'], signature['type'])
    return data, files


def preview_payload(form: Dict[str, Any], shareholder_id: int) -> Dict[str, Any]:
    """JSON body for the preview endpoint: fields only, with attachment counts."""
    payload = {key: value for key, value in form.items() if key not in FILE_FIELDS}
    payload['shareholder_id'] = shareholder_id
    payload['amount_payable'] = (
        calculate_total_payment(form) if form.get('action_type') == 'full_acceptance' else form.get('amount_payable')
    )
    payload['signatures'] = [bool(s) for s in form.get('signatures') or []]
    payload['receipt'] = bool(form.get('receipt'))
    return payload


def stockbroker_label(stockbrokers: List[Dict[str, Any]], value: Any) -> str:
    for broker in stockbrokers:
        if broker.get('id') == value or broker.get('code') == value:
            return broker.get('name') or str(value)
    return str(value or '')


def allotment_filename(reg_account_number: str) -> str:
    return f"rights-allotment-{reg_account_number}.pdf"


def prefilled_filename(reg_account_number: str, name: str) -> str:
    safe_name = re.sub(r'\s+', '_', name.strip())
    return f"TIP_RIGHTS_{reg_account_number}_{safe_name}.pdf"


_SUBMISSION_EXTENSIONS = {
    'filled_form': 'pdf',
    'receipt': 'jpg',
    'signature': 'png',
}


def submission_filename(kind: str, submission: Dict[str, Any], day: Optional[date] = None) -> str:
    """Download name for a stored submission file, e.g. ``rights-submission-123-receipt-2026-01-30.jpg``."""
    base = f"rights-submission-{submission.get('reg_account_number') or submission.get('id') or 'unknown'}"
    stamp = (day or date.today()).isoformat()
    if kind in _SUBMISSION_EXTENSIONS:
        return f"{base}-{kind.replace('_', '-')}-{stamp}.{_SUBMISSION_EXTENSIONS[kind]}"
    return f"{base}-document-{stamp}.pdf"


def attachment_name(filename: str) -> str:
    """URL-safe attachment name: extension dropped, odd characters replaced, lowercased."""
    stem = re.sub(r'\.[^/.]+$', '', filename or 'download')
    return re.sub(r'[^a-zA-Z0-9.-]', '_', stem).lower()

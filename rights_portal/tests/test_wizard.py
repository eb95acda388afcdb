"""
Tests for the application wizard state helpers.

The wizard functions hold every rule the Streamlit pages rely on, so
they are exercised here without a browser.
"""

from __future__ import annotations

from datetime import date

import pytest

from rights_portal.frontend import wizard
from rights_portal.offer import RightsOffer

SHAREHOLDER = {
    'id': 7,
    'reg_account_number': '1001',
    'name': 'ADEYEMI JOHN OLU',
    'holdings': 300,
    'rights_issue': 200,
    'holdings_after': 500,
    'amount_due': 264.0,
    'chn': 'C0001',
}


@pytest.fixture
def form():
    return wizard.new_form(SHAREHOLDER)


def _complete(form, offer, action='full_acceptance'):
    """Fill every step with valid answers."""
    wizard.update_field(form, 'instructions_read', True, offer)
    wizard.update_field(form, 'stockbroker', 'APT', offer)
    wizard.update_field(form, 'action_type', action, offer)
    if action == 'full_acceptance':
        wizard.update_field(form, 'accept_full', True, offer)
        wizard.update_field(form, 'bank_name', 'Zenith Bank', offer)
    else:
        wizard.update_field(form, 'shares_accepted', '150', offer)
        wizard.update_field(form, 'accept_partial', True, offer)
    for key, value in {
        'mobile_phone': '08030000000',
        'email': 'holder@example.com',
        'bank_name_edividend': 'Zenith Bank',
        'account_number': '0123456789',
        'bvn': '12345678901',
    }.items():
        wizard.update_field(form, key, value, offer)
    wizard.attach_file(form, 'receipt', 'receipt.pdf', 'application/pdf', b'%PDF-1.4')
    wizard.attach_file(form, 'signatures', 'sig.png', 'image/png', b'\x89PNG')
    return form


def test_new_form_prefills_register_fields(form) -> None:
    assert form['reg_account_number'] == '1001'
    assert form['rights_issue'] == 200
    assert form['contact_name'] == 'ADEYEMI JOHN OLU'
    assert form['chn'] == 'C0001'
    assert form['signature_type'] == 'single'
    assert form['signatures'] == [None]


def test_update_field_recomputes_amounts(form) -> None:
    offer = RightsOffer()
    wizard.update_field(form, 'apply_additional', True, offer)
    assert form['additional_amount'] == ''
    wizard.update_field(form, 'additional_shares', '100', offer)
    assert form['additional_amount'] == '132.00'
    assert wizard.calculate_total_payment(form) == '396.00'
    wizard.update_field(form, 'apply_additional', False, offer)
    assert form['additional_amount'] == ''
    assert wizard.calculate_total_payment(form) == '264.00'

    wizard.update_field(form, 'shares_accepted', '150', offer)
    assert form['amount_payable'] == '198.00'
    assert form['shares_renounced'] == '50'
    # values already entered by the shareholder are kept
    wizard.update_field(form, 'shares_accepted', '100', offer)
    assert form['amount_payable'] == '198.00'

    with pytest.raises(KeyError):
        wizard.update_field(form, 'favourite_colour', 'blue', offer)
    with pytest.raises(ValueError):
        wizard.update_field(form, 'receipt', b'', offer)


def test_step_validation_and_navigation(form) -> None:
    offer = RightsOffer()
    assert wizard.validate_step(form, 1) == []
    step, errors = wizard.next_step(2, form)
    assert step == 2 and errors
    wizard.update_field(form, 'instructions_read', True, offer)
    assert wizard.next_step(2, form) == (3, [])
    assert wizard.validate_step(form, 3) == ['Select your stockbroker']
    assert not wizard.is_step_valid(form, 4)
    assert wizard.previous_step(wizard.FIRST_STEP) == wizard.FIRST_STEP
    assert wizard.next_step(wizard.LAST_STEP, form) == (wizard.LAST_STEP, [])

    _complete(form, offer)
    assert all(wizard.is_step_valid(form, step) for step in range(wizard.FIRST_STEP, wizard.LAST_STEP + 1))


def test_partial_acceptance_cannot_exceed_allotment(form) -> None:
    offer = RightsOffer()
    _complete(form, offer, action='renunciation_partial')
    assert wizard.is_step_valid(form, 5)
    wizard.update_field(form, 'shares_accepted', '201', offer)
    assert 'Units accepted cannot exceed your provisional allotment' in wizard.validate_step(form, 5)


def test_uploads_and_signature_slots(form) -> None:
    assert wizard.attach_file(form, 'receipt', 'receipt.gif', 'image/gif', b'GIF89a') == 'Invalid file type. JPG, PNG or PDF only.'
    big = b'\x00' * (5 * 1024 * 1024 + 1)
    assert wizard.attach_file(form, 'receipt', 'receipt.png', 'image/png', big) == 'File size exceeds 5MB'
    assert form['receipt'] is None
    # the wizard applies the same rules the server enforces on submit
    assert wizard.attach_file(form, 'receipt', 'receipt.pdf', 'application/pdf', b'') == 'File is empty'
    assert form['receipt'] is None
    assert wizard.attach_file(form, 'receipt', 'scan.png', 'application/octet-stream', b'\x89PNG') is None
    assert form['receipt']['name'] == 'scan.png'
    form['receipt'] = None

    wizard.set_signature_type(form, 'joint')
    assert form['signatures'] == [None, None]
    wizard.attach_file(form, 'signatures', 'one.png', 'image/png', b'1', index=0)
    assert 'Joint applications need every signature uploaded (at least two)' in wizard.validate_step(form, 7)
    wizard.add_signature_slot(form)
    assert len(form['signatures']) == 3
    wizard.remove_signature_slot(form, 2)
    wizard.remove_signature_slot(form, 1)
    assert len(form['signatures']) == 2
    with pytest.raises(IndexError):
        wizard.attach_file(form, 'signatures', 'x.png', 'image/png', b'1', index=5)
    with pytest.raises(ValueError):
        wizard.set_signature_type(form, 'corporate')


def test_build_submission_and_preview(form) -> None:
    offer = RightsOffer()
    _complete(form, offer)
    data, files = wizard.build_submission(form, SHAREHOLDER['id'])
    assert data['shareholder_id'] == '7'
    assert data['accept_full'] == 'true'
    assert data['apply_additional'] == 'false'
    assert 'receipt' not in data and 'signatures' not in data
    assert set(files) == {'receipt', 'signature_0'}
    assert files['signature_0'] == ('sig.png', b'\x89PNG', 'image/png')

    payload = wizard.preview_payload(form, SHAREHOLDER['id'])
    assert payload['amount_payable'] == '264.00'
    assert payload['signatures'] == [True]
    assert payload['receipt'] is True


def test_filenames() -> None:
    assert wizard.allotment_filename('1001') == 'rights-allotment-1001.pdf'
    assert wizard.prefilled_filename('1001', 'ADEYEMI JOHN  OLU') == 'TIP_RIGHTS_1001_ADEYEMI_JOHN_OLU.pdf'
    day = date(2026, 1, 30)
    submission = {'id': 3, 'reg_account_number': '1001'}
    assert wizard.submission_filename('receipt', submission, day) == 'rights-submission-1001-receipt-2026-01-30.jpg'
    assert wizard.submission_filename('filled_form', submission, day) == 'rights-submission-1001-filled-form-2026-01-30.pdf'
    assert wizard.submission_filename('other', {'id': 3}, day) == 'rights-submission-3-document-2026-01-30.pdf'
    assert wizard.attachment_name('My Receipt (1).PDF') == 'my_receipt__1_'
    brokers = [{'id': 'APT', 'code': 'APT', 'name': 'APT Securities'}]
    assert wizard.stockbroker_label(brokers, 'APT') == 'APT Securities'
    assert wizard.stockbroker_label(brokers, 'XYZ') == 'XYZ'

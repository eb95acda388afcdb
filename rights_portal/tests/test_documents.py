"""
Tests for offer arithmetic, configuration, file storage and PDF rendering.
"""

from __future__ import annotations

import os

import pytest

from rights_portal import config
from rights_portal.backend import documents, storage
from rights_portal.offer import RightsOffer, compute_entitlement, declaration, load_offer, price_for


def test_entitlement_arithmetic(offer) -> None:
    assert compute_entitlement(300, offer) == {'rights_issue': 200, 'holdings_after': 500, 'amount_due': 264.0}
    # fractions of a share are not allotted
    assert compute_entitlement(10, offer)['rights_issue'] == 6
    assert compute_entitlement(0, offer)['amount_due'] == 0
    with pytest.raises(ValueError):
        compute_entitlement(-1, offer)
    assert price_for(3, offer) == pytest.approx(3.96)
    text = declaration(offer)
    assert '12,320,000,000' in text and 'N1.32' in text and '22 January, 2026' in text


def test_offer_overrides(monkeypatch) -> None:
    assert load_offer() == RightsOffer()
    monkeypatch.setenv('RIGHTS_RATIO', '1:2')
    monkeypatch.setenv('RIGHTS_PRICE', '7')
    offer = load_offer()
    assert (offer.new_shares, offer.per_held, offer.price) == (1, 2, 7.0)
    assert offer.ratio_label == '1 new for every 2'
    monkeypatch.setenv('RIGHTS_RATIO', 'two:three')
    with pytest.raises(ValueError):
        load_offer()


def test_config_resolution(monkeypatch) -> None:
    monkeypatch.delenv('RIGHTS_API_URL', raising=False)
    monkeypatch.setenv('RIGHTS_PORTAL_ENV', 'production')
    assert config.get_api_url() == config.PRODUCTION_API_URL
    monkeypatch.setenv('RIGHTS_PORTAL_ENV', 'development')
    assert config.get_api_url() == config.DEVELOPMENT_API_URL
    monkeypatch.setenv('PORTAL_MODE', 'Coming_Soon')
    assert config.get_portal_mode() == 'coming_soon'
    monkeypatch.setenv('PORTAL_MODE', 'maintenance')
    assert config.get_portal_mode() == 'open'
    monkeypatch.setenv('ADMIN_TOKEN', '  ')
    assert config.get_admin_token() is None


def test_storage_round_trip(png_bytes) -> None:
    file_id = storage.save_upload(png_bytes, 'signature.png', 'image/png')
    assert file_id.endswith('.png') and len(file_id) == 36
    path = storage.resolve(file_id)
    with open(path, 'rb') as fh:
        assert fh.read() == png_bytes
    assert storage.guess_media_type(file_id) == 'image/png'
    generated = storage.save_generated(b'%PDF-1.4')
    assert os.path.dirname(storage.resolve(generated)) == config.get_upload_dir()
    storage.delete(generated)
    with pytest.raises(FileNotFoundError):
        storage.resolve(generated)
    # unknown or malformed identifiers are ignored
    storage.delete(generated)
    storage.delete('../../etc/passwd')
    for bad in ('../../etc/passwd', 'a' * 32 + '.png/../x', ''):
        with pytest.raises(FileNotFoundError):
            storage.resolve(bad)
    with pytest.raises(FileNotFoundError):
        storage.resolve('f' * 32 + '.pdf')


def test_upload_validation() -> None:
    assert storage.validate_upload('receipt.pdf', 'application/pdf', 10) is None
    # browsers sometimes omit the content type; the extension decides
    assert storage.validate_upload('receipt.jpg', 'application/octet-stream', 10) is None
    assert storage.validate_upload('receipt.exe', 'application/octet-stream', 10) == 'Invalid file type. JPG, PNG or PDF only.'
    assert storage.validate_upload('receipt.pdf', 'application/pdf', 6 * 1024 * 1024) == 'File size exceeds 5MB'
    assert storage.validate_upload('receipt.pdf', 'application/pdf', 0) == 'File is empty'
    with pytest.raises(ValueError):
        storage.save_upload(b'GIF89a', 'receipt.gif', 'image/gif')


def test_render_documents(offer) -> None:
    shareholder = {
        'reg_account_number': '1001',
        'name': 'ADEYEMI JOHN OLU',
        'holdings': 300,
        'rights_issue': 200,
        'amount_due': 264.0,
    }
    assert documents.render_prefilled_form(shareholder, offer).startswith(b'%PDF')
    full = dict(shareholder, action_type='full_acceptance', accept_full=True, apply_additional=True,
                additional_shares=100, additional_amount=132.0, amount_payable=396.0,
                signature_paths=['x.png'], receipt_path='r.pdf')
    assert documents.render_rights_form(full, offer, stockbroker_name='APT Securities').startswith(b'%PDF')
    partial = dict(shareholder, action_type='renunciation_partial', shares_accepted='150',
                   shares_renounced='50', amount_payable='198.00', signatures=[True, False], receipt=True)
    assert documents.render_rights_form(partial, offer).startswith(b'%PDF')

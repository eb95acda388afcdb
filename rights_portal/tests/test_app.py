"""
Test suite for the rights portal backend.

These tests focus on the core backend functionality including
register parsing, the persistence layer, register validation and the
submission review checks.  The database is an in-memory SQLite
instance recreated for every test (see ``conftest.py``).
"""

from __future__ import annotations

from io import BytesIO

import pandas as pd  # type: ignore
import pytest

from rights_portal.backend import data_validator, register, review
from rights_portal.backend import database as db
from rights_portal.offer import RightsOffer


def test_parse_register_and_database_operations() -> None:
    """Verify register parsing and basic database operations."""
    csv_content = (
        "Account No,Names,Units Held,CHN\n"
        "1001,ADEYEMI   JOHN OLU,\"1,200\",C1001\n"
        "1002,BELLO IBRAHIM,450,\n"
    ).encode('utf-8')
    df = register.parse_register(BytesIO(csv_content), 'register.csv')
    assert list(df.columns) == register.REGISTER_COLUMNS
    assert len(df) == 2
    assert df.loc[0, 'name'] == 'ADEYEMI JOHN OLU'
    assert df.loc[0, 'holdings'] == 1200
    assert df.loc[1, 'chn'] is None
    # text columns stay plain Python objects whatever string dtype pandas infers
    assert df['chn'].dtype == object
    assert df['reg_account_number'].tolist() == ['1001', '1002']
    validated, _ = data_validator.RegisterValidator(RightsOffer()).validate_register(df)
    stats = db.bulk_insert_shareholders(validated)
    assert stats['inserted'] == 2
    # Importing the same register again updates in place
    stats = db.bulk_insert_shareholders(validated)
    assert stats['updated'] == 2 and stats['inserted'] == 0
    rows, total = db.search_shareholders('adeyemi')
    assert total == 1
    shareholder = rows[0]
    assert shareholder['rights_issue'] == 800
    assert shareholder['holdings_after'] == 2000
    assert shareholder['amount_due'] == pytest.approx(1056.0)
    assert db.fetch_shareholder(shareholder['id'])['chn'] == 'C1001'
    assert db.fetch_shareholder(9999) is None


def test_detect_format() -> None:
    assert register.detect_format('members.csv', b'') == 'csv'
    assert register.detect_format('members.TSV', b'') == 'tsv'
    assert register.detect_format('members.txt', b'Account No\tName\tHoldings\n') == 'tsv'
    assert register.detect_format('members', b'Account No,Name,Holdings\n') == 'csv'
    assert register.detect_format('members.xlsx', b'PK\x03\x04') == 'unknown'
    with pytest.raises(ValueError):
        register.parse_register(BytesIO(b'PK\x03\x04'), 'members.xlsx')


def test_normalize_values() -> None:
    assert register.normalize_units('1,250') == 1250
    assert register.normalize_units(300.0) == 300
    assert register.normalize_units('12.5') is None
    assert register.normalize_units('') is None
    assert register.normalize_amount('N1,234.50') == pytest.approx(1234.5)
    assert register.normalize_amount(None) is None


def test_parse_stockbrokers() -> None:
    brokers = register.parse_stockbrokers(BytesIO(b"Code,Name\nAPT,APT Securities\n,Missing Code\n"))
    assert brokers == [{'code': 'APT', 'name': 'APT Securities'}]
    with pytest.raises(ValueError):
        register.parse_stockbrokers(BytesIO(b"broker\nAPT\n"))
    assert db.upsert_stockbrokers(brokers) == 1
    db.upsert_stockbrokers([{'code': 'APT', 'name': 'APT Securities Ltd'}])
    assert db.list_stockbrokers() == [{'id': 'APT', 'code': 'APT', 'name': 'APT Securities Ltd'}]


def test_register_validation_and_quality_scoring() -> None:
    """Ensure the register validator flags bad rows and completes entitlements."""
    df = pd.DataFrame({
        'reg_account_number': ['1001', '1001', '', '1003', '1004'],
        'name': ['ADEYEMI JOHN', 'ADEYEMI J.', 'NO ACCOUNT', 'BELLO IBRAHIM', 'CHUKWU NGOZI'],
        'holdings': [300, 30, 10, None, 90],
        'rights_issue': [None, None, None, None, 10],
        'holdings_after': [None] * 5,
        'amount_due': [None] * 5,
        'chn': [None] * 5,
    }, dtype=object)
    validator = data_validator.RegisterValidator(RightsOffer())
    validated, report = validator.validate_register(df)
    summary = report['summary']
    assert summary['total'] == 5
    assert report['critical_issues'] == {
        'missing_accounts': 1,
        'invalid_holdings': 1,
        'duplicate_accounts': 1,
    }
    assert summary['corrected'] == 1
    assert report['quality_score'] == pytest.approx(60.0)
    assert len(report['recommendations']) == 3
    # Entitlements are computed from the offer and wrong values corrected
    assert validated.loc[0, 'rights_issue'] == 200
    assert validated.loc[0, 'amount_due'] == pytest.approx(264.0)
    assert validated.loc[3, 'holdings'] == 0
    assert validated.loc[4, 'rights_issue'] == 60
    stats = db.bulk_insert_shareholders(validated)
    assert stats == {'inserted': 3, 'updated': 1, 'skipped': 1, 'total': 5}


def _submission(shareholder, **overrides):
    data = {
        'shareholder_id': shareholder['id'],
        'reg_account_number': shareholder['reg_account_number'],
        'name': shareholder['name'],
        'holdings': shareholder['holdings'],
        'rights_issue': shareholder['rights_issue'],
        'holdings_after': shareholder['holdings_after'],
        'amount_due': shareholder['amount_due'],
        'action_type': 'full_acceptance',
        'accept_full': True,
        'amount_payable': shareholder['amount_due'],
        'email': 'holder@example.com',
        'receipt_path': 'a' * 32 + '.pdf',
        'signature_paths': ['b' * 32 + '.png'],
    }
    data.update(overrides)
    return data


def test_submission_listing_and_dashboard(seeded) -> None:
    first = db.create_submission(_submission(seeded['1001']))
    second = db.create_submission(_submission(seeded['1003'], email='bello@example.com'))
    assert first['status'] == 'pending'
    assert first['signature_paths'] == ['b' * 32 + '.png']
    rows, total = db.list_submissions()
    assert total == 2
    assert [row['id'] for row in rows] == [second['id'], first['id']]
    rows, total = db.list_submissions(search='bello')
    assert total == 1 and rows[0]['reg_account_number'] == '1003'
    db.update_submission_status(first['id'], 'completed')
    rows, total = db.list_submissions(status='completed')
    assert [row['id'] for row in rows] == [first['id']]
    with pytest.raises(ValueError):
        db.update_submission_status(first['id'], 'approved')
    assert db.update_submission_status(9999, 'completed') is None
    stats = db.get_dashboard_stats()
    assert stats == {
        'totalShareholders': 4,
        'totalSubmissions': 2,
        'completedForms': 1,
        'pendingForms': 1,
        'rejectedForms': 0,
        'completionRate': 25.0,
    }
    assert db.total_pages(0, 10) == 1
    assert db.total_pages(21, 10) == 3


def test_review_analysis(seeded, offer) -> None:
    """Test the review checks on synthetic submissions."""
    clean = _submission(seeded['1001'], bvn='12345678901', account_number='0123456789')
    assert review.analyze_submission(clean, offer)['issues'] == []

    partial = _submission(
        seeded['1001'],
        action_type='renunciation_partial',
        accept_full=False,
        shares_accepted=150,
        shares_renounced=20,
        amount_payable=100.0,
        receipt_path=None,
        signature_type='joint',
        bvn='123',
    )
    analysis = review.analyze_submission(partial, offer)
    types = {issue['type'] for issue in analysis['issues']}
    assert types == {
        'allotment_not_balanced',
        'payment_mismatch',
        'missing_receipt',
        'joint_signatures_incomplete',
        'invalid_bvn',
    }
    assert analysis['summary']['high_severity'] == 1

    greedy = _submission(seeded['1001'], action_type='renunciation_partial', shares_accepted=500, amount_payable=660.0)
    types = {issue['type'] for issue in review.analyze_submission(greedy, offer)['issues']}
    assert 'accepted_exceeds_entitlement' in types

    summary = review.summarize_submissions([clean, partial], offer)
    assert summary['total_submissions'] == 2
    assert summary['flagged_submissions'] == 1
    assert summary['issue_types']['missing_receipt'] == 1
    assert summary['action_distribution'] == {'full_acceptance': 1, 'renunciation_partial': 1}


def test_cli_loaders(tmp_path) -> None:
    """The import commands parse, validate and load files into the database."""
    from rights_portal.frontend import main

    register_file = tmp_path / 'register.csv'
    register_file.write_text("Reg Account,Name,Holdings\n1001,ADEYEMI JOHN,300\n,NO ACCOUNT,30\n")
    assert main.import_register(str(register_file)) == 0
    rows, total = db.search_shareholders('adeyemi')
    assert total == 1 and rows[0]['amount_due'] == pytest.approx(264.0)

    brokers_file = tmp_path / 'brokers.csv'
    brokers_file.write_text("code,name\nAPT,APT Securities\n")
    assert main.load_stockbrokers(str(brokers_file)) == 0
    assert db.list_stockbrokers()[0]['name'] == 'APT Securities'

    unsupported = tmp_path / 'register.xlsx'
    unsupported.write_bytes(b'PK\x03\x04')
    assert main.import_register(str(unsupported)) == 1

import os

# Point the database module at an in-memory SQLite instance before it is imported
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'

import pandas as pd  # type: ignore
import pytest
from fastapi.testclient import TestClient

from rights_portal.backend import database as db
from rights_portal.offer import RightsOffer, compute_entitlement

REGISTER_ROWS = [
    ('1001', 'ADEYEMI JOHN OLU', 300, 'C0001'),
    ('1002', 'ADEYEMI MARY', 150, None),
    ('1003', 'BELLO IBRAHIM', 3000, 'C0003'),
    ('1004', 'CHUKWU NGOZI', 10, None),
]


@pytest.fixture(autouse=True)
def portal_env(monkeypatch, tmp_path):
    """Fresh schema, a private upload directory and default settings for every test."""
    monkeypatch.setenv('UPLOAD_DIR', str(tmp_path / 'uploads'))
    for name in ('ADMIN_TOKEN', 'PORTAL_MODE', 'RIGHTS_RATIO', 'RIGHTS_PRICE'):
        monkeypatch.delenv(name, raising=False)
    db.Base.metadata.drop_all(bind=db.engine)
    db.init_db()
    yield


@pytest.fixture
def offer() -> RightsOffer:
    return RightsOffer()


@pytest.fixture
def register_df(offer) -> pd.DataFrame:
    rows = []
    for account, name, holdings, chn in REGISTER_ROWS:
        row = {'reg_account_number': account, 'name': name, 'holdings': holdings, 'chn': chn}
        row.update(compute_entitlement(holdings, offer))
        rows.append(row)
    return pd.DataFrame(rows)


@pytest.fixture
def seeded(register_df):
    """Load the sample register and two stockbrokers; returns shareholders keyed by account."""
    db.bulk_insert_shareholders(register_df)
    db.upsert_stockbrokers([
        {'code': 'APT', 'name': 'APT Securities'},
        {'code': 'CSL', 'name': 'CSL Stockbrokers'},
    ])
    with db.get_db() as session:
        return {
            s.reg_account_number: db._shareholder_to_dict(s)
            for s in session.query(db.Shareholder).all()
        }


@pytest.fixture
def client():
    from rights_portal.backend.server import app

    with TestClient(app) as test_client:
        yield test_client


PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64
PDF_BYTES = b'%PDF-1.4\n%fake receipt\n'


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def pdf_bytes() -> bytes:
    return PDF_BYTES

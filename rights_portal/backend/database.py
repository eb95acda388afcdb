"""
Database module for the rights issue portal.

This module encapsulates all persistence logic for the portal.  It uses
SQLAlchemy to manage a SQLite or PostgreSQL database that stores the
shareholder register, the list of stockbrokers and the rights
submissions lodged through the application wizard.

Functions are exposed to initialise the database, load or refresh the
register, search shareholders by name, record submissions, page
through them for the admin dashboard and report summary statistics.
"""

from __future__ import annotations

import json
import logging
import math
import os
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd  # type: ignore
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    func,
    or_,
)
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# SQLAlchemy base class used to declare models
Base = declarative_base()

SUBMISSION_STATUSES = ("pending", "completed", "rejected")
ACTION_TYPES = ("full_acceptance", "renunciation_partial")


class Shareholder(Base):
    """ORM model for a single entry in the shareholder register."""

    __tablename__ = 'shareholders'

    id = Column(Integer, primary_key=True, autoincrement=True)
    reg_account_number = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    holdings = Column(Integer, nullable=False, default=0)
    rights_issue = Column(Integer, nullable=False, default=0)
    holdings_after = Column(Integer, nullable=False, default=0)
    amount_due = Column(Float, nullable=False, default=0.0)
    chn = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Stockbroker(Base):
    __tablename__ = 'stockbrokers'

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)


class RightsSubmission(Base):
    """ORM model for an application lodged through the portal.

    The record keeps a snapshot of the register values at submission
    time together with every field captured by the wizard.  Uploaded
    files are referenced by their storage identifiers; signatures are
    stored as a JSON encoded list.
    """

    __tablename__ = 'rights_submissions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    shareholder_id = Column(Integer, ForeignKey('shareholders.id'), nullable=False, index=True)
    reg_account_number = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    holdings = Column(Integer, nullable=True)
    rights_issue = Column(Integer, nullable=True)
    holdings_after = Column(Integer, nullable=True)
    amount_due = Column(Float, nullable=True)
    instructions_read = Column(Boolean, default=False)
    stockbroker = Column(String, nullable=True)
    chn = Column(String, nullable=True)
    action_type = Column(String, nullable=False)
    accept_full = Column(Boolean, default=False)
    apply_additional = Column(Boolean, default=False)
    additional_shares = Column(Integer, nullable=True)
    additional_amount = Column(Float, nullable=True)
    accept_smaller_allotment = Column(Boolean, default=False)
    payment_amount = Column(Float, nullable=True)
    bank_name = Column(String, nullable=True)
    cheque_number = Column(String, nullable=True)
    branch = Column(String, nullable=True)
    shares_accepted = Column(Integer, nullable=True)
    shares_renounced = Column(Integer, nullable=True)
    accept_partial = Column(Boolean, default=False)
    renounce_rights = Column(Boolean, default=False)
    trade_rights = Column(Boolean, default=False)
    contact_name = Column(String, nullable=True)
    next_of_kin = Column(String, nullable=True)
    daytime_phone = Column(String, nullable=True)
    mobile_phone = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)
    bank_name_edividend = Column(String, nullable=True)
    bank_branch_edividend = Column(String, nullable=True)
    account_number = Column(String, nullable=True)
    bvn = Column(String, nullable=True)
    corporate_signatory_names = Column(Text, nullable=True)
    corporate_designations = Column(Text, nullable=True)
    signature_type = Column(String, default='single')
    amount_payable = Column(Float, nullable=True)
    status = Column(String, nullable=False, default='pending', index=True)
    receipt_path = Column(String, nullable=True)
    signature_paths = Column(Text, nullable=True)  # JSON list encoded as text
    filled_form_path = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


def _get_database_url() -> str:
    """Resolve the database URL from environment variables.

    The portal supports both SQLite (used by default) and PostgreSQL.  A
    DATABASE_URL environment variable can be provided to override the
    default.  When a PostgreSQL URL beginning with ``postgres://`` is
    supplied, it is rewritten to ``postgresql://`` because SQLAlchemy
    does not recognise the former scheme.
    """
    url = os.getenv('DATABASE_URL')
    if url:
        if url.startswith('postgres://'):
            url = url.replace('postgres://', 'postgresql://', 1)
        logger.info(f"Using database URL from environment: {url}")
        return url
    # fallback to a local SQLite database in the package directory
    default_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'rights_portal.db')
    logger.info(f"Using local SQLite database at {default_path}")
    return f"sqlite:///{default_path}"


# Create engine and session factory.  StaticPool is used for SQLite to allow
# sharing connections across threads when running tests or the API server.
DATABASE_URL = _get_database_url()
if DATABASE_URL.startswith('sqlite'):
    engine = create_engine(
        DATABASE_URL,
        connect_args={'check_same_thread': False},
        poolclass=StaticPool
    )
else:
    engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db() -> None:
    """Initialise the database schema.

    Creates all tables defined on the Base metadata.  If tables already
    exist this function is a no-op.
    """
    Base.metadata.create_all(bind=engine)
    logger.info("Database initialised (tables created if missing)")


@contextmanager
def get_db() -> Any:
    """Provide a transactional scope for database operations.

    This helper yields a SQLAlchemy session and ensures that it is
    properly committed or rolled back.  Sessions are always closed
    after use.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed for ``total`` rows; never less than one."""
    return max(1, math.ceil(total / limit)) if limit > 0 else 1


def _shareholder_to_dict(s: Shareholder) -> Dict[str, Any]:
    return {
        'id': s.id,
        'reg_account_number': s.reg_account_number,
        'name': s.name,
        'holdings': s.holdings,
        'rights_issue': s.rights_issue,
        'holdings_after': s.holdings_after,
        'amount_due': s.amount_due,
        'chn': s.chn,
    }


def _submission_to_dict(sub: RightsSubmission) -> Dict[str, Any]:
    data = {column.name: getattr(sub, column.name) for column in RightsSubmission.__table__.columns}
    data['signature_paths'] = json.loads(sub.signature_paths) if sub.signature_paths else []
    for key in ('created_at', 'updated_at'):
        if data[key] is not None:
            data[key] = data[key].isoformat()
    return data


def _number(value: Any, cast: Any = int) -> Any:
    """Coerce a register cell to a number, treating blanks and NaN as zero."""
    if value is None or value == '' or pd.isna(value):
        return cast(0)
    return cast(value)


def bulk_insert_shareholders(df: pd.DataFrame) -> Dict[str, int]:
    """Insert or update register rows from a Pandas DataFrame.

    Rows are matched on ``reg_account_number``.  A new shareholder is
    inserted if the account does not exist, otherwise the existing
    record is updated, which makes repeated imports of the same
    register idempotent.  Rows without an account number or a name are
    skipped.  Returns counts of inserted, updated and skipped rows.
    """
    stats = {"inserted": 0, "updated": 0, "skipped": 0, "total": len(df)}
    with get_db() as session:
        for _, row in df.iterrows():
            account = str(row.get('reg_account_number') or '').strip()
            name = str(row.get('name') or '').strip()
            if not account or account.lower() == 'nan' or not name or name.lower() == 'nan':
                stats["skipped"] += 1
                continue
            values = {
                'name': name,
                'holdings': _number(row.get('holdings')),
                'rights_issue': _number(row.get('rights_issue')),
                'holdings_after': _number(row.get('holdings_after')),
                'amount_due': _number(row.get('amount_due'), float),
            }
            chn = row.get('chn')
            if chn is not None and not pd.isna(chn) and str(chn).strip():
                values['chn'] = str(chn).strip()
            existing = session.query(Shareholder).filter(Shareholder.reg_account_number == account).first()
            if existing:
                for key, value in values.items():
                    setattr(existing, key, value)
                stats["updated"] += 1
            else:
                session.add(Shareholder(reg_account_number=account, **values))
                stats["inserted"] += 1
            # flush so duplicate accounts later in the same frame update instead of colliding
            session.flush()
    logger.info(f"Register import finished: {stats}")
    return stats


def upsert_stockbrokers(brokers: List[Dict[str, str]]) -> int:
    """Insert or rename stockbrokers keyed by ``code``.  Returns the number processed."""
    count = 0
    with get_db() as session:
        for broker in brokers:
            code = str(broker.get('code', '')).strip()
            name = str(broker.get('name', '')).strip()
            if not code or not name:
                continue
            existing = session.query(Stockbroker).filter(Stockbroker.code == code).first()
            if existing:
                existing.name = name
            else:
                session.add(Stockbroker(code=code, name=name))
            session.flush()
            count += 1
    return count


def list_stockbrokers() -> List[Dict[str, Any]]:
    with get_db() as session:
        brokers = session.query(Stockbroker).order_by(Stockbroker.name).all()
        return [{'id': b.code, 'code': b.code, 'name': b.name} for b in brokers]


def search_shareholders(name: str, page: int = 1, limit: int = 10) -> Tuple[List[Dict[str, Any]], int]:
    """Search the register by name.

    The search is a case-insensitive substring match on the shareholder
    name.  Results are ordered by name and paginated.

    Args:
        name: Search string.  Blank strings match nothing.
        page: 1-based page number.
        limit: Page size.

    Returns:
        A tuple of (rows for the requested page, total matching rows).
    """
    if not name or not name.strip():
        return [], 0
    page = max(1, page)
    limit = max(1, limit)
    pattern = f"%{name.strip()}%"
    with get_db() as session:
        query = session.query(Shareholder).filter(Shareholder.name.ilike(pattern))
        total = query.count()
        rows = (
            query.order_by(Shareholder.name, Shareholder.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [_shareholder_to_dict(s) for s in rows], total


def fetch_shareholder(shareholder_id: int) -> Optional[Dict[str, Any]]:
    """Retrieve a single shareholder by primary key, or ``None``."""
    with get_db() as session:
        shareholder = session.get(Shareholder, shareholder_id)
        if not shareholder:
            return None
        return _shareholder_to_dict(shareholder)


def create_submission(data: Dict[str, Any]) -> Dict[str, Any]:
    """Persist a new rights submission and return it as a dictionary.

    Unknown keys are ignored.  ``signature_paths`` may be given as a
    list and is encoded to JSON.
    """
    columns = {column.name for column in RightsSubmission.__table__.columns}
    values = {k: v for k, v in data.items() if k in columns and k not in ('id', 'created_at', 'updated_at')}
    if isinstance(values.get('signature_paths'), list):
        values['signature_paths'] = json.dumps(values['signature_paths'])
    values.setdefault('status', 'pending')
    with get_db() as session:
        submission = RightsSubmission(**values)
        session.add(submission)
        session.flush()
        result = _submission_to_dict(submission)
    logger.info(f"Recorded rights submission {result['id']} for account {result['reg_account_number']}")
    return result


def fetch_submission(submission_id: int) -> Optional[Dict[str, Any]]:
    with get_db() as session:
        submission = session.get(RightsSubmission, submission_id)
        if not submission:
            return None
        return _submission_to_dict(submission)


def list_submissions(
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    status: Optional[str] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    """Page through submissions, newest first.

    ``search`` matches the shareholder name, registration account number
    or email address; ``status`` restricts to a single status.
    """
    page = max(1, page)
    limit = max(1, limit)
    with get_db() as session:
        query = session.query(RightsSubmission)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                RightsSubmission.name.ilike(pattern),
                RightsSubmission.reg_account_number.ilike(pattern),
                RightsSubmission.email.ilike(pattern),
            ))
        if status:
            query = query.filter(RightsSubmission.status == status)
        total = query.count()
        rows = (
            query.order_by(RightsSubmission.created_at.desc(), RightsSubmission.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [_submission_to_dict(s) for s in rows], total


def update_submission_status(submission_id: int, status: str) -> Optional[Dict[str, Any]]:
    """Change the review status of a submission.

    Raises:
        ValueError: If ``status`` is not one of :data:`SUBMISSION_STATUSES`.
    """
    if status not in SUBMISSION_STATUSES:
        raise ValueError(f"Invalid status: {status}")
    with get_db() as session:
        submission = session.get(RightsSubmission, submission_id)
        if not submission:
            return None
        submission.status = status
        submission.updated_at = datetime.utcnow()
        session.flush()
        result = _submission_to_dict(submission)
    logger.info(f"Submission {submission_id} marked {status}")
    return result


def get_all_submissions() -> List[Dict[str, Any]]:
    """Return every submission, oldest first (used by the CSV export)."""
    with get_db() as session:
        rows = session.query(RightsSubmission).order_by(RightsSubmission.id).all()
        return [_submission_to_dict(s) for s in rows]


def get_dashboard_stats() -> Dict[str, Any]:
    """Return summary statistics for the admin dashboard."""
    with get_db() as session:
        total_shareholders = session.query(func.count(Shareholder.id)).scalar() or 0
        counts = {status: 0 for status in SUBMISSION_STATUSES}
        for status, count in session.query(RightsSubmission.status, func.count(RightsSubmission.id)).group_by(RightsSubmission.status):
            counts[status] = int(count)
        total_submissions = sum(counts.values())
        completion_rate = round(counts['completed'] / total_shareholders * 100, 2) if total_shareholders else 0
        return {
            'totalShareholders': int(total_shareholders),
            'totalSubmissions': total_submissions,
            'completedForms': counts['completed'],
            'pendingForms': counts['pending'],
            'rejectedForms': counts['rejected'],
            'completionRate': completion_rate,
        }

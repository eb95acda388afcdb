"""
REST API for the rights issue portal.

This module defines the HTTP API using FastAPI.  It wraps the
functions provided by the database, storage, documents and review
modules.  The server can be run directly via uvicorn or
programmatically by calling the ``run`` function defined below.

Every JSON response uses the envelope ``{"success": bool, "data": ...}``;
errors carry a ``message`` instead of ``data``.

Public endpoints:

* **GET /health** – basic health status for monitoring.
* **GET /api/offer** – offer terms and the current portal mode.
* **GET /api/shareholders/search** – paginated name search; ``name``
  must contain at least two characters.
* **GET /api/shareholders/{id}** – a single register entry.
* **GET /api/stockbrokers** – stockbroker list for the wizard.
* **POST /api/forms/basic-pdf** – the pre-filled paper form.
* **POST /api/forms/preview** – the filled allotment form for wizard
  data, without saving anything.
* **POST /api/forms/rights-submission** – multipart submission with the
  receipt and ``signature_<n>`` files.

Admin endpoints (bearer token when ``ADMIN_TOKEN`` is set):

* **GET /api/admin/dashboard**, **GET /api/admin/submissions**,
  **GET /api/admin/rights-submissions/{id}**,
  **PATCH /api/admin/rights-submissions/{id}/status**,
  **GET /api/admin/export** and **GET /api/files/{file_id}**.
"""

from __future__ import annotations

import hmac
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd  # type: ignore
from fastapi import Body, Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import database as db
from . import documents, review, storage
from ..config import get_admin_token, get_portal_mode
from ..offer import load_offer, price_for

logger = logging.getLogger(__name__)

BOOLEAN_FIELDS = {
    'instructions_read', 'accept_full', 'apply_additional', 'accept_smaller_allotment',
    'accept_partial', 'renounce_rights', 'trade_rights',
}
INTEGER_FIELDS = {'additional_shares', 'shares_accepted', 'shares_renounced'}
FLOAT_FIELDS = {'additional_amount', 'payment_amount', 'amount_payable'}
TEXT_FIELDS = {
    'stockbroker', 'chn', 'action_type', 'bank_name', 'cheque_number', 'branch',
    'contact_name', 'next_of_kin', 'daytime_phone', 'mobile_phone', 'email',
    'bank_name_edividend', 'bank_branch_edividend', 'account_number', 'bvn',
    'corporate_signatory_names', 'corporate_designations', 'signature_type',
}
# Register values are taken from the database, never from the client
REGISTER_FIELDS = ('reg_account_number', 'name', 'holdings', 'rights_issue', 'holdings_after', 'amount_due')

EXPORT_COLUMNS = [
    'id', 'reg_account_number', 'name', 'holdings', 'rights_issue', 'action_type',
    'shares_accepted', 'shares_renounced', 'additional_shares', 'amount_payable',
    'stockbroker', 'chn', 'contact_name', 'mobile_phone', 'email', 'bank_name_edividend',
    'account_number', 'bvn', 'status', 'created_at',
]


# Create the FastAPI application
app = FastAPI(title="Rights Issue Portal API", version="1.0.0")

# Configure CORS so that the Streamlit frontend can access the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.on_event("startup")
async def startup_event() -> None:
    """Initialise the database when the application starts."""
    db.init_db()
    logger.info("Rights portal API startup complete")


def require_admin(authorization: Optional[str] = Header(None)) -> None:
    """Enforce the shared admin bearer token when one is configured."""
    token = get_admin_token()
    if token is None:
        return
    supplied = ''
    if authorization and authorization.lower().startswith('bearer '):
        supplied = authorization[7:].strip()
    if not hmac.compare_digest(supplied.encode('utf-8'), token.encode('utf-8')):
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


def _bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def _optional_int(value: Any) -> Optional[int]:
    if value in (None, ''):
        return None
    try:
        number = float(str(value).replace(',', ''))
        if not math.isfinite(number):
            raise ValueError(value)
        return int(number)
    except (ValueError, OverflowError):
        raise HTTPException(status_code=400, detail=f"Invalid number: {value}")


def _optional_float(value: Any) -> Optional[float]:
    if value in (None, ''):
        return None
    try:
        number = float(str(value).replace(',', ''))
        if not math.isfinite(number):
            raise ValueError(value)
        return round(number, 2)
    except (ValueError, OverflowError):
        raise HTTPException(status_code=400, detail=f"Invalid amount: {value}")


def _coerce_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Convert submitted form strings into typed submission values."""
    values: Dict[str, Any] = {}
    for key in BOOLEAN_FIELDS:
        values[key] = _bool(raw.get(key, False))
    for key in INTEGER_FIELDS:
        values[key] = _optional_int(raw.get(key))
    for key in FLOAT_FIELDS:
        values[key] = _optional_float(raw.get(key))
    for key in INTEGER_FIELDS | FLOAT_FIELDS:
        if values[key] is not None and values[key] < 0:
            raise HTTPException(status_code=400, detail=f"{key} cannot be negative")
    for key in TEXT_FIELDS:
        value = raw.get(key)
        values[key] = str(value).strip() if value not in (None, '') else None
    return values


def _stockbroker_name(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    for broker in db.list_stockbrokers():
        if broker['code'] == code:
            return broker['name']
    return code


@app.get("/health", response_model=Dict[str, Any])
async def health_check() -> Dict[str, Any]:
    """Return a basic health status."""
    return {
        "status": "healthy",
        "server": "RightsPortalAPI",
    }


@app.get("/api/offer")
async def offer_info() -> Dict[str, Any]:
    data = load_offer().as_dict()
    data["portal_mode"] = get_portal_mode()
    return {"success": True, "data": data}


@app.get("/api/shareholders/search")
async def search_shareholders(name: str = "", page: int = 1, limit: int = 10) -> Dict[str, Any]:
    """Search the register by name.

    Args:
        name: Search string; at least two non-blank characters.
        page: 1-based page number.
        limit: Page size (capped at 100).

    Returns:
        The matching shareholders and a ``pagination`` object with
        ``page``, ``limit``, ``total`` and ``totalPages``.
    """
    term = name.strip()
    if len(term) < 2:
        raise HTTPException(status_code=400, detail="Please enter at least 2 characters to search")
    page = max(1, page)
    limit = min(max(1, limit), 100)
    try:
        rows, total = db.search_shareholders(term, page, limit)
    except Exception as e:  # pragma: no cover - just logs
        logger.error(f"Search error: {e}")
        raise HTTPException(status_code=500, detail="Failed to search shareholders")
    return {
        "success": True,
        "data": rows,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": db.total_pages(total, limit),
        },
    }


@app.get("/api/shareholders/{shareholder_id}")
async def get_shareholder(shareholder_id: int) -> Dict[str, Any]:
    shareholder = db.fetch_shareholder(shareholder_id)
    if not shareholder:
        raise HTTPException(status_code=404, detail="Shareholder not found")
    return {"success": True, "data": shareholder}


@app.get("/api/stockbrokers")
async def get_stockbrokers() -> Dict[str, Any]:
    return {"success": True, "data": db.list_stockbrokers()}


@app.post("/api/forms/basic-pdf")
async def basic_pdf(payload: Dict[str, Any] = Body(...)) -> Response:
    """Render the pre-filled paper form for the supplied register details."""
    if not payload.get('reg_account_number') or not payload.get('name'):
        raise HTTPException(status_code=400, detail="reg_account_number and name are required")
    try:
        pdf = documents.render_prefilled_form(payload, load_offer())
    except Exception as e:
        logger.error(f"Pre-filled form generation failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate form")
    filename = f"TIP_RIGHTS_{payload['reg_account_number']}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/forms/preview")
async def preview_form(payload: Dict[str, Any] = Body(...)) -> Response:
    """Render the filled allotment form from wizard data without saving it."""
    try:
        pdf = documents.render_rights_form(
            payload,
            load_offer(),
            stockbroker_name=_stockbroker_name(payload.get('stockbroker')),
        )
    except Exception as e:
        logger.error(f"Preview generation failed: {e}")
        raise HTTPException(status_code=500, detail="Preview generation failed")
    return Response(content=pdf, media_type="application/pdf")


async def _read_upload(upload: UploadFile) -> Tuple[bytes, str, Optional[str]]:
    """Read an upload and check it against the portal limits without storing it."""
    content = await upload.read()
    filename = upload.filename or 'upload'
    error = storage.validate_upload(filename, upload.content_type, len(content))
    if error:
        raise HTTPException(status_code=400, detail=f"{filename}: {error}")
    return content, filename, upload.content_type


@app.post("/api/forms/rights-submission")
async def submit_rights_form(request: Request) -> Dict[str, Any]:
    """Record an application lodged through the online wizard.

    The request is ``multipart/form-data`` carrying the wizard fields,
    ``shareholder_id``, a ``receipt`` file and one or more
    ``signature_<index>`` files.  Register values are copied from the
    database, the total payable is computed from the offer and a filled
    form PDF is rendered and stored alongside the uploads.
    """
    if get_portal_mode() != 'open':
        raise HTTPException(status_code=403, detail="The rights issue application period is closed")
    form = await request.form()
    shareholder_id = _optional_int(form.get('shareholder_id'))
    shareholder = db.fetch_shareholder(shareholder_id) if shareholder_id else None
    if not shareholder:
        raise HTTPException(status_code=404, detail="Shareholder not found")
    values = _coerce_fields({k: v for k, v in form.items() if not isinstance(v, UploadFile)})
    if values['action_type'] not in db.ACTION_TYPES:
        raise HTTPException(status_code=400, detail="action_type must be full_acceptance or renunciation_partial")
    values['signature_type'] = values['signature_type'] or 'single'

    receipt = form.get('receipt')
    if not isinstance(receipt, UploadFile):
        raise HTTPException(status_code=400, detail="Payment receipt is required")
    signature_uploads: List[UploadFile] = []
    for key in sorted(
        (k for k in form.keys() if k.startswith('signature_') and k[10:].isdigit()),
        key=lambda k: int(k[10:]),
    ):
        upload = form.get(key)
        if isinstance(upload, UploadFile):
            signature_uploads.append(upload)
    if not isinstance(form.get('signature_0'), UploadFile):
        raise HTTPException(status_code=400, detail="At least one signature is required")

    offer = load_offer()
    record: Dict[str, Any] = {key: shareholder[key] for key in REGISTER_FIELDS}
    record.update(values)
    record['shareholder_id'] = shareholder['id']
    if values['action_type'] == 'full_acceptance':
        additional = values['additional_shares'] if values['apply_additional'] else None
        record['additional_shares'] = additional
        record['additional_amount'] = price_for(additional, offer) if additional else None
        record['amount_payable'] = round(shareholder['amount_due'] + (record['additional_amount'] or 0), 2)
    else:
        accepted = values['shares_accepted'] or 0
        if accepted > shareholder['rights_issue']:
            raise HTTPException(
                status_code=400,
                detail="shares_accepted cannot exceed the provisional allotment",
            )
        if record['amount_payable'] is None:
            record['amount_payable'] = price_for(accepted, offer)
        if record['shares_renounced'] is None:
            record['shares_renounced'] = max(shareholder['rights_issue'] - accepted, 0)

    # every upload is checked before any of them is written
    receipt_file = await _read_upload(receipt)
    signature_files = [await _read_upload(upload) for upload in signature_uploads]
    stored: List[str] = []
    try:
        record['receipt_path'] = storage.save_upload(*receipt_file)
        stored.append(record['receipt_path'])
        record['signature_paths'] = []
        for signature_file in signature_files:
            file_id = storage.save_upload(*signature_file)
            stored.append(file_id)
            record['signature_paths'].append(file_id)
        pdf = documents.render_rights_form(
            record,
            offer,
            stockbroker_name=_stockbroker_name(record.get('stockbroker')),
        )
        record['filled_form_path'] = storage.save_generated(pdf, '.pdf')
        stored.append(record['filled_form_path'])
        submission = db.create_submission(record)
    except Exception as e:
        logger.error(f"Failed to record submission for shareholder {shareholder_id}: {e}")
        for file_id in stored:
            storage.delete(file_id)
        raise HTTPException(status_code=500, detail="Failed to record submission")
    return {"success": True, "data": submission}


@app.get("/api/admin/dashboard", dependencies=[Depends(require_admin)])
async def admin_dashboard() -> Dict[str, Any]:
    try:
        stats = db.get_dashboard_stats()
        stats['review'] = review.summarize_submissions(db.get_all_submissions(), load_offer())
    except Exception as e:  # pragma: no cover - just logs
        logger.error(f"Error computing dashboard stats: {e}")
        raise HTTPException(status_code=500, detail="Failed to compute dashboard statistics")
    return {"success": True, "data": stats}


@app.get("/api/admin/submissions", dependencies=[Depends(require_admin)])
async def admin_submissions(
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    status: Optional[str] = None,
) -> Dict[str, Any]:
    if status and status not in db.SUBMISSION_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    page = max(1, page)
    limit = min(max(1, limit), 100)
    rows, total = db.list_submissions(page, limit, search, status)
    return {
        "success": True,
        "data": rows,
        "pagination": {
            "page": page,
            "limit": limit,
            "totalCount": total,
            "totalPages": db.total_pages(total, limit),
        },
    }


@app.get("/api/admin/rights-submissions/{submission_id}", dependencies=[Depends(require_admin)])
async def admin_submission_detail(submission_id: int) -> Dict[str, Any]:
    submission = db.fetch_submission(submission_id)
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    submission['review'] = review.analyze_submission(submission, load_offer())
    return {"success": True, "data": submission}


@app.patch("/api/admin/rights-submissions/{submission_id}/status", dependencies=[Depends(require_admin)])
async def admin_update_status(submission_id: int, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    try:
        submission = db.update_submission_status(submission_id, str(payload.get('status', '')).lower())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    return {"success": True, "data": submission}


@app.get("/api/admin/export", dependencies=[Depends(require_admin)])
async def admin_export(format: str = "csv") -> Response:
    """Export every submission as CSV."""
    if format.lower() != 'csv':
        raise HTTPException(status_code=400, detail=f"Unsupported export format: {format}")
    try:
        df = pd.DataFrame(db.get_all_submissions(), columns=EXPORT_COLUMNS)
        csv_data = df.to_csv(index=False)
    except Exception as e:
        logger.error(f"Error exporting submissions: {e}")
        raise HTTPException(status_code=500, detail="Failed to export submissions")
    return Response(
        content=csv_data,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="submissions.csv"'},
    )


@app.get("/api/files/{file_id}", dependencies=[Depends(require_admin)])
async def get_file(file_id: str, download: bool = False, filename: Optional[str] = None) -> FileResponse:
    """Stream a stored file inline, or as an attachment when ``download`` is set."""
    try:
        path = storage.resolve(file_id)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(
        path,
        media_type=storage.guess_media_type(file_id),
        filename=filename or file_id,
        content_disposition_type="attachment" if download else "inline",
    )


def run(host: str = "0.0.0.0", port: int = 5000) -> None:
    """Run the API server using uvicorn.

    This helper wraps uvicorn to start the application.  It is
    intended for CLI use.  In production you may prefer to run uvicorn
    directly or under a process manager.
    """
    import uvicorn  # type: ignore

    logger.info(f"Starting rights portal API on {host}:{port}")
    uvicorn.run(
        "rights_portal.backend.server:app",
        host=host,
        port=port,
        log_level="info",
        reload=False,
    )

"""
Environment configuration for the rights issue portal.

Settings are read from environment variables when requested rather
than cached at import time, so a process (or a test) can change them
between calls.  The helpers mirror the behaviour of the hosted
deployment: a development backend on ``localhost:5000`` and the
registrar's production API otherwise.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEVELOPMENT_API_URL = "http://localhost:5000"
PRODUCTION_API_URL = "https://tip.apel.com.ng"

PORTAL_MODES = ("open", "closed", "coming_soon")

# Upload limits applied by both the wizard and the API
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_UPLOAD_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "application/pdf": ".pdf",
}

# Downloadable resources linked from the home page
RESOURCE_DOCUMENTS: Dict[str, str] = {
    "Rights Circular": "https://res.cloudinary.com/apelng/image/upload/v1763988769/Linkage_Rights_Circular_ledega_b_zke5hk.pdf",
    "Stock Broker Docket": "https://res.cloudinary.com/apelng/raw/upload/v1764578164/LINKAGE_ASSURANCE_PLC_2025_Right_Brokers_Docket_wurfeu.xls",
    "Dematerialization Form": "https://res.cloudinary.com/apelng/image/upload/v1762418562/FULL-DEMATERIAL-MIGRATION-FORM-1_1_mmibqe.pdf",
}


def get_environment() -> str:
    """Return ``development`` or ``production``."""
    env = os.getenv("RIGHTS_PORTAL_ENV", "development").strip().lower()
    return env if env in ("development", "production") else "development"


def get_api_url() -> str:
    """Resolve the backend base URL used by the frontend client.

    An explicit ``RIGHTS_API_URL`` always wins.  Otherwise development
    talks to the local server and production to the hosted API.
    """
    url = os.getenv("RIGHTS_API_URL")
    if url:
        return url.rstrip("/")
    if get_environment() == "development":
        return DEVELOPMENT_API_URL
    return PRODUCTION_API_URL


def get_admin_token() -> Optional[str]:
    """Return the shared admin bearer token, or ``None`` when admin routes are open."""
    token = os.getenv("ADMIN_TOKEN", "").strip()
    return token or None


def get_portal_mode() -> str:
    mode = os.getenv("PORTAL_MODE", "open").strip().lower()
    if mode not in PORTAL_MODES:
        logger.warning(f"Unknown PORTAL_MODE {mode!r}; falling back to 'open'")
        return "open"
    return mode


def get_upload_dir() -> str:
    """Directory that holds uploaded receipts, signatures and generated forms."""
    default_path = os.path.join(os.path.dirname(__file__), "uploads")
    return os.getenv("UPLOAD_DIR", default_path)


def get_registrar_email() -> str:
    return os.getenv("REGISTRAR_EMAIL", "registrars@apel.ng")

"""
Rights issue portal package.

This package contains the shareholder rights-issue application:
backend persistence, register import, review checks, document
rendering and the REST API, plus the HTTP client, application wizard
and Streamlit frontend used by shareholders and registrar staff.
"""

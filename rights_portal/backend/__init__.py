"""
Backend package for the rights issue portal.

Contains database operations, register parsing and validation,
submission review checks, file storage, PDF rendering and the REST
API consumed by the Streamlit frontend.
"""

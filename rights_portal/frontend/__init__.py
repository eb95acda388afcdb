"""
Frontend package for the rights issue portal.

Contains the REST API client, the application wizard state helpers,
the Streamlit user interface and the command line launcher.
"""

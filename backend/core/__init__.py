"""Core backend infrastructure for the AI pilot front end.

Configuration, logging, database, error handling, authentication and the
FastAPI dependency helpers used by the application factory in ``main``.
"""

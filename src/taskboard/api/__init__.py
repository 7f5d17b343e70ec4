"""
FastAPI task board backend.

The application factory lives in ``taskboard.api.main`` (``create_app``), which
also exposes a module-level ``app`` configured from the environment.
"""

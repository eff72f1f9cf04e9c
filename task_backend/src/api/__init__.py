"""
FastAPI Task Backend package.

The application factory lives in ``src.api.main`` (``create_app``), with a
ready-made instance at ``src.api.main:app``.
"""

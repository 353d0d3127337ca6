"""
App assembly entry point.

Re-exports the FastAPI `app` from `erp.api.main` so `uvicorn app:app` works
from the service directory.
"""

from erp.api.main import app  # noqa: F401

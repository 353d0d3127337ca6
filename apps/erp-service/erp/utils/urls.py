"""
URL utilities for building absolute links in emails and notifications.

Primary source: APP_BASE_URL (e.g., https://erp.example.com)
Fallback: APP_HOST, with a scheme added heuristically when missing.
"""
from __future__ import annotations

import os


def _add_scheme_if_missing(host: str) -> str:
    h = host.strip()
    if h.startswith("http://") or h.startswith("https://"):
        return h
    lower = h.lower()
    if lower.startswith("localhost") or lower.startswith("127.0.0.1"):
        return f"http://{h}"
    return f"https://{h}"


def get_app_base_url() -> str:
    """Return the normalized frontend base URL (no trailing slash).

    Defaults to http://localhost:8080 when neither variable is set.
    """
    base = (os.getenv("APP_BASE_URL") or "").strip()
    if not base:
        host = (os.getenv("APP_HOST") or "").strip()
        base = _add_scheme_if_missing(host) if host else "http://localhost:8080"
    return base.rstrip("/")


def build_task_url(task_id) -> str:
    return f"{get_app_base_url()}/tasks/{task_id}"

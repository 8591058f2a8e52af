"""FastAPI server adapter for the workflow service.

Business logic stays in `workflow_service.services`; routing, CORS and the
mapping of failures to HTTP status codes live here.
"""

from __future__ import annotations

__all__ = ["create_app"]

from workflow_service.server.app import create_app

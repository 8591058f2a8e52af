"""AI workflow service.

Publishes idempotent domain events and resolves the current state of
multi-step LLM workflows from immutable snapshots.
"""

__version__ = "0.1.0"

from workflow_service.config import ServiceSettings

__all__ = ["__version__", "ServiceSettings"]

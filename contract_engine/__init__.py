# ==== SMART CONTRACT ENGINE ==== #

"""
Business rule and lifecycle engine for cotton sales contracts.

Applications embed the engine in-process: call ``init_engine`` once at
startup to configure logging and tracing, then use the services directly or
through ``ContractWorkflowService`` over a repository.
"""

from typing import Optional

from contract_engine.observability.logging import init_logging
from contract_engine.observability.tracing import init_tracing
from contract_engine.settings import Settings, get_settings


__version__ = "0.1.0"


def init_engine(settings: Optional[Settings] = None) -> None:
    """
    Configure logging and tracing from settings.

    Args:
        settings (Optional[Settings]): Settings to use; global settings by default
    """
    settings = settings or get_settings()
    init_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    init_tracing(settings=settings)

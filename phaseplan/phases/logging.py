"""Phase graph failure observability.

Call this before re-raising PhaseGraphError.
"""

from loguru import logger

from phaseplan.phases.errors import PhaseGraphError


def log_phase_graph_failure(err: PhaseGraphError, context: dict[str, str | int | float | bool | None]) -> None:
    """Log a phase graph failure with context.

    Args:
        err: The PhaseGraphError that occurred
        context: Additional context dictionary for logging
    """
    logger.error(
        "PHASE_GRAPH_FAILED",
        extra={
            "code": err.code,
            "details": err.details,
            **context,
        },
    )

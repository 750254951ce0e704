"""Canonical phase graph error types.

The constraint functions report broken dates as Violation values and never
raise for them. Only a graph that cannot be scheduled at all raises, using
these types.

Standard error codes:
- CYCLIC_DEPENDENCIES: The dependency graph contains at least one cycle
"""

CYCLIC_DEPENDENCIES = "CYCLIC_DEPENDENCIES"


class PhaseGraphError(RuntimeError):
    """Raised when a phase dependency graph cannot be scheduled.

    Attributes:
        code: Error code (e.g., "CYCLIC_DEPENDENCIES")
        details: List of error detail strings
    """

    def __init__(self, code: str, details: list[str]):
        self.code = code
        self.details = details
        super().__init__(f"{code}: {details}")


class CyclicDependencyError(PhaseGraphError):
    """Raised when dependencies form a cycle; details hold one path per cycle."""

    def __init__(self, cycles: list[str]):
        super().__init__(CYCLIC_DEPENDENCIES, cycles)

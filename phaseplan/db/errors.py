"""Domain-specific errors for the persistence boundary.

The API layer maps each class to an HTTP status; nothing here is retried.
"""


class PersistenceError(Exception):
    """Base exception for all persistence errors."""

    pass


class ProjectNotFoundError(PersistenceError):
    """Raised when a project id does not exist."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


class PhaseNotFoundError(PersistenceError):
    """Raised when a phase id does not exist (or belongs to another project)."""

    def __init__(self, phase_id: str):
        self.phase_id = phase_id
        super().__init__(f"Project phase {phase_id} not found")


class DependencyNotFoundError(PersistenceError):
    """Raised when a dependency id does not exist."""

    def __init__(self, dependency_id: str):
        self.dependency_id = dependency_id
        super().__init__(f"Phase dependency {dependency_id} not found")


class InvalidPhaseRangeError(PersistenceError):
    """Raised when a phase would be stored with end date not after start date."""

    pass


class InvalidDependencyError(PersistenceError):
    """Raised when a dependency is malformed (self-reference, foreign phase)."""

    pass


class DuplicateDependencyError(PersistenceError):
    """Raised when the same predecessor -> successor edge already exists."""

    pass


class CircularDependencyError(PersistenceError):
    """Raised when a new dependency would close a cycle in the project graph."""

    pass


class BulkCorrectionError(PersistenceError):
    """Raised when a bulk correction cannot be applied; nothing was written.

    Attributes:
        failures: Mapping of phase id to failure reason
    """

    def __init__(self, failures: dict[str, str]):
        self.failures = failures
        super().__init__(f"Bulk phase correction rejected: {failures}")

"""Error taxonomy for vitality computations.

Every error carries the stage (collaborator or engine step) that produced it
so callers and logs can tell a bad argument from a broken repository or a
broken ranges file.
"""


class VitalityError(Exception):
    """Base class for all vitality errors."""

    stage = "scoring"

    def __init__(self, message: str, stage: str | None = None) -> None:
        if stage is not None:
            self.stage = stage
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


class InputError(VitalityError):
    """Raised for invalid arguments (empty path, non-positive days, naive datetimes)."""

    stage = "input"


class VCSError(VitalityError):
    """Raised when the repository history cannot be read."""

    stage = "vcs"

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class ConfigError(VitalityError):
    """Raised when the scoring ranges or settings are missing or malformed."""

    stage = "config"


class ValidationError(VitalityError):
    """Raised when the repository predates the domain epoch.

    Recoverable: the engine either reports it as a warning or re-raises it,
    depending on the caller's epoch policy.
    """

    stage = "longevity"

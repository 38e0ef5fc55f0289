class OrchestratorError(RuntimeError):
    """Base class for fatal orchestration failures."""


class RetryError(OrchestratorError):
    def __init__(self, operation: str, attempts: int, cause: BaseException | None = None):
        self.operation = operation
        self.attempts = attempts
        self.cause = cause
        detail = str(cause) if cause is not None else "Empty result received"
        super().__init__(f"Failed retrying <{operation}> for <{attempts}> times. {detail}")


class NotFoundError(OrchestratorError):
    """A project, definition, build, stage or parameter does not exist."""


class StagePolicyError(OrchestratorError):
    """A target stage is in a state that cannot be driven."""


class CheckpointError(OrchestratorError):
    """Stage approvals or checks could not be resolved."""

"""Error kinds raised while assembling a topology."""


class TopologyError(RuntimeError):
    """Base error for topology assembly.

    Args:
        message: Human readable reason.
        stage: Name of the assembly stage that failed, if known.
    """

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        self.reason = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.reason}"
        return self.reason


class InvalidEnvironmentError(TopologyError):
    """The environment name cannot be used in resource names."""


class CapacityExceededError(TopologyError):
    """The network cannot be partitioned for the requested zones."""


class InvalidPortError(TopologyError):
    """The published port is outside the TCP range."""


class InvalidWorkloadSpecError(TopologyError):
    """The workload container spec is missing required fields."""


class InvalidHealthCheckError(TopologyError):
    """The target group health-check policy is inconsistent."""


class InvalidScalingBoundsError(TopologyError):
    """Autoscaling bounds or target are invalid."""


class StageFailureError(TopologyError):
    """A provisioning call failed inside an assembly stage."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"Provisioning failed: {cause}", stage=stage)
        self.cause = cause

"""
Domain exceptions raised by the pipeline utilities and agents.
The API layer maps them onto HTTP status codes.
"""


class PipelineError(Exception):
    """Base class for domain errors."""


class NotFound(PipelineError):
    pass


class ValidationFailed(PipelineError):
    pass


class InvalidStageTransition(PipelineError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move from '{current}' to '{target}'")


class ProfileIncomplete(PipelineError):
    pass

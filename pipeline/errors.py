"""Exception types raised by the lead engine."""


class LeadEngineError(Exception):
    """Base class for engine errors."""


class InputValidationError(LeadEngineError, ValueError):
    """Caller supplied invalid input. Reported synchronously, never retried."""


class LeadNotFoundError(LeadEngineError, LookupError):
    pass


class JobNotFoundError(LeadEngineError, LookupError):
    pass


class InvalidJobTransition(LeadEngineError):
    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(f"Job {job_id} cannot move from {current!r} to {target!r}")
        self.job_id = job_id
        self.current = current
        self.target = target

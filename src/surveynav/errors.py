"""
Error taxonomy for the navigation engine.

Only a few of these ever reach the session runtime:
    - CompileError         (authoring time, bad DSL)
    - JumpValidationError  (authoring time, bad jump)
    - NotFoundFault        (navigation time, dangling reference)
    - HopLimitExceeded     (render walk guard tripped)

EvaluationFault and CacheWriteFault are recovered inside the engine
and only show up in the logs.
"""

from typing import List, Optional


class NavigationError(Exception):
    """Base class for every error raised by surveynav."""
    pass


class CompileError(NavigationError):
    """Raised when DSL text does not parse under the condition grammar."""

    def __init__(self, message: str, dsl: str = "", position: Optional[int] = None):
        self.message = message
        self.dsl = dsl
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"{message}{where}: {dsl!r}" if dsl else message)


class EvaluationFault(NavigationError):
    """A referenced answer is missing or malformed at evaluation time."""
    pass


class NotFoundFault(NavigationError):
    """A page, question, expression or jump destination does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class CacheWriteFault(NavigationError):
    """Persisting a computed order to the render state failed."""
    pass


class JumpValidationError(NavigationError):
    """One or more authoring-time problems with expressions or jumps."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "invalid jump")


class HopLimitExceeded(NavigationError):
    """The render walk resolved more hops than the configured maximum."""

    def __init__(self, max_hops: int, path: List[str]):
        self.max_hops = max_hops
        self.path = list(path)
        super().__init__(
            f"exceeded {max_hops} hops without reaching a visible destination: "
            + " -> ".join(self.path)
        )

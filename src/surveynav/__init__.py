"""
Survey Navigation & Logic Engine

Decides, for a respondent in a live session, what comes next:
    - compiles and evaluates stored DSL conditions (surveynav.evaluator)
    - resolves priority-ordered question and page jumps (surveynav.resolver)
    - orders questions and options per session, once (surveynav.randomization)

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - HTTP or CRUD endpoints
    - ORM schemas
    - The authoring UI

Survey graphs come in as surveynav.model records; the only state the
engine writes is a session's render state, through a RenderStateStore.
"""

from surveynav.config import EngineSettings, configure_logging, get_settings
from surveynav.engine import JumpTestResult, NavigationEngine
from surveynav.errors import (
    CacheWriteFault,
    CompileError,
    EvaluationFault,
    HopLimitExceeded,
    JumpValidationError,
    NavigationError,
    NotFoundFault,
)
from surveynav.evaluator import compile_expression
from surveynav.model import Destination, DestinationType, OrderMode, Position, Survey

__version__ = "0.1.0"

__all__ = [
    "CacheWriteFault",
    "CompileError",
    "Destination",
    "DestinationType",
    "EngineSettings",
    "EvaluationFault",
    "HopLimitExceeded",
    "JumpTestResult",
    "JumpValidationError",
    "NavigationEngine",
    "NavigationError",
    "NotFoundFault",
    "OrderMode",
    "Position",
    "Survey",
    "compile_expression",
    "configure_logging",
    "get_settings",
]

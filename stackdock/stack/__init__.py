"""Stack definition: loading, typed config and the startup graph."""

from stackdock.stack.graph import (
    FAILED,
    PENDING,
    READY,
    SKIPPED,
    STARTED,
    SUCCEEDED,
    PipelineResult,
    Stage,
    StagePlan,
    condition_satisfied,
    topological_order,
)
from stackdock.stack.stack import deep_merge, interpolate, load_stack, validate_stack
from stackdock.stack.types import (
    CONDITION_COMPLETED,
    CONDITION_HEALTHY,
    CONDITION_STARTED,
    KIND_HANDOFF,
    KIND_JOB,
    KIND_SERVICE,
    Dependency,
    HandoffConfig,
    HandoffRule,
    ReadinessProbe,
    ServiceConfig,
    StackConfig,
)

__all__ = [
    "CONDITION_COMPLETED",
    "CONDITION_HEALTHY",
    "CONDITION_STARTED",
    "FAILED",
    "KIND_HANDOFF",
    "KIND_JOB",
    "KIND_SERVICE",
    "PENDING",
    "READY",
    "SKIPPED",
    "STARTED",
    "SUCCEEDED",
    "Dependency",
    "HandoffConfig",
    "HandoffRule",
    "PipelineResult",
    "ReadinessProbe",
    "ServiceConfig",
    "Stage",
    "StackConfig",
    "StagePlan",
    "condition_satisfied",
    "deep_merge",
    "interpolate",
    "load_stack",
    "topological_order",
    "validate_stack",
]

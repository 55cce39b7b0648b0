"""Startup task graph: stage ordering, dependency gating and typed outcomes."""

from dataclasses import dataclass, field

from stackdock.stack.types import (
    CONDITION_COMPLETED,
    CONDITION_HEALTHY,
    Dependency,
    ServiceConfig,
    StackConfig,
)

# Stage outcomes
PENDING = "pending"
STARTED = "started"  # long-running service is up
READY = "ready"  # long-running service answered its readiness probe
SUCCEEDED = "succeeded"  # one-shot step exited 0
FAILED = "failed"
SKIPPED = "skipped"  # an upstream edge was not satisfied, never started

OK_OUTCOMES = (STARTED, READY, SUCCEEDED)


@dataclass
class Stage:
    """One service's step in the startup pipeline."""

    service: ServiceConfig
    outcome: str = PENDING
    attempts: int = 0
    detail: str = ""

    @property
    def name(self) -> str:
        return self.service.name

    @property
    def ok(self) -> bool:
        return self.outcome in OK_OUTCOMES


def condition_satisfied(condition: str, outcome: str) -> bool:
    """Whether a dependency in state `outcome` satisfies an edge with `condition`."""
    if condition == CONDITION_COMPLETED:
        return outcome == SUCCEEDED
    if condition == CONDITION_HEALTHY:
        return outcome == READY
    return outcome in OK_OUTCOMES


def topological_order(stack: StackConfig) -> list[ServiceConfig]:
    """Order services so every dependency precedes its dependents.

    Ties keep declaration order. Raises ValueError on unknown dependencies
    or cycles.
    """
    names = stack.service_names
    for svc in stack.services:
        for dep in svc.depends_on:
            if dep.service not in names:
                raise ValueError(f"Service '{svc.name}' depends on unknown service '{dep.service}'")

    remaining = {svc.name: {dep.service for dep in svc.depends_on} for svc in stack.services}
    ordered = []
    while remaining:
        ready = [svc for svc in stack.services if svc.name in remaining and not remaining[svc.name]]
        if not ready:
            cycle = ", ".join(sorted(remaining))
            raise ValueError(f"Dependency cycle between services: {cycle}")
        nxt = ready[0]
        ordered.append(nxt)
        del remaining[nxt.name]
        for deps in remaining.values():
            deps.discard(nxt.name)
    return ordered


@dataclass
class PipelineResult:
    """Typed outcome of a full pipeline run."""

    stages: list[Stage] = field(default_factory=list)
    handoff: object = None  # HandoffValues once the handoff step succeeded

    @property
    def ok(self) -> bool:
        return all(stage.ok for stage in self.stages)

    def stage(self, name: str) -> Stage:
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise KeyError(name)

    @property
    def failed(self) -> list[Stage]:
        return [s for s in self.stages if s.outcome == FAILED]

    @property
    def skipped(self) -> list[Stage]:
        return [s for s in self.stages if s.outcome == SKIPPED]

    def summary_lines(self) -> list[str]:
        lines = []
        width = max((len(s.name) for s in self.stages), default=0)
        for s in self.stages:
            line = f"  {s.name:<{width}}  {s.outcome}"
            if s.attempts > 1:
                line += f" (attempts: {s.attempts})"
            if s.detail:
                line += f" - {s.detail}"
            lines.append(line)
        return lines


class StagePlan:
    """Pipeline stages in execution order with dependency gating."""

    def __init__(self, stack: StackConfig):
        self.stages = [Stage(service=svc) for svc in topological_order(stack)]
        self._by_name = {stage.name: stage for stage in self.stages}

    def __iter__(self):
        return iter(self.stages)

    def __getitem__(self, name: str) -> Stage:
        return self._by_name[name]

    def blocking_dependency(self, stage: Stage) -> Dependency | None:
        """First dependency edge of `stage` that is not satisfied, if any."""
        for dep in stage.service.depends_on:
            upstream = self._by_name[dep.service]
            if not condition_satisfied(dep.condition, upstream.outcome):
                return dep
        return None

    def result(self, handoff=None) -> PipelineResult:
        return PipelineResult(stages=list(self.stages), handoff=handoff)

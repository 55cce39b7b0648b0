"""Stack dataclass types."""

from dataclasses import dataclass, field

# Service kinds
KIND_SERVICE = "service"  # long-running, gated on start
KIND_JOB = "job"  # one-shot, gated on successful exit
KIND_HANDOFF = "handoff"  # one-shot, extracts deployer output into the env file
SERVICE_KINDS = (KIND_SERVICE, KIND_JOB, KIND_HANDOFF)

# Dependency conditions (same names as docker compose depends_on)
CONDITION_STARTED = "service_started"
CONDITION_HEALTHY = "service_healthy"
CONDITION_COMPLETED = "service_completed_successfully"
DEPENDENCY_CONDITIONS = (CONDITION_STARTED, CONDITION_HEALTHY, CONDITION_COMPLETED)

RESTART_ON_FAILURE = "on-failure"
DEFAULT_MAX_ATTEMPTS = 5


@dataclass
class Dependency:
    """One edge of the startup graph: this service waits on `service`."""

    service: str
    condition: str = CONDITION_STARTED


@dataclass
class ReadinessProbe:
    """JSON-RPC probe against a container port published on the host."""

    port: int
    method: str
    path: str = "/"
    timeout: int = 300
    interval: int = 5


@dataclass
class ServiceConfig:
    """One container in the stack."""

    name: str
    image: str
    kind: str = KIND_SERVICE
    ports: list[str] = field(default_factory=list)
    command: list[str] = field(default_factory=list)
    entrypoint: list[str] | None = None
    environment: dict[str, str] = field(default_factory=dict)
    volume_mount: str | None = None
    depends_on: list[Dependency] = field(default_factory=list)
    restart: str | None = None
    max_attempts: int = 1
    backoff: float = 5.0
    readiness: ReadinessProbe | None = None

    @property
    def is_oneshot(self) -> bool:
        """Jobs and handoff steps run to completion; services keep running."""
        return self.kind in (KIND_JOB, KIND_HANDOFF)

    @property
    def port_mappings(self) -> list[tuple[int, int]]:
        """Published ports as (host_port, container_port) pairs."""
        mappings = []
        for spec in self.ports:
            parts = str(spec).split("/")[0].split(":")
            if len(parts) == 1:
                mappings.append((int(parts[0]), int(parts[0])))
            else:
                # "ip:host:container" or "host:container"
                mappings.append((int(parts[-2]), int(parts[-1])))
        return mappings

    def host_port(self, container_port: int) -> int | None:
        """Host port publishing `container_port`, or None if unpublished."""
        for host, container in self.port_mappings:
            if container == container_port:
                return host
        return None


@dataclass
class HandoffRule:
    """Extract one scalar from a deployer JSON document into an env key."""

    key: str
    source: str  # file name relative to the handoff service's volume mount
    query: str  # jq-style path, e.g. ".kakarot.address"


@dataclass
class HandoffConfig:
    """How deployer output becomes the gateway's env file."""

    env_file: str = ".env"
    strict: bool = True
    rules: list[HandoffRule] = field(default_factory=list)

    @property
    def keys(self) -> list[str]:
        return [rule.key for rule in self.rules]

    @property
    def sources(self) -> list[str]:
        """Distinct source files in rule order."""
        seen = []
        for rule in self.rules:
            if rule.source not in seen:
                seen.append(rule.source)
        return seen


def _parse_environment(env) -> dict[str, str]:
    """Accept both mapping and compose-style ["KEY=value"] list forms."""
    if env is None:
        return {}
    if isinstance(env, dict):
        return {str(k): "" if v is None else str(v) for k, v in env.items()}
    result = {}
    for item in env:
        key, _, value = str(item).partition("=")
        result[key.strip()] = value.strip()
    return result


def _parse_depends_on(deps) -> list[Dependency]:
    """Accept both list form (start-gated) and mapping form with conditions."""
    if not deps:
        return []
    if isinstance(deps, dict):
        return [
            Dependency(service=name, condition=(opts or {}).get("condition", CONDITION_STARTED))
            for name, opts in deps.items()
        ]
    return [Dependency(service=str(name)) for name in deps]


def _parse_command(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return [str(v) for v in value]


@dataclass
class StackConfig:
    """Complete stack configuration."""

    name: str = "kakarot"
    network: str = "internal"
    volume: str = "deployments"
    services: list[ServiceConfig] = field(default_factory=list)
    handoff: HandoffConfig = field(default_factory=HandoffConfig)

    @classmethod
    def from_dict(cls, d: dict) -> "StackConfig":
        """Build a StackConfig from a (post-merge, post-interpolation) config dict."""
        services = []
        for name, s in (d.get("services") or {}).items():
            s = s or {}
            restart = s.get("restart")
            default_attempts = DEFAULT_MAX_ATTEMPTS if restart == RESTART_ON_FAILURE else 1

            readiness_dict = s.get("readiness")
            readiness = ReadinessProbe(**readiness_dict) if readiness_dict is not None else None

            entrypoint = s.get("entrypoint")
            services.append(
                ServiceConfig(
                    name=name,
                    image=s.get("image", ""),
                    kind=s.get("kind", KIND_SERVICE),
                    ports=[str(p) for p in s.get("ports", [])],
                    command=_parse_command(s.get("command")),
                    entrypoint=_parse_command(entrypoint) if entrypoint is not None else None,
                    environment=_parse_environment(s.get("environment")),
                    volume_mount=s.get("volume_mount"),
                    depends_on=_parse_depends_on(s.get("depends_on")),
                    restart=restart,
                    max_attempts=s.get("max_attempts", default_attempts),
                    backoff=s.get("backoff", 5.0),
                    readiness=readiness,
                )
            )

        handoff_dict = d.get("handoff") or {}
        handoff = HandoffConfig(
            env_file=handoff_dict.get("env_file", ".env"),
            strict=handoff_dict.get("strict", True),
            rules=[HandoffRule(**r) for r in handoff_dict.get("rules", [])],
        )

        return cls(
            name=d.get("name", "kakarot"),
            network=d.get("network", "internal"),
            volume=d.get("volume", "deployments"),
            services=services,
            handoff=handoff,
        )

    @property
    def service_names(self) -> list[str]:
        return [s.name for s in self.services]

    def service(self, name: str) -> ServiceConfig:
        """Look up a service by name."""
        for s in self.services:
            if s.name == name:
                return s
        available = ", ".join(self.service_names) or "none"
        raise ValueError(f"Unknown service '{name}'. Available services: {available}")

    @property
    def handoff_service(self) -> ServiceConfig | None:
        """The service that writes the env file, if the stack has one."""
        for s in self.services:
            if s.kind == KIND_HANDOFF:
                return s
        return None

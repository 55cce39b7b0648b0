"""Stack run parameters dataclass."""

from dataclasses import dataclass, field

from stackdock.stack.types import StackConfig


@dataclass
class StackParams:
    """All parameters needed for one stack operation. Serializable for future API use."""

    stack: StackConfig = field(default_factory=StackConfig)
    deploy_dir: str = "."  # where docker-compose.yaml is written and compose runs
    host: str = "localhost"  # hostname for endpoint display and probes
    dry_run: bool = False
    reuse: bool = False  # skip `docker compose down` before bringing the stack up
    volumes: bool = False  # also remove the named volume on teardown

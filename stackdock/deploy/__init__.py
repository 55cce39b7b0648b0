"""Deploy library: compose generation, volume handoff and stack orchestration."""

from stackdock.deploy.compose import (
    COMPOSE_FILE,
    env_file_path,
    generate_compose,
    generate_handoff_script,
    volume_path,
)
from stackdock.deploy.orchestrate import (
    down,
    read_handoff_env,
    run_down,
    run_pipeline,
    run_restart,
    run_up,
    up,
    wait_ready,
)
from stackdock.deploy.params import StackParams

__all__ = [
    "COMPOSE_FILE",
    "StackParams",
    "down",
    "env_file_path",
    "generate_compose",
    "generate_handoff_script",
    "read_handoff_env",
    "run_down",
    "run_pipeline",
    "run_restart",
    "run_up",
    "up",
    "volume_path",
    "wait_ready",
]

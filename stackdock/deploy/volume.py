"""Shared-volume access through a throwaway container of the handoff service."""

import logging
import shlex

from stackdock.deploy.compose import volume_path
from stackdock.stack.types import StackConfig

logger = logging.getLogger(__name__)


def _compose_run(stack: StackConfig, entrypoint: str, *args) -> str:
    svc = stack.handoff_service
    if svc is None:
        raise ValueError("Stack has no handoff service to reach the shared volume through")
    return shlex.join(
        ["docker", "compose", "run", "--rm", "--no-deps", "-T", "--entrypoint", entrypoint, svc.name, *args]
    )


async def read_volume_file(run_cmd, stack: StackConfig, filename: str):
    """Read a file from the shared volume. Returns (returncode, text)."""
    path = volume_path(stack, filename)
    rc, stdout, stderr = await run_cmd(_compose_run(stack, "cat", path), stream=False, timeout=120)
    if rc != 0:
        logger.error(f"Could not read {path} from volume {stack.volume}: {stderr.strip() or f'exit {rc}'}")
    return rc, stdout


async def write_volume_file(run_cmd, stack: StackConfig, filename: str, content: str) -> bool:
    """Write a file onto the shared volume via a temp file and rename."""
    path = volume_path(stack, filename)
    tmp = f"{path}.tmp"
    script = f"cat > {shlex.quote(tmp)} && mv {shlex.quote(tmp)} {shlex.quote(path)}"
    rc, _, stderr = await run_cmd(
        _compose_run(stack, "/bin/sh", "-c", script),
        stream=False,
        timeout=120,
        input_text=content,
    )
    if rc != 0:
        logger.error(f"Could not write {path} to volume {stack.volume}: {stderr.strip() or f'exit {rc}'}")
    return rc == 0

"""Stack orchestration: run_pipeline, run_up, run_down, run_restart."""

import asyncio
import json
import logging
import shlex

from stackdock.deploy.compose import COMPOSE_FILE, generate_compose, readiness_payload
from stackdock.deploy.local import make_run_cmd, make_write_file
from stackdock.deploy.params import StackParams
from stackdock.deploy.volume import read_volume_file, write_volume_file
from stackdock.handoff import (
    HandoffError,
    HandoffValidationError,
    HandoffValues,
    extract_handoff,
    validate_env,
)
from stackdock.stack.graph import (
    FAILED,
    READY,
    SKIPPED,
    STARTED,
    SUCCEEDED,
    PipelineResult,
    Stage,
    StagePlan,
)
from stackdock.stack.types import KIND_HANDOFF, KIND_JOB, ServiceConfig, StackConfig

logger = logging.getLogger(__name__)

JOB_TIMEOUT = 1800  # deployer declares and deploys every contract


def compose_cmd(*args) -> str:
    return shlex.join(["docker", "compose", *args])


def probe_cmd(svc: ServiceConfig, host="localhost") -> str:
    """curl command that sends the readiness JSON-RPC request to the published port."""
    probe = svc.readiness
    port = svc.host_port(probe.port)
    url = f"http://{host}:{port}{probe.path}"
    return shlex.join(
        [
            "curl", "-sf", "-X", "POST",
            "-H", "Content-Type: application/json",
            "-d", readiness_payload(probe.method),
            url,
        ]
    )


def _is_rpc_result(stdout: str) -> bool:
    try:
        body = json.loads(stdout)
    except json.JSONDecodeError:
        return False
    return isinstance(body, dict) and "result" in body


async def wait_ready(run_cmd, svc: ServiceConfig, dry_run=False, sleep=asyncio.sleep) -> bool:
    """Poll the service's readiness probe until it returns a JSON-RPC result."""
    probe = svc.readiness
    cmd = probe_cmd(svc)
    elapsed = 0
    while elapsed < probe.timeout:
        rc, stdout, _ = await run_cmd(cmd, stream=False, timeout=30)
        if rc == 0 and _is_rpc_result(stdout):
            return True
        if dry_run:
            return True
        await sleep(probe.interval)
        elapsed += probe.interval
    logger.error(f"{svc.name}: readiness probe '{probe.method}' timed out after {probe.timeout}s")
    return False


async def _start_service(run_cmd, stage: Stage, dry_run, sleep):
    svc = stage.service
    stage.attempts = 1
    rc, _, _ = await run_cmd(compose_cmd("up", "-d", "--no-deps", svc.name), timeout=600, log_output=True)
    if rc != 0:
        stage.outcome = FAILED
        stage.detail = f"docker compose up exited {rc}"
        return
    stage.outcome = STARTED
    if svc.readiness is None:
        return

    logger.info(f"Waiting for {svc.name} to answer {svc.readiness.method}...")
    if await wait_ready(run_cmd, svc, dry_run=dry_run, sleep=sleep):
        stage.outcome = READY
    else:
        stage.outcome = FAILED
        stage.detail = f"not ready after {svc.readiness.timeout}s"


async def _run_job(run_cmd, stage: Stage, sleep):
    """Run a one-shot container to completion, retrying with exponential backoff."""
    svc = stage.service
    rc = 1
    for attempt in range(1, svc.max_attempts + 1):
        stage.attempts = attempt
        rc, _, _ = await run_cmd(compose_cmd("run", "--rm", "--no-deps", svc.name), timeout=JOB_TIMEOUT, log_output=True)
        if rc == 0:
            stage.outcome = SUCCEEDED
            return
        if attempt < svc.max_attempts:
            delay = svc.backoff * 2 ** (attempt - 1)
            logger.warning(f"{svc.name} exited {rc} (attempt {attempt}/{svc.max_attempts}), retrying in {delay:g}s")
            await sleep(delay)
    stage.outcome = FAILED
    stage.detail = f"exited {rc} after {svc.max_attempts} attempt(s)"


async def _run_handoff(run_cmd, stack: StackConfig, stage: Stage, dry_run) -> HandoffValues | None:
    """Extract deployer output into the env file, then read it back and validate it."""
    stage.attempts = 1
    documents = {}
    for source in stack.handoff.sources:
        rc, text = await read_volume_file(run_cmd, stack, source)
        if rc != 0:
            stage.outcome = FAILED
            stage.detail = f"could not read {source}"
            return None
        documents[source] = text

    if dry_run:
        logger.info(f"[dry-run] extract {', '.join(stack.handoff.keys)} into {stack.handoff.env_file}")
        stage.outcome = SUCCEEDED
        return None

    try:
        values = extract_handoff(stack.handoff, documents)
        content = values.to_env()
        validate_env(content, stack.handoff.keys, strict=stack.handoff.strict)
    except HandoffError as e:
        stage.outcome = FAILED
        stage.detail = str(e)
        return None

    if not await write_volume_file(run_cmd, stack, stack.handoff.env_file, content):
        stage.outcome = FAILED
        stage.detail = f"could not write {stack.handoff.env_file}"
        return None

    rc, written = await read_volume_file(run_cmd, stack, stack.handoff.env_file)
    if rc != 0:
        stage.outcome = FAILED
        stage.detail = f"could not read back {stack.handoff.env_file}"
        return None
    try:
        validate_env(written, stack.handoff.keys, strict=stack.handoff.strict)
    except HandoffValidationError as e:
        stage.outcome = FAILED
        stage.detail = str(e)
        return None

    stage.outcome = SUCCEEDED
    return values


async def run_pipeline(run_cmd, stack: StackConfig, dry_run=False, sleep=asyncio.sleep) -> PipelineResult:
    """Run every stage in dependency order.

    A stage whose dependency edges are not satisfied is skipped and never
    started, so a failed job blocks everything downstream of it.
    """
    plan = StagePlan(stack)
    handoff = None

    for stage in plan:
        blocked = plan.blocking_dependency(stage)
        if blocked is not None:
            upstream = plan[blocked.service]
            stage.outcome = SKIPPED
            stage.detail = f"{blocked.service} is {upstream.outcome}, needs {blocked.condition}"
            logger.warning(f"Skipping {stage.name}: {stage.detail}")
            continue

        svc = stage.service
        logger.info(f"Starting {svc.name} ({svc.kind})...")
        if svc.kind == KIND_HANDOFF:
            handoff = await _run_handoff(run_cmd, stack, stage, dry_run)
        elif svc.kind == KIND_JOB:
            await _run_job(run_cmd, stage, sleep)
        else:
            await _start_service(run_cmd, stage, dry_run, sleep)

        if stage.outcome == FAILED:
            logger.error(f"{svc.name} failed: {stage.detail}")
            logger.error("Container logs:")
            await run_cmd(compose_cmd("logs", "--tail=100", svc.name), timeout=60, log_output=True)
        else:
            logger.info(f"{svc.name}: {stage.outcome}")

    return plan.result(handoff)


async def run_up(run_cmd, write_file, stack: StackConfig, host="localhost", dry_run=False, reuse=False, sleep=asyncio.sleep):
    """Bring the stack up.

    Args:
        run_cmd: async callable(command, stream=True, timeout=600, log_output=False, input_text=None)
            -> (returncode, stdout, stderr)
        write_file: async callable(path, content) -> None - writes into the deploy dir
        stack: resolved StackConfig
        host: hostname for endpoint display
        dry_run: if True, skip readiness polling and handoff extraction
        reuse: if True, keep existing containers instead of `docker compose down` first
        sleep: async sleep used between retries and probes

    Returns the PipelineResult, or None if the stack could not be prepared.
    """
    await write_file(COMPOSE_FILE, generate_compose(stack))

    # Step 1: Pull images
    logger.info("Pulling images...")
    rc, _, _ = await run_cmd(compose_cmd("pull"), timeout=1800, log_output=True)
    if rc != 0:
        logger.error("Failed to pull images")
        return None

    # Step 2: Clean up old containers (the volume survives)
    if not reuse:
        logger.info("Cleaning up old containers...")
        await run_cmd(compose_cmd("down"), timeout=300, log_output=True)

    # Step 3: Run the startup pipeline
    result = await run_pipeline(run_cmd, stack, dry_run=dry_run, sleep=sleep)

    logger.info("\nStages:")
    for line in result.summary_lines():
        logger.info(line)

    if not result.ok:
        return result

    # Step 4: Print endpoint info
    status = "dry-run (not deployed)" if dry_run else "running"
    logger.info("")
    for svc in stack.services:
        if svc.readiness is not None and svc.host_port(svc.readiness.port) is not None:
            logger.info(f"{svc.name}: http://{host}:{svc.host_port(svc.readiness.port)}{svc.readiness.path}")
    if result.handoff is not None:
        for key, value in result.handoff.values.items():
            logger.info(f"{key}={value}")
    logger.info(f"Status: {status}")
    return result


async def run_down(run_cmd, volumes=False):
    """Tear down: docker compose down, optionally removing the shared volume."""
    logger.info("Tearing down...")
    args = ["down", "--volumes"] if volumes else ["down"]
    rc, _, _ = await run_cmd(compose_cmd(*args), timeout=300, log_output=True)
    if rc == 0:
        logger.info("Teardown complete." + (" Volume removed." if volumes else ""))
    else:
        logger.error("Teardown failed.")
    return rc == 0


async def read_handoff_env(run_cmd, stack: StackConfig) -> dict[str, str]:
    """Read and validate the handoff env file from the shared volume."""
    rc, text = await read_volume_file(run_cmd, stack, stack.handoff.env_file)
    if rc != 0:
        raise HandoffValidationError(f"{stack.handoff.env_file} not found on volume {stack.volume}")
    return validate_env(text, stack.handoff.keys, strict=stack.handoff.strict)


def _consumes_handoff(stack: StackConfig, svc: ServiceConfig) -> bool:
    handoff_svc = stack.handoff_service
    return handoff_svc is not None and any(dep.service == handoff_svc.name for dep in svc.depends_on)


async def run_restart(run_cmd, stack: StackConfig, service: str, dry_run=False, sleep=asyncio.sleep):
    """Restart one long-running service alone, keeping the volume.

    For a consumer of the handoff env file, the file is read before and
    after the restart and must be unchanged.
    """
    svc = stack.service(service)
    if svc.is_oneshot:
        logger.error(f"{svc.name} is a one-shot {svc.kind}; rerun the stack with 'up' instead")
        return False

    check_env = _consumes_handoff(stack, svc) and not dry_run
    before = None
    if check_env:
        try:
            before = await read_handoff_env(run_cmd, stack)
        except HandoffValidationError as e:
            logger.error(f"Cannot restart {svc.name}: {e}")
            return False

    logger.info(f"Restarting {svc.name}...")
    rc, _, _ = await run_cmd(compose_cmd("restart", svc.name), timeout=300, log_output=True)
    if rc != 0:
        logger.error(f"Failed to restart {svc.name}")
        return False

    if svc.readiness is not None:
        logger.info(f"Waiting for {svc.name} to answer {svc.readiness.method}...")
        if not await wait_ready(run_cmd, svc, dry_run=dry_run, sleep=sleep):
            return False

    if check_env:
        try:
            after = await read_handoff_env(run_cmd, stack)
        except HandoffValidationError as e:
            logger.error(f"{svc.name} restarted but the env file is no longer valid: {e}")
            return False
        if after != before:
            logger.error(f"{stack.handoff.env_file} changed while restarting {svc.name}")
            return False
        logger.info(f"{svc.name} restarted with unchanged {', '.join(stack.handoff.keys)}.")
    else:
        logger.info(f"{svc.name} restarted.")
    return True


async def up(params: StackParams):
    """Bring a stack up locally. Single entry point."""
    run_cmd = make_run_cmd(params.deploy_dir, dry_run=params.dry_run)
    write_file = make_write_file(params.deploy_dir, dry_run=params.dry_run)
    return await run_up(run_cmd, write_file, params.stack, host=params.host, dry_run=params.dry_run, reuse=params.reuse)


async def down(params: StackParams) -> bool:
    """Tear a stack down locally."""
    run_cmd = make_run_cmd(params.deploy_dir, dry_run=params.dry_run)
    return await run_down(run_cmd, volumes=params.volumes)

"""Docker Compose generation for a stack."""

import json
import posixpath
import shlex

import yaml

from stackdock.stack.types import CONDITION_HEALTHY, KIND_HANDOFF, ServiceConfig, StackConfig

COMPOSE_FILE = "docker-compose.yaml"


def _escape(value: str) -> str:
    """Escape '$' so compose passes the value through verbatim."""
    return value.replace("$", "$$")


def volume_path(stack: StackConfig, filename: str) -> str:
    """Absolute path of a file on the shared volume, as the handoff service sees it."""
    svc = stack.handoff_service
    if svc is None or not svc.volume_mount:
        raise ValueError("Stack has no handoff service with a volume mount")
    return posixpath.join(svc.volume_mount, filename)


def env_file_path(stack: StackConfig) -> str:
    """Path of the handoff env file inside the handoff service."""
    return volume_path(stack, stack.handoff.env_file)


def generate_handoff_script(stack: StackConfig) -> str:
    """Build the jq shell script the handoff service runs under plain `docker compose up`.

    Strict mode fails the container (and so blocks the gateway) when a
    field is missing, empty or null. Non-strict mode writes whatever jq
    prints, null included.
    """
    target = env_file_path(stack)
    tmp = f"{target}.tmp"
    lines = []
    if stack.handoff.strict:
        lines.append("set -e")
        for rule in stack.handoff.rules:
            source = shlex.quote(volume_path(stack, rule.source))
            lines.append(f"{rule.key}=$(jq -er {shlex.quote(rule.query)} {source})")
            lines.append(f'[ -n "${rule.key}" ] && [ "${rule.key}" != null ] || exit 1')
        pairs = " ".join(f'"{rule.key}=${rule.key}"' for rule in stack.handoff.rules)
        lines.append(f"printf '%s\\n' {pairs} > {shlex.quote(tmp)}")
    else:
        redirect = ">"
        for rule in stack.handoff.rules:
            source = shlex.quote(volume_path(stack, rule.source))
            lines.append(f'echo "{rule.key}=$(jq -r {shlex.quote(rule.query)} {source})" {redirect} {shlex.quote(tmp)}')
            redirect = ">>"
    lines.append(f"mv {shlex.quote(tmp)} {shlex.quote(target)}")
    return "\n".join(lines) + "\n"


def readiness_payload(method: str) -> str:
    """JSON-RPC request body for a readiness probe."""
    return json.dumps({"jsonrpc": "2.0", "id": 1, "method": method, "params": []}, separators=(",", ":"))


def _healthcheck(svc: ServiceConfig) -> dict:
    probe = svc.readiness
    url = f"http://localhost:{probe.port}{probe.path}"
    test = (
        f"curl -sf -X POST -H 'Content-Type: application/json' "
        f"-d '{readiness_payload(probe.method)}' {url}"
    )
    return {
        "test": ["CMD-SHELL", _escape(test)],
        "interval": f"{probe.interval}s",
        "timeout": "10s",
        "retries": max(1, probe.timeout // max(1, probe.interval)),
    }


def _service_entry(stack: StackConfig, svc: ServiceConfig, needs_healthcheck: bool) -> dict:
    entry = {"image": svc.image}
    if svc.ports:
        entry["ports"] = list(svc.ports)
    if svc.kind == KIND_HANDOFF:
        entry["entrypoint"] = ["/bin/sh", "-c", _escape(generate_handoff_script(stack))]
    else:
        if svc.entrypoint is not None:
            entry["entrypoint"] = [_escape(a) for a in svc.entrypoint]
        if svc.command:
            entry["command"] = [_escape(a) for a in svc.command]
    if svc.environment:
        entry["environment"] = [f"{k}={_escape(v)}" for k, v in svc.environment.items()]
    if svc.volume_mount:
        entry["volumes"] = [f"{stack.volume}:{svc.volume_mount}"]
    if svc.depends_on:
        entry["depends_on"] = {dep.service: {"condition": dep.condition} for dep in svc.depends_on}
    if svc.restart:
        entry["restart"] = svc.restart
    if needs_healthcheck and svc.readiness is not None:
        entry["healthcheck"] = _healthcheck(svc)
    entry["networks"] = [stack.network]
    return entry


def generate_compose(stack: StackConfig) -> str:
    """Build docker-compose.yaml string from a resolved stack.

    Healthchecks are only emitted for services another service waits on
    with service_healthy.
    """
    healthy_targets = {
        dep.service for svc in stack.services for dep in svc.depends_on if dep.condition == CONDITION_HEALTHY
    }
    compose = {
        "name": stack.name,
        "services": {
            svc.name: _service_entry(stack, svc, svc.name in healthy_targets) for svc in stack.services
        },
        "networks": {stack.network: {}},
        "volumes": {stack.volume: {}},
    }
    return yaml.safe_dump(compose, sort_keys=False, default_flow_style=False, width=1000)

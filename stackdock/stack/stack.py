"""Stack loading: stack.yaml, variants, env interpolation and validation."""

import logging
import os
import re

import yaml

from stackdock.handoff.errors import QueryPathError
from stackdock.handoff.query import parse_query
from stackdock.stack.graph import topological_order
from stackdock.stack.types import (
    CONDITION_COMPLETED,
    CONDITION_HEALTHY,
    DEPENDENCY_CONDITIONS,
    KIND_HANDOFF,
    SERVICE_KINDS,
    StackConfig,
)

logger = logging.getLogger(__name__)

STACK_FILE = "stack.yaml"

# ${NAME} or ${NAME:-default}
_INTERPOLATION_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")
_ENV_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def deep_merge(base, override):
    """Recursive dict merge. Override wins for scalars."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def interpolate(value: str, environ=None) -> str:
    """Expand ${NAME} and ${NAME:-default} from the host environment."""
    if environ is None:
        environ = os.environ

    def _sub(match):
        name, default = match.group(1), match.group(2)
        current = environ.get(name)
        if current:
            return current
        if default is not None:
            return default
        logger.warning(f"Variable {name} is not set, substituting an empty string")
        return ""

    return _INTERPOLATION_RE.sub(_sub, value)


def _interpolate_tree(node, environ):
    if isinstance(node, str):
        return interpolate(node, environ)
    if isinstance(node, dict):
        return {k: _interpolate_tree(v, environ) for k, v in node.items()}
    if isinstance(node, list):
        return [_interpolate_tree(v, environ) for v in node]
    return node


def validate_stack(stack: StackConfig):
    """Raise ValueError if the stack's services or handoff rules are inconsistent."""
    if not stack.services:
        raise ValueError("Stack defines no services")

    for svc in stack.services:
        if not svc.image:
            raise ValueError(f"Service '{svc.name}' has no image")
        if svc.kind not in SERVICE_KINDS:
            raise ValueError(f"Service '{svc.name}' has unknown kind '{svc.kind}'. Expected one of: {', '.join(SERVICE_KINDS)}")
        if svc.max_attempts < 1:
            raise ValueError(f"Service '{svc.name}' max_attempts must be at least 1")
        if svc.readiness is not None:
            if svc.is_oneshot:
                raise ValueError(f"Service '{svc.name}' is a one-shot {svc.kind} and cannot have a readiness probe")
            if svc.host_port(svc.readiness.port) is None:
                raise ValueError(f"Service '{svc.name}' readiness port {svc.readiness.port} is not published")
        for dep in svc.depends_on:
            if dep.condition not in DEPENDENCY_CONDITIONS:
                raise ValueError(f"Service '{svc.name}' has unknown dependency condition '{dep.condition}'")

    # Raises on unknown services and cycles
    topological_order(stack)

    for svc in stack.services:
        for dep in svc.depends_on:
            upstream = stack.service(dep.service)
            if dep.condition == CONDITION_COMPLETED and not upstream.is_oneshot:
                raise ValueError(
                    f"Service '{svc.name}' waits for '{dep.service}' to complete, "
                    f"but '{dep.service}' is a long-running service"
                )
            if dep.condition == CONDITION_HEALTHY and upstream.readiness is None:
                raise ValueError(
                    f"Service '{svc.name}' waits for '{dep.service}' to be healthy, "
                    f"but '{dep.service}' has no readiness probe"
                )

    handoff_services = [s for s in stack.services if s.kind == KIND_HANDOFF]
    if len(handoff_services) > 1:
        names = ", ".join(s.name for s in handoff_services)
        raise ValueError(f"Only one handoff service is allowed, found: {names}")
    if not handoff_services:
        if stack.handoff.rules:
            raise ValueError("Stack has handoff rules but no service of kind 'handoff'")
        return

    handoff_svc = handoff_services[0]
    if not handoff_svc.volume_mount:
        raise ValueError(f"Handoff service '{handoff_svc.name}' needs a volume_mount")
    if not stack.handoff.rules:
        raise ValueError(f"Handoff service '{handoff_svc.name}' has no handoff rules")
    keys = stack.handoff.keys
    duplicates = sorted({k for k in keys if keys.count(k) > 1})
    if duplicates:
        raise ValueError(f"Duplicate handoff keys: {', '.join(duplicates)}")
    for key in keys:
        if not _ENV_KEY_RE.match(key):
            raise ValueError(f"Invalid handoff key '{key}'")
    for rule in stack.handoff.rules:
        try:
            parse_query(rule.query)
        except QueryPathError as e:
            raise ValueError(f"Handoff rule {rule.key}: {e}") from e


def load_stack(stack_dir, variant=None, environ=None) -> StackConfig:
    """Load stack.yaml from stack_dir, optionally deep-merging a variant.

    Returns a validated StackConfig.
    """
    stack_path = os.path.join(stack_dir, STACK_FILE)
    if not os.path.isfile(stack_path):
        raise FileNotFoundError(f"Stack file not found: {stack_path}")

    with open(stack_path) as f:
        config = yaml.safe_load(f) or {}

    variants = config.pop("variants", {}) or {}

    if variant is not None:
        if variant not in variants:
            available = ", ".join(sorted(variants.keys())) if variants else "none"
            raise ValueError(f"Unknown variant '{variant}'. Available variants: {available}")
        config = deep_merge(config, variants[variant])

    config = _interpolate_tree(config, environ)

    stack = StackConfig.from_dict(config)
    validate_stack(stack)
    return stack

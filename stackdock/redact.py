"""Centralized secret redaction for logs and rendered commands."""

import logging
import os
import re

# Host env vars whose values should be redacted from all output
_SECRET_ENV_VARS = [
    "PRIVATE_KEY",
    "EVM_PRIVATE_KEY",
    "STARKNET_PRIVATE_KEY",
    "KAKAROT_EVM_PRIVATE_KEY",
]

# Stack environment keys treated as secrets regardless of the host env
_SECRET_KEY_MARKERS = ("PRIVATE_KEY", "SECRET", "PASSWORD", "TOKEN")

_MIN_SECRET_LENGTH = 8  # skip short values to avoid false positives


def is_secret_key(key: str) -> bool:
    upper = key.upper()
    return any(marker in upper for marker in _SECRET_KEY_MARKERS)


def _collect_secret_values() -> set[str]:
    values = set()
    for var in _SECRET_ENV_VARS:
        val = os.environ.get(var, "")
        if len(val) >= _MIN_SECRET_LENGTH:
            values.add(val)
    return values


def _build_patterns(values: set[str]) -> list[re.Pattern]:
    # Sort by length descending so longer values match first
    return [re.compile(re.escape(v)) for v in sorted(values, key=len, reverse=True)]


# Lazy-initialized module cache
_patterns: list[re.Pattern] | None = None
_registered: set[str] = set()


def _get_patterns() -> list[re.Pattern]:
    global _patterns
    if _patterns is None:
        _patterns = _build_patterns(_collect_secret_values() | _registered)
    return _patterns


def register_secrets(values):
    """Add secret values (e.g. from a loaded stack) to the redaction set."""
    global _patterns
    added = {v for v in values if v and len(v) >= _MIN_SECRET_LENGTH} - _registered
    if added:
        _registered.update(added)
        _patterns = None


def register_stack_secrets(stack):
    """Register every secret-looking environment value of a stack's services."""
    register_secrets(
        value for svc in stack.services for key, value in svc.environment.items() if is_secret_key(key)
    )


def redact_secrets(text: str) -> str:
    """Replace known secret values with '***'."""
    return _apply(text, _get_patterns())


def _apply(text: str, patterns: list[re.Pattern]) -> str:
    for p in patterns:
        text = p.sub("***", text)
    return text


class SecretRedactingFilter(logging.Filter):
    """Logging filter that replaces secret values in log records with '***'.

    Attached to the root logger's handler so records from every module
    pass through it. Handles both f-string messages (msg is pre-formatted)
    and %-style messages (msg + args).
    """

    def filter(self, record: logging.LogRecord) -> bool:
        patterns = _get_patterns()
        if patterns:
            record.msg = _apply(str(record.msg), patterns)
            if record.args:
                if isinstance(record.args, dict):
                    record.args = {k: _apply(v, patterns) if isinstance(v, str) else v for k, v in record.args.items()}
                elif isinstance(record.args, tuple):
                    record.args = tuple(_apply(a, patterns) if isinstance(a, str) else a for a in record.args)
        return True

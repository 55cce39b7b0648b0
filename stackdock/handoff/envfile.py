"""Env file rendering, parsing and validation for the gateway handoff."""

from stackdock.handoff.errors import HandoffValidationError

# What `jq -r` prints for a missing field
NULL_TOKEN = "null"


def render_env(values: dict[str, str]) -> str:
    """Render KEY=value lines, newline-terminated."""
    lines = []
    for key, value in values.items():
        if "\n" in value or "\r" in value:
            raise HandoffValidationError(f"{key}: value spans multiple lines")
        lines.append(f"{key}={value}\n")
    return "".join(lines)


def parse_env(text: str) -> dict[str, str]:
    """Parse KEY=value lines. Blank lines and # comments are ignored."""
    values = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            raise HandoffValidationError(f"Line {lineno} is not KEY=value: {line!r}")
        key, _, value = line.partition("=")
        key = key.strip()
        if key in values:
            raise HandoffValidationError(f"Duplicate key {key} on line {lineno}")
        values[key] = value.strip()
    return values


def validate_env(text: str, keys: list[str], strict: bool = True) -> dict[str, str]:
    """Check the env file holds exactly `keys`, all non-empty.

    In strict mode a value equal to the extraction null token is rejected too.
    Returns the parsed values.
    """
    values = parse_env(text)

    missing = [k for k in keys if k not in values]
    extra = [k for k in values if k not in keys]
    if missing or extra:
        problems = []
        if missing:
            problems.append(f"missing {', '.join(missing)}")
        if extra:
            problems.append(f"unexpected {', '.join(extra)}")
        raise HandoffValidationError(f"Env file keys do not match: {'; '.join(problems)}")

    empty = [k for k in keys if not values[k]]
    if empty:
        raise HandoffValidationError(f"Empty values for: {', '.join(empty)}")

    if strict:
        nulls = [k for k in keys if values[k] == NULL_TOKEN]
        if nulls:
            raise HandoffValidationError(f"Unresolved ({NULL_TOKEN}) values for: {', '.join(nulls)}")

    return values

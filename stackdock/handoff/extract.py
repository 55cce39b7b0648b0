"""Field extraction: deployer JSON documents to typed handoff values."""

import json
import logging
from dataclasses import dataclass, field

from stackdock.handoff.envfile import NULL_TOKEN, render_env
from stackdock.handoff.errors import HandoffError, MissingFieldError
from stackdock.handoff.query import evaluate, render_raw
from stackdock.stack.types import HandoffConfig

logger = logging.getLogger(__name__)


@dataclass
class HandoffValues:
    """Values passed from the deployer to the gateway, keyed by env name."""

    values: dict[str, str] = field(default_factory=dict)

    def __getitem__(self, key: str) -> str:
        return self.values[key]

    def to_env(self) -> str:
        return render_env(self.values)


def parse_documents(documents: dict[str, str]) -> dict[str, object]:
    """Parse raw JSON text per source file name."""
    parsed = {}
    for source, text in documents.items():
        if not text.strip():
            raise HandoffError(f"{source} is empty")
        try:
            parsed[source] = json.loads(text)
        except json.JSONDecodeError as e:
            raise HandoffError(f"{source} is not valid JSON: {e}") from e
    return parsed


def extract_handoff(config: HandoffConfig, documents: dict[str, str]) -> HandoffValues:
    """Apply every handoff rule to the deployer documents.

    Args:
        config: handoff rules and strictness
        documents: raw JSON text keyed by source file name

    Raises MissingFieldError when a query matches nothing and the config
    is strict. Otherwise the null token is kept and a warning logged.
    """
    parsed = parse_documents(documents)
    values = {}
    for rule in config.rules:
        if rule.source not in parsed:
            raise HandoffError(f"{rule.key}: source document {rule.source} was not read")
        value = evaluate(rule.query, parsed[rule.source])
        if value is None:
            if config.strict:
                raise MissingFieldError(rule.key, rule.source, rule.query)
            logger.warning(f"{rule.key}: no value at '{rule.query}' in {rule.source}, writing '{NULL_TOKEN}'")
        values[rule.key] = render_raw(value)
    return HandoffValues(values=values)

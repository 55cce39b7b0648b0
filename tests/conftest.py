"""Shared pytest fixtures for all test modules."""

import os
import shlex
import subprocess
import sys

import pytest
import yaml

from stackdock.stack import load_stack

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))
STACKS_DIR = os.path.join(PROJECT_ROOT, "stacks")

RPC_OK = '{"jsonrpc":"2.0","id":1,"result":"0x534e5f474f45524c49"}'

DEPLOYMENTS_JSON = '{"kakarot": {"address": "0x7a1", "tx_hash": "0x99"}, "blockhash_registry": {"address": "0x5"}}'
DECLARATIONS_JSON = '{"proxy": "0xc1a55", "contract_account": "0xacc", "externally_owned_account": "0xe0a"}'


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def stacks_dir():
    """Absolute path to the stacks/ directory."""
    return STACKS_DIR


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the stackdock CLI as a subprocess."""

    def _run(*args):
        result = subprocess.run(
            [sys.executable, "-m", "stackdock.stackdock", *args],
            capture_output=True,
            text=True,
            cwd=project_root,
        )
        return result.returncode, result.stdout, result.stderr

    return _run


# ── Unit-test fixtures ──────────────────────────────────────────────


@pytest.fixture
def kakarot_stack(stacks_dir):
    """The bundled Kakarot stack, resolved with default (devnet) keys."""
    return load_stack(os.path.join(stacks_dir, "kakarot"), environ={})


@pytest.fixture
def sample_stack_dict():
    """A minimal four-stage stack config dict."""
    return {
        "name": "test",
        "services": {
            "chain": {
                "image": "test/chain:latest",
                "ports": ["9944:9944"],
                "command": ["--dev"],
                "readiness": {"port": 9944, "method": "chain_id", "timeout": 20, "interval": 5},
            },
            "deployer": {
                "image": "test/deployer:latest",
                "kind": "job",
                "environment": {"RPC_URL": "http://chain:9944"},
                "volume_mount": "/out",
                "depends_on": ["chain"],
                "restart": "on-failure",
                "max_attempts": 3,
                "backoff": 1,
            },
            "parser": {
                "image": "test/jq:latest",
                "kind": "handoff",
                "volume_mount": "/data",
                "depends_on": {"deployer": {"condition": "service_completed_successfully"}},
            },
            "gateway": {
                "image": "test/gateway:latest",
                "ports": ["3030:3030"],
                "volume_mount": "/app",
                "depends_on": {"parser": {"condition": "service_completed_successfully"}},
            },
        },
        "handoff": {
            "rules": [
                {"key": "CONTRACT_ADDRESS", "source": "deployments.json", "query": ".main.address"},
                {"key": "CLASS_HASH", "source": "declarations.json", "query": ".proxy"},
            ]
        },
        "variants": {
            "lenient": {"handoff": {"strict": False}},
        },
    }


@pytest.fixture
def make_stack_dir(tmp_path):
    """Return a factory that writes a stack dict to <tmp>/stack.yaml."""

    def _make(config, name="stack"):
        stack_dir = tmp_path / name
        stack_dir.mkdir(exist_ok=True)
        with open(stack_dir / "stack.yaml", "w") as f:
            yaml.dump(config, f, sort_keys=False)
        return str(stack_dir)

    return _make


class FakeRunner:
    """Stand-in for run_cmd that records commands and emulates the shared volume.

    Responses are chosen by the first matching substring rule. Without a
    rule, `cat` and `/bin/sh -c` compose runs read and write `volume`,
    curl probes answer with a JSON-RPC result and everything else exits 0.
    """

    def __init__(self):
        self.commands = []
        self.rules = []
        self.volume = {}

    def on(self, substring, rc=0, stdout="", stderr=""):
        self.rules.append((substring, [(rc, stdout, stderr)]))

    def on_sequence(self, substring, responses):
        """Answer successive matches with successive responses; the last one repeats."""
        self.rules.append((substring, list(responses)))

    def index(self, substring):
        """Position of the first recorded command containing substring, or -1."""
        for i, command in enumerate(self.commands):
            if substring in command:
                return i
        return -1

    def count(self, substring):
        return sum(1 for command in self.commands if substring in command)

    async def __call__(self, command, stream=True, timeout=600, log_output=False, input_text=None):
        self.commands.append(command)
        for substring, responses in self.rules:
            if substring in command:
                return responses.pop(0) if len(responses) > 1 else responses[0]

        if "--entrypoint cat" in command:
            path = shlex.split(command)[-1]
            if path in self.volume:
                return 0, self.volume[path], ""
            return 1, "", f"cat: can't open '{path}': No such file or directory"
        if "--entrypoint /bin/sh" in command and input_text is not None:
            script = shlex.split(command)[-1]
            path = shlex.split(script)[-1]
            self.volume[path] = input_text
            return 0, "", ""
        if command.startswith("curl"):
            return 0, RPC_OK, ""
        return 0, "", ""


@pytest.fixture
def fake_runner():
    """A FakeRunner whose volume already holds the deployer's output."""
    runner = FakeRunner()
    runner.volume["/deployments/deployments.json"] = DEPLOYMENTS_JSON
    runner.volume["/deployments/declarations.json"] = DECLARATIONS_JSON
    return runner


@pytest.fixture
def sleeps():
    """Record of delays passed to the fake sleep."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(delay):
        sleeps.append(delay)

    return _sleep

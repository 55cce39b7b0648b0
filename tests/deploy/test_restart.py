"""Tests for restarting a single service against a running stack."""

import pytest

from stackdock.deploy import run_restart

ENV = "KAKAROT_ADDRESS=0x7a1\nPROXY_ACCOUNT_CLASS_HASH=0xc1a55\n"
READ_ENV = "cat deployments-parser /deployments/.env"


@pytest.fixture
def running_runner(fake_runner):
    fake_runner.volume["/deployments/.env"] = ENV
    return fake_runner


async def test_restart_gateway_keeps_env(kakarot_stack, running_runner, fake_sleep):
    ok = await run_restart(running_runner, kakarot_stack, "kakarot-rpc", sleep=fake_sleep)

    assert ok
    restart = running_runner.index("docker compose restart kakarot-rpc")
    assert restart >= 0
    reads = [i for i, c in enumerate(running_runner.commands) if READ_ENV in c]
    assert len(reads) == 2
    assert reads[0] < restart < reads[1]
    # the parser and deployer are never rerun
    assert running_runner.index("kakarot-deployer") == -1
    assert running_runner.index("docker compose run --rm --no-deps deployments-parser") == -1
    assert running_runner.index("/bin/sh") == -1


async def test_restart_waits_for_readiness(kakarot_stack, running_runner, fake_sleep):
    await run_restart(running_runner, kakarot_stack, "kakarot-rpc", sleep=fake_sleep)
    assert running_runner.index("http://localhost:3030/") > running_runner.index("docker compose restart")


async def test_restart_detects_changed_env(kakarot_stack, running_runner, fake_sleep, caplog):
    running_runner.on_sequence(
        READ_ENV,
        [(0, ENV, ""), (0, "KAKAROT_ADDRESS=0xbad\nPROXY_ACCOUNT_CLASS_HASH=0xc1a55\n", "")],
    )
    ok = await run_restart(running_runner, kakarot_stack, "kakarot-rpc", sleep=fake_sleep)

    assert not ok
    assert "changed while restarting kakarot-rpc" in caplog.text


async def test_restart_refuses_without_env_file(kakarot_stack, fake_runner, fake_sleep):
    ok = await run_restart(fake_runner, kakarot_stack, "kakarot-rpc", sleep=fake_sleep)

    assert not ok
    assert fake_runner.index("docker compose restart") == -1


async def test_restart_sequencer_skips_env_check(kakarot_stack, fake_runner, fake_sleep):
    ok = await run_restart(fake_runner, kakarot_stack, "starknet", sleep=fake_sleep)

    assert ok
    assert fake_runner.index("docker compose restart starknet") >= 0
    assert fake_runner.index(READ_ENV) == -1


async def test_restart_refuses_one_shot(kakarot_stack, running_runner, fake_sleep):
    assert not await run_restart(running_runner, kakarot_stack, "kakarot-deployer", sleep=fake_sleep)
    assert not await run_restart(running_runner, kakarot_stack, "deployments-parser", sleep=fake_sleep)
    assert running_runner.commands == []


async def test_restart_unknown_service(kakarot_stack, running_runner):
    with pytest.raises(ValueError, match="Unknown service"):
        await run_restart(running_runner, kakarot_stack, "nope")


async def test_restart_command_failure(kakarot_stack, running_runner, fake_sleep):
    running_runner.on("docker compose restart", rc=1)
    assert not await run_restart(running_runner, kakarot_stack, "kakarot-rpc", sleep=fake_sleep)

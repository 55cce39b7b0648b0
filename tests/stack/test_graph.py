"""Unit tests for the startup task graph."""

import pytest

from stackdock.stack import (
    CONDITION_COMPLETED,
    CONDITION_HEALTHY,
    CONDITION_STARTED,
    FAILED,
    PENDING,
    READY,
    SKIPPED,
    STARTED,
    SUCCEEDED,
    StackConfig,
    StagePlan,
    condition_satisfied,
    topological_order,
)

# ── condition_satisfied ─────────────────────────────────────────────


@pytest.mark.parametrize(
    "condition,outcome,expected",
    [
        (CONDITION_STARTED, STARTED, True),
        (CONDITION_STARTED, READY, True),
        (CONDITION_STARTED, SUCCEEDED, True),
        (CONDITION_STARTED, FAILED, False),
        (CONDITION_STARTED, PENDING, False),
        (CONDITION_HEALTHY, STARTED, False),
        (CONDITION_HEALTHY, READY, True),
        (CONDITION_COMPLETED, SUCCEEDED, True),
        (CONDITION_COMPLETED, STARTED, False),
        (CONDITION_COMPLETED, FAILED, False),
        (CONDITION_COMPLETED, SKIPPED, False),
    ],
)
def test_condition_satisfied(condition, outcome, expected):
    assert condition_satisfied(condition, outcome) is expected


# ── topological_order ───────────────────────────────────────────────


def test_topological_order_linear(kakarot_stack):
    order = [svc.name for svc in topological_order(kakarot_stack)]
    assert order == ["starknet", "kakarot-deployer", "deployments-parser", "kakarot-rpc"]


def test_topological_order_reorders_declaration():
    stack = StackConfig.from_dict(
        {
            "services": {
                "gateway": {"image": "g", "depends_on": ["db"]},
                "db": {"image": "d"},
                "cache": {"image": "c"},
            }
        }
    )
    order = [svc.name for svc in topological_order(stack)]
    assert order == ["db", "gateway", "cache"]


def test_topological_order_cycle_raises():
    stack = StackConfig.from_dict(
        {
            "services": {
                "a": {"image": "a", "depends_on": ["b"]},
                "b": {"image": "b", "depends_on": ["a"]},
            }
        }
    )
    with pytest.raises(ValueError, match="Dependency cycle between services: a, b"):
        topological_order(stack)


# ── StagePlan ───────────────────────────────────────────────────────


def test_stage_plan_blocks_until_upstream_succeeds(kakarot_stack):
    plan = StagePlan(kakarot_stack)
    parser = plan["deployments-parser"]

    dep = plan.blocking_dependency(parser)
    assert dep.service == "kakarot-deployer"

    plan["kakarot-deployer"].outcome = STARTED
    assert plan.blocking_dependency(parser) is not None

    plan["kakarot-deployer"].outcome = SUCCEEDED
    assert plan.blocking_dependency(parser) is None


def test_stage_plan_sequencer_has_no_edges(kakarot_stack):
    plan = StagePlan(kakarot_stack)
    assert plan.blocking_dependency(plan["starknet"]) is None


def test_pipeline_result_summary(kakarot_stack):
    plan = StagePlan(kakarot_stack)
    plan["starknet"].outcome = READY
    plan["kakarot-deployer"].outcome = FAILED
    plan["kakarot-deployer"].attempts = 5
    plan["kakarot-deployer"].detail = "exited 1 after 5 attempt(s)"
    plan["deployments-parser"].outcome = SKIPPED
    plan["kakarot-rpc"].outcome = SKIPPED

    result = plan.result()
    assert not result.ok
    assert [s.name for s in result.failed] == ["kakarot-deployer"]
    assert [s.name for s in result.skipped] == ["deployments-parser", "kakarot-rpc"]

    lines = result.summary_lines()
    assert "kakarot-deployer" in lines[1]
    assert "failed (attempts: 5) - exited 1 after 5 attempt(s)" in lines[1]


def test_pipeline_result_stage_lookup(kakarot_stack):
    result = StagePlan(kakarot_stack).result()
    assert result.stage("kakarot-rpc").outcome == PENDING
    with pytest.raises(KeyError):
        result.stage("ghost")

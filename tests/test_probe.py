"""Tests for JSON-RPC endpoint probes using httpx.MockTransport."""

import json

import httpx

from stackdock.probe import probe_endpoints


def _transport(answers):
    """answers: port -> callable(request_body) -> httpx.Response"""

    def handler(request):
        body = json.loads(request.content)
        return answers[request.url.port](body)

    return httpx.MockTransport(handler)


def _result(value):
    return lambda body: httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": value})


async def test_probe_all_up(kakarot_stack):
    seen = []

    def chain(body):
        seen.append(body["method"])
        return _result("0x534e5f474f45524c49")(body)

    statuses = await probe_endpoints(
        kakarot_stack, host="devbox", transport=_transport({9944: chain, 3030: _result("0x1")})
    )
    assert [s.service for s in statuses] == ["starknet", "kakarot-rpc"]
    assert all(s.ok for s in statuses)
    assert statuses[0].url == "http://devbox:9944/"
    assert statuses[1].method == "eth_chainId"
    assert statuses[1].result == "0x1"
    assert seen == ["starknet_chainId"]


async def test_probe_rpc_error(kakarot_stack):
    def gateway(body):
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "nope"}})

    statuses = await probe_endpoints(kakarot_stack, transport=_transport({9944: _result("0x1"), 3030: gateway}))
    assert statuses[0].ok
    assert not statuses[1].ok
    assert statuses[1].error == "eth_chainId: nope"


async def test_probe_http_error(kakarot_stack):
    statuses = await probe_endpoints(
        kakarot_stack,
        transport=_transport({9944: lambda body: httpx.Response(503), 3030: _result("0x1")}),
    )
    assert not statuses[0].ok
    assert "503" in statuses[0].error


async def test_probe_connection_refused(kakarot_stack):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    statuses = await probe_endpoints(kakarot_stack, transport=httpx.MockTransport(handler))
    assert [s.ok for s in statuses] == [False, False]
    assert statuses[0].error == "connection refused"


async def test_probe_non_json_body(kakarot_stack):
    statuses = await probe_endpoints(
        kakarot_stack,
        transport=_transport({9944: lambda body: httpx.Response(200, text="<html>"), 3030: _result("0x1")}),
    )
    assert not statuses[0].ok


async def test_probe_non_object_body(kakarot_stack):
    statuses = await probe_endpoints(
        kakarot_stack,
        transport=_transport({9944: lambda body: httpx.Response(200, json=[{"result": "0x1"}]), 3030: _result("0x1")}),
    )
    assert not statuses[0].ok
    assert statuses[0].error.startswith("starknet_chainId: unexpected response")
    assert statuses[1].ok

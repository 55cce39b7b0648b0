"""JSON-RPC endpoint probes against a running stack."""

import logging
from dataclasses import dataclass

import httpx

from stackdock.stack.types import StackConfig

logger = logging.getLogger(__name__)


class RpcError(Exception):
    """The endpoint answered with a JSON-RPC error object."""


@dataclass
class EndpointStatus:
    """Result of probing one service's JSON-RPC endpoint."""

    service: str
    url: str
    method: str
    ok: bool
    result: object = None
    error: str = ""


async def rpc_call(client: httpx.AsyncClient, url, method, params=None, timeout=10):
    """POST a JSON-RPC 2.0 request and return its ``result``."""
    payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params or []}
    resp = await client.post(url, json=payload, timeout=timeout)
    resp.raise_for_status()
    body = resp.json()
    if not isinstance(body, dict):
        raise RpcError(f"{method}: unexpected response {body!r}")
    if body.get("error") is not None:
        error = body["error"]
        message = error.get("message", error) if isinstance(error, dict) else error
        raise RpcError(f"{method}: {message}")
    return body.get("result")


async def probe_endpoints(stack: StackConfig, host="localhost", transport=None) -> list[EndpointStatus]:
    """Call every long-running service's readiness method from this machine.

    Args:
        stack: resolved StackConfig
        host: host the stack's ports are published on
        transport: optional httpx transport (tests pass httpx.MockTransport)
    """
    statuses = []
    async with httpx.AsyncClient(transport=transport) as client:
        for svc in stack.services:
            probe = svc.readiness
            if probe is None:
                continue
            url = f"http://{host}:{svc.host_port(probe.port)}{probe.path}"
            try:
                result = await rpc_call(client, url, probe.method)
                statuses.append(EndpointStatus(svc.name, url, probe.method, ok=True, result=result))
            except (httpx.HTTPError, RpcError, ValueError) as e:
                logger.debug(f"{svc.name}: {probe.method} failed: {e!r}")
                statuses.append(EndpointStatus(svc.name, url, probe.method, ok=False, error=str(e) or type(e).__name__))
    return statuses

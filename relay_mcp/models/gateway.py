"""Gateway configuration models.

The ``gateway`` option accepts several shapes. It is resolved once, at
configuration time, into one of three variants:

- NoGateway: connect to every server directly
- SingleChain: one chain of hops used for every server
- MultiGateway: per-host routing, first route doubles as the default
"""

from collections.abc import Callable
from dataclasses import dataclass, replace

from relay_mcp.models.server import ServerDescriptor

Chain = tuple[ServerDescriptor, ...]


@dataclass(frozen=True)
class NoGateway:
    """No tunneling configured."""

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class SingleChain:
    """A single gateway, or an ordered chain of gateways, for all servers."""

    hops: Chain


@dataclass(frozen=True)
class GatewayRoute:
    """A chain of gateways and the target hosts routed through it."""

    chain: Chain
    hosts: tuple[str, ...]


@dataclass(frozen=True)
class MultiGateway:
    """Several gateway chains, each serving a set of target hosts."""

    routes: tuple[GatewayRoute, ...]

    @property
    def default_chain(self) -> Chain:
        """Chain used for hosts not listed under any route."""
        return self.routes[0].chain


GatewaySpec = NoGateway | SingleChain | MultiGateway


def chain_for(spec: GatewaySpec, host: str) -> Chain:
    """Gateways a host is routed through; empty when connecting directly.

    A host listed under several routes uses the last one.
    """
    if isinstance(spec, SingleChain):
        return spec.hops
    if isinstance(spec, MultiGateway):
        for route in reversed(spec.routes):
            if host in route.hosts:
                return route.chain
        return spec.default_chain
    return ()


def map_hops(
    spec: GatewaySpec, fn: Callable[[ServerDescriptor], ServerDescriptor]
) -> GatewaySpec:
    """Return the spec with ``fn`` applied to every gateway hop.

    Target host names are left untouched.
    """
    if isinstance(spec, SingleChain):
        return SingleChain(tuple(fn(h) for h in spec.hops))
    if isinstance(spec, MultiGateway):
        return MultiGateway(
            tuple(
                replace(route, chain=tuple(fn(h) for h in route.chain))
                for route in spec.routes
            )
        )
    return spec

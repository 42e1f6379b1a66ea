"""
Subnet expansion.

The WAF only accepts single addresses, so a CIDR block is turned into the
list of its usable host addresses (network and broadcast excluded).
"""
import ipaddress
from typing import Iterable, List

from .utils import dedupe, setup_logging

logger = setup_logging("subnet")


class SubnetError(Exception):
    """Exception raised for subnets that cannot be expanded."""
    pass


def expand_subnet(cidr: str, max_hosts: int = 1024) -> List[str]:
    """
    Expand an IPv4 CIDR block into its usable host addresses.

    /32 yields the address itself and /31 yields both addresses (RFC 3021
    point-to-point links have no network or broadcast address).

    Args:
        cidr: Subnet such as ``200.0.0.0/27``
        max_hosts: Refuse subnets with more usable hosts than this

    Returns:
        Host addresses in ascending order

    Raises:
        SubnetError: For IPv6, malformed input, or oversized subnets
    """
    text = cidr.strip()
    try:
        network = ipaddress.ip_network(text, strict=False)
    except ValueError as e:
        raise SubnetError(f"Invalid subnet '{cidr}': {e}")

    if network.version != 4:
        raise SubnetError(f"Only IPv4 subnets are supported: '{cidr}'")

    if int(ipaddress.IPv4Interface(text).ip) != int(network.network_address):
        logger.warning(f"Subnet '{text}' has host bits set, using {network.with_prefixlen}")

    first = int(network.network_address)
    last = int(network.broadcast_address)
    if network.prefixlen < 31:
        first += 1
        last -= 1

    count = last - first + 1
    if count > max_hosts:
        raise SubnetError(
            f"Subnet '{network.with_prefixlen}' has {count} usable hosts, "
            f"more than the limit of {max_hosts}"
        )

    logger.debug(f"Expanding {network.with_prefixlen} into {count} host(s)")
    return [str(ipaddress.IPv4Address(n)) for n in range(first, last + 1)]


def expand_subnets(cidrs: Iterable[str], max_hosts: int = 1024) -> List[str]:
    """Expand several subnets, dropping addresses already produced."""
    hosts: List[str] = []
    for cidr in cidrs:
        hosts.extend(expand_subnet(cidr, max_hosts))
    return dedupe(hosts)

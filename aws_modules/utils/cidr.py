"""
CIDR helpers for subnet planning.

Mirrors terraform's ``cidrsubnet()`` so subnet layouts stay familiar.
"""

import ipaddress

# AWS does not allow subnets smaller than /28
MIN_SUBNET_PREFIX = 28


def cidr_subnet(prefix: str, newbits: int, netnum: int) -> str:
    """similar to terraform cidrsubnet()"""
    network = ipaddress.ip_network(prefix)
    new_prefix_len = network.prefixlen + newbits
    if new_prefix_len > network.max_prefixlen:
        raise ValueError(f"{prefix} cannot be extended by {newbits} bits")
    if not 0 <= netnum < 2 ** newbits:
        raise ValueError(f"netnum {netnum} does not fit in {newbits} bits")
    new_subnet_size = 2 ** (network.max_prefixlen - new_prefix_len)
    start_ip = network.network_address + (netnum * new_subnet_size)
    return f"{start_ip}/{new_prefix_len}"


def prefix_length(cidr: str) -> int:
    return ipaddress.ip_network(cidr).prefixlen


def is_valid_cidr(cidr: str) -> bool:
    """Strict CIDR check: host bits must be zero."""
    try:
        ipaddress.ip_network(cidr)
    except ValueError:
        return False
    return "/" in cidr


def subnet_within(child: str, parent: str) -> bool:
    child_net = ipaddress.ip_network(child)
    parent_net = ipaddress.ip_network(parent)
    if child_net.version != parent_net.version:
        return False
    return child_net.subnet_of(parent_net)


def find_overlap(cidrs: list[str]) -> tuple[str, str] | None:
    """Return the first pair of overlapping CIDRs, or None."""
    networks = [ipaddress.ip_network(c) for c in cidrs]
    for i, left in enumerate(networks):
        for right in networks[i + 1:]:
            if left.overlaps(right):
                return str(left), str(right)
    return None


def plan_subnets(vpc_cidr: str, az_count: int, tiers: tuple[str, ...]) -> dict[str, list[str]]:
    """
    Carve equal-sized subnets per tier and AZ out of a VPC CIDR.

    Tier ``i`` gets netnums ``i * az_count .. i * az_count + az_count - 1``,
    e.g. for a /16 with 3 AZs: public 10.0.0.0/20.., private 10.0.48.0/20..

    Args:
        vpc_cidr: VPC CIDR block
        az_count: Number of availability zones
        tiers: Tier names in allocation order

    Returns:
        Mapping of tier name to subnet CIDRs (one per AZ)

    Raises:
        ValueError: If the VPC is too small for the requested layout
    """
    slots = len(tiers) * az_count
    newbits = max(4, (slots - 1).bit_length())
    if prefix_length(vpc_cidr) + newbits > MIN_SUBNET_PREFIX:
        raise ValueError(
            f"{vpc_cidr} is too small for {len(tiers)} tiers across {az_count} AZs"
        )
    return {
        tier: [cidr_subnet(vpc_cidr, newbits, index * az_count + k) for k in range(az_count)]
        for index, tier in enumerate(tiers)
    }

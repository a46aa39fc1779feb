"""
    PingCastle: "Subnets missing from AD Sites and Services".

    Declares the subnet of every local IPv4 adapter as a replication subnet
    object, attached to the first site. Adapters are processed independently:
    a failure on one is recorded and the next one is still handled.
"""
import logging

from core.models import AdapterAddress, RemediationResult
from helpers.directory import DirectoryError
from shared.network import compute_network_address, get_ipv4_addresses

logger = logging.getLogger("adremediate.subnets")

REMEDIATION_ID = "subnets"


def register_local_subnets(directory, addresses: list[AdapterAddress] | None = None) -> RemediationResult:
    result = RemediationResult(id=REMEDIATION_ID, name="Replication subnets")

    if addresses is None:
        try:
            addresses = get_ipv4_addresses()
        except OSError as e:
            result.escalate("ERROR", f"Could not enumerate local network adapters: {e}")
            return result

    if not addresses:
        result.add("No non-loopback IPv4 address found on this host")
        return result

    # Looked up on the first creation only.
    site_dn: str | None = None

    for adapter in addresses:
        label = f"{adapter.interface} ({adapter.address})"

        try:
            subnet = str(compute_network_address(adapter.address, adapter.netmask))
        except ValueError as e:
            result.escalate("ERROR", f"{label}: could not compute the network address: {e}")
            continue

        try:
            existing = directory.find_subnet(subnet)
        except DirectoryError as e:
            result.escalate("ERROR", f"{label}: lookup of subnet {subnet} failed: {e}")
            continue

        if existing:
            result.add(f"{label}: subnet {subnet} already registered, no action")
            continue

        result.add(f"{label}: subnet {subnet} not found")
        try:
            if site_dn is None:
                site_dn = directory.first_site()
            directory.create_subnet(subnet, site_dn)
        except DirectoryError as e:
            result.escalate("ERROR", f"{label}: failed to create subnet {subnet}: {e}")
            continue

        logger.debug(f"Created subnet {subnet} in {site_dn}")
        result.add(f"{label}: created subnet {subnet} in site {site_dn}")

    return result

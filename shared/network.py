import ipaddress
import socket

import psutil

from core.models import AdapterAddress, NetworkAddress


def _family_to_label(fam: object) -> str:
    """
    Convert a psutil "address family" value into a human-readable label.

    psutil returns families as platform-specific values (enums / ints):
      - AF_INET   -> IPv4
      - AF_INET6  -> IPv6
      - AF_LINK   -> MAC (macOS/BSD)
      - AF_PACKET -> MAC (Linux)
    """
    if fam == socket.AF_INET:
        return "IPv4"
    if fam == socket.AF_INET6:
        return "IPv6"

    # MAC address family differs per OS. Sometimes the family is an Enum
    # whose .name contains "AF_LINK" (macOS/BSD) or "AF_PACKET" (Linux).
    name = getattr(fam, "name", None)
    if isinstance(name, str) and ("LINK" in name or "PACKET" in name):
        return "MAC"

    return str(fam)


def _is_loopback(address: str) -> bool:
    # Textual, so a malformed address still reaches
    # compute_network_address() and gets reported.
    return address.startswith("127.")


def get_ipv4_addresses() -> list[AdapterAddress]:
    """
    Return every IPv4 address bound to a local adapter, loopback excluded.

    Data source is psutil.net_if_addrs(), a dict mapping interface name to a
    list of address entries (family / address / netmask / broadcast / ptp).
    Order follows psutil's interface order, then address order.

    Raises OSError if the platform refuses to enumerate interfaces.
    """
    results: list[AdapterAddress] = []

    for iface_name, addr_list in psutil.net_if_addrs().items():
        for a in addr_list:
            if _family_to_label(a.family) != "IPv4":
                continue
            if _is_loopback(a.address):
                continue
            results.append(AdapterAddress(
                interface=iface_name,
                address=a.address,
                # netmask exists only sometimes; getattr keeps it safe.
                netmask=getattr(a, "netmask", None),
            ))

    return results


def compute_network_address(address: str, netmask: str | int | None) -> NetworkAddress:
    """
    Mask `address` with `netmask` and return the subnet identifier.

    `netmask` may be a dotted mask ("255.255.255.0") or a prefix length (24).
    Example: ("192.168.10.37", "255.255.255.0") -> 192.168.10.0/24

    Raises ValueError for a malformed address or mask.
    """
    if netmask is None or netmask == "":
        raise ValueError(f"no netmask reported for {address}")

    iface = ipaddress.IPv4Interface(f"{address}/{netmask}")
    return NetworkAddress(
        network=str(iface.network.network_address),
        prefix_length=iface.network.prefixlen,
    )

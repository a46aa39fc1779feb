"""
    Shared utility functions for host information retrieval.
"""
import platform
import socket


def get_host_info():
    """Identify the machine the remediation ran from (stored in the JSON report)."""
    host_info = {
        "hostname": socket.gethostname(),
        "fqdn": socket.getfqdn(),
        "os": platform.system(),
        "os_version": platform.version(),
    }
    return host_info


def is_windows():
    """
        Used in main.py to decide whether WMI domain discovery and the
        Windows event log are available.
    """
    return platform.system() == "Windows"

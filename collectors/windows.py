"""
    Windows specific collectors (WMI).
"""

# Win32_ComputerSystem.DomainRole values
DOMAIN_ROLES = {
    0: "Standalone Workstation",
    1: "Member Workstation",
    2: "Standalone Server",
    3: "Member Server",
    4: "Backup Domain Controller",
    5: "Primary Domain Controller",
}


def get_windows_domain_info():
    """
        Retrieve the domain membership of this Windows machine using WMI.
        Used to target the local domain when no domain is configured.

        Returns:
            dict: domain (DNS name), part_of_domain, domain_role.
    """
    # pywin32-backed; only importable on Windows.
    import wmi

    c = wmi.WMI()
    cs = c.Win32_ComputerSystem()[0]
    role = int(cs.DomainRole) if cs.DomainRole is not None else None
    domain_info = {
        "domain": cs.Domain,
        "part_of_domain": bool(cs.PartOfDomain),
        "domain_role": DOMAIN_ROLES.get(role, "Unknown"),
    }
    return domain_info

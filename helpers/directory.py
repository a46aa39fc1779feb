"""
    Thin Active Directory client over ldap3.

    Only the handful of reads and writes the remediations need. Every
    unsuccessful LDAP result (or ldap3 exception) is raised as DirectoryError
    carrying the server's diagnostic text, so callers have a single exception
    type to catch per step.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import ldap3
from ldap3 import BASE, MODIFY_REPLACE, NTLM, SASL, SIMPLE, SUBTREE, KERBEROS
from ldap3.core.exceptions import LDAPException
from ldap3.protocol.formatters.formatters import format_sid
from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.dn import escape_rdn

logger = logging.getLogger("adremediate.directory")

# ADS_GROUP_TYPE_GLOBAL_GROUP | ADS_GROUP_TYPE_SECURITY_ENABLED
GROUP_TYPE_GLOBAL_SECURITY = -2147483646
ADMINISTRATOR_RID = 500


class DirectoryError(Exception):
    """A directory read or write did not succeed."""


@dataclass
class DirectoryAccount:
    dn: str
    sam_account_name: str
    object_classes: list[str] = field(default_factory=list)
    user_account_control: int | None = None

    @property
    def is_user(self) -> bool:
        # computer derives from user; only real user objects count here.
        classes = {c.lower() for c in self.object_classes}
        return "user" in classes and "computer" not in classes


def domain_to_dn(domain: str) -> str:
    """corp.example.com -> DC=corp,DC=example,DC=com"""
    return ",".join(f"DC={part}" for part in domain.split(".") if part)


def _lookup(attributes: dict[str, Any], name: str) -> Any:
    # Attribute names are case-insensitive in LDAP.
    for key, value in attributes.items():
        if key.lower() == name.lower():
            return value
    return None


def _first(attributes: dict[str, Any], name: str) -> Any:
    value = _lookup(attributes, name)
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _all(attributes: dict[str, Any], name: str) -> list[Any]:
    value = _lookup(attributes, name)
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _as_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


class DirectoryClient:
    """Directory operations against one bound ldap3 connection."""

    def __init__(self, connection: ldap3.Connection,
                 domain_dn: str | None = None, configuration_dn: str | None = None):
        self.conn = connection

        info = getattr(connection.server, "info", None)
        root_dse = info.other if info is not None else {}
        self.domain_dn = domain_dn or _first(root_dse, "defaultNamingContext")
        self.configuration_dn = configuration_dn or _first(root_dse, "configurationNamingContext")

        if not self.domain_dn or not self.configuration_dn:
            raise DirectoryError(
                "Could not read the naming contexts from the server root DSE; "
                "pass domain_dn and configuration_dn explicitly."
            )

    def close(self) -> None:
        try:
            self.conn.unbind()
        except LDAPException as e:
            logger.debug(f"Unbind failed: {e}")

    # -----------------------------------------------------------------------
    # Low-level helpers
    # -----------------------------------------------------------------------

    def _failure(self, action: str) -> DirectoryError:
        result = self.conn.result or {}
        description = result.get("description") or "unknown error"
        message = (result.get("message") or "").strip()
        text = f"{action} failed: {description}"
        if message:
            text += f" ({message})"
        return DirectoryError(text)

    def _search(self, base: str, ldap_filter: str, attributes: list[str],
                scope=SUBTREE) -> list[tuple[str, dict[str, Any]]]:
        """Return (dn, attributes) pairs; a missing base counts as no match."""
        logger.debug(f"LDAP search base={base} filter={ldap_filter}")
        try:
            ok = self.conn.search(base, ldap_filter, search_scope=scope, attributes=attributes)
        except LDAPException as e:
            raise DirectoryError(f"Search under {base} failed: {e}") from e

        if not ok:
            # ldap3 reports an empty result set as False with "success".
            if (self.conn.result or {}).get("description") in ("success", "noSuchObject"):
                return []
            raise self._failure(f"Search under {base}")

        return [
            (entry["dn"], entry.get("attributes", {}))
            for entry in self.conn.response
            if entry.get("type") == "searchResEntry"
        ]

    def _modify(self, dn: str, changes: dict[str, Any], action: str) -> None:
        try:
            ok = self.conn.modify(dn, changes)
        except LDAPException as e:
            raise DirectoryError(f"{action} failed: {e}") from e
        if not ok:
            raise self._failure(action)

    def _add(self, dn: str, object_class: str, attributes: dict[str, Any], action: str) -> str:
        logger.debug(f"LDAP add {dn}")
        try:
            ok = self.conn.add(dn, object_class, attributes)
        except LDAPException as e:
            raise DirectoryError(f"{action} failed: {e}") from e
        if not ok:
            raise self._failure(action)
        return dn

    # -----------------------------------------------------------------------
    # Attributes
    # -----------------------------------------------------------------------

    def read_attribute(self, dn: str, attribute: str) -> Any:
        """Return the (first) value of `attribute` on `dn`, or None when unset."""
        entries = self._search(dn, "(objectClass=*)", [attribute], scope=BASE)
        if not entries:
            raise DirectoryError(f"Object not found: {dn}")
        return _first(entries[0][1], attribute)

    def replace_attribute(self, dn: str, attribute: str, value: Any) -> None:
        self._modify(dn, {attribute: [(MODIFY_REPLACE, [value])]}, f"Setting {attribute} on {dn}")

    # -----------------------------------------------------------------------
    # Sites and subnets
    # -----------------------------------------------------------------------

    @property
    def subnets_dn(self) -> str:
        return f"CN=Subnets,CN=Sites,{self.configuration_dn}"

    def find_subnet(self, name: str) -> str | None:
        entries = self._search(
            self.subnets_dn,
            f"(&(objectClass=subnet)(cn={escape_filter_chars(name)}))",
            ["cn"],
        )
        return entries[0][0] if entries else None

    def first_site(self) -> str:
        entries = self._search(f"CN=Sites,{self.configuration_dn}", "(objectClass=site)", ["cn"])
        if not entries:
            raise DirectoryError("No replication site found under CN=Sites")
        return entries[0][0]

    def create_subnet(self, name: str, site_dn: str) -> str:
        dn = f"CN={escape_rdn(name)},{self.subnets_dn}"
        return self._add(dn, "subnet", {"cn": name, "siteObject": site_dn}, f"Creating subnet {name}")

    # -----------------------------------------------------------------------
    # Groups and accounts
    # -----------------------------------------------------------------------

    def find_group(self, name: str) -> str | None:
        entries = self._search(
            self.domain_dn,
            f"(&(objectClass=group)(sAMAccountName={escape_filter_chars(name)}))",
            ["sAMAccountName"],
        )
        return entries[0][0] if entries else None

    def create_group(self, name: str, container: str = "CN=Users") -> str:
        dn = f"CN={escape_rdn(name)},{container},{self.domain_dn}"
        attributes = {
            "sAMAccountName": name,
            "groupType": GROUP_TYPE_GLOBAL_SECURITY,
            "description": "Members receive the fine-grained password policy of the same name",
        }
        return self._add(dn, "group", attributes, f"Creating group {name}")

    def find_account(self, sam_account_name: str) -> DirectoryAccount | None:
        entries = self._search(
            self.domain_dn,
            f"(sAMAccountName={escape_filter_chars(sam_account_name)})",
            ["sAMAccountName", "objectClass", "userAccountControl"],
        )
        if not entries:
            return None
        dn, attrs = entries[0]
        return DirectoryAccount(
            dn=dn,
            sam_account_name=_first(attrs, "sAMAccountName") or sam_account_name,
            object_classes=[str(c) for c in _all(attrs, "objectClass")],
            user_account_control=_as_int(_first(attrs, "userAccountControl")),
        )

    def domain_sid(self) -> str:
        sid = self.read_attribute(self.domain_dn, "objectSid")
        if isinstance(sid, (bytes, bytearray)):
            sid = format_sid(bytes(sid))
        if not sid:
            raise DirectoryError(f"{self.domain_dn} has no objectSid")
        return str(sid)

    def administrator_account(self) -> str:
        """sAMAccountName of the built-in administrator, looked up by RID so renames don't matter."""
        sid = f"{self.domain_sid()}-{ADMINISTRATOR_RID}"
        entries = self._search(self.domain_dn, f"(objectSid={sid})", ["sAMAccountName"])
        if not entries:
            raise DirectoryError(f"No account with SID {sid}")
        return str(_first(entries[0][1], "sAMAccountName"))

    def add_group_member(self, group_dn: str, member_dn: str) -> None:
        """Add `member_dn` to `group_dn`; already being a member is not an error."""
        try:
            ok = self.conn.extend.microsoft.add_members_to_groups([member_dn], [group_dn], fix=True)
        except LDAPException as e:
            raise DirectoryError(f"Adding {member_dn} to {group_dn} failed: {e}") from e
        if not ok:
            raise self._failure(f"Adding {member_dn} to {group_dn}")

    # -----------------------------------------------------------------------
    # Fine-grained password policies
    # -----------------------------------------------------------------------

    @property
    def password_settings_dn(self) -> str:
        return f"CN=Password Settings Container,CN=System,{self.domain_dn}"

    def create_password_settings(self, name: str, attributes: dict[str, Any]) -> str:
        dn = f"CN={escape_rdn(name)},{self.password_settings_dn}"
        return self._add(dn, "msDS-PasswordSettings", attributes, f"Creating password settings object {name}")


def connect(server_name: str, username: str = "", password: str = "",
            use_ssl: bool = False, connect_timeout: int = 10,
            domain_dn: str | None = None) -> DirectoryClient:
    """
    Open and bind a connection to `server_name`.

    Authentication:
      - DOMAIN\\user       -> NTLM
      - DN or UPN         -> SIMPLE (use_ssl recommended)
      - no username       -> Kerberos with the current logon session
                             (needs gssapi, or winkerberos on Windows)

    `domain_dn` overrides the default naming context read from the root DSE.
    """
    server = ldap3.Server(server_name, use_ssl=use_ssl, get_info=ldap3.ALL,
                          connect_timeout=connect_timeout)

    if username:
        authentication = NTLM if "\\" in username else SIMPLE
        conn = ldap3.Connection(server, user=username, password=password, authentication=authentication)
    else:
        conn = ldap3.Connection(server, authentication=SASL, sasl_mechanism=KERBEROS)

    logger.info(f"Binding to {server_name} ({'LDAPS' if use_ssl else 'LDAP'})")
    try:
        if not conn.bind():
            result = conn.result or {}
            raise DirectoryError(f"Bind to {server_name} failed: {result.get('description')} {result.get('message', '')}".strip())
    except LDAPException as e:
        raise DirectoryError(f"Could not connect to {server_name}: {e}") from e

    try:
        return DirectoryClient(conn, domain_dn=domain_dn)
    except DirectoryError:
        conn.unbind()
        raise

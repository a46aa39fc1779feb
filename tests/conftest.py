"""
tests/conftest.py -- In-memory stand-in for DirectoryClient.

The remediations only talk to the directory through the DirectoryClient
methods, so FakeDirectory implements the same methods over plain dicts and
counts every write. Failures are injected per method name through `fail_on`;
`fail_on` values may be a set of first-argument values to fail only those
calls (e.g. fail_on={"create_subnet": {"10.0.2.0/24"}}), or True to fail all.
"""

from __future__ import annotations

from collections import Counter

import pytest

from helpers.directory import DirectoryAccount, DirectoryError

DOMAIN_DN = "DC=corp,DC=example"
CONFIGURATION_DN = "CN=Configuration,DC=corp,DC=example"
SITE_DN = f"CN=Default-First-Site-Name,CN=Sites,{CONFIGURATION_DN}"


class FakeDirectory:
    def __init__(self, quota=10, administrator="Administrator", sites=(SITE_DN,)):
        self.domain_dn = DOMAIN_DN
        self.configuration_dn = CONFIGURATION_DN
        self.attributes: dict[tuple[str, str], object] = {(DOMAIN_DN, "ms-DS-MachineAccountQuota"): quota}
        self.sites = list(sites)
        self.subnets: dict[str, str] = {}
        self.groups: dict[str, set[str]] = {}
        self.group_dns: dict[str, str] = {}
        self.accounts: dict[str, DirectoryAccount] = {}
        self.password_settings: dict[str, dict] = {}
        self.administrator = administrator
        self.calls: Counter = Counter()
        self.fail_on: dict[str, object] = {}
        # Value returned by read_attribute regardless of what was written.
        self.forced_read = None
        self.add_account(administrator, object_classes=["top", "person", "organizationalPerson", "user"],
                         user_account_control=0x200)

    # -- helpers --------------------------------------------------------

    def _maybe_fail(self, method, key=None):
        self.calls[method] += 1
        rule = self.fail_on.get(method)
        if rule is True or (isinstance(rule, (set, frozenset)) and key in rule):
            raise DirectoryError(f"{method} failed: insufficientAccessRights")

    def add_account(self, name, object_classes=("top", "person", "organizationalPerson", "user"),
                    user_account_control=0x200):
        self.accounts[name.lower()] = DirectoryAccount(
            dn=f"CN={name},CN=Users,{DOMAIN_DN}",
            sam_account_name=name,
            object_classes=list(object_classes),
            user_account_control=user_account_control,
        )

    def add_existing_group(self, name, members=()):
        dn = f"CN={name},CN=Users,{DOMAIN_DN}"
        self.group_dns[name.lower()] = dn
        self.groups[dn] = set(members)
        return dn

    # -- DirectoryClient surface ---------------------------------------

    def read_attribute(self, dn, attribute):
        self._maybe_fail("read_attribute", attribute)
        if self.forced_read is not None:
            return self.forced_read
        return self.attributes.get((dn, attribute))

    def replace_attribute(self, dn, attribute, value):
        self._maybe_fail("replace_attribute", attribute)
        self.attributes[(dn, attribute)] = value
        if attribute == "userAccountControl":
            for account in self.accounts.values():
                if account.dn == dn:
                    account.user_account_control = value

    def find_subnet(self, name):
        self._maybe_fail("find_subnet", name)
        return self.subnets.get(name)

    def first_site(self):
        self._maybe_fail("first_site")
        if not self.sites:
            raise DirectoryError("No replication site found under CN=Sites")
        return self.sites[0]

    def create_subnet(self, name, site_dn):
        self._maybe_fail("create_subnet", name)
        if name in self.subnets:
            raise DirectoryError("entryAlreadyExists")
        dn = f"CN={name},CN=Subnets,CN=Sites,{CONFIGURATION_DN}"
        self.subnets[name] = dn
        return dn

    def find_group(self, name):
        self._maybe_fail("find_group", name)
        return self.group_dns.get(name.lower())

    def create_group(self, name, container="CN=Users"):
        self._maybe_fail("create_group", name)
        dn = f"CN={name},{container},{DOMAIN_DN}"
        self.group_dns[name.lower()] = dn
        self.groups[dn] = set()
        return dn

    def find_account(self, name):
        self._maybe_fail("find_account", name)
        return self.accounts.get(name.lower())

    def administrator_account(self):
        self._maybe_fail("administrator_account")
        return self.administrator

    def add_group_member(self, group_dn, member_dn):
        self._maybe_fail("add_group_member", member_dn)
        self.groups[group_dn].add(member_dn)

    def create_password_settings(self, name, attributes):
        self._maybe_fail("create_password_settings", name)
        if name in self.password_settings:
            raise DirectoryError("entryAlreadyExists")
        self.password_settings[name] = attributes
        return f"CN={name},CN=Password Settings Container,CN=System,{DOMAIN_DN}"

    def close(self):
        self.closed = True


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def make_directory():
    """FakeDirectory factory for tests that need non-default contents."""
    return FakeDirectory

"""
    PingCastle: "No fine-grained password policy for privileged accounts".

    For each PolicyDefinition, in document order:
      1. make sure a global security group named after the policy exists
      2. add the configured members to it
      3. clear "password never expires" on user members (best-effort)
      4. create the msDS-PasswordSettings object and link it to the group

    A failure on one definition is recorded and the next one is still handled.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from core.models import (
    ExplicitName,
    PolicyDefinition,
    RemediationResult,
    WellKnownAdministrator,
)
from helpers.directory import DirectoryError

logger = logging.getLogger("adremediate.pso")

REMEDIATION_ID = "password-policies"

# userAccountControl flag
DONT_EXPIRE_PASSWORD = 0x10000

# Clearing "password never expires" is best-effort: a failure is logged but
# leaves the status untouched. Set to True to report it as a WARNING instead.
ESCALATE_ON_PASSWORD_EXPIRY_FAILURE = False

# Fixed settings shared by every policy.
MIN_PASSWORD_AGE = timedelta(days=1)
PASSWORD_HISTORY_LENGTH = 24
LOCKOUT_DURATION = timedelta(minutes=30)
LOCKOUT_OBSERVATION_WINDOW = timedelta(minutes=30)
LOCKOUT_THRESHOLD = 5
COMPLEXITY_ENABLED = True
REVERSIBLE_ENCRYPTION_ENABLED = False

# msDS-MaximumPasswordAge value meaning "never"
NEVER = -9223372036854775808


def ad_interval(delta: timedelta) -> int:
    """AD stores durations as negative counts of 100-nanosecond ticks."""
    return -int(delta.total_seconds() * 10_000_000)


def _ad_bool(value: bool) -> str:
    return "TRUE" if value else "FALSE"


def password_settings_attributes(definition: PolicyDefinition, group_dn: str) -> dict[str, Any]:
    if definition.max_password_age_days:
        max_age = ad_interval(timedelta(days=definition.max_password_age_days))
    else:
        max_age = NEVER

    return {
        "msDS-PasswordSettingsPrecedence": definition.precedence,
        "msDS-MaximumPasswordAge": max_age,
        "msDS-MinimumPasswordLength": definition.min_password_length,
        "msDS-MinimumPasswordAge": ad_interval(MIN_PASSWORD_AGE),
        "msDS-PasswordHistoryLength": PASSWORD_HISTORY_LENGTH,
        "msDS-PasswordComplexityEnabled": _ad_bool(COMPLEXITY_ENABLED),
        "msDS-PasswordReversibleEncryptionEnabled": _ad_bool(REVERSIBLE_ENCRYPTION_ENABLED),
        "msDS-LockoutDuration": ad_interval(LOCKOUT_DURATION),
        "msDS-LockoutObservationWindow": ad_interval(LOCKOUT_OBSERVATION_WINDOW),
        "msDS-LockoutThreshold": LOCKOUT_THRESHOLD,
        "msDS-PSOAppliesTo": group_dn,
    }


def _resolve_administrator(directory, definitions, result) -> str | None:
    if not any(isinstance(m, WellKnownAdministrator) for d in definitions for m in d.members):
        return None
    try:
        name = directory.administrator_account()
    except DirectoryError as e:
        result.escalate("ERROR", f"Could not resolve the built-in administrator account (RID 500): {e}")
        return None
    result.add(f"Built-in administrator account (RID 500) is '{name}'")
    return name


def _member_names(definition: PolicyDefinition, administrator: str | None, result) -> list[str]:
    names: list[str] = []
    for member in definition.members:
        if isinstance(member, WellKnownAdministrator):
            if administrator is None:
                result.add(f"{definition.name}: skipping the built-in administrator, it could not be resolved")
                continue
            names.append(administrator)
        elif isinstance(member, ExplicitName):
            names.append(member.name)
    return names


def _clear_password_never_expires(directory, account, policy_name: str, result) -> None:
    uac = account.user_account_control
    if uac is None or not uac & DONT_EXPIRE_PASSWORD:
        return
    try:
        directory.replace_attribute(account.dn, "userAccountControl", uac & ~DONT_EXPIRE_PASSWORD)
    except DirectoryError as e:
        line = f"{policy_name}: could not clear 'password never expires' on {account.sam_account_name}: {e}"
        if ESCALATE_ON_PASSWORD_EXPIRY_FAILURE:
            result.escalate("WARNING", line)
        else:
            result.add(line)
        return
    result.add(f"{policy_name}: cleared 'password never expires' on {account.sam_account_name}")


def _provision(directory, definition: PolicyDefinition, administrator: str | None,
               group_container: str, result: RemediationResult) -> None:
    name = definition.name

    # GroupCheck / GroupCreate
    try:
        group_dn = directory.find_group(name)
    except DirectoryError as e:
        result.escalate("ERROR", f"{name}: group lookup failed: {e}")
        return

    if group_dn:
        result.add(f"{name}: group already exists, no action")
    else:
        try:
            group_dn = directory.create_group(name, group_container)
        except DirectoryError as e:
            result.escalate("ERROR", f"{name}: failed to create group: {e}")
            return
        result.add(f"{name}: created group {group_dn}")

    # MemberAdd
    for member in _member_names(definition, administrator, result):
        try:
            account = directory.find_account(member)
        except DirectoryError as e:
            result.escalate("ERROR", f"{name}: lookup of member {member} failed: {e}")
            continue
        if account is None:
            result.escalate("ERROR", f"{name}: member {member} not found")
            continue

        try:
            directory.add_group_member(group_dn, account.dn)
        except DirectoryError as e:
            result.escalate("ERROR", f"{name}: failed to add {member} to the group: {e}")
            continue
        result.add(f"{name}: {member} is a member of the group")

        if account.is_user:
            _clear_password_never_expires(directory, account, name, result)

    # PolicyCreate. There is no existence check: when the object is already
    # there the directory rejects the add and this reports ERROR.
    try:
        pso_dn = directory.create_password_settings(name, password_settings_attributes(definition, group_dn))
    except DirectoryError as e:
        result.escalate("ERROR", f"{name}: failed to create the password settings object: {e}")
        return
    result.add(
        f"{name}: created password settings object {pso_dn} "
        f"(precedence {definition.precedence}, max age {definition.max_password_age_days or 'never'} days, "
        f"min length {definition.min_password_length})"
    )


def provision_password_policies(directory, definitions: list[PolicyDefinition],
                                group_container: str = "CN=Users") -> RemediationResult:
    result = RemediationResult(id=REMEDIATION_ID, name="Fine-grained password policies")

    if not definitions:
        result.add("No password policy definitions configured")
        return result

    administrator = _resolve_administrator(directory, definitions, result)

    for definition in definitions:
        logger.debug(f"Provisioning password policy {definition.name}")
        _provision(directory, definition, administrator, group_container, result)

    return result

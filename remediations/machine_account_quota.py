"""
    PingCastle: "Non-admin users can add computers to the domain".

    Sets ms-DS-MachineAccountQuota on the domain root to 0 and reads it back.
"""
import logging

from core.models import RemediationResult
from helpers.directory import DirectoryError

logger = logging.getLogger("adremediate.quota")

REMEDIATION_ID = "machine-account-quota"
QUOTA_ATTRIBUTE = "ms-DS-MachineAccountQuota"
TARGET_QUOTA = 0


def fix_machine_account_quota(directory) -> RemediationResult:
    result = RemediationResult(id=REMEDIATION_ID, name="Machine account quota")
    domain_dn = directory.domain_dn

    # Single write, no retry. The current value is not checked first.
    try:
        directory.replace_attribute(domain_dn, QUOTA_ATTRIBUTE, TARGET_QUOTA)
    except DirectoryError as e:
        logger.debug(f"{QUOTA_ATTRIBUTE} write failed: {e}")
        result.escalate("ERROR", f"Failed to set {QUOTA_ATTRIBUTE} to {TARGET_QUOTA} on {domain_dn}: {e}")
        return result

    result.add(f"Set {QUOTA_ATTRIBUTE} to {TARGET_QUOTA} on {domain_dn}")

    try:
        current = directory.read_attribute(domain_dn, QUOTA_ATTRIBUTE)
    except DirectoryError as e:
        result.escalate("WARNING", f"{QUOTA_ATTRIBUTE} was written successfully but could not be read back: {e}")
        return result

    try:
        verified = current is not None and int(current) == TARGET_QUOTA
    except (TypeError, ValueError):
        verified = False

    if verified:
        result.add(f"Verified {QUOTA_ATTRIBUTE} is {TARGET_QUOTA}")
    else:
        result.escalate(
            "WARNING",
            f"{QUOTA_ATTRIBUTE} was written successfully but verification failed "
            f"(read back {current!r}, expected {TARGET_QUOTA})",
        )

    return result

"""
    Loader for the password-policy configuration document.

    Expected shape:

      <Configuration>
        <PasswordPolicies>
          <PasswordPolicy name="PSO-Tier0" maxPasswordAge="180"
                          minPasswordLength="16" precedence="10">
            <Member wellKnownRid="500"/>
            <Member>svc-backup</Member>
          </PasswordPolicy>
        </PasswordPolicies>
      </Configuration>

    maxPasswordAge is in days (0 = never expires, at most 10675199),
    minPasswordLength is 0-255 and precedence starts at 1. Members are either a
    sAMAccountName or the well-known administrator (wellKnownRid="500").
"""
from __future__ import annotations

import logging
from pathlib import Path
from xml.etree import ElementTree as ET

from core.models import ExplicitName, Member, PolicyDefinition, WellKnownAdministrator

logger = logging.getLogger("adremediate.policies")

SUPPORTED_WELL_KNOWN_RIDS = {500}

# Ranges accepted by msDS-PasswordSettings. The maximum age must still fit
# in a signed 64-bit count of 100-nanosecond ticks.
MAX_PASSWORD_AGE_DAYS = 10675199
MAX_PASSWORD_LENGTH = 255


class PolicyConfigError(Exception):
    """The policy document is missing, unreadable or malformed."""


def _int_attr(elem: ET.Element, name: str, policy: str,
              minimum: int = 0, maximum: int | None = None) -> int:
    raw = elem.get(name)
    if raw is None:
        raise PolicyConfigError(f"PasswordPolicy '{policy}' is missing the '{name}' attribute")
    try:
        value = int(raw.strip())
    except ValueError:
        raise PolicyConfigError(f"PasswordPolicy '{policy}': '{name}' must be an integer, got '{raw}'") from None
    if value < 0:
        raise PolicyConfigError(f"PasswordPolicy '{policy}': '{name}' must not be negative")
    if value < minimum:
        raise PolicyConfigError(f"PasswordPolicy '{policy}': '{name}' must be at least {minimum}")
    if maximum is not None and value > maximum:
        raise PolicyConfigError(f"PasswordPolicy '{policy}': '{name}' must not exceed {maximum}, got {value}")
    return value


def _parse_member(elem: ET.Element, policy: str) -> Member:
    rid = elem.get("wellKnownRid")
    if rid is not None:
        try:
            rid_value = int(rid)
        except ValueError:
            raise PolicyConfigError(f"PasswordPolicy '{policy}': invalid wellKnownRid '{rid}'") from None
        if rid_value not in SUPPORTED_WELL_KNOWN_RIDS:
            raise PolicyConfigError(f"PasswordPolicy '{policy}': unsupported wellKnownRid {rid_value}")
        return WellKnownAdministrator(rid=rid_value)

    name = (elem.text or "").strip()
    if not name:
        raise PolicyConfigError(f"PasswordPolicy '{policy}' has an empty Member element")
    return ExplicitName(name)


def parse_policy_definitions(root: ET.Element) -> list[PolicyDefinition]:
    """Build PolicyDefinitions from an already-parsed document, in document order."""
    container = root if root.tag == "PasswordPolicies" else root.find("PasswordPolicies")
    if container is None:
        raise PolicyConfigError("No <PasswordPolicies> element found")

    definitions: list[PolicyDefinition] = []
    seen: set[str] = set()

    for elem in container.findall("PasswordPolicy"):
        name = (elem.get("name") or "").strip()
        if not name:
            raise PolicyConfigError("PasswordPolicy element without a name")
        if name.lower() in seen:
            raise PolicyConfigError(f"PasswordPolicy '{name}' is defined more than once")
        seen.add(name.lower())

        definitions.append(PolicyDefinition(
            name=name,
            max_password_age_days=_int_attr(elem, "maxPasswordAge", name, maximum=MAX_PASSWORD_AGE_DAYS),
            min_password_length=_int_attr(elem, "minPasswordLength", name, maximum=MAX_PASSWORD_LENGTH),
            precedence=_int_attr(elem, "precedence", name, minimum=1),
            members=tuple(_parse_member(m, name) for m in elem.findall("Member")),
        ))

    return definitions


def load_policy_definitions(path: str | Path) -> list[PolicyDefinition]:
    path = Path(path)
    try:
        tree = ET.parse(path)
    except FileNotFoundError:
        raise PolicyConfigError(f"Policy configuration not found: {path}") from None
    except ET.ParseError as e:
        raise PolicyConfigError(f"Policy configuration {path} is not valid XML: {e}") from e

    definitions = parse_policy_definitions(tree.getroot())
    logger.debug(f"Loaded {len(definitions)} password policy definition(s) from {path}")
    return definitions

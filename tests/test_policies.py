"""Unit tests for core/policies.py -- documents are written to tmp_path."""

from pathlib import Path

import pytest

from core.models import ExplicitName, PolicyDefinition, WellKnownAdministrator
from core.policies import MAX_PASSWORD_AGE_DAYS, PolicyConfigError, load_policy_definitions
from remediations.password_policies import provision_password_policies

SAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "config" / "password_policies.xml"

VALID = """<?xml version="1.0" encoding="utf-8"?>
<Configuration>
  <PasswordPolicies>
    <PasswordPolicy name="PSO-Tier0" maxPasswordAge="180" minPasswordLength="20" precedence="10">
      <Member wellKnownRid="500"/>
      <Member> svc-backup </Member>
    </PasswordPolicy>
    <PasswordPolicy name="PSO-Service" maxPasswordAge="0" minPasswordLength="30" precedence="5"/>
  </PasswordPolicies>
</Configuration>
"""


def _write(tmp_path, text):
    path = tmp_path / "policies.xml"
    path.write_text(text, encoding="utf-8")
    return path


def test_loads_definitions_in_document_order(tmp_path):
    definitions = load_policy_definitions(_write(tmp_path, VALID))

    assert definitions == [
        PolicyDefinition("PSO-Tier0", 180, 20, 10, (WellKnownAdministrator(), ExplicitName("svc-backup"))),
        PolicyDefinition("PSO-Service", 0, 30, 5, ()),
    ]


def test_shipped_sample_config_loads():
    definitions = load_policy_definitions(SAMPLE_CONFIG)

    assert [d.name for d in definitions] == ["PSO-Tier0-Admins", "PSO-Service-Accounts"]
    assert definitions[0].members == (WellKnownAdministrator(),)


def test_missing_file(tmp_path):
    with pytest.raises(PolicyConfigError, match="not found"):
        load_policy_definitions(tmp_path / "missing.xml")


def test_invalid_xml(tmp_path):
    with pytest.raises(PolicyConfigError, match="not valid XML"):
        load_policy_definitions(_write(tmp_path, "<Configuration><PasswordPolicies>"))


@pytest.mark.parametrize("body,message", [
    ('<PasswordPolicy maxPasswordAge="1" minPasswordLength="1" precedence="1"/>', "without a name"),
    ('<PasswordPolicy name="A" minPasswordLength="1" precedence="1"/>', "maxPasswordAge"),
    ('<PasswordPolicy name="A" maxPasswordAge="x" minPasswordLength="1" precedence="1"/>', "integer"),
    ('<PasswordPolicy name="A" maxPasswordAge="-1" minPasswordLength="1" precedence="1"/>', "negative"),
    ('<PasswordPolicy name="A" maxPasswordAge="1000000000" minPasswordLength="1" precedence="1"/>', "must not exceed 10675199"),
    ('<PasswordPolicy name="A" maxPasswordAge="1" minPasswordLength="256" precedence="1"/>', "must not exceed 255"),
    ('<PasswordPolicy name="A" maxPasswordAge="1" minPasswordLength="1" precedence="0"/>', "at least 1"),
    ('<PasswordPolicy name="A" maxPasswordAge="1" minPasswordLength="1" precedence="1">'
     '<Member wellKnownRid="512"/></PasswordPolicy>', "unsupported wellKnownRid"),
    ('<PasswordPolicy name="A" maxPasswordAge="1" minPasswordLength="1" precedence="1">'
     '<Member></Member></PasswordPolicy>', "empty Member"),
    ('<PasswordPolicy name="A" maxPasswordAge="1" minPasswordLength="1" precedence="1"/>'
     '<PasswordPolicy name="a" maxPasswordAge="1" minPasswordLength="1" precedence="2"/>', "more than once"),
])
def test_malformed_definitions(tmp_path, body, message):
    text = f"<Configuration><PasswordPolicies>{body}</PasswordPolicies></Configuration>"

    with pytest.raises(PolicyConfigError, match=message):
        load_policy_definitions(_write(tmp_path, text))


def test_missing_policies_element(tmp_path):
    with pytest.raises(PolicyConfigError, match="PasswordPolicies"):
        load_policy_definitions(_write(tmp_path, "<Configuration/>"))


def test_longest_max_age_provisions(tmp_path, directory):
    text = ("<Configuration><PasswordPolicies>"
            f'<PasswordPolicy name="PSO-Long" maxPasswordAge="{MAX_PASSWORD_AGE_DAYS}" '
            'minPasswordLength="255" precedence="1"/>'
            "</PasswordPolicies></Configuration>")
    definitions = load_policy_definitions(_write(tmp_path, text))

    result = provision_password_policies(directory, definitions)

    assert result.status == "INFO"
    max_age = directory.password_settings["PSO-Long"]["msDS-MaximumPasswordAge"]
    assert -(2 ** 63) < max_age < 0

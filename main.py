"""
    Main entry point for the AD remediation tool.

    Runs the selected PingCastle remediations against the domain, one after
    the other, sends each outcome to the event log, writes a JSON report and
    prints a summary. Exit code: 0 all INFO, 1 worst WARNING, 2 worst ERROR.
"""
import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from collectors.windows import get_windows_domain_info
from core.config import get_settings
from core.logger_config import setup_logger
from core.models import RemediationResult, STATUS_RANK
from core.policies import PolicyConfigError, load_policy_definitions
from core.report import build_report, write_json_report
from helpers.directory import DirectoryError, connect, domain_to_dn
from remediations.machine_account_quota import fix_machine_account_quota
from remediations.password_policies import provision_password_policies
from remediations.subnets import register_local_subnets
from reports.eventlog import EventLogSink
from reports.formatter import print_summary
from shared.system import get_host_info, is_windows

logger = logging.getLogger("adremediate")

REMEDIATION_IDS = ["machine-account-quota", "subnets", "password-policies"]


def _password_policies(directory, settings, config_path):
    try:
        definitions = load_policy_definitions(config_path or settings.policy_config)
    except PolicyConfigError as e:
        result = RemediationResult(id="password-policies", name="Fine-grained password policies")
        result.escalate("ERROR", str(e))
        return result
    return provision_password_policies(directory, definitions, settings.group_container)


def run_remediations(directory, selected, settings, config_path=None):
    """Run the selected remediations in the fixed order and return their results."""
    results = []
    for remediation_id in REMEDIATION_IDS:
        if remediation_id not in selected:
            continue
        logger.info(f"Running remediation: {remediation_id}")
        if remediation_id == "machine-account-quota":
            results.append(fix_machine_account_quota(directory))
        elif remediation_id == "subnets":
            results.append(register_local_subnets(directory))
        else:
            results.append(_password_policies(directory, settings, config_path))
    return results


def resolve_domain(settings):
    """Configured domain, else the domain this Windows machine is joined to."""
    if settings.domain:
        return settings.domain
    if is_windows():
        info = get_windows_domain_info()
        if info["part_of_domain"]:
            logger.info(f"Using domain {info['domain']} ({info['domain_role']})")
            return info["domain"]
    return ""


def build_parser():
    parser = argparse.ArgumentParser(
        prog="ad-remediate",
        description="Remediate PingCastle findings on an Active Directory domain",
    )
    parser.add_argument(
        "--only", nargs="+", choices=REMEDIATION_IDS, metavar="ID",
        help=f"Remediations to run (default: all). Choices: {', '.join(REMEDIATION_IDS)}",
    )
    parser.add_argument("--config", help="Password policy XML document (overrides ADREMEDIATE_POLICY_CONFIG)")
    parser.add_argument("--report", help="Path of the JSON report (default: <report_dir>/remediation-<timestamp>.json)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    level = logging.DEBUG if args.verbose else logging.INFO
    setup_logger("adremediate", settings.log_file, level)

    sink = EventLogSink(settings.event_source, settings.log_file, level)
    sink.initialize()

    domain = resolve_domain(settings)
    server = settings.server or domain
    if not server:
        logger.error("No domain controller to talk to: set ADREMEDIATE_SERVER or ADREMEDIATE_DOMAIN")
        return 2

    started_at = datetime.now(timezone.utc)
    try:
        directory = connect(server, settings.username, settings.password,
                            settings.use_ssl, settings.connect_timeout,
                            domain_dn=domain_to_dn(settings.domain) if settings.domain else None)
    except DirectoryError as e:
        logger.error(str(e))
        return 2

    try:
        results = run_remediations(directory, set(args.only or REMEDIATION_IDS), settings, args.config)
    finally:
        directory.close()

    for result in results:
        sink.write(result)

    report = build_report(results, get_host_info(), started_at)
    report_path = args.report or Path(settings.report_dir) / f"remediation-{started_at:%Y%m%d-%H%M%S}.json"
    written = write_json_report(report, report_path)

    print_summary(report, written)
    return STATUS_RANK[report.status]


if __name__ == "__main__":
    sys.exit(main())

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from core.models import RemediationReport, RemediationResult, worst_status


def build_report(results: list[RemediationResult], host: dict, started_at: datetime) -> RemediationReport:
    return RemediationReport(
        meta={
            "tool": "ad-remediation",
            "started_at": started_at.isoformat(),
            "finished_at": datetime.now(timezone.utc).isoformat(),
        },
        host=host,
        results=results,
        status=worst_status(r.status for r in results),
    )


def write_json_report(report: RemediationReport, out_path: str | Path) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    with out_path.open("w", encoding="utf-8") as f:
        json.dump(asdict(report), f, indent=2, ensure_ascii=False)

    return out_path

"""
    Report formatting functions
"""

STATUS_MARKERS = {
    "INFO": "[ OK ]",
    "WARNING": "[WARN]",
    "ERROR": "[FAIL]",
}


def format_result(result):
    lines = [f"{STATUS_MARKERS[result.status]} {result.name}"]
    lines.extend(f"    {line}" for line in result.log)
    return "\n".join(lines)


def format_summary(report, report_path=None):
    text = "\n\n".join(format_result(r) for r in report.results)
    text += f"\n\nOverall status: {report.status}"
    if report_path is not None:
        text += f"\nJSON report: {report_path}"
    return text


def print_summary(report, report_path=None):
    print(format_summary(report, report_path))

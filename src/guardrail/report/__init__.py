"""
Reporting module for Guardrail.

Generates human-readable and machine-readable reports from compiled manifests.

Output formats:
    - Console: Rich terminal output with rule table and summary
    - JSON: The deterministic manifest, for the applier and for diffing
    - Markdown: Compliance report for pull requests and audit archives

Example:
    from guardrail.report import generate_console_report, generate_markdown_report

    generate_console_report(manifest)
    print(generate_markdown_report(manifest))
"""

from guardrail.report.console import generate_console_report
from guardrail.report.json import build_report_dict, generate_json_report
from guardrail.report.markdown import generate_markdown_report

__all__ = [
    "generate_console_report",
    "generate_json_report",
    "generate_markdown_report",
    "build_report_dict",
]

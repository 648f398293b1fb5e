"""Scenario Results Reporting

Text, JSON and Markdown renderings of validation runs.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from config.constants import CHECK_HASH, CHECK_MERKLE, CHECK_RACI, CHECK_TEMPORAL
from .sim import SimResult

CHECK_COLUMNS = (CHECK_HASH, CHECK_RACI, CHECK_MERKLE, CHECK_TEMPORAL)


def format_result_summary(result: SimResult) -> str:
    """Format a single result as text summary.

    Args:
        result: Simulation result

    Returns:
        Formatted string
    """
    status = "✓ PASS" if result.success else "✗ FAIL"

    lines = [
        f"\n{'='*60}",
        f"  {result.config.name}: {status}",
        f"{'='*60}",
        f"  Description: {result.config.description}",
        f"  Attack: {result.config.attack_kind or 'none'}",
        f"  Duration: {result.duration_ms:.1f}ms",
        ""
    ]

    if result.state.visited:
        lines.append("  Phases:")
        for phase, at_ms in result.state.visited:
            lines.append(f"    {at_ms:>7}ms  {phase}")
        lines.append("")

    if result.state.checks:
        lines.append("  Checks:")
        for name, check_status in result.state.checks.items():
            lines.append(f"    {name}: {check_status}")
        lines.append("")

    if result.metrics:
        lines.append("  Metrics:")
        for key, value in result.metrics.items():
            lines.append(f"    {key}: {value}")

    if result.state.violations:
        lines.append(f"\n  Violations ({len(result.state.violations)}):")
        for v in result.state.violations[:5]:
            lines.append(f"    - {v.get('type', 'unknown')}: {v}")
        if len(result.state.violations) > 5:
            lines.append(f"    ... and {len(result.state.violations) - 5} more")

    if result.state.error:
        lines.append(f"\n  Error: {result.state.error}")

    lines.append("")
    return "\n".join(lines)


def format_all_results(results: dict) -> str:
    """Format all scenario results.

    Args:
        results: Results from run_all_scenarios

    Returns:
        Formatted string
    """
    lines = [
        "\n" + "=" * 60,
        "  DECISION RECORDER - Validation Report",
        "=" * 60,
        f"  Timestamp: {results.get('timestamp', 'N/A')}",
        f"  Overall: {'✓ ALL PASSED' if results.get('all_passed') else '✗ SOME FAILED'}",
        "",
        "  Scenario Results:",
        "  " + "-" * 56
    ]

    for name, data in results.get("scenarios", {}).items():
        mark = "✓" if data["success"] else "✗"
        checks = data.get("checks", {})
        statuses = " ".join(f"{checks.get(c, '-'):>4}" for c in CHECK_COLUMNS)
        violations = len(data.get("violations", []))
        lines.append(f"    {mark} {name:20} {statuses}  {violations} violations")

    lines.extend(["  " + "-" * 56, ""])
    return "\n".join(lines)


def generate_json_report(results: dict, output_path: Optional[Path] = None) -> dict:
    """Generate JSON report.

    Args:
        results: Results from run_all_scenarios
        output_path: Optional path to write JSON

    Returns:
        Report dict
    """
    scenarios = results.get("scenarios", {})
    report = {
        "report_type": "validation_report",
        "version": "1.0",
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "summary": {
            "all_passed": results.get("all_passed", False),
            "total_scenarios": len(scenarios),
            "passed": sum(1 for s in scenarios.values() if s["success"]),
            "failed": sum(1 for s in scenarios.values() if not s["success"])
        },
        "scenarios": {
            name: {
                "success": data["success"],
                "duration_ms": data.get("duration_ms", 0),
                "checks": data.get("checks", {}),
                "metrics": data.get("metrics", {}),
                "violations": data.get("violations", [])
            }
            for name, data in scenarios.items()
        }
    }

    if output_path:
        with open(output_path, "w") as f:
            json.dump(report, f, indent=2)

    return report


def generate_markdown_report(results: dict) -> str:
    """Generate Markdown report.

    Args:
        results: Results from run_all_scenarios

    Returns:
        Markdown string
    """
    lines = [
        "# Decision Recorder Validation Report",
        "",
        f"**Generated:** {results.get('timestamp', 'N/A')}",
        "",
        "**Status:** " + ("✅ ALL SCENARIOS PASSED" if results.get("all_passed")
                          else "❌ SOME SCENARIOS FAILED"),
        "",
        "| Scenario | Status | " + " | ".join(CHECK_COLUMNS) + " |",
        "|---" * (len(CHECK_COLUMNS) + 2) + "|"
    ]

    for name, data in results.get("scenarios", {}).items():
        status = "✅ Pass" if data["success"] else "❌ Fail"
        checks = data.get("checks", {})
        cells = " | ".join(checks.get(c, "-") for c in CHECK_COLUMNS)
        lines.append(f"| {name} | {status} | {cells} |")

    for name, data in results.get("scenarios", {}).items():
        if not data.get("violations"):
            continue
        lines.extend(["", f"### {name} violations", ""])
        for v in data["violations"][:3]:
            lines.append(f"- {v.get('type', 'unknown')}: expected {v.get('expected')}, got {v.get('actual')}")

    lines.append("")
    return "\n".join(lines)


def save_results(results: dict, output_dir: Path):
    """Save all report formats.

    Args:
        results: Results from run_all_scenarios
        output_dir: Directory to save reports
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    generate_json_report(results, output_dir / "validation_report.json")

    with open(output_dir / "validation_report.md", "w") as f:
        f.write(generate_markdown_report(results))

    with open(output_dir / "validation_report.txt", "w") as f:
        f.write(format_all_results(results))

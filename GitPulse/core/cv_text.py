"""
CV snippet generation from finished report metrics.
"""

from core.entities import ReportMetrics

CONSISTENCY_THRESHOLD = 60
COLLABORATION_THRESHOLD = 50


def generate_cv_insert(metrics: ReportMetrics) -> str:
    """Render a short bullet list suitable for pasting into a CV."""
    lines = [
        "GitHub Activity (Verified)",
        f"• Active contributor across {metrics.active_repos} repositories "
        f"({metrics.time_window_months} months)",
    ]

    owner_count = sum(1 for r in metrics.top_repositories if r.role == "owner")
    if owner_count > 0:
        plural = "s" if owner_count > 1 else ""
        lines.append(f"• Maintainer of {owner_count} project{plural}")

    if metrics.consistency_index >= CONSISTENCY_THRESHOLD:
        lines.append("• Consistent weekly activity with sustained ownership")

    if metrics.collaboration_index >= COLLABORATION_THRESHOLD:
        lines.append("• Strong collaboration via PRs and code reviews")

    languages = ", ".join(
        f"{stat.language} ({stat.percentage}%)"
        for stat in metrics.primary_languages[:3]
    )
    if languages:
        lines.append(f"• Primary languages: {languages}")

    return "\n".join(lines)

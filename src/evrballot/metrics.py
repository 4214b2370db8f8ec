"""
evrballot/metrics.py

Prometheus metrics for a BallotService.

Renders the text exposition format directly; the host process decides how
to serve it.
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from .service import BallotService

logger = logging.getLogger("evrballot.metrics")


class MetricsCollector:
    """
    Prometheus metrics collector for the ballot engine.

    Usage:
        metrics = MetricsCollector(service)
        prometheus_output = metrics.collect()
    """

    METRICS = {
        "evrballot_organizations": {
            "type": "gauge",
            "help": "Number of registered organizations",
        },
        "evrballot_proposals": {
            "type": "gauge",
            "help": "Number of proposals by derived status",
        },
        "evrballot_votes_accepted_total": {
            "type": "counter",
            "help": "Total number of recorded votes",
        },
        "evrballot_votes_rejected_total": {
            "type": "counter",
            "help": "Total number of rejected vote submissions by reason",
        },
        "evrballot_finalizations_total": {
            "type": "counter",
            "help": "Total number of successful finalize calls",
        },
        "evrballot_events_total": {
            "type": "counter",
            "help": "Total number of audit log events",
        },
    }

    def __init__(self, service: "BallotService"):
        self.service = service

    def collect(self) -> str:
        """
        Collect all metrics in Prometheus format.

        Returns:
            Prometheus-formatted metrics string
        """
        lines: List[str] = []

        def add_metric(name: str, samples: Dict[Optional[str], float], label: str = "") -> None:
            metric_def = self.METRICS[name]
            lines.append(f"# HELP {name} {metric_def['help']}")
            lines.append(f"# TYPE {name} {metric_def['type']}")
            for label_value, value in samples.items():
                if label_value is None:
                    lines.append(f"{name} {value}")
                else:
                    lines.append(f'{name}{{{label}="{label_value}"}} {value}')

        stats = self.service.get_stats()

        add_metric("evrballot_organizations", {None: stats["organizations"]})
        add_metric("evrballot_proposals", stats["proposals_by_status"], label="status")
        add_metric("evrballot_votes_accepted_total", {None: stats["votes"]["accepted"]})
        add_metric(
            "evrballot_votes_rejected_total",
            stats["votes"]["rejected"] or {None: 0},
            label="reason",
        )
        add_metric("evrballot_finalizations_total", {None: stats["finalizations"]})
        add_metric("evrballot_events_total", {None: stats["events"]})

        return "\n".join(lines) + "\n"

"""
subdrop/metrics.py

Prometheus metrics collection for subdrop.

Provides metrics for monitoring distribution throughput, failures and
leaderboard growth.
"""

import time
import logging
from typing import TYPE_CHECKING, Dict, Any

from .protocol.events import Notification

if TYPE_CHECKING:
    from .protocol.distribution import DistributionEngine

logger = logging.getLogger("subdrop.metrics")

VERSION = "0.1.0"


class MetricsCollector:
    """
    Prometheus metrics collector for subdrop.

    Usage:
        from subdrop.metrics import MetricsCollector

        metrics = MetricsCollector(engine)
        prometheus_output = metrics.collect()
    """

    # Metric definitions
    METRICS = {
        "subdrop_drops_total": {
            "type": "counter",
            "help": "Total number of successful drops",
        },
        "subdrop_tokens_distributed_total": {
            "type": "counter",
            "help": "Total tokens moved to recipients, in base units",
        },
        "subdrop_distributions_total": {
            "type": "counter",
            "help": "Distribution calls by outcome",
        },
        "subdrop_score_updates_total": {
            "type": "counter",
            "help": "Total number of score updates",
        },
        "subdrop_admin_actions_total": {
            "type": "counter",
            "help": "Total number of committed admin operations",
        },
        "subdrop_leaderboard_size": {
            "type": "gauge",
            "help": "Number of accounts on the leaderboard",
        },
        "subdrop_batch_size": {
            "type": "gauge",
            "help": "Current distribution chunk size",
        },
        "subdrop_engine_token_balance": {
            "type": "gauge",
            "help": "Tokens held by the engine account, in base units",
        },
        "subdrop_uptime_seconds": {
            "type": "counter",
            "help": "Collector uptime in seconds",
        },
        "subdrop_info": {
            "type": "gauge",
            "help": "Engine information (address, version as labels)",
        },
    }

    ADMIN_KINDS = ("BatchSizeChanged", "FundsWithdrawn", "SenderRecordReset", "OwnershipTransferred")

    def __init__(self, engine: "DistributionEngine"):
        """
        Initialize metrics collector.

        Args:
            engine: DistributionEngine to collect metrics from
        """
        self.engine = engine
        self._start_time = time.time()

        # Counters fed by committed notifications
        self._drops = 0
        self._tokens_distributed = 0
        self._score_updates = 0
        self._admin_actions = 0

        engine.hub.subscribe(self.record_notification)

    def record_notification(self, notification: Notification) -> None:
        """Update counters from a committed notification."""
        kind = notification.kind
        if kind == "DropDistributed":
            self._drops += 1
            self._tokens_distributed += notification.amount
        elif kind == "ScoreUpdated":
            self._score_updates += 1
        elif kind in self.ADMIN_KINDS:
            self._admin_actions += 1

    def collect(self) -> str:
        """
        Collect all metrics and return in Prometheus format.

        Returns:
            Prometheus-formatted metrics string
        """
        lines = []

        def add_header(name: str):
            metric_def = self.METRICS.get(name, {})
            lines.append(f"# HELP {name} {metric_def.get('help', '')}")
            lines.append(f"# TYPE {name} {metric_def.get('type', 'gauge')}")

        def add_metric(name: str, value: float, labels: Dict[str, str] = None):
            add_header(name)
            if labels:
                label_str = ",".join(f'{k}="{v}"' for k, v in labels.items())
                lines.append(f"{name}{{{label_str}}} {value}")
            else:
                lines.append(f"{name} {value}")

        try:
            stats = self.engine.stats

            add_metric("subdrop_drops_total", self._drops)
            add_metric("subdrop_tokens_distributed_total", self._tokens_distributed)

            add_header("subdrop_distributions_total")
            lines.append(f'subdrop_distributions_total{{outcome="ok"}} {stats["distributions_ok"]}')
            lines.append(f'subdrop_distributions_total{{outcome="failed"}} {stats["distributions_failed"]}')

            add_metric("subdrop_score_updates_total", self._score_updates)
            add_metric("subdrop_admin_actions_total", self._admin_actions)
            add_metric("subdrop_leaderboard_size", self.engine.total_leaderboard_size())
            add_metric("subdrop_batch_size", self.engine.batch_size)
            add_metric(
                "subdrop_engine_token_balance",
                self.engine.ledger.balance_of(self.engine.address),
            )
            add_metric("subdrop_uptime_seconds", time.time() - self._start_time)
            add_metric("subdrop_info", 1, {"address": self.engine.address, "version": VERSION})

        except Exception as e:
            logger.error(f"Error collecting metrics: {e}")
            lines.append(f"# Error collecting metrics: {e}")

        return "\n".join(lines) + "\n"

    def get_stats(self) -> Dict[str, Any]:
        """
        Get metrics as a dictionary (for JSON API).

        Returns:
            Dictionary of metric values
        """
        stats = self.engine.stats
        return {
            "drops": self._drops,
            "tokens_distributed": self._tokens_distributed,
            "distributions_ok": stats["distributions_ok"],
            "distributions_failed": stats["distributions_failed"],
            "score_updates": self._score_updates,
            "admin_actions": self._admin_actions,
            "leaderboard_size": self.engine.total_leaderboard_size(),
            "batch_size": self.engine.batch_size,
            "uptime_seconds": time.time() - self._start_time,
        }

    def reset_counters(self) -> None:
        """Reset all counters (useful for testing)."""
        self._drops = 0
        self._tokens_distributed = 0
        self._score_updates = 0
        self._admin_actions = 0

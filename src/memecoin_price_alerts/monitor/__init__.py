"""Price monitoring: sweep scheduling and threshold evaluation."""

from memecoin_price_alerts.monitor.evaluator import (
    AlertEvaluator,
    Evaluation,
    compute_percent_change,
    should_alert,
)
from memecoin_price_alerts.monitor.scheduler import (
    WARMUP_DELAY_SECONDS,
    MonitorState,
    MonitorStats,
    PriceMonitor,
    group_by_chain,
)

__all__ = [
    "WARMUP_DELAY_SECONDS",
    "AlertEvaluator",
    "Evaluation",
    "MonitorState",
    "MonitorStats",
    "PriceMonitor",
    "compute_percent_change",
    "group_by_chain",
    "should_alert",
]

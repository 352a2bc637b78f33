"""
Reduction of monitoring samples into a health report.

The thresholds are fixed so the same samples always produce the same verdict.
"""
from typing import Iterable, List, Optional

from mcp_devops.kube_types import MonitoringReport, MonitoringSample

HEALTHY_RATE = 90.0
WARNING_RATE = 70.0
ALERT_RATE = 80.0
MIN_READY_REPLICAS = 1
MIN_RUNNING_PODS = 1
HA_REPLICAS = 2

NO_DATA_ALERT = "No valid monitoring data collected"
NO_DATA_RECOMMENDATION = "Check monitoring configuration and connectivity"


def _mean(values: List[Optional[float]]) -> float:
    numbers = [v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool)]
    return sum(numbers) / len(numbers) if numbers else 0.0


def verdict(success_rate: float) -> str:
    if success_rate >= HEALTHY_RATE:
        return "healthy"
    if success_rate >= WARNING_RATE:
        return "warning"
    return "unhealthy"


def summarize(samples: Iterable[MonitoringSample]) -> MonitoringReport:
    samples = list(samples)
    valid = [sample for sample in samples if sample.ok]

    if not valid:
        return MonitoringReport(
            overall_health="unknown",
            metrics={},
            alerts=[NO_DATA_ALERT],
            recommendations=[NO_DATA_RECOMMENDATION],
        )

    avg_ready = _mean([(s.deployment or {}).get("ready_replicas") for s in valid])
    avg_running = _mean([(s.pods or {}).get("running_pods") for s in valid])
    healthy_checks = sum(1 for s in valid if (s.health or {}).get("status") == "healthy")
    success_rate = healthy_checks / len(valid) * 100

    alerts = []
    if avg_ready < MIN_READY_REPLICAS:
        alerts.append("Low replica count detected")
    if avg_running < MIN_RUNNING_PODS:
        alerts.append("Insufficient running pods")
    if success_rate < ALERT_RATE:
        alerts.append(f"Health check success rate below {ALERT_RATE:g}%")

    recommendations = []
    if avg_ready < HA_REPLICAS:
        recommendations.append("Consider increasing replica count for high availability")
    if success_rate < HEALTHY_RATE:
        recommendations.append("Investigate health check failures")

    return MonitoringReport(
        overall_health=verdict(success_rate),
        metrics={
            "samples_collected": len(samples),
            "data_points": len(valid),
            "average_ready_replicas": avg_ready,
            "average_running_pods": avg_running,
            "health_success_rate": round(success_rate, 1),
        },
        alerts=alerts,
        recommendations=recommendations,
    )

import pytest

from mcp_devops.health import NO_DATA_ALERT, NO_DATA_RECOMMENDATION, summarize, verdict
from mcp_devops.kube_types import MonitoringSample


def _sample(ready: int = 2, running: int = 2, health: str = "healthy") -> MonitoringSample:
    return MonitoringSample(
        timestamp="2026-10-17T00:00:00+00:00",
        deployment={"ready_replicas": ready},
        pods={"running_pods": running},
        health={"status": health},
    )


def _error() -> MonitoringSample:
    return MonitoringSample(timestamp="2026-10-17T00:00:00+00:00", error="boom")


@pytest.mark.parametrize("samples", [[], [_error(), _error()]])
def test_no_valid_data_is_unknown(samples):
    report = summarize(samples)

    assert report.overall_health == "unknown"
    assert report.alerts == [NO_DATA_ALERT]
    assert report.recommendations == [NO_DATA_RECOMMENDATION]
    assert report.metrics == {}


@pytest.mark.parametrize(
    "rate, expected",
    [(100, "healthy"), (90, "healthy"), (89.9, "warning"), (70, "warning"), (69.9, "unhealthy"), (0, "unhealthy")],
)
def test_verdict_thresholds(rate, expected):
    assert verdict(rate) == expected


def test_all_healthy_samples():
    report = summarize([_sample() for _ in range(4)])

    assert report.overall_health == "healthy"
    assert report.alerts == []
    assert report.recommendations == []
    assert report.metrics == {
        "samples_collected": 4,
        "data_points": 4,
        "average_ready_replicas": 2.0,
        "average_running_pods": 2.0,
        "health_success_rate": 100.0,
    }


def test_error_samples_do_not_count_towards_the_rate():
    report = summarize([_sample(), _error(), _sample()])

    assert report.overall_health == "healthy"
    assert report.metrics["samples_collected"] == 3
    assert report.metrics["data_points"] == 2


def test_warning_band_recommends_investigation():
    samples = [_sample()] * 6 + [_sample(health="unhealthy")]

    report = summarize(samples)

    assert report.overall_health == "warning"
    assert report.metrics["health_success_rate"] == 85.7
    assert report.alerts == []
    assert report.recommendations == ["Investigate health check failures"]


def test_unhealthy_workload_raises_every_alert():
    samples = [_sample(ready=0, running=0, health="unhealthy")] * 2 + [_sample(ready=1, running=1)]

    report = summarize(samples)

    assert report.overall_health == "unhealthy"
    assert report.alerts == [
        "Low replica count detected",
        "Insufficient running pods",
        "Health check success rate below 80%",
    ]
    assert report.recommendations == [
        "Consider increasing replica count for high availability",
        "Investigate health check failures",
    ]


def test_single_replica_suggests_scaling_out():
    report = summarize([_sample(ready=1, running=1)])

    assert report.overall_health == "healthy"
    assert report.recommendations == ["Consider increasing replica count for high availability"]

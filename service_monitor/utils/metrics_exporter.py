"""Prometheus指标导出"""

from typing import Iterator, Tuple

from prometheus_client import CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric


class MonitorCollector:
    """在每次抓取时从调度器读取状态快照生成指标"""

    def __init__(self, scheduler):
        """
        Args:
            scheduler: MonitorScheduler 实例
        """
        self.scheduler = scheduler

    def collect(self) -> Iterator[Metric]:
        health = GaugeMetricFamily(
            'service_health_status',
            'Service health status (1 = healthy, 0 = unhealthy)',
            labels=['service', 'critical'])
        consecutive = GaugeMetricFamily(
            'service_consecutive_failures',
            'Consecutive health check failures',
            labels=['service'])
        error_rate = GaugeMetricFamily(
            'service_error_rate',
            'Service error rate since process start',
            labels=['service'])

        states = self.scheduler.state_manager.list_all()
        for name, state in states.items():
            spec = self.scheduler.services.get(name)
            critical = 'true' if spec is not None and spec.critical else 'false'
            health.add_metric([name, critical], 1 if state.is_healthy else 0)
            consecutive.add_metric([name], state.consecutive_failures)
            if state.total_checks > 0:
                error_rate.add_metric([name], state.error_rate)

        alerts = CounterMetricFamily(
            'health_monitor_alerts',
            'Total number of alerts accepted since process start')
        alerts.add_metric([], self.scheduler.alert_ledger.total_accepted)

        yield health
        yield consecutive
        yield error_rate
        yield alerts


def create_registry(scheduler) -> CollectorRegistry:
    """为单个调度器创建独立的指标注册表"""
    registry = CollectorRegistry(auto_describe=False)
    registry.register(MonitorCollector(scheduler))
    return registry


def render_metrics(registry: CollectorRegistry) -> Tuple[bytes, str]:
    """
    生成文本格式的指标

    Returns:
        tuple: (指标内容, Content-Type)
    """
    return generate_latest(registry), CONTENT_TYPE_LATEST

"""PagerDuty告警渠道"""

from datetime import timezone
from typing import Dict, Any

from .http_alerter import HTTPAlerter
from ..models.health_check import Alert, Severity

PAGERDUTY_EVENTS_URL = 'https://events.pagerduty.com/v2/enqueue'


class PagerDutyAlerter(HTTPAlerter):
    """通过PagerDuty Events API v2 触发事件

    dedup_key 与台账的去重键一致，PagerDuty侧会把重复事件合并到同一个incident。
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        config = dict(config)
        config.setdefault('url', PAGERDUTY_EVENTS_URL)
        self.routing_key = config.get('routing_key', '')
        self.source = config.get('source', 'service-monitor')
        self.group = config.get('group')
        super().__init__(name, config)

    def validate_config(self) -> bool:
        if not self.routing_key:
            self.logger.error(f"PagerDuty告警渠道 {self.name} 缺少 routing_key")
            return False
        return super().validate_config()

    def _build_payload(self, alert: Alert) -> Dict[str, Any]:
        payload = {
            'summary': f"{alert.service_name}: {alert.message}",
            'severity': 'critical' if alert.severity == Severity.CRITICAL else 'warning',
            'source': self.source,
            'component': alert.service_name,
            'class': alert.kind.value,
            # 本地时间的告警时间转换为带时区的UTC时间
            'timestamp': alert.created_at.astimezone(timezone.utc).isoformat(),
            'custom_details': alert.metadata
        }
        if self.group:
            payload['group'] = self.group

        return {
            'routing_key': self.routing_key,
            'event_action': 'trigger',
            'dedup_key': alert.dedup_key,
            'payload': payload
        }

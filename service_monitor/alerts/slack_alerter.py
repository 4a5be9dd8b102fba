"""Slack Webhook告警渠道"""

from typing import Dict, Any

from .http_alerter import HTTPAlerter
from ..models.health_check import Alert, Severity


class SlackAlerter(HTTPAlerter):
    """通过Slack Incoming Webhook发送告警"""

    def _build_payload(self, alert: Alert) -> Dict[str, Any]:
        is_critical = alert.severity == Severity.CRITICAL
        color = 'danger' if is_critical else 'warning'
        emoji = '🚨' if is_critical else '⚠️'

        return {
            'text': f"{emoji} Health Alert: {alert.service_name}",
            'attachments': [{
                'color': color,
                'fields': [
                    {'title': 'Service', 'value': alert.service_name, 'short': True},
                    {'title': 'Type', 'value': alert.kind.value, 'short': True},
                    {'title': 'Severity', 'value': alert.severity.value, 'short': True},
                    {'title': 'Critical', 'value': 'Yes' if alert.critical else 'No',
                     'short': True},
                    {'title': 'Message', 'value': alert.message, 'short': False},
                    {'title': 'Timestamp', 'value': alert.created_at.isoformat(),
                     'short': False},
                ]
            }]
        }

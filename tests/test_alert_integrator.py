"""告警系统集成器测试"""

from datetime import timedelta

import pytest

from helpers import FakeClock, RecordingAlerter
from service_monitor.alerts.evaluator import AlertEvaluator
from service_monitor.alerts.http_alerter import HTTPAlerter
from service_monitor.alerts.integrator import AlertIntegrator
from service_monitor.alerts.ledger import AlertLedger
from service_monitor.alerts.manager import AlertManager
from service_monitor.alerts.pagerduty_alerter import PagerDutyAlerter
from service_monitor.alerts.slack_alerter import SlackAlerter
from service_monitor.models.health_check import (
    AlertKind, CheckKind, HealthCheckResult, ServiceSpec
)
from service_monitor.services.state_manager import StateManager


SPEC = ServiceSpec('api', CheckKind.HTTP, 'http://api/health', critical=True)


def failure() -> HealthCheckResult:
    return HealthCheckResult('api', CheckKind.HTTP, False, error_message='HTTP 500')


class TestAlertIntegrator:
    """告警系统集成器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.clock = FakeClock()
        self.state_manager = StateManager(clock=self.clock)
        self.ledger = AlertLedger(timedelta(minutes=5), timedelta(hours=1), clock=self.clock)
        self.alert_manager = AlertManager()
        self.integrator = AlertIntegrator(self.state_manager, AlertEvaluator(), self.ledger,
                                          self.alert_manager, clock=self.clock)

    def test_initialize_alerters(self):
        """测试按配置创建告警渠道，无效配置被跳过"""
        self.integrator.initialize_alerters([
            {'name': 'hook', 'type': 'http', 'url': 'https://hooks.example.com'},
            {'name': 'slack', 'type': 'slack', 'url': 'https://hooks.slack.com/services/x'},
            {'name': 'pd', 'type': 'pagerduty', 'routing_key': 'key'},
            {'name': 'broken', 'type': 'http'},
            {'name': 'mail', 'type': 'email'},
        ])

        alerters = self.alert_manager.alerters
        assert [a.name for a in alerters] == ['hook', 'slack', 'pd']
        assert isinstance(alerters[0], HTTPAlerter)
        assert isinstance(alerters[1], SlackAlerter)
        assert isinstance(alerters[2], PagerDutyAlerter)

    @pytest.mark.asyncio
    async def test_process_result_pipeline(self):
        """测试检查结果依次经过状态更新、评估、去重和分发"""
        recorder = RecordingAlerter()
        self.alert_manager.add_alerter(recorder)

        for _ in range(2):
            assert await self.integrator.process_health_check_result(SPEC, failure()) == []

        accepted = await self.integrator.process_health_check_result(SPEC, failure())
        assert [a.kind for a in accepted] == [AlertKind.CONSECUTIVE_FAILURES]
        assert accepted[0].created_at == self.clock.now

        self.clock.advance(seconds=30)
        assert await self.integrator.process_health_check_result(SPEC, failure()) == []

        await self.alert_manager.drain()
        assert len(recorder.alerts) == 1
        assert self.state_manager.get('api').consecutive_failures == 4

        stats = self.integrator.get_alert_stats()
        assert stats['total_accepted'] == 1
        assert stats['retained'] == 1
        assert stats['sent'] == 1

    @pytest.mark.asyncio
    async def test_alert_system(self):
        """测试发送测试告警，不进入台账"""
        recorder = RecordingAlerter()
        self.alert_manager.add_alerter(recorder)

        assert await self.integrator.test_alert_system() is True
        assert len(recorder.alerts) == 1
        assert recorder.alerts[0].service_name == 'test-service'
        assert self.ledger.total_accepted == 0

    @pytest.mark.asyncio
    async def test_alert_system_without_alerters(self):
        """测试没有告警渠道"""
        assert await self.integrator.test_alert_system() is False

"""告警规则评估器测试"""

from datetime import datetime

import pytest

from service_monitor.alerts.evaluator import AlertEvaluator, AlertThresholds
from service_monitor.models.health_check import (
    AlertKind, CheckKind, HealthCheckResult, ServiceSpec, ServiceState, Severity
)


NOW = datetime(2024, 1, 1, 12, 0, 0)


def make_spec(critical: bool = True) -> ServiceSpec:
    return ServiceSpec('api', CheckKind.HTTP, 'http://api.internal/health', critical=critical)


def make_result(healthy: bool, latency_ms=None) -> HealthCheckResult:
    return HealthCheckResult(
        service_name='api',
        check_kind=CheckKind.HTTP,
        is_healthy=healthy,
        latency_ms=latency_ms,
        error_message=None if healthy else 'HTTP 503'
    )


class TestAlertEvaluator:
    """告警规则评估器测试类"""

    def setup_method(self):
        self.evaluator = AlertEvaluator()

    def test_default_thresholds(self):
        """测试默认阈值"""
        thresholds = self.evaluator.thresholds
        assert thresholds.consecutive_failures == 3
        assert thresholds.error_rate == 0.10
        assert thresholds.min_checks_for_error_rate == 10
        assert thresholds.slow_response_ms == 5000

    def test_healthy_service_no_alerts(self):
        """测试健康服务不产生告警"""
        state = ServiceState('api', total_checks=1)
        alerts = self.evaluator.evaluate(make_spec(), state, make_result(True, 20), now=NOW)
        assert alerts == []

    def test_consecutive_failures_below_threshold(self):
        """测试连续失败未达阈值不告警"""
        state = ServiceState('api', consecutive_failures=2, total_checks=2, total_failures=2)
        assert self.evaluator.evaluate(make_spec(), state, make_result(False), now=NOW) == []

    def test_consecutive_failures_critical(self):
        """测试关键服务连续失败产生critical告警"""
        state = ServiceState('api', consecutive_failures=3, total_checks=3, total_failures=3)
        alerts = self.evaluator.evaluate(make_spec(True), state, make_result(False), now=NOW)

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.kind == AlertKind.CONSECUTIVE_FAILURES
        assert alert.severity == Severity.CRITICAL
        assert alert.critical is True
        assert alert.metadata == {'consecutive_failures': 3}
        assert alert.created_at == NOW
        assert '3' in alert.message

    def test_consecutive_failures_non_critical(self):
        """测试非关键服务连续失败产生warning告警"""
        state = ServiceState('api', consecutive_failures=5, total_checks=5, total_failures=5)
        alerts = self.evaluator.evaluate(make_spec(False), state, make_result(False), now=NOW)

        assert len(alerts) == 1
        assert alerts[0].severity == Severity.WARNING
        assert alerts[0].critical is False

    def test_error_rate_requires_minimum_checks(self):
        """测试检查次数不超过最小值时不评估错误率"""
        state = ServiceState('api', consecutive_failures=0, total_checks=10, total_failures=5)
        assert self.evaluator.evaluate(make_spec(), state, make_result(True, 10), now=NOW) == []

    def test_error_rate_at_threshold_not_alerted(self):
        """测试错误率恰好等于阈值不告警"""
        state = ServiceState('api', consecutive_failures=0, total_checks=20, total_failures=2)
        assert self.evaluator.evaluate(make_spec(), state, make_result(True, 10), now=NOW) == []

    def test_error_rate_above_threshold(self):
        """测试错误率超过阈值"""
        state = ServiceState('api', consecutive_failures=1, total_checks=11, total_failures=2)
        alerts = self.evaluator.evaluate(make_spec(), state, make_result(False), now=NOW)

        assert [a.kind for a in alerts] == [AlertKind.HIGH_ERROR_RATE]
        assert alerts[0].metadata == {'error_rate': 18}
        assert alerts[0].severity == Severity.CRITICAL

    def test_slow_response_always_warning(self):
        """测试慢响应告警固定为warning"""
        state = ServiceState('api', total_checks=1)
        alerts = self.evaluator.evaluate(make_spec(True), state, make_result(True, 6000), now=NOW)

        assert len(alerts) == 1
        assert alerts[0].kind == AlertKind.SLOW_RESPONSE
        assert alerts[0].severity == Severity.WARNING
        assert alerts[0].critical is True
        assert alerts[0].metadata == {'response_time_ms': 6000}

    def test_slow_response_at_threshold_not_alerted(self):
        """测试响应时间等于阈值不告警"""
        state = ServiceState('api', total_checks=1)
        assert self.evaluator.evaluate(make_spec(), state, make_result(True, 5000), now=NOW) == []

    def test_slow_response_ignored_for_failures(self):
        """测试失败结果不触发慢响应告警"""
        state = ServiceState('api', consecutive_failures=1, total_checks=1, total_failures=1)
        assert self.evaluator.evaluate(make_spec(), state, make_result(False, 9000), now=NOW) == []

    def test_multiple_rules_fire_together(self):
        """测试多条规则同时触发"""
        state = ServiceState('api', consecutive_failures=4, total_checks=12, total_failures=4)
        alerts = self.evaluator.evaluate(make_spec(), state, make_result(False), now=NOW)

        kinds = {a.kind for a in alerts}
        assert kinds == {AlertKind.CONSECUTIVE_FAILURES, AlertKind.HIGH_ERROR_RATE}

    def test_custom_thresholds(self):
        """测试自定义阈值"""
        evaluator = AlertEvaluator(AlertThresholds(consecutive_failures=1, slow_response_ms=100))
        state = ServiceState('api', consecutive_failures=1, total_checks=1, total_failures=1)

        alerts = evaluator.evaluate(make_spec(), state, make_result(False), now=NOW)
        assert [a.kind for a in alerts] == [AlertKind.CONSECUTIVE_FAILURES]

        healthy_state = ServiceState('api', total_checks=2, total_failures=1)
        alerts = evaluator.evaluate(make_spec(), healthy_state, make_result(True, 150), now=NOW)
        assert [a.kind for a in alerts] == [AlertKind.SLOW_RESPONSE]

    def test_created_at_defaults_to_result_timestamp(self):
        """测试未指定时间时使用检查结果时间"""
        result = make_result(False)
        state = ServiceState('api', consecutive_failures=3, total_checks=3, total_failures=3)
        alerts = self.evaluator.evaluate(make_spec(), state, result)

        assert alerts[0].created_at == result.timestamp

    def test_zero_consecutive_threshold_rejected(self):
        """测试连续失败阈值不能为0，避免健康检查也触发告警"""
        with pytest.raises(ValueError):
            AlertThresholds(consecutive_failures=0)

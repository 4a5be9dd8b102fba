"""状态管理器测试模块"""

import random
from datetime import datetime, timedelta

import pytest

from service_monitor.models.health_check import CheckKind, HealthCheckResult
from service_monitor.services.state_manager import StateManager
from service_monitor.utils.exceptions import StateManagerError


def make_result(healthy: bool, name: str = 'test-service') -> HealthCheckResult:
    return HealthCheckResult(
        service_name=name,
        check_kind=CheckKind.HTTP,
        is_healthy=healthy,
        latency_ms=10.0 if healthy else None,
        error_message=None if healthy else '连接失败'
    )


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, 0, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


class TestStateManager:
    """状态管理器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.clock = FakeClock()
        self.state_manager = StateManager(clock=self.clock)

    def test_unknown_service(self):
        """测试未检查过的服务返回None"""
        assert self.state_manager.get('never-checked') is None
        assert self.state_manager.list_all() == {}

    def test_first_success(self):
        """测试首次成功检查"""
        state = self.state_manager.update('test-service', make_result(True))

        assert state.total_checks == 1
        assert state.total_failures == 0
        assert state.consecutive_failures == 0
        assert state.last_healthy_at == self.clock.now
        assert state.last_checked_at == self.clock.now

    def test_first_failure(self):
        """测试首次失败检查"""
        state = self.state_manager.update('test-service', make_result(False))

        assert state.total_checks == 1
        assert state.total_failures == 1
        assert state.consecutive_failures == 1
        assert state.last_healthy_at is None
        assert state.last_checked_at == self.clock.now

    def test_success_resets_consecutive_failures(self):
        """测试连续失败后一次成功清零连续失败次数"""
        for _ in range(4):
            self.clock.advance(30)
            self.state_manager.update('test-service', make_result(False))

        self.clock.advance(30)
        state = self.state_manager.update('test-service', make_result(True))

        assert state.consecutive_failures == 0
        assert state.total_failures == 4
        assert state.total_checks == 5
        assert state.last_healthy_at == self.clock.now

    def test_last_healthy_not_updated_on_failure(self):
        """测试失败不会更新最近健康时间"""
        self.state_manager.update('test-service', make_result(True))
        healthy_at = self.clock.now

        self.clock.advance(30)
        state = self.state_manager.update('test-service', make_result(False))

        assert state.last_healthy_at == healthy_at
        assert state.last_checked_at == self.clock.now

    def test_invariants_hold_for_random_sequences(self):
        """测试任意检查序列下计数不变量成立"""
        rng = random.Random(42)
        for _ in range(500):
            state = self.state_manager.update('test-service', make_result(rng.random() < 0.6))
            assert state.total_failures <= state.total_checks
            assert state.consecutive_failures <= state.total_failures

    def test_returned_state_is_copy(self):
        """测试返回的是副本，修改不影响内部状态"""
        state = self.state_manager.update('test-service', make_result(False))
        state.consecutive_failures = 100

        assert self.state_manager.get('test-service').consecutive_failures == 1

        snapshot = self.state_manager.list_all()
        snapshot['test-service'].total_checks = 100
        assert self.state_manager.get('test-service').total_checks == 1

    def test_services_are_independent(self):
        """测试不同服务状态互不影响"""
        self.state_manager.update('a', make_result(False, 'a'))
        self.state_manager.update('b', make_result(True, 'b'))

        states = self.state_manager.list_all()
        assert states['a'].consecutive_failures == 1
        assert states['b'].consecutive_failures == 0

    def test_invariant_violation_raises(self):
        """测试内部状态被破坏时抛出异常"""
        self.state_manager.update('test-service', make_result(True))
        self.state_manager._states['test-service'].consecutive_failures = 5

        with pytest.raises(StateManagerError):
            self.state_manager.update('test-service', make_result(False))

"""健康检查器模块"""

from .base import BaseHealthChecker
from .factory import HealthCheckerFactory, health_checker_factory, register_checker
from .http_checker import HttpHealthChecker
from .tcp_checker import TcpHealthChecker

__all__ = ['BaseHealthChecker', 'HealthCheckerFactory', 'health_checker_factory',
           'register_checker', 'HttpHealthChecker', 'TcpHealthChecker']

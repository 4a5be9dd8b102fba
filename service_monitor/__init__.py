"""服务健康监控与告警引擎"""

__version__ = "1.0.0"

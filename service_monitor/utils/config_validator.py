"""配置验证工具"""

from typing import Dict, Any
from urllib.parse import urlparse

from .exceptions import ConfigError

SUPPORTED_CHECK_TYPES = ['http', 'tcp']
SUPPORTED_ALERT_TYPES = ['http', 'slack', 'pagerduty']
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """配置验证器"""

    @staticmethod
    def validate_service_config(service_name: str, config: Dict[str, Any]) -> None:
        """
        验证服务配置

        Args:
            service_name: 服务名称
            config: 服务配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError(f"服务 '{service_name}' 的配置必须是字典类型")

        service_type = config.get('type', 'http')
        if service_type not in SUPPORTED_CHECK_TYPES:
            raise ConfigError(
                f"服务 '{service_name}' 的类型 '{service_type}' 不受支持。"
                f"支持的类型: {SUPPORTED_CHECK_TYPES}")

        if service_type == 'http':
            url = config.get('url')
            if not isinstance(url, str) or not url.startswith(('http://', 'https://')):
                raise ConfigError(f"服务 '{service_name}' 需要有效的HTTP url")
        else:
            if 'url' not in config and not ('host' in config and 'port' in config):
                raise ConfigError(f"服务 '{service_name}' 需要 url 或 host+port 配置")
            port = config.get('port')
            if port is not None and (not isinstance(port, int) or not 0 < port < 65536):
                raise ConfigError(f"服务 '{service_name}' 的端口无效: {port}")

        critical = config.get('critical', False)
        if not isinstance(critical, bool):
            raise ConfigError(f"服务 '{service_name}' 的 critical 必须是布尔值")

    @staticmethod
    def validate_alert_config(alert_config: Dict[str, Any]) -> None:
        """
        验证告警渠道配置

        Args:
            alert_config: 告警配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(alert_config, dict):
            raise ConfigError("告警配置必须是字典类型")

        for field in ['name', 'type']:
            if field not in alert_config:
                raise ConfigError(f"告警配置缺少必需的配置项: {field}")

        alert_type = alert_config['type']
        if alert_type not in SUPPORTED_ALERT_TYPES:
            raise ConfigError(
                f"告警 '{alert_config['name']}' 的类型 '{alert_type}' 不受支持。"
                f"支持的类型: {SUPPORTED_ALERT_TYPES}")

        if alert_type == 'pagerduty':
            if not alert_config.get('routing_key'):
                raise ConfigError(f"告警 '{alert_config['name']}' 缺少 routing_key")
        else:
            parsed = urlparse(str(alert_config.get('url', '')))
            if not parsed.scheme or not parsed.netloc:
                raise ConfigError(f"告警 '{alert_config['name']}' 的 url 无效")

    @staticmethod
    def validate_global_config(global_config: Dict[str, Any]) -> None:
        """
        验证全局配置

        Args:
            global_config: 全局配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(global_config, dict):
            raise ConfigError("全局配置必须是字典类型")

        for key in ['check_interval', 'check_timeout']:
            value = global_config.get(key)
            if value is not None and (not _is_number(value) or value <= 0):
                raise ConfigError(f"{key} 必须是正数")

        port = global_config.get('listen_port')
        if port is not None and (not isinstance(port, int) or not 0 <= port < 65536):
            raise ConfigError("listen_port 必须是有效端口")

        log_level = global_config.get('log_level')
        if log_level is not None and str(log_level).upper() not in VALID_LOG_LEVELS:
            raise ConfigError(f"log_level 必须是以下值之一: {VALID_LOG_LEVELS}")

    @staticmethod
    def validate_thresholds(thresholds: Dict[str, Any]) -> None:
        """
        验证告警阈值配置

        Args:
            thresholds: 阈值配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(thresholds, dict):
            raise ConfigError("thresholds 配置必须是字典类型")

        # 连续失败阈值为0时每次健康检查都会触发告警
        for key, minimum in [('consecutive_failures', 1), ('min_checks_for_error_rate', 0)]:
            value = thresholds.get(key)
            if value is not None and (not isinstance(value, int) or isinstance(value, bool)
                                      or value < minimum):
                raise ConfigError(f"{key} 必须是不小于 {minimum} 的整数")

        error_rate = thresholds.get('error_rate')
        if error_rate is not None and (not _is_number(error_rate) or not 0 <= error_rate <= 1):
            raise ConfigError("error_rate 必须在 0 到 1 之间")

        for key in ['slow_response_ms', 'dedup_window', 'alert_retention']:
            value = thresholds.get(key)
            if value is not None and (not _is_number(value) or value <= 0):
                raise ConfigError(f"{key} 必须是正数")

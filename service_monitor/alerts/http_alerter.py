"""HTTP告警渠道实现"""

import asyncio
from typing import Dict, Any
from urllib.parse import urlparse

import aiohttp

from .base import BaseAlerter
from ..models.health_check import Alert
from ..utils.exceptions import AlertConfigError, AlertSendError
from ..utils.log_manager import get_logger


class HTTPAlerter(BaseAlerter):
    """HTTP告警渠道，以JSON形式POST告警到指定URL

    子类通过覆盖 _build_payload 定制请求体。
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化HTTP告警渠道

        Args:
            name: 渠道名称
            config: 渠道配置

        Raises:
            AlertConfigError: 配置无效
        """
        super().__init__(name, config)
        self.logger = get_logger(f'alerter.{self.alerter_type}.{self.name}')

        self.url = config.get('url', '')
        self.headers = config.get('headers', {})

        if not self.validate_config():
            raise AlertConfigError(f"告警渠道配置无效: {name}", alert_name=name)

    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        if not self.url:
            self.logger.error(f"告警渠道 {self.name} 缺少URL配置")
            return False

        parsed_url = urlparse(self.url)
        if not parsed_url.scheme or not parsed_url.netloc:
            self.logger.error(f"告警渠道 {self.name} URL格式无效: {self.url}")
            return False

        return True

    async def send_alert(self, alert: Alert) -> bool:
        """
        发送告警

        Args:
            alert: 告警事件

        Returns:
            bool: 对端是否返回2xx

        Raises:
            AlertSendError: 网络错误或请求超时
        """
        self.logger.debug(f"发送告警: {alert.dedup_key} -> {self.name}")
        payload = self._build_payload(alert)
        timeout = aiohttp.ClientTimeout(total=self.get_timeout())

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, json=payload,
                                        headers=self.headers) as response:
                    if 200 <= response.status < 300:
                        self.logger.debug(
                            f"告警渠道 {self.name} 发送成功 (状态码: {response.status})")
                        return True

                    response_text = await response.text()
                    self.logger.warning(
                        f"告警渠道 {self.name} 收到错误响应 "
                        f"(状态码: {response.status}, 响应: {response_text[:200]})"
                    )
                    return False

        except asyncio.TimeoutError:
            raise AlertSendError(f"告警渠道 {self.name} 请求超时", alert_name=self.name)
        except aiohttp.ClientError as e:
            raise AlertSendError(f"告警渠道 {self.name} 网络请求失败: {e}",
                                 alert_name=self.name, cause=e)

    def _build_payload(self, alert: Alert) -> Dict[str, Any]:
        """
        构造请求体

        Args:
            alert: 告警事件

        Returns:
            Dict[str, Any]: JSON请求体
        """
        return alert.to_dict()

    def get_config_summary(self) -> Dict[str, Any]:
        """获取配置摘要，不包含凭据"""
        return {
            'name': self.name,
            'type': self.alerter_type,
            'host': urlparse(self.url).netloc,
            'timeout': self.get_timeout()
        }

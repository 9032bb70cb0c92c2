"""
统一异常处理模块
Unified Error Handling

报价管线的异常体系与兜底装饰器
"""

import asyncio
from functools import wraps
from typing import Callable, Any, Dict, Optional
import httpx

from goget_rates.core.logger import get_logger


class RatesError(Exception):
    """基础异常类"""

    reason: str = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "type": self.__class__.__name__,
            "reason": self.reason,
            "message": self.message,
            "details": self.details
        }


class ConfigError(RatesError):
    """配置文件错误"""
    reason = "invalid_config"


class Unauthorized(RatesError):
    """回调密钥不匹配，返回 401 而不是空列表"""
    reason = "unauthorized"


class ConfigurationMissing(RatesError):
    """缺少 GoGet 地址或凭证"""
    reason = "configuration_missing"


class AddressUnresolvable(RatesError):
    """地址格式化后为空"""
    reason = "address_unresolvable"


class GeocodeFailed(RatesError):
    """地理编码重试耗尽"""
    reason = "geocode_failed"


class QuoteRequestFailed(RatesError):
    """GoGet 网络错误、超时或非 2xx"""
    reason = "quote_request_failed"


class QuoteUnparseable(RatesError):
    """GoGet 响应里找不到可用的运费字段"""
    reason = "quote_unparseable"


class UnhandledFault(RatesError):
    """管线中未预期的异常"""
    reason = "unhandled_fault"


def handle_controller_errors(default_return: Any = None,
                             raise_on_error: bool = False):
    """
    外部调用异常处理装饰器

    网络、超时、HTTP 状态等错误记录日志后返回默认值；
    CancelledError 始终向上抛出。

    Args:
        default_return: 发生异常时返回的默认值
        raise_on_error: 是否在异常时重新抛出
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def async_wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except (ConnectionError, httpx.ConnectError, httpx.NetworkError) as e:
                self.logger.warning(f"Network connection error in {func.__name__}: {e}")
                if raise_on_error:
                    raise
                return default_return
            except (httpx.TimeoutException, asyncio.TimeoutError) as e:
                self.logger.warning(f"Timeout in {func.__name__}: {e!r}")
                if raise_on_error:
                    raise
                return default_return
            except httpx.HTTPStatusError as e:
                self.logger.warning(f"HTTP error in {func.__name__}: {e.response.status_code}")
                if raise_on_error:
                    raise
                return default_return
            except httpx.HTTPError as e:
                self.logger.warning(f"HTTP request error in {func.__name__}: {e}")
                if raise_on_error:
                    raise
                return default_return
            except RatesError as e:
                self.logger.warning(f"{e.reason} in {func.__name__}: {e.message}")
                if raise_on_error:
                    raise
                return default_return
            except asyncio.CancelledError:
                self.logger.debug(f"Task cancelled in {func.__name__}")
                raise
            except Exception as e:
                self.logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
                if raise_on_error:
                    raise
                return default_return

        return async_wrapper
    return decorator


def safe_execute(logger=None, default_return: Any = None,
                 raise_on_error: bool = False):
    """
    安全执行装饰器（静默失败，用于纯函数）

    Args:
        logger: 日志记录器，不指定则使用全局logger
        default_return: 发生异常时返回的默认值
        raise_on_error: 是否在异常时重新抛出
    """
    if logger is None:
        logger = get_logger()

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.debug(f"Error in {func.__name__}: {e}")
                if raise_on_error:
                    raise
                return default_return

        return sync_wrapper
    return decorator

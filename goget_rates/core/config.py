"""
配置管理模块
Configuration Management Module

提供YAML配置加载、环境变量覆盖、配置验证等功能

优先级: 请求参数覆盖 > 环境变量 > 配置文件 > 默认值
（请求参数覆盖在 RateService 中处理）
"""

import os
import threading
from typing import Any, Dict, Optional
from functools import lru_cache

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from goget_rates.core.config_models import ConfigModel
from goget_rates.core.logger import get_logger
from goget_rates.core.error_handler import ConfigError

# 环境变量名 -> 配置路径
ENV_OVERRIDES: Dict[str, str] = {
    "GOGET_API_ENDPOINT": "goget.endpoint",
    "GOGET_API_TOKEN": "goget.api_token",
    "RATE_CALLBACK_TOKEN": "security.callback_token",
    "DEFAULT_PICKUP_NAME": "pickup.name",
    "DEFAULT_PICKUP_LOCATION": "pickup.address",
    "DEFAULT_PICKUP_LAT": "pickup.lat",
    "DEFAULT_PICKUP_LNG": "pickup.lng",
    "NOMINATIM_EMAIL": "geocoder.contact_email",
    "RATES_DEBUG": "app.debug_responses",
}

_UNSET = object()


class Config:
    """
    配置管理类

    负责加载和管理应用程序的配置，支持YAML配置文件和环境变量
    """

    _instance: Optional["Config"] = None
    _lock = threading.Lock()
    _config: Dict[str, Any] = {}
    _config_path: Optional[str] = None

    def __new__(cls, config_path: Optional[str] = None):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        if not hasattr(self, '_initialized') or not self._initialized:
            self.logger = get_logger()
            self._load_config(config_path)
            self._initialized = True
        elif config_path and config_path != self._config_path:
            self.reload(config_path)

    def _load_config(self, config_path: Optional[str] = None) -> None:
        """
        加载配置文件

        Args:
            config_path: 配置文件路径，不指定则使用默认路径
        """
        if config_path is None:
            config_path = self._find_config_file()

        self._config_path = config_path
        self._config = {}

        self._load_env_file()
        if config_path and os.path.exists(config_path):
            self._load_yaml_config(config_path)
            self._resolve_env_variables()
        self._apply_env_overrides()
        self._validate()

    def _find_config_file(self) -> Optional[str]:
        """
        查找配置文件

        优先级: config/config.yaml > config/config.example.yaml
        """
        possible_paths = [
            "config/config.yaml",
            "config/config.example.yaml",
        ]
        for path in possible_paths:
            if os.path.exists(path):
                return path
        return None

    def _load_yaml_config(self, config_path: str) -> None:
        """
        加载YAML配置文件
        """
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            self.logger.error(f"Invalid YAML in config file: {e}")
            raise ConfigError(f"Invalid YAML: {e}")

        if not isinstance(config_data, dict):
            raise ConfigError(f"Config root must be a mapping: {config_path}")
        self._config = config_data

    def _load_env_file(self) -> None:
        """
        加载.env环境变量文件（不覆盖已存在的进程环境变量）
        """
        env_files = [
            ".env",
            "config/.env",
        ]
        for env_file in env_files:
            if os.path.exists(env_file):
                load_dotenv(env_file, override=False)
                break

    def _resolve_env_variables(self) -> None:
        """
        解析环境变量引用

        将配置中的 ${VAR_NAME} 替换为实际的环境变量值；未设置的引用整项移除，回落到模型默认值
        """
        self._config = self._resolve_dict(self._config)

    def _resolve_dict(self, obj: Any) -> Any:
        if isinstance(obj, dict):
            resolved = {}
            for key, value in obj.items():
                value = self._resolve_dict(value)
                if value is _UNSET:
                    continue
                resolved[key] = value
            return resolved
        elif isinstance(obj, list):
            return [item for item in (self._resolve_dict(v) for v in obj) if item is not _UNSET]
        elif isinstance(obj, str) and obj.startswith("${") and obj.endswith("}"):
            env_key = obj[2:-1]
            value = os.getenv(env_key)
            if value is None or not value.strip():
                self.logger.debug(f"Environment variable {env_key} not set, using default")
                return _UNSET
            return value
        return obj

    def _apply_env_overrides(self) -> None:
        """
        用约定的环境变量覆盖配置文件中的值
        """
        for env_key, path in ENV_OVERRIDES.items():
            value = os.getenv(env_key)
            if value is None or not value.strip():
                continue
            section, key = path.split(".", 1)
            target = self._config.get(section) or {}
            self._config[section] = target
            if not isinstance(target, dict):
                raise ConfigError(f"Config section '{section}' must be a mapping")
            target[key] = value.strip()

    def _validate(self) -> None:
        try:
            self._model = ConfigModel.from_dict(self._config)
        except ValidationError as e:
            self.logger.error(f"Config validation failed: {e}")
            raise ConfigError(f"Invalid configuration: {e}")
        self.logger.debug(f"Config loaded from {self._config_path or 'defaults'}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        获取配置值

        Args:
            key: 配置键，支持点号分隔的路径，如 "goget.endpoint"
            default: 默认值

        Returns:
            配置值
        """
        keys = key.split(".")
        value = self._model.to_dict()

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_section(self, section: str, default: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        获取配置段落
        """
        return self._model.to_dict().get(section, default or {})

    def to_model(self) -> ConfigModel:
        """已校验的不可变配置，直接交给 RateService"""
        return self._model

    def reload(self, config_path: Optional[str] = None) -> None:
        """
        重新加载配置

        Args:
            config_path: 新的配置文件路径
        """
        self._load_config(config_path or self._config_path)


@lru_cache(maxsize=1)
def get_config(config_path: Optional[str] = None) -> Config:
    """
    获取配置单例

    Args:
        config_path: 配置文件路径

    Returns:
        Config实例
    """
    return Config(config_path)

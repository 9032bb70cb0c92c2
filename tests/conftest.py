"""
测试工具和fixtures
Test Utilities and Fixtures
"""

import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable

os.environ.setdefault("APP_LOG_TO_FILE", "false")

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from goget_rates.core.config import ENV_OVERRIDES
from goget_rates.core.config_models import ConfigModel

GOGET_URL = "https://goget.test/api/v1/fee"
NOMINATIM_HOST = "nominatim.openstreetmap.org"

KL = {"lat": "3.1579", "lon": "101.7116"}
SUBANG = {"lat": "3.0738", "lon": "101.5183"}


@pytest.fixture
def temp_dir():
    """创建临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clean_env(monkeypatch):
    """清掉会覆盖配置文件的环境变量"""
    for key in ENV_OVERRIDES:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def config_model() -> ConfigModel:
    """测试配置：GoGet 已配置，重试不暂停"""
    return ConfigModel.from_dict(
        {
            "security": {"callback_token": "cb-secret"},
            "goget": {"endpoint": GOGET_URL, "api_token": "gg-token"},
            "geocoder": {
                "contact_email": "ops@example.com",
                "attempts": [[0.5, 0.0], [0.5, 0.0], [0.5, 0.0]],
            },
        }
    )


@pytest.fixture
def shopify_payload() -> dict[str, Any]:
    """Shopify carrier service 回调示例"""
    return {
        "rate": {
            "origin": {
                "country": "MY",
                "postal_code": "47500",
                "province": "SGR",
                "city": "Subang Jaya",
                "name": None,
                "address1": "1 Jalan SS15/4",
                "address2": "",
                "company_name": "Kedai Kopi",
            },
            "destination": {
                "country": "MY",
                "postal_code": "50088",
                "province": "KUL",
                "city": "Kuala Lumpur",
                "name": "Aisyah",
                "address1": "Suria KLCC",
                "address2": "Jalan Ampang",
            },
            "items": [{"name": "Coffee beans", "quantity": 1, "grams": 500, "price": 4500}],
            "currency": "MYR",
            "locale": "en",
        }
    }


class FakeUpstream:
    """
    httpx.MockTransport 的路由：Nominatim 与 GoGet 各自按队列返回

    geocode_replies / quote_replies 里的元素可以是:
      - list/dict: 200 JSON
      - int: 对应状态码、空 body
      - Exception 实例: 直接抛出（模拟网络错误）
      - callable: 接收 request，返回 httpx.Response（可以是协程）
    队列只剩一个元素时重复使用
    """

    def __init__(self, geocode_replies=None, quote_replies=None):
        self.geocode_replies: list[Any] = list(geocode_replies or [[KL]])
        self.quote_replies: list[Any] = list(quote_replies or [{"data": {"fee": 8.5}}])
        self.geocode_requests: list[httpx.Request] = []
        self.quote_requests: list[httpx.Request] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    @staticmethod
    def _next(queue: list[Any]) -> Any:
        return queue.pop(0) if len(queue) > 1 else queue[0]

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == NOMINATIM_HOST:
            self.geocode_requests.append(request)
            reply = self._next(self.geocode_replies)
        else:
            self.quote_requests.append(request)
            reply = self._next(self.quote_replies)

        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            result = reply(request)
            if hasattr(result, "__await__"):
                result = await result
            return result
        if isinstance(reply, int):
            return httpx.Response(reply)
        return httpx.Response(200, json=reply)

    def quote_body(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.quote_requests[index].content)


@pytest.fixture
def upstream_factory() -> Callable[..., FakeUpstream]:
    return FakeUpstream

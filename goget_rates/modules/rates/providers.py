"""GoGet 报价 provider：组装请求、限时调用、解析运费。"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx

from goget_rates.core.config_models import GoGetConfig
from goget_rates.core.error_handler import (
    ConfigurationMissing,
    QuoteRequestFailed,
    QuoteUnparseable,
    handle_controller_errors,
)
from goget_rates.core.logger import get_logger
from goget_rates.modules.rates.models import Quote, QuoteRequest, Stop, to_finite_float

FeeExtractor = Callable[[Any], Any]


def _nested_data_fee(body: Any) -> Any:
    data = body.get("data") if isinstance(body, dict) else None
    return data.get("fee") if isinstance(data, dict) else None


def _total_fee(body: Any) -> Any:
    return body.get("total_fee") if isinstance(body, dict) else None


def _flat_fee(body: Any) -> Any:
    return body.get("fee") if isinstance(body, dict) else None


# 按优先级尝试，第一个有限数字胜出；负数由 Quote 拒绝
FEE_EXTRACTORS: tuple[tuple[str, FeeExtractor], ...] = (
    ("data.fee", _nested_data_fee),
    ("total_fee", _total_fee),
    ("fee", _flat_fee),
)


def extract_fee(body: Any, extractors: tuple[tuple[str, FeeExtractor], ...] = FEE_EXTRACTORS) -> tuple[float, str] | None:
    for name, extractor in extractors:
        fee = to_finite_float(extractor(body))
        if fee is not None:
            return fee, name
    return None


def resolve_start_at(explicit: str | None, lead_minutes: int, now: datetime | None = None) -> str:
    """
    显式传入且在未来的 ISO 时间原样使用；否则取 当前时间 + lead_minutes（UTC）。
    """
    current = now or datetime.now(timezone.utc)
    text = str(explicit or "").strip()
    if text:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            if parsed > current:
                return text
    return (current + timedelta(minutes=lead_minutes)).isoformat(timespec="seconds")


class GoGetQuoteProvider:
    """调用 GoGet 报价接口，不在此层重试。"""

    def __init__(
        self,
        config: GoGetConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or GoGetConfig()
        self.transport = transport
        self.logger = get_logger()

    def authorization_header(self, token: str | None = None, header_override: str | None = None) -> str | None:
        if header_override:
            return header_override
        credential = token or self.config.api_token
        if not credential:
            return None
        return self.config.auth_scheme.format(token=credential)

    def build_request(self, pickup: Stop, dropoff: Stop, *, start_at: str | None = None) -> QuoteRequest:
        cfg = self.config
        return QuoteRequest(
            pickup=pickup,
            dropoff=dropoff,
            start_at=resolve_start_at(start_at, cfg.start_lead_minutes),
            parking=cfg.parking,
            ride_id=cfg.ride_id,
            bulky=cfg.bulky,
            guarantee=cfg.guarantee,
            num_of_items=cfg.num_of_items,
            flexi=cfg.flexi,
            route=cfg.route,
        )

    async def request_quote(
        self,
        request: QuoteRequest,
        *,
        endpoint: str | None = None,
        authorization: str | None = None,
    ) -> Quote | None:
        """
        网络错误或超时返回 None；配置缺失、非 2xx、无法解析的响应抛出对应的 RatesError。
        """
        url = endpoint or self.config.endpoint
        auth = authorization or self.authorization_header()
        if not url or not auth:
            raise ConfigurationMissing("GoGet endpoint or credential is not configured")

        response = await self._post(url, request.to_payload(), auth)
        if response is None:
            return None

        if not response.is_success:
            raise QuoteRequestFailed(f"GoGet http {response.status_code}", {"status": response.status_code})

        try:
            body = response.json()
        except ValueError as exc:
            raise QuoteUnparseable(f"GoGet invalid json: {exc}") from exc

        extracted = extract_fee(body)
        if extracted is None:
            raise QuoteUnparseable("GoGet response has no usable fee field")
        fee, source = extracted
        try:
            return Quote(fee=fee, source=source, raw=body if isinstance(body, dict) else {})
        except ValueError as exc:
            raise QuoteUnparseable(str(exc), {"fee_source": source}) from exc

    @handle_controller_errors(default_return=None)
    async def _post(self, url: str, payload: dict[str, Any], authorization: str) -> httpx.Response | None:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": authorization,
        }
        timeout = self.config.timeout_seconds
        async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
            return await asyncio.wait_for(
                client.post(url, json=payload, headers=headers),
                timeout=timeout,
            )

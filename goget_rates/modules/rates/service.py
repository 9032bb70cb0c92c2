"""
运费报价服务
Rate Service

Shopify 运费回调的编排：鉴权 -> 校验 -> 取件地理编码 -> 收件地理编码 -> GoGet 报价 -> 组装响应。
任一步失败都返回空 rates，异常不会向上传播。
"""

from __future__ import annotations

import asyncio
import hmac
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from goget_rates.core.config_models import ConfigModel
from goget_rates.core.error_handler import (
    AddressUnresolvable,
    ConfigurationMissing,
    GeocodeFailed,
    QuoteRequestFailed,
    RatesError,
    Unauthorized,
    UnhandledFault,
)
from goget_rates.core.logger import get_logger
from goget_rates.modules.rates.address import format_address
from goget_rates.modules.rates.builder import build_rate, empty_rates
from goget_rates.modules.rates.geocoder import GeocodeResolver
from goget_rates.modules.rates.models import GeoPoint, PostalAddress, RateResponse, Stop
from goget_rates.modules.rates.providers import GoGetQuoteProvider

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(slots=True, frozen=True)
class RateOverrides:
    """单次请求的覆盖参数（来自 query string）。"""

    endpoint: str | None = None
    gg_token: str | None = None
    gg_auth: str | None = None
    pickup_name: str | None = None
    pickup_location: str | None = None
    dropoff_location: str | None = None
    pickup_lat: str | None = None
    pickup_lng: str | None = None
    dropoff_lat: str | None = None
    dropoff_lng: str | None = None
    start_at: str | None = None
    debug: bool = False

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> RateOverrides:
        def pick(key: str) -> str | None:
            value = query.get(key)
            text = str(value).strip() if value is not None else ""
            return text or None

        return cls(
            endpoint=pick("endpoint"),
            gg_token=pick("gg_token"),
            gg_auth=pick("gg_auth"),
            pickup_name=pick("pickup_name"),
            pickup_location=pick("pickup_location"),
            dropoff_location=pick("dropoff_location"),
            pickup_lat=pick("pickup_lat"),
            pickup_lng=pick("pickup_lng"),
            dropoff_lat=pick("dropoff_lat"),
            dropoff_lng=pick("dropoff_lng"),
            start_at=pick("start_at"),
            debug=(pick("debug") or "").lower() in _TRUTHY,
        )


class RateService:
    """运费回调编排器。只持有不可变配置，可并发复用。"""

    def __init__(
        self,
        config: ConfigModel | None = None,
        *,
        resolver: GeocodeResolver | None = None,
        provider: GoGetQuoteProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or ConfigModel()
        self.resolver = resolver or GeocodeResolver(self.config.geocoder, transport=transport)
        self.provider = provider or GoGetQuoteProvider(self.config.goget, transport=transport)
        self.logger = get_logger()

    def check_auth(self, token: str | None) -> None:
        expected = self.config.security.callback_token
        if not expected:
            return
        supplied = (token or "").encode("utf-8")
        if not hmac.compare_digest(supplied, expected.encode("utf-8")):
            raise Unauthorized("callback token mismatch")

    async def handle(
        self,
        payload: Any,
        *,
        token: str | None = None,
        overrides: RateOverrides | None = None,
    ) -> RateResponse:
        overrides = overrides or RateOverrides()
        trace: dict[str, Any] = {"stage": "auth_check", "payload": None}

        try:
            self.check_auth(token)
        except Unauthorized as exc:
            self.logger.warning(f"Rate callback rejected: {exc.message}")
            return empty_rates(status_code=401)

        try:
            return await self._run(payload, overrides, trace)
        except RatesError as exc:
            self.logger.warning(f"Rate pipeline aborted at {trace['stage']}: {exc.reason} ({exc.message})")
            return self._empty(exc, trace, overrides)
        except Exception as exc:
            self.logger.error(f"Unexpected error at {trace['stage']}: {exc}", exc_info=True)
            return self._empty(UnhandledFault(str(exc)), trace, overrides)

    async def _run(self, payload: Any, overrides: RateOverrides, trace: dict[str, Any]) -> RateResponse:
        cfg = self.config

        trace["stage"] = "validate_inputs"
        rate = payload.get("rate") if isinstance(payload, dict) else None
        if not isinstance(rate, dict):
            raise AddressUnresolvable("request body has no rate envelope")

        endpoint = cfg.goget.endpoint
        if overrides.endpoint and cfg.goget.allow_endpoint_override:
            endpoint = overrides.endpoint
        if not endpoint:
            raise ConfigurationMissing("GoGet endpoint is not configured")

        authorization = self.provider.authorization_header(overrides.gg_token, overrides.gg_auth)
        if not authorization:
            raise ConfigurationMissing("GoGet credential is not configured")

        origin = PostalAddress.from_dict(rate.get("origin"))
        destination = PostalAddress.from_dict(rate.get("destination"))
        pickup_address = overrides.pickup_location or cfg.pickup.address or format_address(origin)
        dropoff_address = overrides.dropoff_location or format_address(destination)
        if not pickup_address:
            raise AddressUnresolvable("pickup address is empty")
        if not dropoff_address:
            raise AddressUnresolvable("dropoff address is empty")

        country_bias = destination.country or origin.country
        pickup_override = GeoPoint.parse(overrides.pickup_lat, overrides.pickup_lng) or GeoPoint.parse(
            cfg.pickup.lat, cfg.pickup.lng
        )
        dropoff_override = GeoPoint.parse(overrides.dropoff_lat, overrides.dropoff_lng)

        if cfg.geocoder.bias_dropoff_to_pickup:
            trace["stage"] = "resolve_pickup"
            pickup_point = await self.resolver.resolve(pickup_address, country_bias, override=pickup_override)
            if pickup_point is None:
                raise GeocodeFailed("pickup address could not be geocoded", {"address": pickup_address})

            trace["stage"] = "resolve_dropoff"
            dropoff_point = await self.resolver.resolve(
                dropoff_address, country_bias, near=pickup_point, override=dropoff_override
            )
        else:
            trace["stage"] = "resolve_pickup"
            pickup_point, dropoff_point = await asyncio.gather(
                self.resolver.resolve(pickup_address, country_bias, override=pickup_override),
                self.resolver.resolve(dropoff_address, country_bias, override=dropoff_override),
            )
            if pickup_point is None:
                raise GeocodeFailed("pickup address could not be geocoded", {"address": pickup_address})
            trace["stage"] = "resolve_dropoff"

        if dropoff_point is None:
            raise GeocodeFailed("dropoff address could not be geocoded", {"address": dropoff_address})

        trace["stage"] = "request_quote"
        request = self.provider.build_request(
            Stop(location=pickup_address, point=pickup_point, name=overrides.pickup_name or cfg.pickup.name),
            Stop(location=dropoff_address, point=dropoff_point),
            start_at=overrides.start_at,
        )
        trace["payload"] = request.to_payload()
        quote = await self.provider.request_quote(request, endpoint=endpoint, authorization=authorization)
        if quote is None:
            raise QuoteRequestFailed("GoGet request failed (network error or timeout)")

        trace["stage"] = "build_response"
        normalized = build_rate(quote.fee, rate.get("currency"), cfg.rates)
        self.logger.info(
            f"GoGet quote {quote.fee:.2f} ({quote.source}) -> {normalized.total_price} {normalized.currency}"
        )

        response = RateResponse(status_code=200, rates=[normalized])
        if self._debug_enabled(overrides):
            response.debug = {
                "stage": trace["stage"],
                "reason": None,
                "fee_source": quote.source,
                "payload": trace["payload"],
            }
        return response

    def _debug_enabled(self, overrides: RateOverrides) -> bool:
        return bool(self.config.app.debug_responses and overrides.debug)

    def _empty(self, error: RatesError, trace: dict[str, Any], overrides: RateOverrides) -> RateResponse:
        response = empty_rates()
        if self._debug_enabled(overrides):
            response.debug = {
                "stage": trace["stage"],
                "reason": error.reason,
                "message": error.message,
                "payload": trace["payload"],
            }
        return response

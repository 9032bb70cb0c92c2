"""Nominatim 地理编码：国家偏置、邻近偏置、分档超时重试。"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx

from goget_rates.core.config_models import GeocoderConfig
from goget_rates.core.error_handler import GeocodeFailed, handle_controller_errors
from goget_rates.core.logger import get_logger
from goget_rates.modules.rates.address import country_code_for
from goget_rates.modules.rates.models import GeoPoint


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """每档 (超时秒, 失败后暂停秒)，按顺序尝试。"""

    attempts: tuple[tuple[float, float], ...] = ((2.5, 0.2), (3.5, 0.2), (4.5, 0.0))

    @classmethod
    def from_config(cls, cfg: GeocoderConfig) -> RetryPolicy:
        return cls(attempts=tuple((float(t), float(p)) for t, p in cfg.attempts))


def bias_viewbox(near: GeoPoint, radius_deg: float) -> str:
    """以 near 为中心的 viewbox：left,top,right,bottom（经度在前）。"""
    left = near.lng - radius_deg
    right = near.lng + radius_deg
    top = near.lat + radius_deg
    bottom = near.lat - radius_deg
    return f"{left:.6f},{top:.6f},{right:.6f},{bottom:.6f}"


class GeocodeResolver:
    """地址 -> 坐标；失败返回 None，不抛异常。"""

    def __init__(
        self,
        config: GeocoderConfig | None = None,
        *,
        policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or GeocoderConfig()
        self.policy = policy or RetryPolicy.from_config(self.config)
        self.transport = transport
        self.logger = get_logger()

    def build_params(self, address: str, country_bias: str | None = None, near: GeoPoint | None = None) -> dict[str, str]:
        params = {
            "format": "jsonv2",
            "q": address,
            "limit": "1",
            "addressdetails": "0",
        }
        country = country_code_for(country_bias)
        if country:
            params["countrycodes"] = country
        if near is not None:
            params["viewbox"] = bias_viewbox(near, self.config.bias_radius_deg)
            if self.config.bounded:
                params["bounded"] = "1"
        return params

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": f"goget-carrier/1.0 ({self.config.contact_email})",
        }

    async def resolve(
        self,
        address: str,
        country_bias: str | None = None,
        near: GeoPoint | None = None,
        override: GeoPoint | None = None,
    ) -> GeoPoint | None:
        if override is not None and GeoPoint.parse(override.lat, override.lng) is not None:
            return override
        if not address:
            return None

        params = self.build_params(address, country_bias, near)
        total = len(self.policy.attempts)
        for index, (timeout, pause) in enumerate(self.policy.attempts, start=1):
            point = await self._attempt(params, timeout)
            if point is not None:
                if index > 1:
                    self.logger.info(f"Geocode succeeded on attempt {index}/{total}")
                return point
            self.logger.debug(f"Geocode attempt {index}/{total} failed (timeout={timeout}s)")
            if index < total and pause > 0:
                await asyncio.sleep(pause)

        self.logger.warning(f"Geocode exhausted {total} attempts for '{address}'")
        return None

    @handle_controller_errors(default_return=None)
    async def _attempt(self, params: dict[str, str], timeout: float) -> GeoPoint | None:
        async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
            # wait_for 取消在途请求，超时后连接随 client 一起关闭
            response = await asyncio.wait_for(
                client.get(self.config.base_url, params=params, headers=self.headers),
                timeout=timeout,
            )
            response.raise_for_status()
            try:
                body = response.json()
            except ValueError as exc:
                raise GeocodeFailed(f"invalid geocoder json: {exc}") from exc
            return _first_point(body)


def _first_point(body: Any) -> GeoPoint:
    if not isinstance(body, list) or not body:
        raise GeocodeFailed("empty geocoder result")
    first = body[0] if isinstance(body[0], dict) else {}
    point = GeoPoint.parse(first.get("lat"), first.get("lon", first.get("lng")))
    if point is None:
        raise GeocodeFailed("non-finite coordinates in geocoder result", {"candidate": first})
    return point

"""运费 -> 结账页 rates 契约。"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from goget_rates.core.config_models import RatesConfig
from goget_rates.modules.rates.models import NormalizedRate, RateResponse


def to_minor_units(fee: float) -> str:
    """主币种金额转整数分，四舍五入（13.005 -> "1301"），以字符串返回。"""
    # 用十进制表示计算，避免 13.005 * 100 == 1300.4999...
    cents = (Decimal(str(fee)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return str(int(cents))


def build_rate(fee: float, currency: Any = None, config: RatesConfig | None = None) -> NormalizedRate:
    cfg = config or RatesConfig()
    return NormalizedRate(
        service_name=cfg.service_name,
        service_code=cfg.service_code,
        description=cfg.description,
        total_price=to_minor_units(fee),
        currency=str(currency or "").strip() or cfg.default_currency,
    )


def empty_rates(status_code: int = 200) -> RateResponse:
    return RateResponse(status_code=status_code, rates=[])

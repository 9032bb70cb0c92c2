"""运费响应组装测试。"""

import pytest

from goget_rates.core.config_models import RatesConfig
from goget_rates.modules.rates.builder import build_rate, empty_rates, to_minor_units
from goget_rates.modules.rates.models import Quote


@pytest.mark.parametrize(
    ("fee", "expected"),
    [
        (13.00, "1300"),
        (13.005, "1301"),
        (8.5, "850"),
        (0, "0"),
        (0.004, "0"),
        (0.005, "1"),
        (1.115, "112"),
        (199.99, "19999"),
    ],
)
def test_to_minor_units_rounds_half_up(fee, expected) -> None:
    assert to_minor_units(fee) == expected


def test_build_rate_default_identity_and_currency() -> None:
    rate = build_rate(8.5)

    assert rate.to_dict() == {
        "service_name": "GoGet Delivery",
        "service_code": "GOGET_NOW",
        "description": "On-demand same-day courier, live GoGet price",
        "total_price": "850",
        "currency": "MYR",
    }


def test_build_rate_uses_caller_currency_and_configured_identity() -> None:
    cfg = RatesConfig(service_name="Kurier", service_code="K1", description="", default_currency="SGD")

    assert build_rate(2, "  ", cfg).currency == "SGD"
    rate = build_rate(2, "MYR", cfg)
    assert rate.currency == "MYR"
    assert "description" not in rate.to_dict()
    assert rate.to_dict()["service_name"] == "Kurier"


def test_empty_rates_contract() -> None:
    assert empty_rates().to_dict() == {"rates": []}
    assert empty_rates(status_code=401).status_code == 401


@pytest.mark.parametrize("fee", [float("nan"), float("inf"), -0.5])
def test_quote_rejects_invalid_fee(fee) -> None:
    with pytest.raises(ValueError):
        Quote(fee=fee)


def test_build_rate_accepts_non_string_currency() -> None:
    assert build_rate(8.5, 458).currency == "458"
    assert build_rate(8.5, 0).currency == "MYR"

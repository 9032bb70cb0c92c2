"""GoGet 运费报价模块。"""

from .address import country_code_for, format_address
from .builder import build_rate, empty_rates, to_minor_units
from .geocoder import GeocodeResolver, RetryPolicy
from .models import GeoPoint, NormalizedRate, PostalAddress, Quote, QuoteRequest, RateResponse, Stop
from .providers import FEE_EXTRACTORS, GoGetQuoteProvider, extract_fee
from .service import RateOverrides, RateService

__all__ = [
    "FEE_EXTRACTORS",
    "GeoPoint",
    "GeocodeResolver",
    "GoGetQuoteProvider",
    "NormalizedRate",
    "PostalAddress",
    "Quote",
    "QuoteRequest",
    "RateOverrides",
    "RateResponse",
    "RateService",
    "RetryPolicy",
    "Stop",
    "build_rate",
    "country_code_for",
    "empty_rates",
    "extract_fee",
    "format_address",
    "to_minor_units",
]

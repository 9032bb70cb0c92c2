"""
GoGet 运费回调
GoGet Carrier Rates

Shopify 结账页实时运费：地址地理编码 + GoGet 报价
"""

__version__ = "1.0.0"
__author__ = "Project Team"

from .core.config import Config
from .core.logger import Logger

__all__ = [
    "Config",
    "Logger",
    "__version__",
]

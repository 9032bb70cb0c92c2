"""
配置模型与验证
Configuration Models and Validation

使用Pydantic进行配置验证
"""

import math
from typing import List, Optional, Dict, Any, Tuple
from pydantic import BaseModel, ConfigDict, Field, validator


class AppConfig(BaseModel):
    """应用配置模型"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(default="goget-rates", description="应用名称")
    version: str = Field(default="1.0.0", description="版本号")
    log_level: str = Field(default="INFO", description="日志级别")
    debug_responses: bool = Field(default=False, description="允许请求携带 debug=1 回显失败原因与请求体")

    @validator("log_level")
    def validate_log_level(cls, v):
        """验证日志级别"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}, got {v}")
        return v


class SecurityConfig(BaseModel):
    """回调鉴权配置"""
    model_config = ConfigDict(frozen=True)

    callback_token: Optional[str] = Field(default=None, description="Shopify 回调共享密钥，未配置则不校验")


class GoGetConfig(BaseModel):
    """GoGet 报价接口配置模型"""
    model_config = ConfigDict(frozen=True)

    endpoint: Optional[str] = Field(default=None, description="报价接口 URL")
    api_token: Optional[str] = Field(default=None, description="API 凭证")
    auth_scheme: str = Field(default="Token token={token}", description="Authorization 头模板")
    timeout_seconds: float = Field(default=4.0, gt=0, le=30, description="单次请求超时（秒）")
    start_lead_minutes: int = Field(default=5, ge=0, le=1440, description="start_at 相对当前时间的提前量")
    allow_endpoint_override: bool = Field(default=False, description="是否允许请求参数覆盖 endpoint")
    ride_id: int = Field(default=2, description="车型：单人标准")
    bulky: bool = False
    guarantee: bool = True
    num_of_items: str = "1-2"
    flexi: bool = False
    route: bool = False
    parking: bool = True

    @validator("auth_scheme")
    def validate_auth_scheme(cls, v):
        if "{token}" not in v:
            raise ValueError("auth_scheme must contain the {token} placeholder")
        return v


class GeocoderConfig(BaseModel):
    """地理编码配置模型"""
    model_config = ConfigDict(frozen=True)

    base_url: str = Field(default="https://nominatim.openstreetmap.org/search", description="Nominatim 搜索地址")
    contact_email: str = Field(default="email@example.com", description="User-Agent 中的联系邮箱")
    bias_radius_deg: float = Field(default=0.27, gt=0, le=5, description="偏置框半宽（度）")
    bounded: bool = Field(default=False, description="True 时偏置框为硬过滤")
    bias_dropoff_to_pickup: bool = Field(default=True, description="收件地址按取件坐标偏置")
    attempts: List[Tuple[float, float]] = Field(
        default=[(2.5, 0.2), (3.5, 0.2), (4.5, 0.0)],
        description="重试档位 (超时秒, 失败后暂停秒)",
    )

    @validator("attempts")
    def validate_attempts(cls, v):
        if not v:
            raise ValueError("attempts must contain at least one (timeout, pause) pair")
        for timeout, pause in v:
            if timeout <= 0 or pause < 0:
                raise ValueError(f"invalid attempt ({timeout}, {pause})")
        return v


class PickupConfig(BaseModel):
    """默认取件点（商家固定地址）"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(default="Shop Origin", description="取件联系人/店名")
    address: Optional[str] = Field(default=None, description="固定取件地址，优先于店铺 origin")
    lat: Optional[float] = Field(default=None, description="固定取件纬度")
    lng: Optional[float] = Field(default=None, description="固定取件经度")

    @validator("lat", "lng")
    def validate_coordinate(cls, v):
        if v is not None and not math.isfinite(v):
            raise ValueError("pickup coordinates must be finite")
        return v


class RatesConfig(BaseModel):
    """返回给结账页的运费服务标识"""
    model_config = ConfigDict(frozen=True)

    service_name: str = "GoGet Delivery"
    service_code: str = "GOGET_NOW"
    description: str = "On-demand same-day courier, live GoGet price"
    default_currency: str = "MYR"


class ConfigModel(BaseModel):
    """完整配置模型"""
    model_config = ConfigDict(frozen=True)

    app: AppConfig = Field(default_factory=AppConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    goget: GoGetConfig = Field(default_factory=GoGetConfig)
    geocoder: GeocoderConfig = Field(default_factory=GeocoderConfig)
    pickup: PickupConfig = Field(default_factory=PickupConfig)
    rates: RatesConfig = Field(default_factory=RatesConfig)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return self.model_dump()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConfigModel':
        """从字典创建配置"""
        return cls(**data)

"""
启动健康检查
Startup Health Checks

验证 GoGet 报价所需的配置与依赖是否就绪（不输出任何密钥）
"""

import importlib.util
import sys
from typing import Any

from goget_rates.core.config_models import ConfigModel
from goget_rates.core.logger import get_logger

logger = get_logger()


class StartupCheckResult:
    def __init__(self, name: str, passed: bool, message: str, critical: bool = True, fix_hint: str = ""):
        self.name = name
        self.passed = passed
        self.message = message
        self.critical = critical
        self.fix_hint = fix_hint

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "message": self.message,
            "critical": self.critical,
            "fix_hint": self.fix_hint,
        }


def check_python_version() -> StartupCheckResult:
    v = sys.version_info
    ok = v.major == 3 and v.minor >= 10
    return StartupCheckResult(
        "python",
        ok,
        f"Python {v.major}.{v.minor}.{v.micro}" + ("" if ok else " (requires 3.10+)"),
        fix_hint="" if ok else "Install Python 3.10 or newer",
    )


def check_dependencies() -> StartupCheckResult:
    required = ["dotenv", "httpx", "yaml", "loguru", "fastapi", "pydantic"]
    missing = [pkg for pkg in required if importlib.util.find_spec(pkg) is None]
    if missing:
        return StartupCheckResult(
            "dependencies",
            False,
            f"missing: {', '.join(missing)}",
            fix_hint="pip install -e .",
        )
    return StartupCheckResult("dependencies", True, "core dependencies installed")


def check_goget_endpoint(config: ConfigModel) -> StartupCheckResult:
    if config.goget.endpoint:
        return StartupCheckResult("goget_endpoint", True, "configured")
    return StartupCheckResult("goget_endpoint", False, "not configured", fix_hint="Set GOGET_API_ENDPOINT")


def check_goget_credential(config: ConfigModel) -> StartupCheckResult:
    if config.goget.api_token:
        return StartupCheckResult("goget_credential", True, "configured")
    return StartupCheckResult("goget_credential", False, "not configured", fix_hint="Set GOGET_API_TOKEN")


def check_callback_token(config: ConfigModel) -> StartupCheckResult:
    if config.security.callback_token:
        return StartupCheckResult("callback_token", True, "configured", critical=False)
    return StartupCheckResult(
        "callback_token",
        False,
        "not configured, callback is open to anyone",
        critical=False,
        fix_hint="Set RATE_CALLBACK_TOKEN and append ?token=... to the carrier callback URL",
    )


def check_pickup_point(config: ConfigModel) -> StartupCheckResult:
    pickup = config.pickup
    if pickup.lat is not None and pickup.lng is not None:
        return StartupCheckResult("pickup_point", True, "fixed coordinates", critical=False)
    if pickup.address:
        return StartupCheckResult("pickup_point", True, "fixed address, geocoded per request", critical=False)
    return StartupCheckResult(
        "pickup_point",
        True,
        "using shop origin from each request",
        critical=False,
    )


def check_debug_mode(config: ConfigModel) -> StartupCheckResult:
    if config.app.debug_responses:
        return StartupCheckResult(
            "debug_responses",
            False,
            "enabled, debug=1 requests echo outbound payloads",
            critical=False,
            fix_hint="Unset RATES_DEBUG in production",
        )
    return StartupCheckResult("debug_responses", True, "disabled", critical=False)


def run_all_checks(config: ConfigModel) -> list[StartupCheckResult]:
    """运行所有启动检查"""
    return [
        check_python_version(),
        check_dependencies(),
        check_goget_endpoint(config),
        check_goget_credential(config),
        check_callback_token(config),
        check_pickup_point(config),
        check_debug_mode(config),
    ]


def print_startup_report(results: list[StartupCheckResult]) -> bool:
    """打印启动检查报告，返回是否所有关键检查通过"""
    all_critical_passed = True
    for r in results:
        icon = "OK  " if r.passed else ("WARN" if not r.critical else "FAIL")
        logger.info(f"  [{icon}] {r.name}: {r.message}")
        if not r.passed and r.critical:
            all_critical_passed = False
        if not r.passed and r.fix_hint:
            logger.info(f"         -> {r.fix_hint}")

    if all_critical_passed:
        logger.info("All critical checks passed")
    else:
        logger.error("Critical checks failed, rate callback will return empty rates")
    return all_critical_passed

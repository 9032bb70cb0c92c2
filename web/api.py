"""Web服务API接口"""

import time
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from goget_rates import __version__
from goget_rates.core.config import get_config
from goget_rates.core.logger import get_logger
from goget_rates.core.startup_checks import run_all_checks
from goget_rates.modules.rates import RateOverrides, RateService

logger = get_logger(__name__)

app = FastAPI(title="GoGet Carrier Rates", version=__version__)

# 服务初始化
config = get_config()
rate_service = RateService(config.to_model())


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except Exception as e:
        logger.warning(f"Rate callback body is not valid JSON: {e}")
        return None


@app.get("/")
async def root():
    return {"message": "GoGet Carrier Rates", "version": __version__}


@app.get("/api/health")
async def health_check():
    results = run_all_checks(rate_service.config)
    failed_critical = [r for r in results if not r.passed and r.critical]
    warnings = [r for r in results if not r.passed and not r.critical]
    return {
        "status": "healthy" if not failed_critical else "degraded",
        "timestamp": time.time(),
        "checks": {r.name: {"ok": r.passed, "message": r.message} for r in results},
        "warnings": len(warnings),
        "errors": len(failed_critical),
    }


@app.post("/api/rates/goget")
async def rate_callback(request: Request):
    """Shopify carrier service 回调；任何失败都返回 {"rates": []}"""
    payload = await _read_json(request)
    overrides = RateOverrides.from_query(request.query_params)
    result = await rate_service.handle(
        payload,
        token=request.query_params.get("token"),
        overrides=overrides,
    )
    return JSONResponse(status_code=result.status_code, content=result.to_dict())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

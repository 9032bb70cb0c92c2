"""
GoGet 运费 CLI

所有命令输出结构化 JSON，便于排查配置与线上报价。

用法:
    python -m goget_rates.cli quote --origin "1 Jalan Ampang, Kuala Lumpur" --destination "Sunway Pyramid, Selangor"
    python -m goget_rates.cli geocode --address "KLCC, Kuala Lumpur" --country MY
    python -m goget_rates.cli doctor
    python -m goget_rates.cli serve --port 8000
"""

import argparse
import asyncio
import json
import sys
from typing import Any


def _json_out(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def _address_payload(line: str | None, country: str | None) -> dict[str, Any]:
    # 单行地址放进 address1，交给地址标准化原样拼接
    return {"address1": line or "", "country": country or ""}


async def cmd_quote(args: argparse.Namespace) -> None:
    from goget_rates.core.config import get_config
    from goget_rates.modules.rates import RateOverrides, RateService

    config = get_config(args.config_path)
    service = RateService(config.to_model())
    payload = {
        "rate": {
            "origin": _address_payload(args.origin, args.country),
            "destination": _address_payload(args.destination, args.country),
            "currency": args.currency,
        }
    }
    overrides = RateOverrides(
        pickup_lat=args.pickup_lat,
        pickup_lng=args.pickup_lng,
        start_at=args.start_at,
        debug=bool(args.debug),
    )
    # 本地调用直接带上已配置的回调密钥
    result = await service.handle(payload, token=service.config.security.callback_token, overrides=overrides)
    _json_out(result.to_dict())


async def cmd_geocode(args: argparse.Namespace) -> None:
    from goget_rates.core.config import get_config
    from goget_rates.modules.rates import GeocodeResolver

    config = get_config(args.config_path)
    resolver = GeocodeResolver(config.to_model().geocoder)
    point = await resolver.resolve(args.address, args.country)
    if point is None:
        _json_out({"address": args.address, "resolved": False})
        return
    _json_out({"address": args.address, "resolved": True, "lat": point.lat, "lng": point.lng})


async def cmd_doctor(args: argparse.Namespace) -> None:
    from goget_rates.core.config import get_config
    from goget_rates.core.startup_checks import print_startup_report, run_all_checks

    config = get_config(args.config_path)
    results = run_all_checks(config.to_model())
    ok = print_startup_report(results)
    _json_out({"ok": ok, "checks": [r.to_dict() for r in results]})


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("web.api:app", host=args.host, port=args.port, reload=bool(args.reload))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="goget-rates", description="GoGet carrier rate callback tools")
    parser.add_argument("--config-path", default=None, help="config file (default config/config.yaml)")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("quote", help="run the full rate pipeline for two addresses")
    p.add_argument("--origin", required=True, help="pickup address line")
    p.add_argument("--destination", required=True, help="dropoff address line")
    p.add_argument("--country", default="MY", help="country code for both addresses")
    p.add_argument("--currency", default=None, help="currency (default MYR)")
    p.add_argument("--pickup-lat", default=None, help="fixed pickup latitude")
    p.add_argument("--pickup-lng", default=None, help="fixed pickup longitude")
    p.add_argument("--start-at", default=None, help="ISO-8601 pickup time")
    p.add_argument("--debug", action="store_true", help="include debug block (needs app.debug_responses)")

    p = sub.add_parser("geocode", help="resolve one address")
    p.add_argument("--address", required=True)
    p.add_argument("--country", default=None, help="two-letter country bias")

    sub.add_parser("doctor", help="check configuration readiness")

    p = sub.add_parser("serve", help="run the webhook with uvicorn")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=8000)
    p.add_argument("--reload", action="store_true")

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "serve":
        cmd_serve(args)
        return

    dispatch = {
        "quote": cmd_quote,
        "geocode": cmd_geocode,
        "doctor": cmd_doctor,
    }

    handler = dispatch.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        asyncio.run(handler(args))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        _json_out({"error": str(e)})
        sys.exit(1)


if __name__ == "__main__":
    main()

"""CLI to exercise crypto_tracker API routes and run one alert check.

Usage:
  poetry run check-routes health
  poetry run check-routes crypto top --limit 5
  poetry run check-routes crypto history bitcoin --days 30 --head 3
  poetry run check-routes alerts create bitcoin BTC Bitcoin above 100000 --user auth0|123
  poetry run check-routes portfolio add bitcoin BTC Bitcoin 0.5 --user auth0|123
  poetry run check-routes tick
"""
import argparse
import asyncio
import json
import sys
from dataclasses import asdict

import httpx


def print_json(data: object) -> None:
    print(json.dumps(data, indent=2, default=str))


def _user_headers(args: argparse.Namespace) -> dict[str, str]:
    return {"X-User-Id": args.user}


def cmd_health(client: httpx.Client, _: argparse.Namespace) -> int:
    r = client.get("/")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_crypto_top(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get("/crypto/top", params={"limit": args.limit, "page": args.page})
    r.raise_for_status()
    data = r.json()
    print(f"Found {len(data)} coins")
    print_json(data[: args.head] if args.head else data)
    return 0


def cmd_crypto_search(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get("/crypto/search", params={"q": args.query})
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_crypto_details(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get(f"/crypto/{args.coin_id}")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_crypto_history(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get(f"/crypto/{args.coin_id}/history", params={"days": args.days})
    r.raise_for_status()
    data = r.json()
    print(f"Found {len(data)} history points for {args.coin_id}")
    print_json(data[: args.head] if args.head else data)
    return 0


def cmd_crypto_news(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get("/crypto/news/latest", params={"limit": args.limit})
    r.raise_for_status()
    data = r.json()
    print(f"Found {len(data)} articles")
    print_json(data)
    return 0


def cmd_alerts_list(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get("/alerts", headers=_user_headers(args))
    r.raise_for_status()
    data = r.json()
    print(f"Found {len(data)} alerts")
    print_json(data)
    return 0


def cmd_alerts_create(client: httpx.Client, args: argparse.Namespace) -> int:
    body = {
        "coin_id": args.coin_id,
        "coin_symbol": args.coin_symbol,
        "coin_name": args.coin_name,
        "condition": args.condition,
        "target_price": args.target_price,
    }
    r = client.post("/alerts", json=body, headers=_user_headers(args))
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_alerts_toggle(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.patch(
        f"/alerts/{args.alert_id}/toggle",
        json={"is_active": not args.off},
        headers=_user_headers(args),
    )
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_alerts_delete(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.delete(f"/alerts/{args.alert_id}", headers=_user_headers(args))
    r.raise_for_status()
    print(f"Deleted alert {args.alert_id}")
    return 0


def cmd_portfolio_list(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get("/portfolio/holdings", headers=_user_headers(args))
    r.raise_for_status()
    data = r.json()
    print(f"Found {len(data)} holdings")
    print_json(data)
    return 0


def cmd_portfolio_add(client: httpx.Client, args: argparse.Namespace) -> int:
    body = {
        "coin_id": args.coin_id,
        "coin_symbol": args.coin_symbol,
        "coin_name": args.coin_name,
        "quantity": args.quantity,
    }
    if args.buy_price is not None:
        body["average_buy_price"] = args.buy_price
    r = client.post("/portfolio/holdings", json=body, headers=_user_headers(args))
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_portfolio_value(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get("/portfolio/value", headers=_user_headers(args))
    r.raise_for_status()
    data = r.json()
    print(f"Total value: {data['total_value']:.2f} USD")
    print_json(data)
    return 0


def cmd_portfolio_history(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.get(
        "/portfolio/value-history", params={"days": args.days}, headers=_user_headers(args)
    )
    r.raise_for_status()
    points = r.json()["data"]
    print(f"{len(points)} points")
    print_json(points[: args.head] if args.head else points)
    return 0


def cmd_tick(_client: httpx.Client | None, _: argparse.Namespace) -> int:
    """Run one alert check in-process with the configured container (no server)."""
    from crypto_tracker.container import Container
    from crypto_tracker.db.sessions import init_db
    from crypto_tracker.main import configure_logging

    container = Container()
    configure_logging(container.settings().log_level)

    async def run() -> dict:
        await asyncio.to_thread(init_db, container.engine())
        try:
            report = await container.alert_scheduler().run_once()
        finally:
            await container.throttled_cache().aclose()
            await container.gateway().close()
            await container.identity_provider().close()
        return asdict(report)

    try:
        print_json(asyncio.run(run()))
    except KeyboardInterrupt:
        print("\nStopped by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Tick error: {e}", file=sys.stderr)
        return 1
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Exercise crypto_tracker API routes and run one alert check.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--base-url",
        default="http://localhost:8001",
        help="API base URL (default: http://localhost:8001)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Request timeout in seconds (default: 30)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command")

    # health
    subparsers.add_parser("health", help="GET / health check")

    # crypto
    crypto = subparsers.add_parser("crypto", help="Crypto routes (/crypto)")
    crypto_sub = crypto.add_subparsers(dest="crypto_cmd", required=True)
    p = crypto_sub.add_parser("top", help="GET /crypto/top")
    p.add_argument("--limit", type=int, default=10, help="Coins per page (default: 10)")
    p.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    p.add_argument("--head", type=int, default=0, help="Show only first N (0 = all)")
    p = crypto_sub.add_parser("search", help="GET /crypto/search")
    p.add_argument("query", help="Name or symbol (e.g. bitcoin, eth)")
    p = crypto_sub.add_parser("details", help="GET /crypto/{coin_id}")
    p.add_argument("coin_id", help="CoinGecko ID (e.g. bitcoin, ethereum)")
    p = crypto_sub.add_parser("history", help="GET /crypto/{coin_id}/history")
    p.add_argument("coin_id", help="CoinGecko ID")
    p.add_argument("--days", type=int, default=7, help="Days of history (default: 7)")
    p.add_argument("--head", type=int, default=0, help="Show only first N points (0 = all)")
    p = crypto_sub.add_parser("news", help="GET /crypto/news/latest")
    p.add_argument("--limit", type=int, default=10, help="Max articles (default: 10)")

    # alerts
    alerts = subparsers.add_parser("alerts", help="Alert routes (/alerts)")
    alerts.add_argument("--user", required=True, help="User id sent as X-User-Id")
    alerts_sub = alerts.add_subparsers(dest="alerts_cmd", required=True)
    alerts_sub.add_parser("list", help="GET /alerts")
    p = alerts_sub.add_parser("create", help="POST /alerts")
    p.add_argument("coin_id", help="CoinGecko ID")
    p.add_argument("coin_symbol", help="Ticker symbol (e.g. BTC)")
    p.add_argument("coin_name", help="Display name")
    p.add_argument("condition", choices=["above", "below"], help="Trigger condition")
    p.add_argument("target_price", help="Target price in USD")
    p = alerts_sub.add_parser("toggle", help="PATCH /alerts/{alert_id}/toggle")
    p.add_argument("alert_id", help="Alert ID")
    p.add_argument("--off", action="store_true", help="Deactivate instead of activate")
    p = alerts_sub.add_parser("delete", help="DELETE /alerts/{alert_id}")
    p.add_argument("alert_id", help="Alert ID")

    # portfolio
    portfolio = subparsers.add_parser("portfolio", help="Portfolio routes (/portfolio)")
    portfolio.add_argument("--user", required=True, help="User id sent as X-User-Id")
    portfolio_sub = portfolio.add_subparsers(dest="portfolio_cmd", required=True)
    portfolio_sub.add_parser("list", help="GET /portfolio/holdings")
    p = portfolio_sub.add_parser("add", help="POST /portfolio/holdings")
    p.add_argument("coin_id", help="CoinGecko ID")
    p.add_argument("coin_symbol", help="Ticker symbol (e.g. BTC)")
    p.add_argument("coin_name", help="Display name")
    p.add_argument("quantity", help="Amount held")
    p.add_argument("--buy-price", default=None, help="Average buy price in USD")
    portfolio_sub.add_parser("value", help="GET /portfolio/value")
    p = portfolio_sub.add_parser("history", help="GET /portfolio/value-history")
    p.add_argument("--days", type=int, default=7, help="Days of history (default: 7)")
    p.add_argument("--head", type=int, default=0, help="Show only first N points (0 = all)")

    # tick (in-process; no server required)
    subparsers.add_parser("tick", help="Run one alert check against the configured database")

    args = parser.parse_args()
    base_url = args.base_url.rstrip("/")

    handlers = {
        "health": cmd_health,
        "crypto": {
            "top": cmd_crypto_top,
            "search": cmd_crypto_search,
            "details": cmd_crypto_details,
            "history": cmd_crypto_history,
            "news": cmd_crypto_news,
        },
        "alerts": {
            "list": cmd_alerts_list,
            "create": cmd_alerts_create,
            "toggle": cmd_alerts_toggle,
            "delete": cmd_alerts_delete,
        },
        "portfolio": {
            "list": cmd_portfolio_list,
            "add": cmd_portfolio_add,
            "value": cmd_portfolio_value,
            "history": cmd_portfolio_history,
        },
    }

    cmd = args.command
    if cmd == "tick":
        return cmd_tick(None, args)
    if cmd == "health":
        handler = handlers["health"]
    else:
        sub = getattr(args, f"{cmd}_cmd", None)
        if sub is None:
            parser.error(f"Missing subcommand for {cmd}")
        handler = handlers[cmd][sub]

    try:
        with httpx.Client(base_url=base_url, timeout=args.timeout) as client:
            return handler(client, args)
    except httpx.HTTPStatusError as e:
        print(f"HTTP error: {e.response.status_code}", file=sys.stderr)
        if e.response.content:
            try:
                print(e.response.json(), file=sys.stderr)
            except ValueError:
                print(e.response.text, file=sys.stderr)
        return 1
    except httpx.RequestError as e:
        print(f"Request error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

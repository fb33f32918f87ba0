#!/usr/bin/env python3
"""Smoke checks for a deployed shuttle backend: register, fund, book, cancel."""

from __future__ import annotations

import argparse
import random
import string
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx


@dataclass
class SmokeContext:
    base_url: str
    api_prefix: str
    timeout_seconds: float
    verify_tls: bool
    retries: int
    retry_delay_seconds: float


def _random_digits(length: int) -> str:
    return "".join(random.choice(string.digits) for _ in range(length))


def _api_url(ctx: SmokeContext, path: str) -> str:
    return f"{ctx.base_url}{ctx.api_prefix}{path}"


def _step(name: str) -> None:
    print(f"\n==> {name}")


def _request(
    ctx: SmokeContext,
    client: httpx.Client,
    method: str,
    url: str,
    *,
    step_name: str,
    expected_status: int = 200,
    **kwargs: Any,
) -> dict[str, Any]:
    last_error: Exception | None = None
    for attempt in range(ctx.retries + 1):
        try:
            resp = client.request(method, url, **kwargs)
        except (httpx.ConnectTimeout, httpx.ReadTimeout, httpx.ConnectError, httpx.RemoteProtocolError) as exc:
            last_error = exc
            if attempt >= ctx.retries:
                break
            print(f"{step_name}: transient error ({exc}), retrying ({attempt + 1}/{ctx.retries})...")
            time.sleep(ctx.retry_delay_seconds)
            continue
        if resp.status_code in {502, 503, 504} and attempt < ctx.retries:
            print(f"{step_name}: transient HTTP {resp.status_code}, retrying ({attempt + 1}/{ctx.retries})...")
            time.sleep(ctx.retry_delay_seconds)
            continue
        if resp.status_code != expected_status:
            raise RuntimeError(
                f"{step_name} failed: expected HTTP {expected_status}, got {resp.status_code}. Body: {resp.text}"
            )
        return resp.json()
    raise RuntimeError(f"{step_name} request failed: {last_error}") from last_error


def run_smoke(*, ctx: SmokeContext, route_id: int | None, amount: int) -> None:
    run_id = f"{int(time.time())}{_random_digits(3)}"
    email = f"shuttle.smoke+{run_id}@example.com"
    password = f"SmokePass{_random_digits(4)}!"
    student_id = f"{datetime.now(timezone.utc).year}/{_random_digits(6)}"

    with httpx.Client(timeout=ctx.timeout_seconds, verify=ctx.verify_tls) as client:
        _step("Health checks")
        _request(ctx, client, "GET", f"{ctx.base_url}/healthz", step_name="GET /healthz")
        _request(ctx, client, "GET", f"{ctx.base_url}/readyz", step_name="GET /readyz")

        _step("Register throwaway user")
        registered = _request(
            ctx,
            client,
            "POST",
            _api_url(ctx, "/auth/register"),
            step_name="POST /auth/register",
            expected_status=201,
            json={"fullName": "Smoke Rider", "email": email, "studentId": student_id, "password": password},
        )
        headers = {"Authorization": f"Bearer {registered['data']['token']}"}
        print(f"Registered {email}")

        _step("Fund wallet")
        funded = _request(
            ctx,
            client,
            "POST",
            _api_url(ctx, "/user/fund"),
            step_name="POST /user/fund",
            headers=headers,
            json={"amount": amount, "paymentMethod": "card"},
        )
        balance_before = funded["data"]["newBalance"]
        print(f"Balance after funding: {balance_before}")

        _step("Pick route")
        routes = _request(ctx, client, "GET", _api_url(ctx, "/routes"), step_name="GET /routes")["data"]
        candidates = [r for r in routes if r["available_seats"] > 0 and r["price"] <= balance_before]
        if route_id is not None:
            candidates = [r for r in candidates if r["id"] == route_id]
        if not candidates:
            raise RuntimeError("No active route with free seats that the smoke wallet can afford.")
        route = candidates[0]
        print(f"Using route {route['id']} ({route['route_name']}) price={route['price']}")

        _step("Create booking")
        departure = datetime.now(timezone.utc) + timedelta(days=1)
        created = _request(
            ctx,
            client,
            "POST",
            _api_url(ctx, "/bookings"),
            step_name="POST /bookings",
            expected_status=201,
            headers=headers,
            json={
                "routeId": route["id"],
                "pickupLocation": route["departure_location"],
                "dropoffLocation": route["arrival_location"],
                "departureTime": departure.isoformat(),
                "numberOfSeats": 1,
            },
        )["data"]
        booking = created["booking"]
        print(f"Booked {booking['booking_code']} balance={created['newBalance']}")

        _step("Cancel booking")
        cancelled = _request(
            ctx,
            client,
            "PATCH",
            _api_url(ctx, f"/bookings/{booking['id']}/cancel"),
            step_name="PATCH /bookings/{id}/cancel",
            headers=headers,
        )["data"]
        print(f"Refunded {cancelled['refundAmount']} balance={cancelled['newBalance']}")
        if round(cancelled["newBalance"], 2) != round(balance_before, 2):
            raise RuntimeError(
                f"Balance not restored after cancellation: before={balance_before} after={cancelled['newBalance']}"
            )

        _step("Ledger")
        ledger = _request(ctx, client, "GET", _api_url(ctx, "/transactions"), step_name="GET /transactions", headers=headers)
        types = sorted(tx["type"] for tx in ledger["data"])
        if types != ["booking", "funding", "refund"]:
            raise RuntimeError(f"Unexpected ledger entries: {types}")
        print("Ledger has funding, booking and refund entries")

    print("\nSUCCESS: booking smoke checks passed.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run shuttle booking smoke checks.")
    parser.add_argument("--base-url", required=True, help="Backend base URL, e.g. https://shuttle-api.onrender.com")
    parser.add_argument("--api-prefix", default="/api/v1", help="API prefix (default: /api/v1)")
    parser.add_argument("--route-id", type=int, default=None, help="Route to book; defaults to the first affordable one")
    parser.add_argument("--amount", type=int, default=1000, help="Wallet funding amount")
    parser.add_argument("--timeout", type=float, default=20.0, help="HTTP timeout in seconds")
    parser.add_argument("--retries", type=int, default=3, help="Retries for transient network/5xx errors")
    parser.add_argument("--retry-delay", type=float, default=5.0, help="Delay between retries in seconds")
    parser.add_argument("--insecure", action="store_true", help="Disable TLS certificate verification")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    ctx = SmokeContext(
        base_url=args.base_url.rstrip("/"),
        api_prefix="/" + args.api_prefix.strip("/"),
        timeout_seconds=args.timeout,
        verify_tls=not args.insecure,
        retries=max(0, args.retries),
        retry_delay_seconds=max(0.0, args.retry_delay),
    )
    run_smoke(ctx=ctx, route_id=args.route_id, amount=args.amount)


if __name__ == "__main__":
    main()

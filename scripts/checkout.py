"""
Command-line checkout against a running STK Checkout API.

Sends the push, then polls until the payment settles or the attempt budget
runs out.

    python scripts/checkout.py --phone 0712345678 --amount 5500 \
        --item 1:Headphones:5500:1
"""
import argparse
import asyncio
import sys
import os

# Allow running from project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from stk_checkout.client import CheckoutClient, CheckoutError
from stk_checkout.config import get_settings
from stk_checkout.logging_config import configure_logging
from stk_checkout.services.poller import PollPolicy


def parse_item(raw: str) -> dict:
    """id[:name[:price[:quantity]]]"""
    parts = raw.split(":")
    item = {"id": parts[0], "quantity": 1}
    if len(parts) > 1 and parts[1]:
        item["name"] = parts[1]
    if len(parts) > 2 and parts[2]:
        item["price"] = float(parts[2])
    if len(parts) > 3 and parts[3]:
        item["quantity"] = int(parts[3])
    return item


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--phone", required=True)
    parser.add_argument("--amount", type=int, required=True)
    parser.add_argument("--item", action="append", dest="items", type=parse_item, required=True,
                        help="id[:name[:price[:quantity]]], repeatable")
    parser.add_argument("--attempts", type=int, default=settings.poll_max_attempts)
    parser.add_argument("--interval", type=float, default=settings.poll_interval_seconds)
    return parser


async def run(args) -> int:
    client = CheckoutClient(args.base_url)
    policy = PollPolicy(max_attempts=args.attempts, interval_seconds=args.interval)
    try:
        result = await client.pay_and_wait(args.phone, args.amount, args.items, policy)
    except CheckoutError as e:
        print(f"Payment not started: {e.message}")
        return 2

    if result.timed_out:
        print(f"No confirmation after {result.attempts} attempts, treating as failed")
    else:
        message = (result.last_response or {}).get("message", "")
        print(f"Payment {result.status}: {message}")
    return 0 if result.status == "completed" else 1


def main():
    configure_logging()
    args = build_parser().parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()

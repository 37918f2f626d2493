#!/usr/bin/env python3
"""Simple CLI for checking storefront pricing locally"""

import argparse
import asyncio
from typing import Optional

from .core.converter import ConversionResult
from .core.networks import SUPPORTED_NETWORKS
from .core.quote_feed import PollOutcome, QuoteFeed
from .core.session import PricingSession
from .core.tokens import SUPPORTED_TOKENS, get_token
from .logging_config import setup_logging
from .providers.prices import build_price_source
from .providers.wallet import BrowserWalletBridge


def format_conversion(result: ConversionResult) -> str:
    if result.display_value is None:
        return f"⏳ {result.target_symbol}: not computable ({result.reason})"
    return f"💱 {result.source_amount} {result.unit_symbol} ≈ {result.display_value} {result.target_base}"


def cli_networks() -> None:
    print("\n🌐 Supported networks")
    print("=" * 50)
    for network in SUPPORTED_NETWORKS.values():
        print(f"{network.chain_id:>10}  {network.name:<24} {network.native_symbol}")


async def cli_quotes() -> None:
    feed = QuoteFeed(build_price_source())
    print(f"🔄 Fetching quotes from {feed.source.name}...")
    outcome = await feed.poll()
    if outcome is not PollOutcome.APPLIED or feed.snapshot is None:
        print(f"❌ {feed.state.error}")
        return

    snapshot = feed.snapshot
    marker = " (placeholder)" if snapshot.placeholder else ""
    print(f"\nQuotes at {snapshot.fetched_at.isoformat()}{marker}")
    print("-" * 50)
    for token in SUPPORTED_TOKENS:
        print(f"{token.icon} {token.symbol:<10} {snapshot.get(token.symbol)}")


async def cli_convert(amount: str, token: Optional[str], chain: Optional[str]) -> None:
    session = PricingSession(BrowserWalletBridge(chain), build_price_source(), poll_interval_seconds=3600)
    async with session:
        await session.feed.wait_idle()
        print(f"Network: {session.network.name}")
        print(format_conversion(session.convert(amount, token)))


async def cli_watch(amount: str, token: Optional[str], chain: Optional[str], interval: float) -> None:
    session = PricingSession(BrowserWalletBridge(chain), build_price_source(), poll_interval_seconds=interval)
    async with session:
        tracker = session.track(amount, token)
        tracker.add_listener(lambda result: print(format_conversion(result)))
        print(f"👀 Watching {amount} {session.network.native_symbol} on {session.network.name}; Ctrl-C to stop")
        print(format_conversion(tracker.result))
        try:
            while True:
                await asyncio.sleep(1)
        except asyncio.CancelledError:
            pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Storefront pricing CLI")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("networks", help="List supported networks")
    subparsers.add_parser("quotes", help="Poll the price source once")

    for name, help_text in (("convert", "Convert an amount once"), ("watch", "Keep a conversion up to date")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("amount", help="Amount in the network's native currency")
        sub.add_argument("--token", default=None, help="Target pair, e.g. BTC/USD")
        sub.add_argument("--chain", default=None, help="Chain id the wallet is on, e.g. 0x1")
        if name == "watch":
            sub.add_argument("--interval", type=float, default=30.0, help="Seconds between quote polls")

    return parser


async def main(argv: Optional[list] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    setup_logging(args.log_level)
    command = args.command.lower()

    if command in ("convert", "watch") and args.token and get_token(args.token) is None:
        print(f"❌ Unsupported token: {args.token}")
        return

    if command == "networks":
        cli_networks()

    elif command == "quotes":
        await cli_quotes()

    elif command == "convert":
        await cli_convert(args.amount, args.token, args.chain)

    elif command == "watch":
        await cli_watch(args.amount, args.token, args.chain, args.interval)

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()

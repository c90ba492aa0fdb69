"""Print the rug-pull risk verdict for one or more Solana mints.

Usage:
    python scripts/check_token.py <mint> [<mint> ...] [--json]
    python scripts/check_token.py --trending 10
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import settings  # noqa: E402
from rugscope.models.token import Token  # noqa: E402
from rugscope.parsers.aggregator import build_aggregator  # noqa: E402
from rugscope.utils.logger import setup_logger  # noqa: E402


def _format_token(token: Token) -> str:
    lines = [f"{token.symbol} ({token.name})  {token.mint}"]
    risk = token.risk_score
    if risk is None:
        lines.append("  no risk score")
        return "\n".join(lines)

    lines.append(
        f"  {risk.risk_level.value}  score {risk.total_score}  "
        f"confidence {risk.confidence:.0%}  source {token.source}"
    )
    lines.append(
        f"  price ${token.price:.8g}  liquidity ${token.total_liquidity:,.0f}  "
        f"volume 24h ${token.volume_24h:,.0f}  holders {token.holder_count}"
    )
    for name, component in risk.breakdown.model_dump().items():
        lines.append(f"    {name:<22} {component['score']:>3}")
    for signal in risk.signals:
        lines.append(f"  [{signal.severity.value.upper()}] {signal.message}")
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> int:
    aggregator = build_aggregator(settings)
    try:
        if args.trending:
            tokens = await aggregator.get_trending_tokens(args.trending)
        elif len(args.mints) == 1:
            token = await aggregator.get_complete_token_data(args.mints[0])
            tokens = [token] if token else []
        else:
            tokens = await aggregator.get_multiple_tokens(args.mints)
    finally:
        await aggregator.close()

    if args.json:
        print(json.dumps([t.model_dump(mode="json") for t in tokens], indent=2))
    else:
        for token in tokens:
            print(_format_token(token))
            print()

    if not tokens:
        print("No token data found", file=sys.stderr)
        return 1
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Solana token rug-pull risk check")
    parser.add_argument("mints", nargs="*", help="token mint addresses")
    parser.add_argument("--trending", type=int, metavar="N", help="score the top N trending tokens")
    parser.add_argument("--json", action="store_true", help="print full snapshots as JSON")
    parser.add_argument("--verbose", action="store_true", help="debug logging on stdout")
    args = parser.parse_args()

    if not args.mints and not args.trending:
        parser.error("pass at least one mint or --trending N")

    setup_logger(level="DEBUG" if args.verbose else "WARNING")
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()

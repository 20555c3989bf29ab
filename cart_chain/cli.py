from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_VETOED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cart-chain", add_help=True)
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the configured chain over a cart JSON file")
    run.add_argument("cart", help="Path to the cart JSON document")
    run.add_argument("--config", default=None, help="Path to a config YAML file")
    run.add_argument("--output", default=None, help="Write the resulting cart JSON here")
    run.add_argument("--timeout", type=float, default=None, help="Seconds before the run fails")

    sub.add_parser("list-steps", help="List available chain steps")

    return parser


def _run(args: argparse.Namespace) -> int:
    from .app.process import process_cart_file
    from .framework.cart import dump_cart

    try:
        result = process_cart_file(
            args.cart,
            config_path=args.config,
            output_path=args.output,
            timeout=args.timeout,
        )
    except asyncio.TimeoutError:
        print(f"Chain timed out after {args.timeout}s", file=sys.stderr)
        return EXIT_FAILED
    except Exception as exc:  # noqa: BLE001
        step = getattr(exc, "chain_step", None)
        label = f" (step: {step})" if step else ""
        print(f"Chain failed{label}: {exc}", file=sys.stderr)
        return EXIT_FAILED

    if result.cart is None:
        reason = getattr(result.outcome, "reason", None) or "vetoed"
        print(f"Chain stopped: {reason}", file=sys.stderr)
        return EXIT_VETOED

    if args.output is None:
        print(dump_cart(result.cart))
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    if args.command == "run":
        return _run(args)

    if args.command == "list-steps":
        from .impl.gift_steps import list_steps

        for line in list_steps():
            print(line)
        return EXIT_OK

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())




# --------------------------- Command line entry point ---------------------------
import argparse
import logging

from data_loader import load_batches, load_settings, load_target
from engine import BatchAllocationEngine
from inputvalidations import validate_target
from units import MEASUREMENT_UNITS
from utilities import advisories_markdown, plan_markdown, totals_markdown


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Plan a batch allocation for one product")
    parser.add_argument("--batches-file", required=True, help="Path to batches JSON file")
    parser.add_argument("--target-file", help="Path to target JSON file (productId, targetQuantity, displayUnit)")
    parser.add_argument("--product-id", type=int, help="Product id (when no target file is given)")
    parser.add_argument("--quantity", type=float, help="Required quantity (when no target file is given)")
    parser.add_argument(
        "--unit",
        default="kg",
        choices=[u["value"] for u in MEASUREMENT_UNITS],
        help="Display unit: " + ", ".join(u["label"] for u in MEASUREMENT_UNITS),
    )
    parser.add_argument("--strategy", default="fefo", choices=["fefo", "optimized"], help="Auto-fill strategy")
    parser.add_argument("--settings-file", help="Optional engine settings JSON file")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, ...)")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    if args.target_file:
        target = load_target(args.target_file)
    elif args.product_id is not None and args.quantity is not None:
        target = {"productId": args.product_id, "targetQuantity": args.quantity, "displayUnit": args.unit}
        validate_target(target)
    else:
        parser.error("provide --target-file or both --product-id and --quantity")

    settings = load_settings(args.settings_file) if args.settings_file else None
    batches = load_batches(args.batches_file)

    advisories = []
    engine = BatchAllocationEngine(settings, signal=advisories.append)
    engine.open(target, batches)
    plan = engine.auto_fill(args.strategy)

    print(plan_markdown(plan, engine.eligible, engine.availability, engine.display_unit))
    print(totals_markdown(engine.totals(), engine.target_quantity))
    text = advisories_markdown(advisories)
    if text:
        print(text)
    confirmed = engine.confirm()
    print(f"confirmation: {'enabled' if confirmed is not None else 'disabled'}")
    engine.close()
    return 0 if confirmed is not None else 1


if __name__ == "__main__":
    raise SystemExit(main())

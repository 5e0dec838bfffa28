import argparse
import json
import os
import sys

from .analysis import ColorAnalysisService
from .calibration import CalibrationEngine
from .chart import save_chart
from .errors import SoilHueError
from .locator import Rect
from .storage import CalibrationStore, JsonFileStore
from .validator import CalibrationValidator

DEFAULT_STORE_PATH = os.path.join(os.path.expanduser("~"), ".soilhue", "calibration.json")


def _pairs(values):
    if len(values) < 6 or len(values) % 2:
        raise argparse.ArgumentTypeError("--polygon needs at least three x y pairs")
    return [(values[i], values[i + 1]) for i in range(0, len(values), 2)]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Soil color classification with chart calibration")
    parser.add_argument(
        "--store",
        help="Calibration store (JSON file)",
        default=os.environ.get("SOILHUE_STORE", DEFAULT_STORE_PATH),
    )
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Analyze without calibration instead of failing",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    card = commands.add_parser("card", help="Write a printable reference chart image")
    card.add_argument("output", help="Output image path (e.g. chart.png)")
    card.add_argument("--width", type=int, default=1800)
    card.add_argument("--height", type=int, default=1200)

    calibrate = commands.add_parser("calibrate", help="Calibrate from a photo of the chart")
    calibrate.add_argument("image_path")

    validate = commands.add_parser("validate", help="Check the current calibration against a chart photo")
    validate.add_argument("image_path")

    analyze = commands.add_parser("analyze", help="Classify the soil color in a photo")
    analyze.add_argument("image_path")
    analyze.add_argument("--region", type=float, nargs=4, metavar=("X", "Y", "W", "H"),
                         help="Rectangle in normalized image coordinates")
    analyze.add_argument("--polygon", type=float, nargs="+", metavar="COORD",
                         help="Polygon vertices as normalized x y pairs")

    commands.add_parser("status", help="Show the stored calibration")
    commands.add_parser("reset", help="Forget the stored calibration")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "card":
            path = save_chart(args.output, args.width, args.height)
            print(f"Chart saved to {path}")
            print("Print it at full color, lay it flat under even indirect light and photograph it filling the frame.")
            return 0

        store = JsonFileStore(args.store)

        if args.command == "reset":
            # Does not load the stored record, which may be corrupt
            CalibrationStore(store).clear()
            print("Calibration cleared")
            return 0

        engine = CalibrationEngine(
            store=store,
            config={"strict_calibration": not args.lenient},
        )

        if args.command == "status":
            print(json.dumps(engine.snapshot().to_dict(), indent=2, ensure_ascii=False))
            return 0

        if args.command == "calibrate":
            print("\nProcessing calibration image...")
            run = ColorAnalysisService(engine).calibrate(args.image_path)
            if not run.succeeded:
                print(f"\nCalibration failed: {run.state.reason} ({run.valid_count} valid patches)")
                return 1
            print(f"\nCalibrated with {run.valid_count} patches.")
            print(json.dumps(engine.snapshot().to_dict(), indent=2, ensure_ascii=False))
            return 0

        if args.command == "validate":
            result = CalibrationValidator(engine.config).validate_chart(args.image_path, engine)
            print(result.describe())
            return 0 if result.is_valid else 1

        if args.command == "analyze":
            region = Rect(*args.region) if args.region else None
            polygon = _pairs(args.polygon) if args.polygon else None
            result = ColorAnalysisService(engine).analyze_image(args.image_path, region=region, polygon=polygon)
            print("\n" + "=" * 50)
            print("SOIL COLOR ANALYSIS")
            print("=" * 50)
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
            return 0

    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except (SoilHueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser.error(f"Unknown command {args.command}")


if __name__ == "__main__":
    sys.exit(main())

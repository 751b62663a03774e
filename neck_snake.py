import argparse
import logging

from config import (
    GRID_COLS, GRID_ROWS, SPEED_CELLS_PER_SEC, WRAP_AROUND, MIRROR, SENSITIVITY, SHOW_CAMERA,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="necksnake",
        description="Snake steered by head movement (nose + shoulders via MediaPipe Pose)",
    )
    parser.add_argument("--camera", type=int, default=None, help="Camera index (default: try 0, 1, 2)")
    parser.add_argument("--sensitivity", type=float, default=SENSITIVITY, help="Larger = easier to trigger")
    parser.add_argument(
        "--mirror", action=argparse.BooleanOptionalAction, default=MIRROR,
        help="Mirror horizontal control",
    )
    parser.add_argument("--cols", type=int, default=GRID_COLS, help="Grid columns (12-60)")
    parser.add_argument("--rows", type=int, default=GRID_ROWS, help="Grid rows (10-40)")
    parser.add_argument("--speed", type=int, default=SPEED_CELLS_PER_SEC, help="Cells per second (4-14)")
    parser.add_argument(
        "--wrap", action=argparse.BooleanOptionalAction, default=WRAP_AROUND,
        help="Wrap around the board edges",
    )
    parser.add_argument(
        "--preview", action=argparse.BooleanOptionalAction, default=SHOW_CAMERA,
        help="Show the camera preview window",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    return parser


def main(argv=None):
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(name)s] %(levelname)s: %(message)s",
    )

    from game.app import run_game

    run_game(
        camera_index=args.camera,
        sensitivity=args.sensitivity,
        mirror=args.mirror,
        cols=args.cols,
        rows=args.rows,
        speed=args.speed,
        wrap_around=args.wrap,
        show_camera=args.preview,
    )


if __name__ == "__main__":
    main()

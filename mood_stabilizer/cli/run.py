#!/usr/bin/env python3
"""
Run the mood stabilizer chat overlay.

Usage:
    python -m mood_stabilizer.cli.run --camera 0
    python -m mood_stabilizer.cli.run --messages my_messages.yaml --seed 7
    python -m mood_stabilizer.cli.run --create-config mood_stabilizer.yaml
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Webcam chat feed whose mood follows your expression",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file (YAML or JSON)",
    )
    parser.add_argument(
        "--camera",
        type=int,
        default=None,
        help="Camera device ID (overrides config)",
    )
    parser.add_argument(
        "--messages",
        type=str,
        default=None,
        help="Message file, JSON or YAML (overrides config)",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Path to face_landmarker.task (overrides config)",
    )
    parser.add_argument(
        "--mirror",
        action="store_true",
        help="Flip camera frames horizontally before tracking",
    )
    parser.add_argument(
        "--no-clamp",
        action="store_true",
        help="Pass the expression index through without limiting it to [-0.9, 0.9]",
    )
    parser.add_argument(
        "--face-policy",
        choices=["first", "last", "average"],
        default=None,
        help="How to combine several tracked faces (overrides config)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for message timing and picks",
    )
    parser.add_argument(
        "--fps",
        type=float,
        default=None,
        help="Target frames per second (overrides config)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--create-config",
        type=str,
        default=None,
        metavar="PATH",
        help="Create a default config file and exit",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace):
    """Load the config file (or defaults) and apply command line overrides."""
    from mood_stabilizer.config import StabilizerConfig, load_config

    config = load_config(args.config)

    overrides = {
        "camera_id": args.camera,
        "messages_path": args.messages,
        "model_path": args.model,
        "face_policy": args.face_policy,
        "seed": args.seed,
        "target_fps": args.fps,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)
    if args.mirror:
        config.mirror_input = True
    if args.no_clamp:
        config.clamp_expression = False

    # Re-run validation on the merged values
    return StabilizerConfig(**vars(config))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.WARNING)

    if args.create_config:
        from mood_stabilizer.config import create_default_config
        create_default_config(args.create_config)
        print(f"Created default config at: {args.create_config}")
        return 0

    try:
        config = build_config(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    from mood_stabilizer.app import MoodStabilizerApp

    try:
        app = MoodStabilizerApp(config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to load messages: {e}")
        return 1

    def signal_handler(signum, frame):
        logger.info("Received shutdown signal")
        app.request_stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        app.run()
    except RuntimeError as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

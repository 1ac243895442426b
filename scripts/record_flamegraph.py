#!/usr/bin/env python
"""CLI to record a flamegraph of one pod without the GUI.

Usage:
    python scripts/record_flamegraph.py --namespace default --pod my-app-0 --duration 30

This will:
- Start perf record on the pod through the furnace proxy
- Wait for --duration seconds
- Stop, poll until the chart is rendered
- Download <namespace>_<pod>.svg into --output
"""
import argparse
import sys
from pathlib import Path

import requests

# Add parent directory to path so package imports work
sys.path.insert(0, str(Path(__file__).parent.parent))

from furnace.config import get_settings
from furnace.models.schemas import ColorScheme, RecordingOptions
from furnace.utils.logger import get_logger, setup_logging
from gui.services.clients import get_proxy_client
from gui.services.session_controller import CHART_MARGIN, SessionController
from gui.state import Phase
from gui.utils.async_tasks import LoopDispatcher

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Record a perf flamegraph of a pod")
    parser.add_argument("--namespace", required=True, help="Pod namespace")
    parser.add_argument("--pod", required=True, help="Pod name")
    parser.add_argument(
        "--duration", type=float, default=30.0, help="Seconds to record before stopping"
    )
    parser.add_argument(
        "--colors",
        choices=[c.value for c in ColorScheme],
        default=ColorScheme.HOT.value,
        help="flamegraph palette",
    )
    parser.add_argument("--no-inverted", action="store_true", help="Draw an upright flamegraph")
    parser.add_argument("--symfs", action="store_true", help="Resolve symbols via --symfs")
    parser.add_argument(
        "--width", type=int, default=1200 + CHART_MARGIN, help="Viewport width in pixels"
    )
    parser.add_argument("--output", default=".", help="Directory for the downloaded SVG")
    parser.add_argument(
        "--timeout", type=float, default=600.0, help="Max seconds to wait for rendering"
    )
    return parser


def record(args, client=None, dispatcher=None) -> int:
    settings = get_settings()
    client = client or get_proxy_client(settings)
    dispatcher = dispatcher or LoopDispatcher()
    controller = SessionController(client, dispatcher, poll_interval_ms=settings.poll_interval_ms)
    state = controller.state

    controller.select_namespace(args.namespace)
    controller.select_target(args.pod)
    controller.set_options(
        RecordingOptions(
            color_scheme=args.colors,
            inverted=not args.no_inverted,
            use_symfs=args.symfs,
        )
    )

    try:
        controller.start()
        if state.phase is not Phase.RECORDING:
            logger.error("Could not start recording on %s/%s", args.namespace, args.pod)
            return 1

        logger.info(f"🔥 Recording {args.namespace}/{args.pod} for {args.duration:.0f}s")
        try:
            dispatcher.sleep(args.duration)
        except KeyboardInterrupt:
            logger.warning("Interrupted, stopping perf record on %s/%s", args.namespace, args.pod)
            controller.stop(args.width)
            return 130

        controller.stop(args.width)
        if state.phase is not Phase.STOPPING_AND_POLLING:
            logger.error("Could not stop recording on %s/%s", args.namespace, args.pod)
            return 1

        if not dispatcher.run_until(
            lambda: state.phase is Phase.ARTIFACT_READY, timeout_s=args.timeout
        ):
            logger.error("Timed out waiting for the flamegraph (last status: %s)", state.last_status.label)
            return 1

        try:
            path = client.download_chart(state.selected_target, state.artifact_epoch, Path(args.output))
        except requests.RequestException as exc:
            logger.error("Download failed: %s", exc)
            return 1
        print(path)
        return 0
    finally:
        controller.close()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level, settings.verbose)
    return record(args)


if __name__ == "__main__":
    sys.exit(main())

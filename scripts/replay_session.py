#!/usr/bin/env python3
"""Replay a recorded landmark stream through a recognition session."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd
from tqdm import tqdm

from facegeom.config import SessionConfig, load_config
from facegeom.errors import FaceGeomError
from facegeom.exchange import export_to_file, import_from_file
from facegeom.io_utils import iter_landmark_frames, setup_logging
from facegeom.session import FrameResult, RecognitionSession


LOGGER = logging.getLogger("scripts.replay_session")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay recorded face landmarks for enrollment and prediction")
    parser.add_argument("frames", type=Path, help="JSON-lines file of detector frames")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Session configuration YAML (default: configs/session.yaml when present)",
    )
    parser.add_argument(
        "--prototypes",
        type=Path,
        default=None,
        help="Prototype JSON to load before replaying",
    )
    parser.add_argument(
        "--export",
        type=Path,
        default=None,
        help="Write the prototype store to this JSON file after replaying",
    )
    parser.add_argument(
        "--legacy-export",
        action="store_true",
        help="Export flat vectors without sample counts",
    )
    parser.add_argument(
        "--enroll",
        type=str,
        default=None,
        help="Capture a prototype for this name starting at the first frame",
    )
    parser.add_argument(
        "--predict",
        action="store_true",
        help="Classify frames once reference prototypes are available",
    )
    parser.add_argument(
        "--predictions-csv",
        type=Path,
        default=None,
        help="Write per-frame results to CSV",
    )
    parser.add_argument("--k", type=int, default=None, help="Override number of neighbors")
    parser.add_argument(
        "--metric",
        type=str,
        choices=["euclidean", "cosine"],
        default=None,
        help="Override distance metric",
    )
    parser.add_argument("--threshold", type=float, default=None, help="Override rejection threshold")
    parser.add_argument(
        "--capture-seconds",
        type=float,
        default=None,
        help="Override capture window length",
    )
    parser.add_argument("--fps", type=float, default=None, help="Override target frame rate")
    zone_group = parser.add_mutually_exclusive_group()
    zone_group.add_argument(
        "--zone-weighting",
        dest="zone_weighting",
        action="store_true",
        help="Force facial zone weights at inference",
    )
    zone_group.add_argument(
        "--no-zone-weighting",
        dest="zone_weighting",
        action="store_false",
        help="Compare all landmarks with unit weight",
    )
    zone_group.set_defaults(zone_weighting=None)
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _resolve_config(args: argparse.Namespace, config: SessionConfig) -> SessionConfig:
    """CLI flags take precedence over the config file."""
    return config.with_overrides(
        k=args.k,
        metric=args.metric,
        threshold=args.threshold,
        capture_duration_s=args.capture_seconds,
        target_fps=args.fps,
        zone_weighting=args.zone_weighting,
    )


def _result_row(result: FrameResult, timestamp_ms: float) -> Dict:
    prediction = result.prediction
    return {
        "timestamp_ms": timestamp_ms,
        "status": result.status,
        "faces": result.faces,
        "label": prediction.label if prediction else None,
        "distance": prediction.distance if prediction else None,
        "capture_identifier": result.capture.identifier if result.capture else None,
        "error": result.prediction_error,
        "elapsed_ms": result.elapsed_ms,
    }


def replay(args: argparse.Namespace, session: RecognitionSession) -> List[Dict]:
    rows: List[Dict] = []
    dropped = 0
    invalid = 0
    last_now: Optional[float] = None
    capture_started = False

    for frame in tqdm(iter_landmark_frames(args.frames), desc="frames", unit="frame"):
        now = frame.timestamp_ms / 1000.0
        last_now = now
        if args.enroll and not capture_started:
            session.start_capture(args.enroll, now=now)
            capture_started = True

        if args.predict and not session.predicting and not session.capture.is_capturing and len(session.store):
            session.start_prediction()
        result = session.process_frame(frame, now=now)
        if result is None:
            dropped += 1
            continue
        if result.capture is not None:
            LOGGER.info("Captured %s from %d frames", result.capture.identifier, result.capture.frames)
        if result.capture_error:
            raise FaceGeomError(result.capture_error)
        if result.prediction_error:
            invalid += 1
        rows.append(_result_row(result, frame.timestamp_ms))

    if session.capture.is_capturing:
        end = (last_now or 0.0) + session.capture.duration_s
        result = session.tick(end)
        if result is not None:
            LOGGER.info("Captured %s from %d frames", result.identifier, result.frames)

    if invalid:
        LOGGER.warning("%d frames could not be classified (prototype dimension mismatch)", invalid)
    LOGGER.info("Processed %d frames (%d dropped by throttle)", len(rows), dropped)
    return rows


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = _resolve_config(args, load_config(args.config))
        session = RecognitionSession(config)
        if args.prototypes is not None:
            overwritten = import_from_file(session.store, args.prototypes)
            if overwritten:
                LOGGER.info("Overwrote %s", ", ".join(overwritten))
        if args.predict and not args.enroll and len(session.store) == 0:
            LOGGER.error("No prototypes loaded; pass --prototypes or --enroll")
            return 1

        rows = replay(args, session)

        if args.predictions_csv is not None:
            pd.DataFrame(rows).to_csv(args.predictions_csv, index=False)
            LOGGER.info("Wrote %s", args.predictions_csv)
        if args.export is not None:
            export_to_file(session.store, args.export, with_counts=not args.legacy_export)
    except FaceGeomError as exc:
        LOGGER.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

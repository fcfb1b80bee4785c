"""Run the live camera overlay against a running proxy.

Usage:
    uvicorn app.main:app --port 5050            # (separate, for the proxy)
    python scripts/live_overlay.py --mode boxes --query cup --query banana

Keys: q quit, m cycle mode, [ ] thinking budget.
"""
import argparse
import asyncio
import logging

from app.config import Settings
from core.detection import DetectionMode
from core.frame_sampler import DEFAULT_INTERVAL
from core.live_overlay import run_live_overlay


def main():
    s = Settings()
    p = argparse.ArgumentParser()
    p.add_argument("--server", default=f"http://localhost:{s.port}", help="Proxy base URL")
    p.add_argument("--camera", type=int, default=0, help="OpenCV camera index")
    p.add_argument("--mode", choices=[m.value for m in DetectionMode], default="points")
    p.add_argument("--query", action="append", default=[], help="Label filter (or trajectory goal); repeatable")
    p.add_argument("--thinking-budget", type=int, default=0)
    p.add_argument("--interval", type=float, default=DEFAULT_INTERVAL, help="Seconds between frames")
    p.add_argument("--model", default=s.live_model, help="Live model the session token is scoped to")
    args = p.parse_args()

    if args.thinking_budget < 0:
        p.error("--thinking-budget must be >= 0")

    logging.basicConfig(
        level=getattr(logging, s.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    asyncio.run(run_live_overlay(
        server_url=args.server,
        camera_index=args.camera,
        mode=DetectionMode(args.mode),
        queries=args.query,
        thinking_budget=args.thinking_budget,
        interval=args.interval,
        model=args.model
    ))


if __name__ == "__main__":
    main()

"""Fire overlapping dispatches at one coordinator and record what observers saw."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from actionstate import ActionCoordinator, CoordinatorConfig, Err, OptimisticOverlay, SettlePolicy
from actionstate.state.optimistic_overlay import append_value
from actionstate.state.status_broadcaster import StatusUpdate


logger = logging.getLogger(__name__)


async def _post_comment(previous: List[str], payload: Mapping[str, Any]) -> Any:
    await asyncio.sleep(float(payload["latency"]))
    if payload.get("reject"):
        return Err(f"comment {payload['body']!r} rejected")
    return [*(previous or []), str(payload["body"])]


async def run_harness(
    latencies: List[float],
    spacing: float,
    policy: SettlePolicy,
    reject: Optional[int],
) -> Dict[str, Any]:
    config = CoordinatorConfig.from_env()
    config = CoordinatorConfig(
        settle_policy=policy,
        supersede_previous=policy is SettlePolicy.LAST_WRITER_WINS,
        notify_on_dispatch=config.notify_on_dispatch,
        debug_policy=config.debug_policy,
    )
    coordinator = ActionCoordinator([], name="comments", config=config)
    overlay = OptimisticOverlay(coordinator, predict=append_value)
    loop = asyncio.get_running_loop()
    origin = loop.time()
    timeline: List[Dict[str, Any]] = []

    def on_status(update: StatusUpdate) -> None:
        timeline.append(
            {
                "t_ms": round((loop.time() - origin) * 1000.0, 1),
                "pending": update.pending,
                "generation": update.generation,
                "value": update.value,
                "error": update.error,
                "overlay": overlay.value,
            }
        )

    coordinator.broadcaster.subscribe(coordinator, on_status)

    for index, latency in enumerate(latencies):
        body = f"comment-{index}"
        record = coordinator.dispatch(
            _post_comment,
            {"body": body, "latency": latency, "reject": reject == index},
        )
        overlay.add_hint(f"{body} (sending)")
        logger.info("dispatched %s generation=%d latency=%.3fs overlay=%r", body, record.generation, latency, overlay.value)
        if spacing > 0 and index < len(latencies) - 1:
            await asyncio.sleep(spacing)

    final = await coordinator.settled()
    failures = await coordinator.scheduler.drain()
    if failures:
        logger.warning("harness: %d action(s) failed", len(failures))

    return {
        "policy": policy.value,
        "final": {"status": final.status.value, "value": final.value, "error": final.error},
        "overlay": overlay.value,
        "timeline": timeline,
    }


def main() -> None:
    logging.basicConfig(level=logging.INFO,
                        format='[%(asctime)s] %(name)s - %(levelname)s - %(message)s')
    parser = argparse.ArgumentParser(description="Race overlapping dispatches against one coordinator")
    parser.add_argument(
        "--latencies",
        nargs="*",
        type=float,
        default=[0.3, 0.1],
        help="Per-dispatch action latency in seconds, in dispatch order",
    )
    parser.add_argument("--spacing", type=float, default=0.01, help="Seconds between dispatches")
    parser.add_argument(
        "--policy",
        choices=[p.value for p in SettlePolicy],
        default=SettlePolicy.LAST_WRITER_WINS.value,
        help="Which dispatch may commit",
    )
    parser.add_argument("--reject", type=int, default=None, help="Index of a dispatch that returns an expected error")
    parser.add_argument("--output", default=None, help="Optional JSON output path")

    args = parser.parse_args()
    result = asyncio.run(
        run_harness(
            latencies=list(args.latencies),
            spacing=float(args.spacing),
            policy=SettlePolicy(args.policy),
            reject=args.reject,
        )
    )
    text = json.dumps(result, indent=2, default=str)
    if args.output:
        path = Path(args.output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        print(f"Wrote {path}")
    else:
        print(text)


if __name__ == "__main__":
    main()

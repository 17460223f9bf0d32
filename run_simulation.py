#!/usr/bin/env python3
"""Replay a scripted mock-investing session from the command line.

Example::

    python run_simulation.py --config config/example.yaml --output-dir results/

Each run builds one user's engine (ledger, portfolio service, market ticker)
against an in-memory backend, executes the ``actions`` listed in the YAML
file and prints the run summary as JSON.  Output lands in
``{output-dir}/{config stem}/``.  Set ``ENGINE_SEED`` (in the environment or
a ``.env`` file) to replay a session with a different random seed.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

from dotenv import load_dotenv

from engine.runner import AsyncSessionRunner
from models.config import EngineConfig

logger = logging.getLogger("run_simulation")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replay a scripted mock-investing session.",
    )
    parser.add_argument("--config", required=True, help="Session YAML file.")
    parser.add_argument(
        "--output-dir",
        default="results",
        help="Root directory for run output (default: results).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args()


def _load_config(path: str) -> EngineConfig:
    config = EngineConfig.from_yaml(path)
    seed = os.environ.get("ENGINE_SEED")
    if seed:
        logger.info("Seed overridden from ENGINE_SEED=%s", seed)
        config = config.model_copy(update={"seed": int(seed)})
    return config


async def _main() -> None:
    load_dotenv()
    args = _parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    config = _load_config(args.config)
    logger.info(
        "Session for '%s': %d action(s), catalog '%s'.",
        config.user_id,
        len(config.actions),
        config.catalog_path,
    )

    runner = AsyncSessionRunner(config, config_yaml_path=args.config, output_dir=args.output_dir)
    summary = await runner.run()
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    asyncio.run(_main())

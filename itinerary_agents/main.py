"""
Command-line entry point.

Runs one itinerary generation through the job queue and prints the
result as JSON.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from itinerary_agents.discovery.config import DEFAULT_CONFIG as DEFAULT_DISCOVERY_CONFIG
from itinerary_agents.discovery.knowledge_source import LLMKnowledgeSource
from itinerary_agents.discovery.mock_source import MockKnowledgeSource
from itinerary_agents.graph.service import ItineraryGenerationService
from itinerary_agents.orchestration.config import get_config as get_loop_config
from itinerary_agents.shared.contracts.trip import TripPreferences, TripRequest
from itinerary_agents.shared.exceptions import ConfigurationError
from itinerary_agents.shared.logging.config import setup_logging


# ============================================================================
# Logging configuration (single source of truth for all agents)
# ============================================================================
LOG_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)-35s | %(message)s"
)


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,  # Override any prior basicConfig calls
    )

    # Quiet noisy third-party loggers
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    if log_file:
        # JSON lines for the package loggers, alongside the console output
        structured = setup_logging(log_file=log_file, console=False)
        structured.propagate = True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="itinerary-agents",
        description="Generate a multi-day itinerary with the agent orchestration core.",
    )
    parser.add_argument("--cities", nargs="+", required=True, help="Cities to visit, in order")
    parser.add_argument("--destination", help="Trip destination (defaults to the last city)")
    parser.add_argument("--origin", help="Trip origin")
    parser.add_argument("--start", required=True, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--end", required=True, help="End date (YYYY-MM-DD)")
    parser.add_argument("--budget", type=float, help="Total trip budget")
    parser.add_argument("--style", default="best-overall", help="Travel-style tag")
    parser.add_argument(
        "--pace", default="moderate", choices=["relaxed", "moderate", "packed"]
    )
    parser.add_argument("--max-attempts", type=int, help="Feedback-loop attempts per slot")
    parser.add_argument(
        "--llm", action="store_true", help="Use the OpenAI knowledge source instead of mock data"
    )
    parser.add_argument("--audit-dir", help="Write per-run audit logs under this directory")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file", help="Also write structured JSON logs to this file")
    return parser


async def run(args: argparse.Namespace) -> dict:
    trip = TripRequest(
        origin=args.origin,
        destination=args.destination or args.cities[-1],
        cities=args.cities,
        start_date=args.start,
        end_date=args.end,
        preferences=TripPreferences(
            budget_total=args.budget,
            travel_style=args.style,
            pace=args.pace,
        ),
    )

    if args.llm:
        source = LLMKnowledgeSource(DEFAULT_DISCOVERY_CONFIG, travel_style=args.style)
    else:
        source = MockKnowledgeSource(DEFAULT_DISCOVERY_CONFIG.max_candidates)

    service = ItineraryGenerationService(
        source,
        audit_dir=args.audit_dir,
        loop_config=get_loop_config(max_attempts=args.max_attempts),
    )

    run_id = await service.submit(trip)
    await service.wait()

    status = service.status(run_id) or {}
    job = service.queue.get_job_status(run_id) or {}
    return {
        "run_id": run_id,
        "status": status.get("state"),
        "error": status.get("error"),
        "result": job.get("result"),
    }


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    try:
        output = asyncio.run(run(args))
    except ConfigurationError as e:
        logging.getLogger(__name__).error(f"Configuration error: {e}")
        return 2

    json.dump(output, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")
    return 0 if output["status"] == "completed" else 1


if __name__ == "__main__":
    sys.exit(main())

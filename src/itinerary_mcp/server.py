import argparse
import asyncio
import logging
from datetime import UTC, datetime

from pydantic import BaseModel

from itinerary_mcp.app import mcp
from itinerary_mcp.models.geo import parse_place
from itinerary_mcp.models.routing import TravelMode

# Register tools
from itinerary_mcp.tools import stop_tools, trip_tools  # noqa: F401


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


@mcp.tool()
def health() -> HealthResponse:
    """Check if the itinerary MCP server is running and healthy.

    Returns the server status, version, and current timestamp.
    """
    from itinerary_mcp import __version__

    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
    )


async def run_plan(places: list[str], mode: TravelMode, corridor_width: float | None) -> None:
    """Plan an itinerary and print it as JSON."""
    from itinerary_mcp.services.trip_planner import plan_itinerary

    response = await plan_itinerary(
        [parse_place(p) for p in places],
        travel_mode=mode,
        corridor_width_meters=corridor_width,
    )
    print(response.model_dump_json(indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="itinerary-mcp",
        description="Trip Itinerary MCP Server",
    )
    subparsers = parser.add_subparsers(dest="command")

    # plan command
    plan_parser = subparsers.add_parser(
        "plan",
        help="Plan an itinerary through two or more places and print it",
    )
    plan_parser.add_argument(
        "places",
        nargs="+",
        help='Origin, waypoints, destination (addresses or "lat,lng")',
    )
    plan_parser.add_argument(
        "--mode",
        type=TravelMode,
        choices=list(TravelMode),
        default=TravelMode.TRANSIT,
        help="Travel mode for every leg (default: transit)",
    )
    plan_parser.add_argument(
        "--corridor",
        type=float,
        default=None,
        help="Corridor width in meters for bus stop fallback (default: 5000)",
    )
    plan_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    if args.command == "plan":
        # Configure logging
        log_level = logging.DEBUG if args.verbose else logging.INFO
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        if len(args.places) < 2:
            parser.error("plan needs at least two places")

        asyncio.run(run_plan(args.places, args.mode, args.corridor))
    else:
        # Default: run MCP server
        mcp.run()


if __name__ == "__main__":
    main()

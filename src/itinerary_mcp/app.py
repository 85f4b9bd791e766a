"""MCP application instance.

Tool modules import `mcp` from here rather than from server.py, so that
`python -m itinerary_mcp.server` does not import the server module twice.
"""

from mcp.server.fastmcp import FastMCP

mcp = FastMCP(
    "Trip Itinerary",
    instructions=(
        "Multi-stop trip planning - directions per leg, bus stop fallback along the "
        "route corridor, and a composed walk/bus/cab itinerary"
    ),
)

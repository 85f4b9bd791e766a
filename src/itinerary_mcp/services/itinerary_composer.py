"""Fuse raw routing segments into one ordered itinerary.

Within a leg the steps are folded through a small state machine: the state is
the events emitted so far plus an open span of same-kind non-transit steps.
A transit step or the end of the leg flushes the span into one event.
"""

from collections import Counter
from dataclasses import dataclass, replace
from functools import reduce

from itinerary_mcp.models.geo import Coordinate
from itinerary_mcp.models.responses import (
    ComposedItinerary,
    EventKind,
    ItineraryEvent,
    LegSummary,
)
from itinerary_mcp.models.routing import KIND_FOR_MODE, RouteLeg, Step, TravelKind
from itinerary_mcp.services.geomath import midpoint

# Walks longer than this are not a realistic default plan; suggest a cab
CAB_THRESHOLD_METERS = 3000.0

# A cab covers the distance roughly three times faster than walking
CAB_SPEEDUP = 3

# Labels for non-walk spans
SPAN_LABELS = {
    TravelKind.DRIVE: (EventKind.DRIVE, "Drive"),
    TravelKind.CYCLE: (EventKind.CYCLE, "Cycle"),
}

MERGEABLE_KINDS = (EventKind.WALK, EventKind.CAB_SUGGESTED)


def format_distance(meters: float) -> str:
    """Format a distance for display (e.g., '850 m', '4.2 km')."""
    if meters < 1000:
        return f"{round(meters)} m"
    return f"{meters / 1000:.1f} km"


def format_duration(seconds: float) -> str:
    """Format a duration for display (e.g., '1 min', '20 mins', '1 hr 5 mins')."""
    if seconds <= 0:
        return "0 mins"
    minutes = max(1, round(seconds / 60))
    if minutes < 60:
        return "1 min" if minutes == 1 else f"{minutes} mins"
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"{hours} hr"
    return f"{hours} hr {rest} min" if rest == 1 else f"{hours} hr {rest} mins"


def short_stop_name(name: str | None) -> str | None:
    """Keep only the part of a stop name before the first comma."""
    if not name:
        return name
    return name.split(",")[0].strip() or name


def cab_event(distance: float, driving_seconds: float, leg_index: int) -> ItineraryEvent:
    return ItineraryEvent(
        kind=EventKind.CAB_SUGGESTED,
        label=(
            f"Cab recommended • {format_distance(distance)} • "
            f"~{format_duration(driving_seconds)} by car"
        ),
        subtext="Too far to walk",
        distance_meters=distance,
        duration_seconds=driving_seconds,
        leg_index=leg_index,
    )


def walk_or_cab_event(
    distance: float,
    walk_seconds: float,
    leg_index: int,
    cab_threshold_meters: float = CAB_THRESHOLD_METERS,
) -> ItineraryEvent:
    """WALK for spans up to the threshold, CAB_SUGGESTED above it."""
    if distance > cab_threshold_meters:
        return cab_event(distance, walk_seconds / CAB_SPEEDUP, leg_index)
    return ItineraryEvent(
        kind=EventKind.WALK,
        label="Walk",
        subtext=f"Walk {format_distance(distance)} ({format_duration(walk_seconds)})",
        distance_meters=distance,
        duration_seconds=walk_seconds,
        leg_index=leg_index,
    )


def span_event(
    kind: TravelKind,
    distance: float,
    duration: float,
    leg_index: int,
    cab_threshold_meters: float = CAB_THRESHOLD_METERS,
) -> ItineraryEvent:
    if kind == TravelKind.WALK:
        return walk_or_cab_event(distance, duration, leg_index, cab_threshold_meters)
    event_kind, label = SPAN_LABELS[kind]
    return ItineraryEvent(
        kind=event_kind,
        label=label,
        subtext=f"{label} {format_distance(distance)} ({format_duration(duration)})",
        distance_meters=distance,
        duration_seconds=duration,
        leg_index=leg_index,
    )


def transit_event(step: Step, leg_index: int) -> ItineraryEvent:
    """One combined board/ride/alight event for a transit step."""
    details = step.transit_details
    ride = f"Ride for {format_distance(step.distance_meters)} ({format_duration(step.duration_seconds)})"
    if details is None:
        return ItineraryEvent(
            kind=EventKind.BUS,
            label="Transit",
            subtext=ride,
            distance_meters=step.distance_meters,
            duration_seconds=step.duration_seconds,
            leg_index=leg_index,
        )

    vehicle = details.vehicle or "Bus"
    label = f"{vehicle} {details.line_name}" if details.line_name else vehicle
    if details.num_stops:
        ride += f" • {details.num_stops} stops"

    return ItineraryEvent(
        kind=EventKind.BUS,
        label=label,
        subtext=ride,
        line_name=details.line_name,
        board_stop=short_stop_name(details.departure_stop),
        board_time=details.departure_time,
        alight_stop=short_stop_name(details.arrival_stop),
        alight_time=details.arrival_time,
        distance_meters=step.distance_meters,
        duration_seconds=step.duration_seconds,
        leg_index=leg_index,
    )


@dataclass(frozen=True)
class _Span:
    """Open run of same-kind non-transit steps."""

    kind: TravelKind
    distance: float
    duration: float


@dataclass(frozen=True)
class FoldState:
    events: tuple[ItineraryEvent, ...] = ()
    span: _Span | None = None


def flush(state: FoldState, leg_index: int, cab_threshold_meters: float) -> FoldState:
    """Close the open span, if any, into one event."""
    if state.span is None:
        return state
    event = span_event(
        state.span.kind,
        state.span.distance,
        state.span.duration,
        leg_index,
        cab_threshold_meters,
    )
    return FoldState(events=state.events + (event,), span=None)


def advance(
    state: FoldState, step: Step, leg_index: int, cab_threshold_meters: float
) -> FoldState:
    """Consume one step."""
    if step.travel_kind == TravelKind.TRANSIT:
        flushed = flush(state, leg_index, cab_threshold_meters)
        return replace(flushed, events=flushed.events + (transit_event(step, leg_index),))

    if state.span is not None and state.span.kind == step.travel_kind:
        span = _Span(
            kind=step.travel_kind,
            distance=state.span.distance + step.distance_meters,
            duration=state.span.duration + step.duration_seconds,
        )
        return replace(state, span=span)

    flushed = flush(state, leg_index, cab_threshold_meters)
    return replace(
        flushed,
        span=_Span(step.travel_kind, step.distance_meters, step.duration_seconds),
    )


def fold_steps(
    steps: list[Step],
    leg_index: int,
    cab_threshold_meters: float = CAB_THRESHOLD_METERS,
) -> list[ItineraryEvent]:
    """Fold a leg's steps into events, flushing at the end of the leg."""
    state = reduce(
        lambda s, step: advance(s, step, leg_index, cab_threshold_meters),
        steps,
        FoldState(),
    )
    return list(flush(state, leg_index, cab_threshold_meters).events)


def gap_event(leg: RouteLeg) -> ItineraryEvent:
    return ItineraryEvent(
        kind=EventKind.GAP,
        label="No route found",
        subtext=f"Could not plan this leg ({leg.status})",
        leg_index=leg.leg_index,
    )


def leg_events(leg: RouteLeg, cab_threshold_meters: float = CAB_THRESHOLD_METERS) -> list[ItineraryEvent]:
    """Events for one raw segment."""
    if leg.steps:
        return fold_steps(leg.steps, leg.leg_index, cab_threshold_meters)

    if leg.distance_meters is not None:
        # no step detail, synthesize from the aggregate
        return [
            span_event(
                KIND_FOR_MODE[leg.travel_mode],
                leg.distance_meters,
                leg.duration_seconds or 0.0,
                leg.leg_index,
                cab_threshold_meters,
            )
        ]

    if not leg.ok:
        return [gap_event(leg)]
    return []


def _merge(a: ItineraryEvent, b: ItineraryEvent, cab_threshold_meters: float) -> ItineraryEvent:
    distance = a.distance_meters + b.distance_meters
    if a.kind == EventKind.WALK:
        return walk_or_cab_event(
            distance, a.duration_seconds + b.duration_seconds, a.leg_index, cab_threshold_meters
        )
    return cab_event(distance, a.duration_seconds + b.duration_seconds, a.leg_index)


def merge_adjacent(
    events: list[ItineraryEvent], cab_threshold_meters: float = CAB_THRESHOLD_METERS
) -> list[ItineraryEvent]:
    """Merge back-to-back WALK/CAB_SUGGESTED events of the same kind.

    A merged event keeps the leg_index of its first part, the leg where the walk starts.
    """
    merged: list[ItineraryEvent] = []
    for event in events:
        previous = merged[-1] if merged else None
        if previous is not None and previous.kind == event.kind and event.kind in MERGEABLE_KINDS:
            merged[-1] = _merge(previous, event, cab_threshold_meters)
            # a walk that grew into a cab may now sit next to another cab
            if len(merged) > 1 and merged[-2].kind == merged[-1].kind == EventKind.CAB_SUGGESTED:
                last = merged.pop()
                merged[-1] = _merge(merged[-1], last, cab_threshold_meters)
        else:
            merged.append(event)
    return merged


def _summaries(legs: list[RouteLeg], leg_count: int) -> list[LegSummary]:
    summaries = []
    for index in range(leg_count):
        segments = [leg for leg in legs if leg.leg_index == index]
        if not segments:
            continue
        start: Coordinate | None = segments[0].start_location
        end: Coordinate | None = segments[-1].end_location
        summaries.append(
            LegSummary(
                leg_index=index,
                from_place=segments[0].from_place,
                to_place=segments[-1].to_place,
                distance_meters=sum(s.distance_meters or 0.0 for s in segments),
                duration_seconds=sum(s.duration_seconds or 0.0 for s in segments),
                midpoint=midpoint(start, end) if start and end else None,
            )
        )
    return summaries


def compose(
    legs: list[RouteLeg],
    leg_count: int | None = None,
    cab_threshold_meters: float = CAB_THRESHOLD_METERS,
) -> ComposedItinerary:
    """Compose raw segments into an ordered itinerary.

    Args:
        legs: Raw segments in travel order; each names its logical leg.
        leg_count: Number of logical legs. Defaults to the highest leg_index + 1.
        cab_threshold_meters: Walk distance above which a cab is suggested.

    Returns:
        ComposedItinerary whose segment_groups sum to len(legs).
    """
    if leg_count is None:
        leg_count = max((leg.leg_index for leg in legs), default=-1) + 1

    events: list[ItineraryEvent] = []
    for leg in legs:
        events.extend(leg_events(leg, cab_threshold_meters))

    counts = Counter(leg.leg_index for leg in legs)
    return ComposedItinerary(
        events=merge_adjacent(events, cab_threshold_meters),
        segment_groups=[counts.get(i, 0) for i in range(leg_count)],
        legs=_summaries(legs, leg_count),
    )

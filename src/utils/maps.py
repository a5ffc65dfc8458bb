"""Plotly map builders for the search results and the provider overview."""
from datetime import datetime
from typing import Optional, Sequence

import plotly.express as px
import plotly.graph_objects as go

from .freshness import DEFAULT_MAX_LIVE_AGE_MINUTES
from .models import GeoPoint, MatchResult, ProviderCandidate

MAP_STYLE = "open-street-map"
PLOTLY_CONFIG = {"displayModeBar": True}


def _results_zoom(results: Sequence[MatchResult]) -> int:
    if not results:
        return 12
    furthest = max(r.distance_km for r in results)
    if furthest <= 2:
        return 13
    if furthest <= 10:
        return 11
    if furthest <= 30:
        return 9
    return 7


def build_results_map(origin: GeoPoint, results: Sequence[MatchResult]) -> go.Figure:
    """Map with the search location and one numbered marker per result.

    Marker numbers follow the order of ``results`` so they line up with the
    ranked list. Live positions and HQ positions are separate traces.
    """
    fig = go.Figure()
    fig.add_trace(
        go.Scattermap(
            lat=[origin.latitude],
            lon=[origin.longitude],
            mode="markers",
            marker=dict(size=16, color="#d62728"),
            name="Search location",
            hovertext=["Search location"],
            hoverinfo="text",
        )
    )

    for is_live, label, color in ((True, "Live", "#2ca02c"), (False, "HQ", "#1f77b4")):
        numbered = [(rank, r) for rank, r in enumerate(results, start=1) if r.is_live == is_live]
        if not numbered:
            continue
        fig.add_trace(
            go.Scattermap(
                lat=[r.location.latitude for _, r in numbered],
                lon=[r.location.longitude for _, r in numbered],
                mode="markers+text",
                marker=dict(size=14, color=color),
                text=[str(rank) for rank, _ in numbered],
                textposition="top center",
                hovertext=[
                    f"{rank}. {r.name} ({label}) - {r.distance_km:.1f} km, ~{r.eta_minutes} min"
                    for rank, r in numbered
                ],
                hoverinfo="text",
                name=label,
            )
        )

    fig.update_layout(
        map=dict(
            style=MAP_STYLE,
            center=dict(lat=origin.latitude, lon=origin.longitude),
            zoom=_results_zoom(results),
        ),
        margin=dict(l=0, r=0, t=0, b=0),
        height=450,
        legend=dict(orientation="h", yanchor="bottom", y=0.01, xanchor="left", x=0.01),
    )
    return fig


def build_overview_map(
    candidates: Sequence[ProviderCandidate],
    now: Optional[datetime] = None,
    max_live_age_minutes: float = DEFAULT_MAX_LIVE_AGE_MINUTES,
) -> Optional[go.Figure]:
    """Scatter map of every provider with a usable location, coloured by live/HQ status.

    Returns None when no provider can be placed.
    """
    from src.data.directory import candidates_to_frame

    frame = candidates_to_frame(candidates, now=now, max_live_age_minutes=max_live_age_minutes).dropna(subset=["Latitude", "Longitude"])
    if frame.empty:
        return None

    frame = frame.assign(Status=frame["Location"].map(lambda s: "Live" if s.startswith("Live") else "HQ"))
    fig = px.scatter_map(
        frame,
        lat="Latitude",
        lon="Longitude",
        hover_name="Company",
        hover_data=["Services", "Service Radius (km)", "Location"],
        color="Status",
        color_discrete_map={"Live": "#2ca02c", "HQ": "#1f77b4"},
        map_style=MAP_STYLE,
        title="Locksmith Locations",
        height=500,
    )
    fig.update_layout(
        map=dict(
            center=dict(lat=float(frame["Latitude"].mean()), lon=float(frame["Longitude"].mean())),
            zoom=6,
        )
    )
    return fig

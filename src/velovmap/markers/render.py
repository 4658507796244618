from __future__ import annotations

from html import escape
from typing import Iterable

import folium

from velovmap.config.models import MapSettings
from velovmap.forecast.colors import Color


PIN_SVG = """<svg xmlns="http://www.w3.org/2000/svg" width="20" height="20" viewBox="0 0 16 16" fill="none">
<path fill-rule="evenodd" clip-rule="evenodd"
d="M3.37892 10.2236L8 16L12.6211 10.2236C13.5137 9.10788 14 7.72154 14 6.29266V6C14 2.68629
11.3137 0 8 0C4.68629 0 2 2.68629 2 6V6.29266C2 7.72154 2.4863 9.10788 3.37892 10.2236ZM8
8C9.10457 8 10 7.10457 10 6C10 4.89543 9.10457 4 8 4C6.89543 4 6 4.89543 6 6C6 7.10457 6.89543 8 8 8Z"
fill="{fill}" stroke="black" stroke-width="1"/>
</svg>"""


def render_icon(color: Color) -> folium.DivIcon:
    """Map pin filled with `color`; the tip of the pin sits on the station."""

    return folium.DivIcon(
        html=PIN_SVG.format(fill=color.to_css()),
        icon_size=(20, 20),
        icon_anchor=(10, 20),
        popup_anchor=(0, -20),
    )


def render_popup(name: str, available_bikes: str, free_stands: str) -> str:
    return (
        f"<h3>{escape(name)}</h3>"
        f"<p>Velo'v disponibles : {escape(available_bikes)}</p> "
        f"<p>Bornes disponibles : {escape(free_stands)}</p>"
    )


def build_map(markers: Iterable, settings: MapSettings) -> folium.Map:
    m = folium.Map(
        location=[settings.center_lat, settings.center_lon],
        zoom_start=settings.zoom,
        tiles=settings.tiles,
    )
    for marker in markers:
        # Icons are folium elements with a single parent, so each map gets fresh ones.
        folium.Marker(
            location=[marker.station.lat, marker.station.lon],
            icon=render_icon(marker.color),
            tooltip=marker.tooltip or None,
            popup=folium.Popup(marker.popup_html) if marker.popup_html else None,
        ).add_to(m)
    return m

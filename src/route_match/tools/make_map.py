from __future__ import annotations

import json
from pathlib import Path
from typing import Union

from route_match.core.engine import TrajectoryReport
from route_match.core.route import ReferencePath


STATE_COLOR = {
    "matched": "#2ecc71",
    "unmatched": "#e74c3c",
    "filtered": "#95a5a6",
    "path": "#3498db",
    "episode": "#8e44ad",
}


def _payload(report: TrajectoryReport, path: ReferencePath) -> dict:
    v = report.verdict
    points = []
    for i, r in enumerate(report.results):
        c = r.corrected_position
        points.append(
            {
                "i": i,
                "seq": r.report.seq,
                "lat": r.report.lat,
                "lon": r.report.lon,
                "snap": [c.lat, c.lon] if r.matched else None,
                "state": "matched" if r.matched else "unmatched",
                "in_episode": v.off_route and v.start_index <= i <= v.end_index,
                "reason": r.reason,
                "progress": round(r.overall_progress, 4),
            }
        )
    filtered = [
        {"seq": f.report.seq, "lat": f.report.lat, "lon": f.report.lon, "reason": f.reason}
        for f in report.rejected
    ]
    segments = [
        {
            "road_id": s.road_id,
            "name": s.name,
            "description": s.attributes.describe(),
            "coords": [[n.lat, n.lon] for n in s.nodes],
        }
        for s in path.segments
    ]
    return {"points": points, "filtered": filtered, "segments": segments, "verdict": v.to_dict()}


def render_map(report: TrajectoryReport, path: ReferencePath) -> str:
    data = _payload(report, path)
    title = f"Route Match – {report.name or 'trajectory'}"

    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>{title}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css" />
  <style>
    body {{ margin: 0; font-family: system-ui, -apple-system, Segoe UI, Roboto, sans-serif; }}
    #map {{ height: 100vh; width: 100vw; }}
    .popup pre {{ white-space: pre-wrap; font-size: 12px; }}
  </style>
</head>
<body>
<div id="map"></div>
<script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
<script>
  const data = {json.dumps(data)};
  const colors = {json.dumps(STATE_COLOR)};

  const map = L.map('map');

  L.tileLayer('https://{{s}}.tile.openstreetmap.org/{{z}}/{{x}}/{{y}}.png', {{
    maxZoom: 19,
    attribution: '&copy; OpenStreetMap contributors'
  }}).addTo(map);

  // reference path
  data.segments.forEach((seg) => {{
    L.polyline(seg.coords, {{ color: colors.path, weight: 6, opacity: 0.6 }})
      .addTo(map).bindPopup(`<b>Way ${{seg.road_id}}</b><br/>${{seg.description}}`);
  }});

  // matched / unmatched reports
  data.points.forEach((p) => {{
    const color = p.in_episode ? colors.episode : colors[p.state];
    const popup = `
      <div class="popup">
        <b>#${{p.i + 1}}</b> (seq ${{p.seq}})<br/>
        <b>State:</b> ${{p.state}}<br/>
        <b>Reason:</b> ${{p.reason}}<br/>
        <b>Progress:</b> ${{(p.progress * 100).toFixed(1)}}%
      </div>
    `;
    L.circleMarker([p.lat, p.lon], {{ radius: 5, color: color }}).addTo(map).bindPopup(popup);
    if (p.snap) {{
      L.polyline([[p.lat, p.lon], p.snap], {{ color: color, weight: 1, dashArray: '2,4' }}).addTo(map);
    }}
  }});

  // filtered reports
  data.filtered.forEach((f) => {{
    L.circleMarker([f.lat, f.lon], {{ radius: 4, color: colors.filtered }})
      .addTo(map).bindPopup(`<b>Filtered</b> (seq ${{f.seq}})<br/>${{f.reason}}`);
  }});

  // fit bounds
  const all = data.points.map(p => [p.lat, p.lon])
    .concat(data.segments.flatMap(s => s.coords));
  if (all.length) {{
    map.fitBounds(L.latLngBounds(all).pad(0.2));
  }} else {{
    map.setView([0, 0], 2);
  }}
</script>
</body>
</html>
"""


def write_map(report: TrajectoryReport, path: ReferencePath, out_path: Union[str, Path]) -> Path:
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_map(report, path), encoding="utf-8")
    return out

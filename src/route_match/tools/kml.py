"""KML export of a matched trajectory."""
from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterable, Tuple, Union

from route_match.core.engine import TrajectoryReport
from route_match.core.route import ReferencePath

KML_NS = "http://www.opengis.net/kml/2.2"

# KML colours are aabbggrr
_STYLES = {
    "path": ("ffff9933", 5),
    "matched": ("ff71cc2e", 1),
    "unmatched": ("ff3c4ce7", 1),
    "filtered": ("ffa6a595", 1),
    "episode": ("ffad448e", 4),
}


def _coords(points: Iterable[Tuple[float, float]]) -> str:
    return " ".join(f"{lon:.7f},{lat:.7f},0" for lat, lon in points)


def _style(doc: ET.Element, style_id: str) -> None:
    color, width = _STYLES[style_id]
    style = ET.SubElement(doc, "Style", id=style_id)
    line = ET.SubElement(style, "LineStyle")
    ET.SubElement(line, "color").text = color
    ET.SubElement(line, "width").text = str(width)
    icon = ET.SubElement(style, "IconStyle")
    ET.SubElement(icon, "color").text = color


def _placemark(parent: ET.Element, name: str, style: str, description: str = "") -> ET.Element:
    pm = ET.SubElement(parent, "Placemark")
    ET.SubElement(pm, "name").text = name
    if description:
        ET.SubElement(pm, "description").text = description
    ET.SubElement(pm, "styleUrl").text = f"#{style}"
    return pm


def _point(parent: ET.Element, name: str, style: str, lat: float, lon: float, description: str = "") -> None:
    pm = _placemark(parent, name, style, description)
    ET.SubElement(ET.SubElement(pm, "Point"), "coordinates").text = _coords([(lat, lon)])


def _line(parent: ET.Element, name: str, style: str, points: Iterable[Tuple[float, float]], description: str = "") -> None:
    pm = _placemark(parent, name, style, description)
    ET.SubElement(ET.SubElement(pm, "LineString"), "coordinates").text = _coords(points)


def build_kml(report: TrajectoryReport, path: ReferencePath) -> ET.Element:
    kml = ET.Element("kml", xmlns=KML_NS)
    doc = ET.SubElement(kml, "Document")
    ET.SubElement(doc, "name").text = report.name or "trajectory"
    ET.SubElement(doc, "description").text = report.verdict.reason
    for style_id in _STYLES:
        _style(doc, style_id)

    ref = ET.SubElement(doc, "Folder")
    ET.SubElement(ref, "name").text = "Reference path"
    for seg in path.segments:
        _line(ref, f"way {seg.road_id}", "path", [(n.lat, n.lon) for n in seg.nodes], seg.attributes.describe())

    pts = ET.SubElement(doc, "Folder")
    ET.SubElement(pts, "name").text = "Match results"
    for i, r in enumerate(report.results):
        style = "matched" if r.matched else "unmatched"
        _point(pts, f"#{i + 1}", style, r.report.lat, r.report.lon, r.reason)

    if report.rejected:
        flt = ET.SubElement(doc, "Folder")
        ET.SubElement(flt, "name").text = "Filtered reports"
        for f in report.rejected:
            _point(flt, f"seq {f.report.seq}", "filtered", f.report.lat, f.report.lon, f.reason)

    v = report.verdict
    if v.off_route and v.start_index >= 0:
        episode = report.results[v.start_index:v.end_index + 1]
        _line(
            doc,
            f"off route {v.start_index + 1}-{v.end_index + 1}",
            "episode",
            [(r.report.lat, r.report.lon) for r in episode],
            v.reason,
        )

    return kml


def write_kml(report: TrajectoryReport, path: ReferencePath, out_path: Union[str, Path]) -> Path:
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    tree = ET.ElementTree(build_kml(report, path))
    ET.indent(tree)
    tree.write(out, encoding="utf-8", xml_declaration=True)
    return out

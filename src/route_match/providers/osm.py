"""OSM XML reader and reference-path builder."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional, Union

from route_match.contracts.route_contract import GeoNode
from route_match.core.models import RoadAttributes
from route_match.core.route import ReferencePath, RouteSegment

log = logging.getLogger(__name__)

# Way tags carried into RoadAttributes
_WAY_TAGS = (
    "name", "highway", "maxspeed", "lanes", "oneway", "access",
    "surface", "junction", "bridge", "tunnel", "level",
)


@dataclass
class OsmWay:
    way_id: int
    node_ids: List[int] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)

    def attributes(self) -> RoadAttributes:
        known = {k: v for k, v in self.tags.items() if k in _WAY_TAGS}
        return RoadAttributes(road_id=self.way_id, **known)


@dataclass
class OsmData:
    nodes: Dict[int, GeoNode] = field(default_factory=dict)
    ways: Dict[int, OsmWay] = field(default_factory=dict)

    def resolve(self, way: OsmWay) -> List[GeoNode]:
        """Way nodes in order, skipping ids absent from the extract."""
        return [self.nodes[n] for n in way.node_ids if n in self.nodes]


def _parse_nodes(root: ET.Element, data: OsmData) -> None:
    bad = 0
    for el in root.iter("node"):
        try:
            node_id = int(el.get("id", ""))
            lat = float(el.get("lat", ""))
            lon = float(el.get("lon", ""))
        except ValueError:
            bad += 1
            continue
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            log.warning("node %d out of range: lat=%s lon=%s", node_id, lat, lon)
            bad += 1
            continue
        data.nodes[node_id] = GeoNode(lat=lat, lon=lon, node_id=node_id)

    log.info("parsed %d nodes (%d skipped)", len(data.nodes), bad)
    if not data.nodes:
        log.warning("no nodes parsed from OSM document")


def _parse_ways(root: ET.Element, data: OsmData) -> None:
    for el in root.iter("way"):
        try:
            way = OsmWay(way_id=int(el.get("id", "")))
            way.node_ids = [int(nd.get("ref", "")) for nd in el.findall("nd")]
        except ValueError as e:
            log.warning("way skipped: %s", e)
            continue
        for tag in el.findall("tag"):
            k, v = tag.get("k"), tag.get("v")
            if k is not None and v is not None:
                way.tags[k] = v
        data.ways[way.way_id] = way

    log.info("parsed %d ways", len(data.ways))


def _from_root(root: ET.Element) -> OsmData:
    data = OsmData()
    _parse_nodes(root, data)
    _parse_ways(root, data)
    return data


def parse_osm(source: Union[str, Path, BinaryIO]) -> OsmData:
    """Parse an ``.osm`` XML document (path or binary file object).

    Malformed XML raises ``ValueError``; a missing file raises ``OSError``.
    """
    try:
        root = ET.parse(source).getroot()
    except ET.ParseError as e:
        raise ValueError(f"invalid OSM XML: {e}") from e
    return _from_root(root)


def parse_osm_string(xml_text: str) -> OsmData:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise ValueError(f"invalid OSM XML: {e}") from e
    return _from_root(root)


def build_reference_path(
    osm: OsmData,
    way_ids: Iterable[int],
    path_id: str = "reference",
    name: str = "",
) -> ReferencePath:
    """
    Build the reference path from ``way_ids`` in the given order.

    Unknown ways and ways with fewer than two resolved nodes are skipped;
    if nothing usable remains a ``ValueError`` is raised.
    """
    segments: List[RouteSegment] = []
    for way_id in way_ids:
        way: Optional[OsmWay] = osm.ways.get(way_id)
        if way is None:
            log.warning("reference way %d not found", way_id)
            continue
        nodes = osm.resolve(way)
        if len(nodes) < 2:
            log.warning("reference way %d has %d resolved nodes, skipped", way_id, len(nodes))
            continue
        attrs = way.attributes()
        if not attrs.is_accessible:
            log.warning("reference way %d is tagged access=%s", way_id, attrs.access)
        segments.append(RouteSegment(nodes, road_id=way_id, attributes=attrs))

    if not segments:
        raise ValueError("no usable reference ways found in OSM data")

    path = ReferencePath(segments, path_id=path_id, name=name)
    log.info("reference path: %d segments, %.1f m", len(path), path.total_length_m)
    return path

"""Tests for the KML and Leaflet map exporters."""

import xml.etree.ElementTree as ET

import pytest

from route_match.config import Settings
from route_match.core.engine import run_engine
from route_match.providers.mock import MockPositionSource
from route_match.tools.kml import KML_NS, build_kml, write_kml
from route_match.tools.make_map import render_map, write_map


@pytest.fixture
def detour_report(north_path):
    reports = MockPositionSource(north_path, points=12, detour=(4, 7, 80.0)).get_positions()
    return run_engine(reports, north_path, "turn", settings=Settings(filter_enabled=False), name="detour")


class TestKml:
    def test_structure(self, detour_report, north_path):
        root = build_kml(detour_report, north_path)
        assert root.tag == "kml"
        assert root.get("xmlns") == KML_NS

        names = [el.text for el in root.iter("name")]
        assert "Reference path" in names
        assert "Match results" in names
        assert "off route 5-8" in names

        placemarks = list(root.iter("Placemark"))
        # 2 path segments, 12 points, 1 episode line
        assert len(placemarks) == 15
        styles = [pm.find("styleUrl").text for pm in placemarks]
        assert styles.count("#unmatched") == 4

    def test_write(self, detour_report, north_path, tmp_path):
        out = write_kml(detour_report, north_path, tmp_path / "kml" / "detour.kml")
        assert out.exists()
        tree = ET.parse(out)
        assert tree.getroot().tag == f"{{{KML_NS}}}kml"


class TestMap:
    def test_render_embeds_payload(self, detour_report, north_path):
        html = render_map(detour_report, north_path)
        assert "leaflet" in html
        assert "detour" in html
        assert '"off_route": true' in html

    def test_write(self, detour_report, north_path, tmp_path):
        out = write_map(detour_report, north_path, tmp_path / "detour.html")
        assert out.read_text(encoding="utf-8").startswith("<!doctype html>")

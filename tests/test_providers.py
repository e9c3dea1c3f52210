"""Tests for the CSV and OSM readers."""

import io
import logging
from datetime import datetime

import pytest

from route_match.providers.csv_source import CsvPositionSource, iter_csv_files, read_positions
from route_match.providers.osm import build_reference_path, parse_osm, parse_osm_string

CSV_TEXT = """latitude,longitude,heading,speed,hdop
37.5000,127.0300,0.0,36.0,0.8

37.5001,127.0300,0.0,36.0,0.9,2024-05-01T10:00:01
not,a,number,row,here
37.5002,127.0300,0.0,36.0
37.5003,127.0300,0.0,400.0,0.8
"""

OSM_XML = """<?xml version="1.0" encoding="UTF-8"?>
<osm version="0.6">
  <node id="1" lat="37.5000" lon="127.0300"/>
  <node id="2" lat="37.5020" lon="127.0300"/>
  <node id="3" lat="37.5040" lon="127.0300"/>
  <node id="4" lat="95.0" lon="127.0300"/>
  <node id="5" lat="37.5040" lon="127.0320"/>
  <way id="100">
    <nd ref="1"/><nd ref="2"/>
    <tag k="name" v="Main Street"/>
    <tag k="highway" v="primary"/>
    <tag k="maxspeed" v="60"/>
    <tag k="oneway" v="yes"/>
    <tag k="colour" v="blue"/>
  </way>
  <way id="200">
    <nd ref="2"/><nd ref="3"/>
  </way>
  <way id="300">
    <nd ref="4"/><nd ref="3"/>
  </way>
  <way id="400">
    <nd ref="3"/><nd ref="5"/>
  </way>
</osm>
"""


class TestReadPositions:
    def test_parses_valid_rows(self, caplog):
        with caplog.at_level(logging.WARNING):
            reports = read_positions(io.StringIO(CSV_TEXT), "sample.csv")

        # header skipped, blank row skipped, two malformed rows skipped
        assert [r.lat for r in reports] == [37.5000, 37.5001, 37.5003]
        assert reports[1].timestamp == datetime(2024, 5, 1, 10, 0, 1)
        assert reports[0].timestamp is None
        assert "sample.csv" in caplog.text

    def test_sequence_counts_data_rows(self):
        reports = read_positions(io.StringIO(CSV_TEXT))
        assert [r.seq for r in reports] == [0, 1, 4]

    def test_range_invalid_rows_are_kept_for_the_engine(self):
        reports = read_positions(io.StringIO(CSV_TEXT))
        assert not reports[-1].is_valid()

    def test_header_only(self):
        assert read_positions(io.StringIO("lat,lon,heading,speed,hdop\n")) == []

    def test_undecodable_stream_raises(self):
        raw = b"lat,lon,heading,speed,hdop\n37.5,127.03,0,36,0.8\n\xff\xfe,1,2,3,4\n"
        stream = io.TextIOWrapper(io.BytesIO(raw), encoding="utf-8")
        with pytest.raises(ValueError, match="unreadable CSV"):
            read_positions(stream, "broken.csv")


class TestCsvPositionSource:
    def test_reads_file(self, tmp_path):
        f = tmp_path / "drive.csv"
        f.write_text(CSV_TEXT, encoding="utf-8")
        assert len(CsvPositionSource(f).get_positions()) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            CsvPositionSource(tmp_path / "nope.csv").get_positions()

    def test_iter_csv_files_sorted(self, tmp_path):
        for name in ("b.csv", "a.CSV", "notes.txt", "c.csv"):
            (tmp_path / name).write_text("x", encoding="utf-8")
        assert [p.name for p in iter_csv_files(tmp_path)] == ["a.CSV", "b.csv", "c.csv"]

    def test_iter_csv_files_missing_dir(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            iter_csv_files(tmp_path / "missing")


class TestOsm:
    def test_parse_nodes_and_ways(self):
        osm = parse_osm_string(OSM_XML)
        # node 4 is out of range
        assert set(osm.nodes) == {1, 2, 3, 5}
        assert set(osm.ways) == {100, 200, 300, 400}
        assert osm.ways[100].node_ids == [1, 2]

    def test_way_attributes(self):
        attrs = parse_osm_string(OSM_XML).ways[100].attributes()
        assert attrs.road_id == 100
        assert attrs.name == "Main Street"
        assert attrs.max_speed_kmh() == 60.0
        assert attrs.is_oneway

    def test_build_reference_path_in_given_order(self):
        osm = parse_osm_string(OSM_XML)
        path = build_reference_path(osm, [200, 100])
        assert [s.road_id for s in path.segments] == [200, 100]
        assert path.segments[1].name == "Main Street"
        assert path.total_length_m == pytest.approx(444.8, abs=0.5)

    def test_unusable_ways_are_skipped(self, caplog):
        osm = parse_osm_string(OSM_XML)
        with caplog.at_level(logging.WARNING):
            path = build_reference_path(osm, [999, 300, 100, 400])
        # 999 missing, 300 resolves to one node
        assert [s.road_id for s in path.segments] == [100, 400]
        assert "999" in caplog.text

    def test_no_usable_ways_raises(self):
        osm = parse_osm_string(OSM_XML)
        with pytest.raises(ValueError, match="no usable reference ways"):
            build_reference_path(osm, [300, 999])

    def test_malformed_xml_raises_value_error(self, tmp_path):
        with pytest.raises(ValueError, match="invalid OSM XML"):
            parse_osm_string("<osm><node id='1'")
        f = tmp_path / "broken.osm"
        f.write_text("<osm><way id='1'></osm>", encoding="utf-8")
        with pytest.raises(ValueError, match="invalid OSM XML"):
            parse_osm(f)

    def test_restricted_way_is_kept_with_a_warning(self, caplog):
        xml = OSM_XML.replace('<tag k="colour" v="blue"/>', '<tag k="access" v="private"/>')
        with caplog.at_level(logging.WARNING):
            path = build_reference_path(parse_osm_string(xml), [100])
        assert len(path) == 1
        assert "access=private" in caplog.text

    def test_parse_file(self, tmp_path):
        f = tmp_path / "roads.osm"
        f.write_text(OSM_XML, encoding="utf-8")
        osm = parse_osm(f)
        assert len(osm.ways) == 4

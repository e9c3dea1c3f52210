from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Dict, List

from rich.console import Console
from rich.table import Table

from route_match.config import Settings
from route_match.core.deviation import TrajectoryClass
from route_match.core.engine import TrajectoryReport, build_matcher, run_engine, summarize
from route_match.providers.csv_source import CsvPositionSource, iter_csv_files
from route_match.providers.osm import build_reference_path, parse_osm
from route_match.tools.kml import write_kml
from route_match.tools.make_map import write_map

log = logging.getLogger(__name__)


def _read_classes(path: Path) -> Dict[str, TrajectoryClass]:
    data = json.loads(path.read_text(encoding="utf-8"))
    return {name: TrajectoryClass.parse(value) for name, value in data.items()}


def _save_json(path: Path, obj) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2), encoding="utf-8")


def _yes_no(flag: bool) -> str:
    return "[red]yes[/red]" if flag else "[green]no[/green]"


def _episode_text(report: TrajectoryReport) -> str:
    v = report.verdict
    if v.start_index < 0:
        return ""
    if v.end_index > v.start_index:
        return f"{v.start_index + 1}-{v.end_index + 1}"
    return str(v.start_index + 1)


def main() -> None:
    settings = Settings()

    ap = argparse.ArgumentParser(description="Match GPS trajectories to a reference path and flag deviations")
    ap.add_argument("--osm", default=settings.osm_path, help="OSM XML file holding the reference ways")
    ap.add_argument("--gps-dir", default=settings.gps_dir, help="Directory of trajectory CSV files")
    ap.add_argument("--strategy", default=settings.strategy, help="distance | heading | weighted | speed")
    ap.add_argument("--trajectory-class", default="general", help="Class applied to files not in --classes")
    ap.add_argument("--classes", default=None, help="JSON file mapping CSV file name -> trajectory class")
    ap.add_argument("--out", default=settings.output_dir, help="Output directory")
    ap.add_argument("--kml", action="store_true", help="Write one KML file per trajectory")
    ap.add_argument("--map", action="store_true", help="Write one Leaflet HTML map per trajectory")
    ap.add_argument("--no-filter", action="store_true", help="Skip the position quality filter")
    ap.add_argument("--debug", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s [route-match] %(levelname)s %(name)s: %(message)s",
    )

    console = Console()
    if args.no_filter:
        settings = settings.model_copy(update={"filter_enabled": False})

    try:
        default_class = TrajectoryClass.parse(args.trajectory_class)
        classes = _read_classes(Path(args.classes)) if args.classes else {}
        osm = parse_osm(args.osm)
        path = build_reference_path(osm, settings.reference_way_ids, name="reference path")
        csv_files = iter_csv_files(args.gps_dir)
        matcher = build_matcher(path, settings, strategy=args.strategy)
    except (OSError, ValueError) as e:
        console.print(f"[bold red]error:[/bold red] {e}")
        raise SystemExit(1)

    console.print(
        f"Reference path: {len(path)} segments, {path.total_length_m:.1f} m; "
        f"{len(csv_files)} trajectory file(s)"
    )

    table = Table(title=f"Route Match — {matcher.strategy.name.value} strategy")
    table.add_column("File")
    table.add_column("Class")
    table.add_column("Points")
    table.add_column("Kept")
    table.add_column("Matched")
    table.add_column("Rate")
    table.add_column("Pos err")
    table.add_column("Off route")
    table.add_column("Episode")
    table.add_column("Unmatched")
    table.add_column("Expected")

    out_dir = Path(args.out)
    reports: List[TrajectoryReport] = []
    skipped: List[str] = []

    for csv_path in csv_files:
        try:
            positions = CsvPositionSource(csv_path).get_positions()
        except (OSError, ValueError) as e:
            log.warning("%s skipped: %s", csv_path.name, e)
            console.print(f"[yellow]skipped {csv_path.name}:[/yellow] {e}")
            skipped.append(csv_path.name)
            continue
        if not positions:
            log.warning("%s: no position data", csv_path.name)
            continue

        tclass = classes.get(csv_path.name, default_class)
        report = run_engine(positions, path, tclass, settings=settings, name=csv_path.name, matcher=matcher)
        reports.append(report)
        v = report.verdict

        table.add_row(
            csv_path.name,
            tclass.value,
            str(len(report.original)),
            str(len(report.kept)),
            str(report.matched_count),
            f"{v.matching_rate * 100:.1f}%",
            _yes_no(v.has_position_error),
            _yes_no(v.off_route),
            _episode_text(report),
            str(v.total_off_route_points),
            "✅" if v.meets_expectation else "❌",
        )

        stem = csv_path.stem
        _save_json(out_dir / f"{stem}.json", report.to_dict())
        if args.kml:
            write_kml(report, path, out_dir / f"{stem}.kml")
        if args.map:
            write_map(report, path, out_dir / f"{stem}.html")

        if args.debug:
            for f in report.rejected:
                console.print(f"  [dim]{csv_path.name} #{f.index + 1} filtered: {f.reason}[/dim]")
            console.print(f"  [dim]{v.reason}[/dim]")

    console.print(table)

    summary = summarize(reports)
    totals = Table(title="Batch summary", show_header=False)
    totals.add_row("Trajectories", str(summary.trajectories))
    totals.add_row("Points matched", f"{summary.matched_points} / {summary.total_points}")
    totals.add_row("Overall matching rate", f"{summary.matching_rate * 100:.1f}%")
    totals.add_row("Off-route trajectories", str(summary.off_route_trajectories))
    totals.add_row("Verdicts as expected", f"{summary.expectation_hits} / {summary.trajectories}")
    console.print(totals)

    _save_json(
        out_dir / "summary.json",
        {
            "trajectories": summary.trajectories,
            "total_points": summary.total_points,
            "matched_points": summary.matched_points,
            "matching_rate": summary.matching_rate,
            "off_route_trajectories": summary.off_route_trajectories,
            "expectation_hits": summary.expectation_hits,
            "files": list(summary.names),
            "skipped": skipped,
        },
    )
    console.print(f"Saved: {out_dir.resolve()}")


if __name__ == "__main__":
    main()

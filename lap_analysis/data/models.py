"""
Core data structures for lap analysis.

Unit Conventions
----------------
- Time: milliseconds (float). Sample clock times are milliseconds since
  midnight, lap-relative times are milliseconds since the lap start.
- Distance: metres
- Speed: kilometres per hour (km/h), as recorded by the logger
- Angles: degrees (0-360 for headings)
- Coordinates: decimal degrees (WGS84); local metric x/y in metres from
  the bounding box minimum corner (x east, y north)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from lap_analysis.utils.geometry import Vector2D
from lap_analysis.utils.time_format import format_clock, parse_time


@dataclass
class Sample:
    """
    Single GPS fix from the data logger.

    Raw fields come from the file reader. Metric position and derived fields
    are filled in by enrichment, lap-relative fields by lap construction.

    Attributes:
        sats: Satellite count.
        time_ms: Clock time in milliseconds since midnight.
        lat: Latitude in decimal degrees.
        lon: Longitude in decimal degrees.
        speed: Ground speed in km/h.
        heading: Course over ground in degrees.
        altitude: Altitude in metres.
        x: East offset from recording origin in metres.
        y: North offset from recording origin in metres.
        delta_time: Milliseconds since the previous sample.
        distance: Metres from the previous sample.
        direction: Unit movement direction.
        perpendicular: Unit perpendicular to direction.
        lap_time_from_start: Milliseconds since lap start.
        lap_distance_from_start: Metres since lap start.
        is_interpolated: True for samples synthesized at a line crossing.
        sector_boundary_index: Sector boundary (0..2) this sample sits on.
    """
    sats: int
    time_ms: float
    lat: float
    lon: float
    speed: float = 0.0
    heading: float = 0.0
    altitude: float = 0.0
    x: float = 0.0
    y: float = 0.0
    delta_time: Optional[float] = None
    distance: Optional[float] = None
    direction: Optional[Vector2D] = None
    perpendicular: Optional[Vector2D] = None
    lap_time_from_start: Optional[float] = None
    lap_distance_from_start: Optional[float] = None
    is_interpolated: bool = False
    sector_boundary_index: Optional[int] = None

    @classmethod
    def from_raw(cls, sats: int, time: str, lat: float, lon: float,
                 speed: float, heading: float, altitude: float) -> 'Sample':
        """Build a sample from file reader output (time as HH:MM:SS.mmm)."""
        return cls(
            sats=sats,
            time_ms=parse_time(time),
            lat=lat,
            lon=lon,
            speed=speed,
            heading=heading,
            altitude=altitude,
        )

    @property
    def clock(self) -> str:
        """Clock time as HH:MM:SS.mmm."""
        return format_clock(self.time_ms)

    @property
    def position(self) -> Tuple[float, float]:
        """Metric position (x, y)."""
        return self.x, self.y


@dataclass
class RecordingHeader:
    """
    File header metadata passed through from the reader.

    Attributes:
        file_created: "File created on ..." line, if present.
        column_names: Data column names.
        comments: Free-form comment lines, typically "key: value".
    """
    file_created: Optional[str] = None
    column_names: List[str] = field(default_factory=list)
    comments: List[str] = field(default_factory=list)

    def metadata(self) -> Dict[str, str]:
        """Parse "key: value" comment lines into a dict."""
        metadata = {}
        for comment in self.comments:
            key, sep, value = comment.partition(':')
            if sep and key.strip():
                metadata[key.strip()] = value.strip()

        if self.file_created:
            metadata['File Created'] = self.file_created.replace('File created on ', '')

        return metadata


@dataclass
class BoundingBox:
    """Geographic extent of a recording, in decimal degrees."""
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @property
    def center_lat(self) -> float:
        return (self.min_lat + self.max_lat) / 2

    @property
    def center_lon(self) -> float:
        return (self.min_lon + self.max_lon) / 2

    @property
    def width(self) -> float:
        """Longitude span in degrees."""
        return self.max_lon - self.min_lon

    @property
    def height(self) -> float:
        """Latitude span in degrees."""
        return self.max_lat - self.min_lat

    @property
    def origin(self) -> Tuple[float, float]:
        """Origin (lat, lon) of the local metric frame."""
        return self.min_lat, self.min_lon


@dataclass
class DetectionLine:
    """
    Finite line segment used to detect trajectory crossings.

    The segment is centred on the anchor point and oriented along the
    perpendicular, i.e. across the direction of travel.

    Attributes:
        point: Anchor as (lat, lon) in decimal degrees.
        point_meters: Anchor as (x, y) in metres.
        direction: Unit travel direction across the line.
        perpendicular: Unit line direction.
        width: Total line width in metres.
    """
    point: Tuple[float, float]
    point_meters: Tuple[float, float]
    direction: Vector2D
    perpendicular: Vector2D
    width: float

    @property
    def half_width(self) -> float:
        return self.width / 2

    def endpoints(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """Metric endpoints of the detection segment."""
        cx, cy = self.point_meters
        half = self.half_width
        return (
            (cx - self.perpendicular.x * half, cy - self.perpendicular.y * half),
            (cx + self.perpendicular.x * half, cy + self.perpendicular.y * half),
        )


@dataclass
class StartFinishLine(DetectionLine):
    """Start/finish line, placed at the fastest point of the recording."""


@dataclass
class SectorBoundary(DetectionLine):
    """
    Sector boundary derived from the fastest lap.

    Attributes:
        index: Boundary index (0-based). Boundary i ends sector i.
        start_distance: Distance from lap start on the fastest lap (metres).
        length: Nominal sector length (metres), for labelling only.
    """
    index: int = 0
    start_distance: float = 0.0
    length: float = 0.0


@dataclass
class TrackData:
    """
    Track-level data computed once from the fastest lap.

    Attributes:
        name: Track name from recording metadata.
        length: Fastest lap distance in metres.
        start_finish: Start/finish line.
        sectors: Sector boundaries (SECTOR_COUNT - 1 when all were found).
    """
    name: str
    length: float
    start_finish: StartFinishLine
    sectors: List[SectorBoundary] = field(default_factory=list)


@dataclass
class LapStats:
    """Summary of one lap for display."""
    name: str
    distance: float  # metres
    time: float  # ms
    max_speed: float  # km/h
    time_formatted: str


@dataclass
class LapSectorData:
    """Timing of one sector within a lap."""
    sector_index: int
    time_ms: float
    start_row_index: int
    end_row_index: int


@dataclass
class SectorCheck:
    """
    Sum of sector times compared with lap time.

    Diagnostic only, a mismatch never changes the computed values.
    """
    sector_sum_ms: float
    lap_time_ms: float
    sector_count: int
    tolerance_ms: float

    @property
    def difference_ms(self) -> float:
        return self.sector_sum_ms - self.lap_time_ms

    @property
    def ok(self) -> bool:
        return abs(self.difference_ms) <= self.tolerance_ms

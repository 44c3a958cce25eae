"""
Resolution of the location fields stored on a vote report.

Each field is taken from the first source, in the configured order, that has
a non-blank value for it. Sources are the polling location catalog entry, the
assignment itself and the delegate's home profile.
"""

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional, Sequence

from core.config import LOCATION_SOURCES

DEFAULT_DEPARTMENT = "Sin departamento"
DEFAULT_MUNICIPALITY = "Sin municipio"


@dataclass(frozen=True)
class LocationFields:
    """Location fields known by one source; None means unknown."""

    department: Optional[str] = None
    municipality: Optional[str] = None
    address: Optional[str] = None
    polling_station_code: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


FALLBACK = LocationFields(
    department=DEFAULT_DEPARTMENT,
    municipality=DEFAULT_MUNICIPALITY,
    address="",
    polling_station_code=None,
)


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def resolve_location(
    sources: Mapping[str, LocationFields],
    order: Sequence[str] = LOCATION_SOURCES,
) -> LocationFields:
    """
    Merge the sources field by field in ``order``.

    Unknown source names in ``order`` are ignored; fields no source knows
    take the fallback value.
    """
    resolved = {}
    for field in ("department", "municipality", "address", "polling_station_code"):
        value = None
        for name in order:
            source = sources.get(name)
            if source is not None:
                value = _clean(getattr(source, field))
            if value is not None:
                break
        resolved[field] = value if value is not None else getattr(FALLBACK, field)
    return LocationFields(**resolved)


def sources_from_row(row: Any) -> dict[str, LocationFields]:
    """Build the three location sources from an assignment lookup row."""
    return {
        "catalog": LocationFields(
            department=row.catalog_department,
            municipality=row.catalog_municipality,
            address=row.catalog_address,
            polling_station_code=row.catalog_code,
        ),
        "assignment": LocationFields(
            department=row.department,
            municipality=row.municipality,
            polling_station_code=row.polling_station,
        ),
        "delegate": LocationFields(
            department=row.delegate_department,
            municipality=row.delegate_municipality,
            address=row.delegate_address,
            polling_station_code=row.delegate_polling_station_code,
        ),
    }

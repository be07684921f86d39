from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

from .errors import CopyError, InvalidOption
from .formats import CopyFormat

FORMAT_KEY = "format"
PATTERN_KEY = "pattern"
_KNOWN_OPTIONS = {FORMAT_KEY, PATTERN_KEY}


class CopyDirection(str, Enum):
    EXPORT = "export"
    IMPORT = "import"


class OnError(str, Enum):
    ABORT = "abort"
    CONTINUE = "continue"


@dataclass(frozen=True)
class CopyRequest:
    """
    One COPY invocation.

    ``table`` names the table in the catalog; ``location`` is a local path or a
    URL (s3://, memory://, ...). ``connection`` holds storage credentials.
    """

    direction: CopyDirection
    table: str
    location: str
    format: CopyFormat = CopyFormat.JSON
    pattern: Optional[str] = None
    connection: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_options(
        cls,
        direction: CopyDirection,
        table: str,
        location: str,
        with_options: Optional[Mapping[str, str]] = None,
        connection: Optional[Mapping[str, str]] = None,
    ) -> "CopyRequest":
        """Build a request from the WITH (...) clause of a COPY statement. Keys are case-insensitive."""
        options = {k.lower(): v for k, v in (with_options or {}).items()}
        unknown = sorted(set(options) - _KNOWN_OPTIONS)
        if unknown:
            raise InvalidOption(f"Unknown COPY option(s): {', '.join(unknown)}")
        fmt = CopyFormat.parse(options.get(FORMAT_KEY, CopyFormat.JSON.value))
        pattern = options.get(PATTERN_KEY)
        if pattern is not None and direction == CopyDirection.EXPORT:
            raise InvalidOption("pattern is not supported by COPY TO")
        return cls(
            direction=direction,
            table=table,
            location=location,
            format=fmt,
            pattern=pattern,
            connection=dict(connection or {}),
        )

    def __repr__(self) -> str:
        # connection holds credentials
        return (
            f"CopyRequest(direction={self.direction.value}, table={self.table!r}, "
            f"location={self.location!r}, format={self.format.value}, pattern={self.pattern!r})"
        )


@dataclass
class FileOutcome:
    path: str
    rows: int = 0
    error: Optional[CopyError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class CopyResult:
    affected_rows: int = 0
    files: List[FileOutcome] = field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> List[FileOutcome]:
        return [f for f in self.files if f.ok]

    @property
    def failed(self) -> List[FileOutcome]:
        return [f for f in self.files if not f.ok]

    def summary(self) -> Dict[str, object]:
        return {
            "affected_rows": self.affected_rows,
            "succeeded": [f.path for f in self.succeeded],
            "failed": {f.path: str(f.error) for f in self.failed},
            "cancelled": self.cancelled,
        }

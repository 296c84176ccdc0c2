from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable

TRUTHY = {"1", "true", "yes", "y", "on"}
RECORD_END = "---"


class SpecSourceError(Exception):
    """The service definitions could not be read on this tick."""


@dataclass(frozen=True)
class ServiceSpec:
    name: str
    enabled: bool = True
    port: int | None = None
    check_command: str | None = None
    depends_on: tuple[str, ...] = field(default_factory=tuple)
    log_file: str | None = None


# A spec source is anything that returns a fresh ordered list of specs per call.
SpecSource = Callable[[], list[ServiceSpec]]


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def parse_depends(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    seen: list[str] = []
    for part in raw.split(","):
        name = part.strip()
        if name and name not in seen:
            seen.append(name)
    return tuple(seen)


def _parse_port(raw: str | None) -> int | None:
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        # Not a port number: no port constraint.
        return None


def spec_from_record(record: dict[str, str]) -> ServiceSpec | None:
    """Build a spec from one KEY=VALUE block. Returns None if SERVICE_NAME is missing."""
    name = (record.get("SERVICE_NAME") or "").strip()
    if not name:
        return None
    return ServiceSpec(
        name=name,
        enabled=(record.get("ENABLED") or "").strip().lower() in TRUTHY,
        port=_parse_port(record.get("PORT")),
        check_command=record.get("CHECK_CMD") or None,
        depends_on=parse_depends(record.get("DEPENDS_ON")),
        log_file=record.get("LOG_FILE") or None,
    )


def parse_services_conf(lines: Iterable[str]) -> list[ServiceSpec]:
    """Parse the services.conf block format.

    Example::

        SERVICE_NAME=nginx
        ENABLED=yes
        PORT=80
        CHECK_CMD="curl -sf http://localhost/"
        DEPENDS_ON=php-fpm,redis
        LOG_FILE=/var/log/nginx/error.log
        ---
    """
    specs: list[ServiceSpec] = []
    record: dict[str, str] = {}

    def flush() -> None:
        spec = spec_from_record(record)
        if spec is not None:
            specs.append(spec)
        record.clear()

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line == RECORD_END:
            flush()
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        record[key.strip()] = _unquote(value)
    if record:
        flush()
    return specs


class FileSpecSource:
    """Re-reads a services.conf file on every call."""

    def __init__(self, path: str):
        self.path = path

    def __call__(self) -> list[ServiceSpec]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return parse_services_conf(f)
        except (OSError, UnicodeDecodeError) as e:
            raise SpecSourceError(f"Cannot read {self.path}: {type(e).__name__}: {e}") from e


def index_by_name(specs: Iterable[ServiceSpec]) -> dict[str, ServiceSpec]:
    return {s.name: s for s in specs}

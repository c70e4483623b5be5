"""
Filter configuration: specs, the writer factory and file loaders.

A configuration is a list of filter definitions. Each definition names a
filter, says whether it is enabled, gives a threshold level and a writer type,
and carries the writer's properties as strings plus optional exclude prefixes.
Definitions can come from YAML (default), the XML layout:

    <logging>
      <filter enabled="true">
        <tag>file</tag>
        <type>file</type>
        <level>INFO</level>
        <property name="filename">logs/app.log</property>
        <property name="maxlines">100K</property>
        <exclude>vendor.noisy</exclude>
      </filter>
    </logging>

or a JSON file, either with a "filters" list or as the single-file shorthand
understood by file_log_spec().

Everything is validated while loading, so a bad file is rejected before any
running filter is touched. Disabled filters are validated too but never
instantiated.
"""

from __future__ import annotations

import functools
import json
import sys
import warnings
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .constants import LogConstants
from .exceptions import InvalidLogLevelError, LogConfigurationError, LogConfigWarning
from .levels import Level, resolve_level
from .logger import Filter
from .size import parse_suffix
from .writers.console import ConsoleWriter
from .writers.file import RotatingFileWriter
from .writers.interface import Writer
from .writers.socket import SocketWriter, parse_endpoint
from .writers.structured import RotatingStructuredFileWriter


@dataclass(frozen=True)
class FilterSpec:
    """Validated definition of one filter, before its writer exists."""

    name: str
    enabled: bool
    level: Level
    type: str
    properties: Mapping[str, str] = field(default_factory=dict)
    excludes: tuple[str, ...] = ()


# Property value parsers


def _text(value: str) -> str:
    return value.strip()


def _flag(value: str) -> bool:
    return value.strip() != "false"


def _lines(value: str) -> int:
    return parse_suffix(value, LogConstants.LINES_MULTIPLIER)


def _bytes(value: str) -> int:
    return parse_suffix(value, LogConstants.BYTES_MULTIPLIER)


def _stream(value: str) -> str:
    stream = value.strip().lower()
    if stream not in ("stdout", "stderr"):
        raise LogConfigurationError(
            f"Invalid console stream: '{value}'. Supported streams: stdout, stderr"
        )
    return stream


def _protocol(value: str) -> str:
    protocol = value.strip().lower()
    if protocol not in LogConstants.SOCKET_PROTOCOLS:
        raise LogConfigurationError(
            f"Unknown socket protocol: '{value}'. "
            f"Supported protocols: {', '.join(LogConstants.SOCKET_PROTOCOLS)}"
        )
    return protocol


def _endpoint(value: str) -> str:
    endpoint = value.strip()
    parse_endpoint(endpoint)
    return endpoint


@dataclass(frozen=True)
class WriterType:
    """
    How to build one kind of writer from string properties.

    Attributes:
        name: Type tag used in configuration files
        build: Callable receiving the parsed keyword arguments
        properties: Property name -> (keyword argument, parser)
        required: Properties that must be present and non-empty
        paths: Keyword arguments holding file paths (resolved against base_dir)
    """

    name: str
    build: Callable[..., Writer]
    properties: Mapping[str, tuple[str, Callable[[str], Any]]]
    required: tuple[str, ...] = ()
    paths: tuple[str, ...] = ()


_ROTATION_PROPERTIES = {
    "filename": ("filename", _text),
    "maxsize": ("max_size", _bytes),
    "daily": ("daily", _flag),
    "rotate": ("rotate", _flag),
}


def _builtin_types() -> list[WriterType]:
    return [
        WriterType(
            "console",
            ConsoleWriter,
            {
                "format": ("format", _text),
                "stream": ("stream", _stream),
                "colors": ("colors", _flag),
            },
        ),
        WriterType(
            "file",
            RotatingFileWriter,
            {
                **_ROTATION_PROPERTIES,
                "format": ("format", _text),
                "maxlines": ("max_lines", _lines),
            },
            required=("filename",),
            paths=("filename",),
        ),
        WriterType(
            "xml",
            functools.partial(RotatingStructuredFileWriter, encoding_format="xml"),
            {**_ROTATION_PROPERTIES, "maxrecords": ("max_records", _lines)},
            required=("filename",),
            paths=("filename",),
        ),
        WriterType(
            "json",
            functools.partial(RotatingStructuredFileWriter, encoding_format="json"),
            {**_ROTATION_PROPERTIES, "maxrecords": ("max_records", _lines)},
            required=("filename",),
            paths=("filename",),
        ),
        WriterType(
            "socket",
            SocketWriter,
            {
                "endpoint": ("endpoint", _endpoint),
                "protocol": ("protocol", _protocol),
            },
            required=("endpoint",),
        ),
    ]


def program_dir() -> Path:
    """Directory of the running program, or the cwd when it is unknown."""
    if sys.argv and sys.argv[0]:
        return Path(sys.argv[0]).resolve().parent
    return Path.cwd()


class WriterFactory:
    """
    Registry mapping filter type tags to writer builders.

    Example:
        >>> factory = WriterFactory()
        >>> factory.register(WriterType("null", NullWriter, {}))
        >>> factory.create(spec, base_dir="/var/log/app")
    """

    def __init__(self) -> None:
        self._types: dict[str, WriterType] = {}
        for writer_type in _builtin_types():
            self.register(writer_type)

    def register(self, writer_type: WriterType) -> None:
        """Register (or replace) a writer type."""
        self._types[writer_type.name] = writer_type

    def get_supported_types(self) -> list[str]:
        return list(self._types)

    def _lookup(self, type_name: str) -> WriterType:
        if type_name not in self._types:
            supported = ", ".join(self._types)
            raise LogConfigurationError(
                f"Unknown filter type: '{type_name}'. Supported types: {supported}"
            )
        return self._types[type_name]

    def parse(self, spec: FilterSpec, check_required: bool = True) -> dict[str, Any]:
        """
        Convert a spec's string properties into writer keyword arguments.

        Unknown properties are ignored with a LogConfigWarning.

        Args:
            spec: Filter definition
            check_required: Whether missing required properties are an error;
                disabled filters are checked without it

        Raises:
            LogConfigurationError: On an unknown type, a missing required
                property or a value no parser accepts
        """
        writer_type = self._lookup(spec.type)
        kwargs: dict[str, Any] = {}
        for prop, value in spec.properties.items():
            if prop not in writer_type.properties:
                warnings.warn(
                    f"Unknown property '{prop}' for {spec.type} filter '{spec.name}'",
                    LogConfigWarning,
                    stacklevel=3,
                )
                continue
            kwarg, parser = writer_type.properties[prop]
            kwargs[kwarg] = parser(value)

        for prop in writer_type.required if check_required else ():
            kwarg = writer_type.properties[prop][0]
            if not kwargs.get(kwarg):
                raise LogConfigurationError(
                    f"Required property '{prop}' for {spec.type} filter "
                    f"'{spec.name}' is missing"
                )
        return kwargs

    def create(self, spec: FilterSpec, base_dir: str | Path | None = None) -> Writer:
        """
        Instantiate the writer for a spec.

        Relative paths are resolved against base_dir (default: program_dir())
        and their parent directories are created.
        """
        writer_type = self._lookup(spec.type)
        kwargs = self.parse(spec)
        root = Path(base_dir) if base_dir is not None else program_dir()
        for kwarg in writer_type.paths:
            path = root / Path(kwargs[kwarg]).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            kwargs[kwarg] = path
        return writer_type.build(**kwargs)


_default_factory: WriterFactory | None = None


def default_factory() -> WriterFactory:
    global _default_factory
    if _default_factory is None:
        _default_factory = WriterFactory()
    return _default_factory


# Spec construction


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_enabled(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return _as_text(value).strip() != "false"


def _split_excludes(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    else:
        items = value
    return tuple(p for p in (_as_text(i).strip() for i in items) if p)


def _as_properties(value: Any, name: str) -> dict[str, str]:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return {str(k): _as_text(v) for k, v in value.items()}
    if isinstance(value, list):
        # [{"name": "filename", "value": "app.log"}, ...]
        props: dict[str, str] = {}
        for item in value:
            if not isinstance(item, Mapping) or "name" not in item:
                raise LogConfigurationError(
                    f"Invalid property entry for filter '{name}': {item!r}"
                )
            props[str(item["name"])] = _as_text(item.get("value", ""))
        return props
    raise LogConfigurationError(
        f"Properties for filter '{name}' must be a mapping, got {type(value).__name__}"
    )


def spec_from_mapping(entry: Mapping[str, Any], origin: str = "<config>") -> FilterSpec:
    """
    Build a FilterSpec from one filter definition.

    Accepted keys: name (or tag), enabled, level, type, properties,
    exclude (or excludes; a list or a comma-separated string).

    Raises:
        LogConfigurationError: If a required field is missing or the level is unknown
    """
    if not isinstance(entry, Mapping):
        raise LogConfigurationError(f"Filter definition in {origin} must be a mapping")

    name = entry.get("name", entry.get("tag"))
    fields = {
        "name": name,
        "enabled": entry.get("enabled"),
        "type": entry.get("type"),
        "level": entry.get("level"),
    }
    missing = [k for k, v in fields.items() if v is None or _as_text(v).strip() == ""]
    if missing:
        raise LogConfigurationError(
            f"Filter in {origin} is missing required field(s): {', '.join(missing)}"
        )

    try:
        level = resolve_level(_as_text(fields["level"]).strip())
    except InvalidLogLevelError as e:
        raise LogConfigurationError(
            f"Filter '{name}' in {origin} has unknown level: '{fields['level']}'"
        ) from e

    return FilterSpec(
        name=_as_text(name).strip(),
        enabled=_as_enabled(fields["enabled"]),
        level=level,
        type=_as_text(fields["type"]).strip().lower(),
        properties=_as_properties(entry.get("properties"), str(name)),
        excludes=_split_excludes(entry.get("exclude", entry.get("excludes"))),
    )


def load_filter_specs(
    data: Mapping[str, Any] | list[Any],
    factory: WriterFactory | None = None,
    origin: str = "<config>",
) -> list[FilterSpec]:
    """
    Parse and validate filter definitions.

    Args:
        data: {"filters": [...]} or the list itself
        factory: Writer factory used to validate types and properties
        origin: Name used in error messages

    Returns:
        Specs in definition order, disabled ones included

    Raises:
        LogConfigurationError: If any definition is invalid; required
            properties are only enforced for enabled filters
    """
    if isinstance(data, Mapping):
        if "filters" not in data:
            raise LogConfigurationError(f"No 'filters' list found in {origin}")
        entries = data["filters"] or []
    else:
        entries = data
    if not isinstance(entries, list):
        raise LogConfigurationError(f"'filters' in {origin} must be a list")

    factory = factory or default_factory()
    specs = [spec_from_mapping(entry, origin) for entry in entries]
    for spec in specs:
        factory.parse(spec, check_required=spec.enabled)
    return specs


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise LogConfigurationError(f"Could not read '{path}': {e}") from e


def load_yaml(
    path: str | Path,
    section: str = LogConstants.DEFAULT_SECTION,
    factory: WriterFactory | None = None,
) -> list[FilterSpec]:
    """
    Load filter specs from a YAML file.

    The filters are taken from ``section`` when the document has it, otherwise
    from the document root.
    """
    path = Path(path)
    try:
        doc = yaml.safe_load(_read_text(path))
    except yaml.YAMLError as e:
        raise LogConfigurationError(f"Could not parse YAML configuration in '{path}': {e}") from e

    if isinstance(doc, Mapping) and section in doc:
        doc = doc[section]
    if doc is None:
        raise LogConfigurationError(f"Configuration file '{path}' is empty")
    return load_filter_specs(doc, factory=factory, origin=str(path))


def _xml_filter_entry(elem: ET.Element) -> dict[str, Any]:
    def child(tag: str) -> str | None:
        node = elem.find(tag)
        return node.text.strip() if node is not None and node.text else None

    return {
        "enabled": elem.get("enabled"),
        "tag": child("tag"),
        "type": child("type"),
        "level": child("level"),
        "properties": [
            {"name": p.get("name", ""), "value": (p.text or "").strip()}
            for p in elem.findall("property")
        ],
        "exclude": [e.text.strip() for e in elem.findall("exclude") if e.text],
    }


def load_xml(path: str | Path, factory: WriterFactory | None = None) -> list[FilterSpec]:
    """Load filter specs from a <logging><filter>... XML file."""
    path = Path(path)
    try:
        root = ET.fromstring(_read_text(path))
    except ET.ParseError as e:
        raise LogConfigurationError(f"Could not parse XML configuration in '{path}': {e}") from e

    entries = [_xml_filter_entry(elem) for elem in root.iter("filter")]
    return load_filter_specs(entries, factory=factory, origin=str(path))


def file_log_spec(
    cfg: Mapping[str, Any], factory: WriterFactory | None = None
) -> FilterSpec:
    """
    Build the spec for the single-file shorthand.

    Example:
        {"level": "DEBUG", "filename": "log/all.log", "format": "[%D %T] [%L] (%S) %M",
         "maxlines": "100K", "maxsize": "100M", "excludes": "vendor.a,vendor.b"}

    Daily rotation and rotation are always on.
    """
    properties = {"filename": cfg.get("filename")}
    for key in ("format", "maxlines", "maxsize"):
        if cfg.get(key):
            properties[key] = cfg[key]
    properties.update(daily="true", rotate="true")

    spec = spec_from_mapping(
        {
            "name": "file",
            "enabled": True,
            "type": "file",
            "level": cfg.get("level"),
            "properties": {k: v for k, v in properties.items() if v is not None},
            "excludes": cfg.get("excludes"),
        },
        origin="file log config",
    )
    (factory or default_factory()).parse(spec)
    return spec


def load_json(path: str | Path, factory: WriterFactory | None = None) -> list[FilterSpec]:
    """Load filter specs from JSON: a "filters" document or the single-file shorthand."""
    path = Path(path)
    try:
        doc = json.loads(_read_text(path))
    except json.JSONDecodeError as e:
        raise LogConfigurationError(f"Could not parse JSON configuration in '{path}': {e}") from e

    if isinstance(doc, Mapping) and "filters" not in doc:
        return [file_log_spec(doc, factory=factory)]
    return load_filter_specs(doc, factory=factory, origin=str(path))


def load_config_file(
    path: str | Path,
    section: str = LogConstants.DEFAULT_SECTION,
    factory: WriterFactory | None = None,
) -> list[FilterSpec]:
    """
    Load filter specs, choosing the loader by file suffix.

    Raises:
        LogConfigurationError: If the file is missing, has an unsupported
            suffix or is invalid
    """
    path = Path(path)
    if not path.is_file():
        raise LogConfigurationError(f"Configuration file not found: '{path}'")

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return load_yaml(path, section=section, factory=factory)
    if suffix == ".xml":
        return load_xml(path, factory=factory)
    if suffix == ".json":
        return load_json(path, factory=factory)
    raise LogConfigurationError(
        f"Unsupported configuration file type: '{path.suffix}'. "
        "Supported types: .yaml, .yml, .xml, .json"
    )


def build_filters(
    specs: Iterable[FilterSpec],
    base_dir: str | Path | None = None,
    factory: WriterFactory | None = None,
) -> list[Filter]:
    """
    Instantiate writers for the enabled specs.

    If a writer cannot be created, the ones already built are closed again
    before the error propagates.

    Raises:
        LogConfigurationError: If a writer cannot be created
    """
    factory = factory or default_factory()
    filters: list[Filter] = []
    try:
        for spec in specs:
            if not spec.enabled:
                continue
            writer = factory.create(spec, base_dir=base_dir)
            filters.append(Filter(spec.name, spec.level, writer, spec.excludes))
    except Exception as e:
        for flt in filters:
            flt.writer.close()
        if isinstance(e, OSError):
            raise LogConfigurationError(f"Could not create writer: {e}") from e
        raise
    return filters


def setup_file_log(
    cfg: Mapping[str, Any],
    logger: Any = None,
    base_dir: str | Path | None = None,
) -> Filter:
    """
    Install the single-file shorthand on a logger (default: the process logger).

    Raises:
        LogConfigurationError: If level or filename is missing or invalid
    """
    if logger is None:
        from .default import get_logger

        logger = get_logger()
    return logger.setup_file_log(cfg, base_dir=base_dir)

"""Record types and the pattern set loaded from the YAML plot config."""

import logging
import re
from dataclasses import dataclass, field

import jsonschema
import yaml

from logplot.config import ConfigError

logger = logging.getLogger(__name__)

TS_GROUP = "ts"
TIME_TS_GROUP = "time_ts"
RESERVED_GROUPS = frozenset({TS_GROUP, TIME_TS_GROUP})

PLOT_CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "minProperties": 1,
    "additionalProperties": {
        "type": "object",
        "required": ["regex"],
        "additionalProperties": False,
        "properties": {
            "regex": {"type": "string", "minLength": 1},
            "plots": {
                "type": ["object", "null"],
                "additionalProperties": {
                    "type": ["object", "null"],
                    "additionalProperties": False,
                    "properties": {
                        "axis": {"type": ["integer", "null"], "minimum": 0, "maximum": 255},
                        "style": {"type": ["string", "null"]},
                        "coef": {"type": ["number", "null"]},
                        "ylim": {
                            "type": ["array", "null"],
                            "items": {"type": "number"},
                            "minItems": 2,
                            "maxItems": 2,
                        },
                    },
                },
            },
        },
    },
}

_validator = jsonschema.Draft202012Validator(PLOT_CONFIG_SCHEMA)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    axis: int | None = None
    style: str | None = None
    coef: float = 1.0
    clamp: tuple[float, float] | None = None

    def apply(self, raw: float) -> float:
        """Scale by coef, then clamp to the configured range."""
        value = raw * self.coef
        if self.clamp is not None:
            lo, hi = self.clamp
            value = min(max(value, lo), hi)
        return value

    def to_dict(self) -> dict:
        return {
            "axis": self.axis,
            "style": self.style,
            "coef": self.coef,
            "ylim": list(self.clamp) if self.clamp is not None else None,
        }


@dataclass(frozen=True)
class RecordType:
    """A named regex and the numeric fields pulled out of its matches.

    Field names are bound to capture-group indices once, at construction,
    so the per-line path never looks groups up by name.
    """

    name: str
    pattern: re.Pattern
    fields: dict[str, FieldSpec] = field(default_factory=dict)
    ts_group: int | None = field(init=False, default=None)
    time_ts_group: int | None = field(init=False, default=None)
    bindings: tuple[tuple[FieldSpec, int], ...] = field(init=False, default=())

    def __post_init__(self):
        groups = self.pattern.groupindex
        bindings = []
        for name, spec in self.fields.items():
            if name in RESERVED_GROUPS:
                continue
            if name not in groups:
                raise ConfigError(
                    f"Record type '{self.name}': field '{name}' has no matching "
                    f"named group in regex {self.pattern.pattern!r}"
                )
            bindings.append((spec, groups[name]))
        object.__setattr__(self, "bindings", tuple(bindings))
        object.__setattr__(self, "ts_group", groups.get(TS_GROUP))
        object.__setattr__(self, "time_ts_group", groups.get(TIME_TS_GROUP))

    @property
    def has_timestamp(self) -> bool:
        return self.ts_group is not None or self.time_ts_group is not None

    @property
    def data_fields(self) -> list[str]:
        return [spec.name for spec, _ in self.bindings]


class PatternSet:
    """Read-only mapping of record-type name to RecordType."""

    def __init__(self, record_types: list[RecordType]):
        self._types: dict[str, RecordType] = {rt.name: rt for rt in record_types}

    def __getitem__(self, name: str) -> RecordType:
        return self._types[name]

    def __contains__(self, name: str) -> bool:
        return name in self._types

    def __iter__(self):
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)

    def to_dict(self) -> dict:
        """Field metadata per record type. The regex is never exposed."""
        return {
            rt.name: {"plots": {name: spec.to_dict() for name, spec in rt.fields.items()}}
            for rt in self._types.values()
        }


def _build_field(name: str, conf: dict | None) -> FieldSpec:
    conf = conf or {}
    coef = conf.get("coef")
    ylim = conf.get("ylim")
    clamp = None
    if ylim is not None:
        lo, hi = float(ylim[0]), float(ylim[1])
        if lo > hi:
            raise ConfigError(f"Field '{name}': ylim min {lo} is greater than max {hi}")
        clamp = (lo, hi)
    return FieldSpec(
        name=name,
        axis=conf.get("axis"),
        style=conf.get("style"),
        coef=float(coef) if coef is not None else 1.0,
        clamp=clamp,
    )


def build_pattern_set(data) -> PatternSet:
    """Validate parsed plot-config data and compile it into a PatternSet."""
    errors = sorted(_validator.iter_errors(data), key=lambda e: list(e.path))
    if errors:
        details = "; ".join(
            f"{'/'.join(str(p) for p in e.path) or '<root>'}: {e.message}" for e in errors
        )
        raise ConfigError(f"Invalid plot config: {details}")

    record_types = []
    for name, settings in data.items():
        name = str(name)
        try:
            pattern = re.compile(settings["regex"])
        except re.error as e:
            raise ConfigError(f"Record type '{name}': cannot compile regex: {e}") from e

        plots = settings.get("plots") or {}
        fields = {str(f): _build_field(str(f), conf) for f, conf in plots.items()}
        rt = RecordType(name=name, pattern=pattern, fields=fields)
        if not rt.has_timestamp:
            logger.warning(
                "Record type '%s' has no '%s' or '%s' group; blocks will use a counter",
                name, TS_GROUP, TIME_TS_GROUP,
            )
        record_types.append(rt)
        logger.info("Loaded record type '%s' with %d field(s)", name, len(rt.bindings))

    return PatternSet(record_types)


def load_pattern_set(path: str) -> PatternSet:
    """Read the YAML plot config at *path*. Any problem raises ConfigError."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML file {path}: {e}") from e

    pattern_set = build_pattern_set(data)
    logger.info("Loaded %d record type(s) from %s", len(pattern_set), path)
    return pattern_set

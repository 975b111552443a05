"""Turns batches of raw log lines into blocks of numeric samples."""

import logging
import math
import re

from logplot.models import Block, Sample
from logplot.patterns import PatternSet, RecordType

logger = logging.getLogger(__name__)

_TIME_TS_RE = re.compile(r"^\s*([+-])?(\d+):(\d+):(\d+(?:\.\d*)?)\s*$")


def parse_time_ts(text: str) -> float | None:
    """Parse ``[+-]H:MM:SS[.frac]`` into seconds. Returns None if malformed.

    A leading ``-`` negates the whole value, not just the hours.
    """
    m = _TIME_TS_RE.match(text)
    if m is None:
        return None
    sign, hours, minutes, seconds = m.groups()
    value = int(hours) * 3600 + int(minutes) * 60 + float(seconds)
    return -value if sign == "-" else value


def _parse_finite(text: str | None) -> float | None:
    """float(text), or None for missing, malformed, nan or inf values."""
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _raw_timestamp(record_type: RecordType, match: re.Match) -> float | None:
    if record_type.ts_group is not None:
        text = match.group(record_type.ts_group)
        if text is not None:
            value = _parse_finite(text)
            if value is not None:
                return value
            logger.debug("Unparseable ts %r for record type '%s'", text, record_type.name)
    if record_type.time_ts_group is not None:
        text = match.group(record_type.time_ts_group)
        if text is not None:
            value = parse_time_ts(text)
            if value is None:
                logger.debug("Unparseable time_ts %r for record type '%s'", text, record_type.name)
            return value
    return None


class Extractor:
    """Applies every record type to every line.

    Holds the process-lifetime state: the baseline timestamp (first one
    ever resolved) and the fallback counter used for blocks built from
    lines that carried no timestamp.
    """

    def __init__(self, pattern_set: PatternSet):
        self._pattern_set = pattern_set
        self._baseline: float | None = None
        self._last_ts: float | None = None
        self._counter = 0.0
        self._field_failures = 0

    @property
    def baseline(self) -> float | None:
        return self._baseline

    @property
    def field_failures(self) -> int:
        return self._field_failures

    def _relative(self, raw: float) -> float:
        if self._baseline is None:
            self._baseline = raw
            logger.info("Baseline timestamp set to %s", raw)
        return raw - self._baseline

    def process(self, lines: list[str]) -> tuple[Block | None, int]:
        """Extract one block from *lines*.

        Returns ``(None, 0)`` when no line matched any record type, so no
        empty block ever reaches the buffer.
        """
        fields: dict[str, list[Sample]] = {}
        matched_lines = 0
        block_ts: float | None = None

        for line in lines:
            line_matched = False
            for rt in self._pattern_set:
                match = rt.pattern.search(line)
                if match is None:
                    continue
                line_matched = True
                for name in rt.data_fields:
                    fields.setdefault(name, [])

                raw_ts = _raw_timestamp(rt, match)
                if raw_ts is not None:
                    rel_ts = self._relative(raw_ts)
                    self._last_ts = rel_ts
                else:
                    rel_ts = None

                stamp = rel_ts
                if stamp is None:
                    stamp = self._last_ts if self._last_ts is not None else self._counter

                for spec, group in rt.bindings:
                    text = match.group(group)
                    raw = _parse_finite(text)
                    value = spec.apply(raw) if raw is not None else None
                    if value is None or not math.isfinite(value):
                        self._field_failures += 1
                        logger.debug("Skipping field '%s': unparseable value %r", spec.name, text)
                        continue
                    fields[spec.name].append(Sample(stamp, value))
                    if rel_ts is not None and (block_ts is None or rel_ts > block_ts):
                        block_ts = rel_ts

            if line_matched:
                matched_lines += 1

        if not matched_lines:
            return None, 0

        if block_ts is None:
            block_ts = self._counter
            self._counter += 1
        return Block(fields=fields, ts=block_ts), matched_lines

"""
Data masking engine for JSON log lines.

Turns one raw log line into a sanitized line, or drops it. Applies, in order:
skip-if-contains record filtering, field removal, full masking, partial
masking and log level normalization. The engine is pure and never raises;
a bad record is logged and dropped so the rest of the file keeps flowing.
"""

from typing import Any, Dict, List, Optional, Set, Tuple

import simplejson as json
import structlog

from ..config import MaskRule, ProcessingSettings

logger = structlog.get_logger(__name__)


def apply_partial_mask(value: str, rule: MaskRule, mask_char: str = "*") -> str:
    """
    Mask the interior of a value, keeping rule.visible_start leading and
    rule.visible_end trailing characters.

    Values too short to hide anything are returned unmodified.
    """
    if not value:
        return value

    length = len(value)
    start = min(rule.visible_start, length)
    end = min(rule.visible_end, length - start)

    masked_length = length - start - end
    if masked_length <= 0:
        return value

    return value[:start] + mask_char * masked_length + value[length - end:]


def _as_text(value: Any) -> str:
    """Render a decoded JSON value the way it reads in the source line."""
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, use_decimal=True)


class MaskingEngine:
    """
    Sanitizes structured (JSON object) log lines with configurable rules.

    Field-name matching is case-insensitive for masking rules and the log
    level field, and exact for skip-if-contains and removed fields.
    """

    def __init__(self, settings: ProcessingSettings) -> None:
        self.redaction_token = settings.redaction_token
        self.mask_char = settings.mask_char
        self._full_mask: Set[str] = {name.lower() for name in settings.full_mask}
        self._partial_mask: Dict[str, MaskRule] = {
            name.lower(): rule for name, rule in settings.partial_mask.items()
        }
        self._skip_if_contains: Set[str] = set(settings.skip_if_contains)
        self._skip_fields: Set[str] = set(settings.skip_fields)
        self._log_level_field = settings.log_level_field.lower() if settings.log_level_field else None
        self._log_level_map: Dict[str, str] = {
            raw.lower(): normalized for raw, normalized in settings.log_level_mappings.items()
        }

        logger.info(
            "Masking engine initialized",
            full_mask_fields=len(self._full_mask),
            partial_mask_fields=len(self._partial_mask),
            skip_if_contains=len(self._skip_if_contains),
            skip_fields=len(self._skip_fields),
            log_level_field=settings.log_level_field,
        )

    def process(self, raw_line: str) -> Optional[str]:
        """
        Sanitize a single raw log line.

        Args:
            raw_line: One line of the source file, without its terminator

        Returns:
            The sanitized JSON line, or None when the record is dropped
        """
        try:
            fields = self._parse(raw_line)
            if fields is None:
                return None

            if any(name in self._skip_if_contains for name, _ in fields):
                logger.debug("Record skipped by skip-if-contains rule")
                return None

            output: Dict[str, Any] = {}
            for name, value in fields:
                if name in self._skip_fields:
                    continue
                output[name] = self._transform_value(name, value)

            return json.dumps(output, separators=(",", ":"), use_decimal=True, allow_nan=False)

        except Exception as e:
            logger.error(
                "Unexpected error while processing log line",
                line_length=len(raw_line) if isinstance(raw_line, str) else None,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return None

    def _parse(self, raw_line: str) -> Optional[List[Tuple[str, Any]]]:
        """Decode a line into ordered (name, value) pairs, or None if unusable."""
        try:
            fields = json.loads(
                raw_line,
                object_pairs_hook=_PairsObject,
                use_decimal=True,
                parse_constant=_reject_constant,
            )
        except ValueError as e:
            logger.warning(
                "Skipping invalid JSON log line",
                line_length=len(raw_line),
                error=str(e),
            )
            return None

        if not isinstance(fields, _PairsObject):
            logger.warning(
                "Skipping log line that is not a JSON object",
                line_length=len(raw_line),
                value_type=type(fields).__name__,
            )
            return None

        return fields.pairs

    def _transform_value(self, name: str, value: Any) -> Any:
        key = name.lower()

        if key in self._full_mask:
            return self.redaction_token

        rule = self._partial_mask.get(key)
        if rule is not None:
            return apply_partial_mask(_as_text(value), rule, self.mask_char)

        if self._log_level_field is not None and key == self._log_level_field:
            raw_level = _as_text(value)
            return self._log_level_map.get(raw_level.lower(), raw_level)

        return _unwrap(value)


class _PairsObject(dict):
    """
    JSON object decoded with its fields in source order.

    Top-level records keep their raw pairs so duplicate keys stay visible to
    the skip check; nested objects behave as ordinary dicts.
    """

    def __init__(self, pairs: List[Tuple[str, Any]]) -> None:
        super().__init__(pairs)
        self.pairs = pairs


def _unwrap(value: Any) -> Any:
    if isinstance(value, list):
        return [_unwrap(item) for item in value]
    if isinstance(value, dict):
        return {key: _unwrap(item) for key, item in value.items()}
    return value


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    raise ValueError(f"Non-standard JSON constant {name}")

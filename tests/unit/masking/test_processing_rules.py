"""
Tests for the masking engine's record-level rules.

Covers full masking, partial masking, skip-if-contains, field removal,
log level normalization, type and order preservation, and bad input.
"""

import json
from unittest.mock import patch

import pytest

from src.logbackup.config import MaskRule, ProcessingSettings
from src.logbackup.core.masking import MaskingEngine


@pytest.fixture
def engine(processing_settings: ProcessingSettings) -> MaskingEngine:
    return MaskingEngine(processing_settings)


def process_record(engine: MaskingEngine, record: dict) -> dict:
    output = engine.process(json.dumps(record))
    assert output is not None
    return json.loads(output)


class TestFullMasking:
    """Test fields replaced wholesale with the redaction token."""

    @pytest.mark.parametrize("value", ["hunter2", 12345, True, None, {"a": 1}, [1, 2]])
    def test_any_value_becomes_redaction_token(self, engine: MaskingEngine, value) -> None:
        result = process_record(engine, {"password": value, "message": "login"})
        assert result == {"password": "********", "message": "login"}

    def test_field_name_case_insensitive(self, engine: MaskingEngine) -> None:
        result = process_record(engine, {"PassWord": "x", "Token": "y"})
        assert result == {"PassWord": "********", "Token": "********"}

    def test_custom_redaction_token(self) -> None:
        engine = MaskingEngine(ProcessingSettings(full_mask=["ssn"], redaction_token="[REDACTED]"))
        result = process_record(engine, {"ssn": "123-45-6789"})
        assert result == {"ssn": "[REDACTED]"}

    def test_nested_fields_not_masked(self, engine: MaskingEngine) -> None:
        """Test rules apply to top-level fields only."""
        result = process_record(engine, {"user": {"password": "inner"}})
        assert result == {"user": {"password": "inner"}}


class TestPartialMaskRules:
    """Test partial masking applied through the engine."""

    def test_string_value(self, engine: MaskingEngine) -> None:
        result = process_record(engine, {"card": "1234567890"})
        assert result == {"card": "12******90"}

    def test_numeric_value_rendered_as_text(self, engine: MaskingEngine) -> None:
        result = process_record(engine, {"card": 1234567890})
        assert result == {"card": "12******90"}

    def test_too_short_value_unchanged(self, engine: MaskingEngine) -> None:
        result = process_record(engine, {"card": "ab"})
        assert result == {"card": "ab"}

    def test_null_value_renders_empty(self, engine: MaskingEngine) -> None:
        result = process_record(engine, {"card": None})
        assert result == {"card": ""}

    def test_field_name_case_insensitive(self, engine: MaskingEngine) -> None:
        result = process_record(engine, {"EMAIL": "john.doe@example.com"})
        assert result == {"EMAIL": "j" + "*" * 15 + ".com"}

    def test_full_mask_wins_over_partial(self) -> None:
        settings = ProcessingSettings(
            full_mask=["card"],
            partial_mask={"card": MaskRule(visible_start=2, visible_end=2)},
        )
        result = process_record(MaskingEngine(settings), {"card": "1234567890"})
        assert result == {"card": "********"}


class TestSkipRules:
    """Test record skipping and field removal."""

    def test_skip_if_contains_drops_record(self, engine: MaskingEngine) -> None:
        assert engine.process(json.dumps({"healthcheck": True, "message": "ping"})) is None

    def test_skip_if_contains_checks_presence_only(self, engine: MaskingEngine) -> None:
        assert engine.process(json.dumps({"message": "ok", "healthcheck": None})) is None

    def test_skip_if_contains_is_case_sensitive(self, engine: MaskingEngine) -> None:
        result = process_record(engine, {"HealthCheck": True})
        assert result == {"HealthCheck": True}

    def test_skip_field_removed_record_kept(self, engine: MaskingEngine) -> None:
        result = process_record(engine, {"message": "hello", "internal": {"debug": 1}})
        assert result == {"message": "hello"}

    def test_skip_check_runs_before_field_removal(self) -> None:
        """Test a field that is both removed and a skip trigger drops the record."""
        settings = ProcessingSettings(skip_if_contains=["debug"], skip_fields=["debug"])
        engine = MaskingEngine(settings)
        assert engine.process(json.dumps({"debug": 1, "message": "x"})) is None

    def test_all_fields_removed_gives_empty_object(self, engine: MaskingEngine) -> None:
        assert engine.process(json.dumps({"internal": 1})) == "{}"


class TestLogLevelNormalization:
    """Test normalization of the designated log level field."""

    @pytest.mark.parametrize("raw,expected", [
        ("warning", "WARN"),
        ("Warning", "WARN"),
        ("ERR", "ERROR"),
        ("info", "INFO"),
    ])
    def test_mapped_values(self, engine: MaskingEngine, raw: str, expected: str) -> None:
        result = process_record(engine, {"level": raw})
        assert result == {"level": expected}

    def test_unmapped_value_passes_through(self, engine: MaskingEngine) -> None:
        result = process_record(engine, {"level": "verbose", "message": "x"})
        assert result == {"level": "verbose", "message": "x"}

    def test_field_name_case_insensitive(self, engine: MaskingEngine) -> None:
        result = process_record(engine, {"Level": "warning"})
        assert result == {"Level": "WARN"}

    def test_numeric_level_rendered_as_text(self, engine: MaskingEngine) -> None:
        result = process_record(engine, {"level": 30})
        assert result == {"level": "30"}

    def test_disabled_when_no_field_configured(self) -> None:
        engine = MaskingEngine(ProcessingSettings(full_mask=[], log_level_field=None))
        result = process_record(engine, {"level": "warning"})
        assert result == {"level": "warning"}


class TestRecordShape:
    """Test types and field order survive the transformation."""

    def test_types_preserved(self, engine: MaskingEngine) -> None:
        record = {
            "message": "hello",
            "count": 3,
            "ratio": 0.25,
            "ok": False,
            "missing": None,
            "tags": ["a", 1, None],
            "ctx": {"user_id": 42, "nested": {"deep": True}},
        }
        assert process_record(engine, record) == record

    def test_field_order_preserved(self, engine: MaskingEngine) -> None:
        line = '{"zeta":1,"password":"x","alpha":2,"level":"warning"}'
        assert engine.process(line) == '{"zeta":1,"password":"********","alpha":2,"level":"WARN"}'

    def test_output_is_single_line(self, engine: MaskingEngine) -> None:
        output = engine.process(json.dumps({"message": "multi\nline"}))
        assert output is not None
        assert "\n" not in output

    def test_number_literals_kept_exactly(self, engine: MaskingEngine) -> None:
        line = '{"price":1.50,"big":12345678901234567890.5,"count":12345678901234567890123}'
        assert engine.process(line) == line

    def test_out_of_range_number_stays_valid_json(self, engine: MaskingEngine) -> None:
        output = engine.process('{"n":1e400,"m":"x"}')
        assert output is not None
        assert "Infinity" not in output
        assert json.loads(output, parse_constant=_reject)["m"] == "x"

    def test_partial_mask_uses_number_literal(self, engine: MaskingEngine) -> None:
        assert engine.process('{"card":1234567890.50}') == '{"card":"12*********50"}'


class TestMalformedInput:
    """Test bad records are dropped without raising."""

    @pytest.mark.parametrize("line", [
        "not json at all",
        '{"message": "unterminated',
        "[1, 2, 3]",
        '"just a string"',
        "42",
        "null",
        '{"n": NaN}',
        '{"n": Infinity, "m": "x"}',
        '{"n": -Infinity}',
    ])
    def test_dropped(self, engine: MaskingEngine, line: str) -> None:
        assert engine.process(line) is None

    def test_unexpected_error_dropped(self, engine: MaskingEngine) -> None:
        """Test any failure during transformation drops the record."""
        with patch.object(engine, "_transform_value", side_effect=RuntimeError("boom")):
            assert engine.process(json.dumps({"message": "x"})) is None


def _reject(name: str) -> None:
    raise ValueError(f"unexpected constant {name}")

"""Tests for locating the embedded edit block in model output."""

from resume_builder.domain.extractor import (
    FailureCode,
    WarningCode,
    extract,
    parse_object,
    recover_json_text,
    strip_block,
)


class TestStrategies:
    def test_tagged_block_has_no_warning(self):
        result = extract('Sure! [RESUME_DATA]{"summary": "Backend engineer"}[/RESUME_DATA]')

        assert result.ok
        assert result.data == {"summary": "Backend engineer"}
        assert result.warning is None
        assert result.strategy == "tagged"

    def test_markers_are_case_insensitive(self):
        result = extract('[resume_data]{"skills": ["Go"]}[/Resume_Data]')

        assert result.data == {"skills": ["Go"]}
        assert result.strategy == "tagged"

    def test_unterminated_block_is_recovered_with_warning(self):
        result = extract('[RESUME_DATA]{"skills": ["Go","Rust"]} here is more text')

        assert result.data == {"skills": ["Go", "Rust"]}
        assert result.warning == WarningCode.UNTERMINATED_BLOCK
        assert result.strategy == "unterminated"

    def test_unterminated_block_with_nested_objects(self):
        raw = '[RESUME_DATA]{"experience": {"company": "Acme"}, "skills": []} trailing'
        result = extract(raw)

        assert result.data == {"experience": {"company": "Acme"}, "skills": []}

    def test_fenced_block_used_when_no_markers(self):
        raw = 'Here you go:\n```json\n{"summary": "Data engineer"}\n```\nAnything else?'
        result = extract(raw)

        assert result.data == {"summary": "Data engineer"}
        assert result.warning == WarningCode.FENCED_FALLBACK
        assert result.strategy == "fenced"

    def test_bare_object_is_last_resort(self):
        result = extract('I updated it: {"skills": ["SQL"]} hope that helps')

        assert result.data == {"skills": ["SQL"]}
        assert result.warning == WarningCode.UNTAGGED_FALLBACK
        assert result.warning.message == "untagged fallback, may be unreliable"

    def test_tagged_wins_over_fenced(self):
        raw = '```json\n{"summary": "fenced"}\n```\n[RESUME_DATA]{"summary": "tagged"}[/RESUME_DATA]'
        result = extract(raw)

        assert result.data == {"summary": "tagged"}
        assert result.warning is None

    def test_leading_bom_is_ignored(self):
        raw = '\ufeff[RESUME_DATA]{"summary": "x"}[/RESUME_DATA] done'
        result = extract(raw)

        assert result.data == {"summary": "x"}
        assert result.span[0] == 1


class TestFailures:
    def test_plain_question_has_no_block(self):
        result = extract("I have a question, can you clarify the role?")

        assert not result.ok
        assert result.failure == FailureCode.NO_BLOCK_FOUND

    def test_empty_and_non_string_input(self):
        assert extract("").failure == FailureCode.NO_BLOCK_FOUND
        assert extract("   ").failure == FailureCode.NO_BLOCK_FOUND
        assert extract(None).failure == FailureCode.NO_BLOCK_FOUND

    def test_unparseable_candidate_is_parse_error(self):
        result = extract("[RESUME_DATA]{not json at all}[/RESUME_DATA]")

        assert result.failure == FailureCode.PARSE_ERROR
        assert result.data is None

    def test_json_array_is_not_an_object(self):
        result = extract("[RESUME_DATA][1, 2, 3][/RESUME_DATA]")

        assert result.failure == FailureCode.PARSE_ERROR


class TestRecovery:
    def test_trailing_commas_and_smart_quotes(self):
        result = extract("[RESUME_DATA]{“skills”: [“Go”,],}[/RESUME_DATA]")

        assert result.data == {"skills": ["Go"]}
        assert result.strategy == "tagged"

    def test_curly_apostrophe_stays_inside_value(self):
        result = extract("[RESUME_DATA]{“summary”: “Jane’s team lead”,}[/RESUME_DATA]")

        assert result.data == {"summary": "Jane's team lead"}

    def test_fence_inside_markers(self):
        raw = '[RESUME_DATA]\n```json\n{"summary": "x"}\n```\n[/RESUME_DATA]'

        assert extract(raw).data == {"summary": "x"}

    def test_recover_json_text_strips_language_tag(self):
        assert recover_json_text('json {"a": 1,}') == '{"a": 1}'

    def test_parse_object_rejects_scalars(self):
        assert parse_object('"just a string"') is None
        assert parse_object("42") is None
        assert parse_object('{"a": 1}') == {"a": 1}


class TestStripBlock:
    def test_block_removed_from_reply(self):
        raw = 'Updated your skills.\n[RESUME_DATA]{"skills": ["Go"]}[/RESUME_DATA]\nAnything else?'
        result = extract(raw)

        assert strip_block(raw, result) == "Updated your skills.\nAnything else?"

    def test_failed_extraction_keeps_text(self):
        raw = "  Could you tell me more?  "

        assert strip_block(raw, extract(raw)) == "Could you tell me more?"

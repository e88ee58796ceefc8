"""
Tests for exam generation: prompt, response schema, parsing, provider errors.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from toetsgen.exam_config import assemble_configuration
from toetsgen.exam_generator import (
    GENERATION_FAILED_MESSAGE,
    GenerationError,
    build_prompt,
    build_response_schema,
    clean_json_string,
    generate_exam,
    parse_exam_response,
)
from toetsgen.llm_provider import MISSING_KEY_MESSAGE, MockLLMProvider, ProviderError
from toetsgen.question_types import QuestionTypeAllocation
from toetsgen.taxonomy import KTI, RTTI, TaxonomyDistribution


@pytest.fixture
def rtti_config():
    return assemble_configuration(
        TaxonomyDistribution("RTTI"),
        QuestionTypeAllocation(),
        subject="Biologie",
        level="Havo 4",
        topics="Cellen",
        learning_goals="De leerling kan een cel beschrijven.",
        duration=50,
        question_count=12,
    )


@pytest.fixture
def kti_config():
    return assemble_configuration(TaxonomyDistribution("KTI"), QuestionTypeAllocation(), subject="Aardrijkskunde", topics="Klimaat")


class TestCleanJsonString:
    def test_strips_fences(self):
        assert clean_json_string('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_json_unchanged(self):
        assert clean_json_string('{"a": 1}') == '{"a": 1}'

    def test_none(self):
        assert clean_json_string(None) == ""


class TestResponseSchema:
    def test_rtti_columns(self):
        schema = build_response_schema(RTTI)
        matrix = schema["properties"]["matrix"]["items"]
        assert matrix["required"] == ["topic", "r", "t1", "t2", "i"]
        labels = schema["properties"]["questions"]["items"]["properties"]["taxonomyLabel"]["enum"]
        assert labels == ["R", "T1", "T2", "I"]

    def test_kti_columns(self):
        schema = build_response_schema(KTI)
        assert schema["properties"]["taxonomy"]["enum"] == ["KTI"]
        assert "t1" not in schema["properties"]["matrix"]["items"]["properties"]


class TestBuildPrompt:
    def test_contains_configuration(self, rtti_config):
        prompt = build_prompt(rtti_config)
        assert "Vak: Biologie" in prompt
        assert "Niveau: Havo 4" in prompt
        assert "- R (Reproductie): 25%" in prompt
        assert "Totale Duur: 50 minuten" in prompt
        assert "Aantal Vragen: 12" in prompt
        assert "Vraagtypes: 50% Meerkeuze, 50% Open vraag / korte antwoord" in prompt
        assert "NEDERLANDS" in prompt

    def test_kti_prompt(self, kti_config):
        prompt = build_prompt(kti_config)
        assert "KTI-toetsing" in prompt
        assert "- T (Toepassen): 50%" in prompt
        assert "T1" not in prompt


class TestParseExamResponse:
    def test_parses_fenced_json(self, sample_exam_data):
        exam = parse_exam_response("```json\n" + json.dumps(sample_exam_data) + "\n```")
        assert exam.taxonomy == "RTTI"
        assert len(exam.questions) == 4

    def test_invalid_json(self):
        with pytest.raises(GenerationError) as exc_info:
            parse_exam_response("Sorry, dat lukt niet.")
        assert exc_info.value.user_message == GENERATION_FAILED_MESSAGE

    def test_wrong_shape(self):
        with pytest.raises(GenerationError):
            parse_exam_response('{"title": "Alleen een titel"}')

    def test_empty_response(self):
        with pytest.raises(GenerationError):
            parse_exam_response("")


class TestGenerateExam:
    def test_mock_provider_rtti(self, rtti_config):
        exam = generate_exam({"llm": {"provider": "mock"}}, rtti_config)
        assert exam.taxonomy == "RTTI"
        assert [q.taxonomy_label for q in exam.questions] == ["R", "T1", "T2", "I"]

    def test_mock_provider_kti(self, kti_config):
        exam = generate_exam({"llm": {"provider": "mock"}}, kti_config)
        assert exam.taxonomy == "KTI"
        assert exam.labels == ["K", "T", "I"]

    def test_sends_prompt_and_schema_in_json_mode(self, rtti_config):
        provider = MockLLMProvider()
        with patch("toetsgen.exam_generator.get_provider", return_value=provider):
            generate_exam({"llm": {"provider": "mock"}}, rtti_config)
        assert len(provider.calls) == 1
        assert provider.calls[0]["json_mode"] is True
        assert "Vak: Biologie" in provider.calls[0]["prompt_parts"][0]

    def test_missing_api_key_fails_fast(self, rtti_config, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with patch("google.genai.Client") as mock_client:
            with pytest.raises(ProviderError) as exc_info:
                generate_exam({"llm": {"provider": "gemini"}}, rtti_config)
        assert exc_info.value.user_message == MISSING_KEY_MESSAGE
        mock_client.assert_not_called()

    def test_provider_rejection_becomes_generation_error(self, rtti_config):
        provider = MagicMock()
        provider.generate.side_effect = ProviderError("quota exceeded")
        with patch("toetsgen.exam_generator.get_provider", return_value=provider):
            with pytest.raises(GenerationError) as exc_info:
                generate_exam({"llm": {"provider": "gemini"}}, rtti_config)
        assert exc_info.value.user_message == GENERATION_FAILED_MESSAGE
        provider.generate.assert_called_once()

    def test_unparseable_response(self, rtti_config):
        provider = MagicMock()
        provider.generate.return_value = "geen json"
        with patch("toetsgen.exam_generator.get_provider", return_value=provider):
            with pytest.raises(GenerationError):
                generate_exam({"llm": {"provider": "gemini"}}, rtti_config)

    def test_gemini_client_called_with_schema(self, rtti_config, sample_exam_data, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        with patch("google.genai.Client") as mock_client_cls:
            client = mock_client_cls.return_value
            client.models.generate_content.return_value = MagicMock(text=json.dumps(sample_exam_data))
            exam = generate_exam({"llm": {"provider": "gemini"}}, rtti_config)

        assert exam.title == sample_exam_data["title"]
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["config"]["response_mime_type"] == "application/json"
        assert kwargs["config"]["response_schema"]["properties"]["taxonomy"]["enum"] == ["RTTI"]

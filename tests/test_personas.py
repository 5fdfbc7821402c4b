"""Tests for minds.personas: registry invariants and JSON loading."""

import json

import pytest

from minds.errors import ConfigurationError
from minds.personas import GEMINI, GPT, Persona, PersonaRegistry, default_registry, load_personas


class TestPersonaRegistry:
    def test_default_pair(self):
        reg = default_registry()
        assert reg.ids == ("Gemini", "GPT")
        assert reg.starting is GPT
        assert reg.get("Gemini").uses_retrieval is True
        assert reg.get("GPT").uses_retrieval is False

    def test_opponent_of_is_symmetric(self, registry):
        assert registry.opponent_of("Gemini") == "GPT"
        assert registry.opponent_of("GPT") == "Gemini"

    def test_opponent_of_unknown_id(self, registry):
        with pytest.raises(ConfigurationError):
            registry.opponent_of("Claude")

    def test_get_unknown_id(self, registry):
        with pytest.raises(ConfigurationError):
            registry.get("Claude")

    @pytest.mark.parametrize("count", [0, 1, 3])
    def test_requires_exactly_two(self, count):
        personas = [Persona(id=f"p{i}", style_tag="x", instruction="talk") for i in range(count)]
        with pytest.raises(ConfigurationError):
            PersonaRegistry(personas)

    def test_rejects_duplicate_ids(self):
        with pytest.raises(ConfigurationError):
            PersonaRegistry([GEMINI, GEMINI])

    def test_rejects_unknown_starting_id(self):
        with pytest.raises(ConfigurationError):
            PersonaRegistry([GEMINI, GPT], starting_id="Nobody")

    def test_starting_defaults_to_second_persona(self):
        assert PersonaRegistry([GPT, GEMINI]).starting is GEMINI


class TestLoadPersonas:
    def _write(self, tmp_path, obj):
        path = tmp_path / "personas.json"
        path.write_text(json.dumps(obj), encoding="utf-8")
        return path

    def test_list_form(self, tmp_path):
        path = self._write(tmp_path, [
            {"id": "Ada", "instruction": "Be precise.", "uses_retrieval": True},
            {"id": "Bo", "style_tag": "blue", "instruction": "Be playful."},
        ])
        reg = load_personas(path)
        assert reg.ids == ("Ada", "Bo")
        assert reg.get("Ada").style_tag == "ada"
        assert reg.get("Ada").uses_retrieval is True
        assert reg.get("Bo").style_tag == "blue"
        assert reg.starting.id == "Bo"

    def test_object_form_with_starting(self, tmp_path):
        path = self._write(tmp_path, {
            "starting": "Ada",
            "personas": [
                {"id": "Ada", "instruction": "Be precise."},
                {"id": "Bo", "instruction": "Be playful."},
            ],
        })
        assert load_personas(path).starting.id == "Ada"

    def test_missing_instruction(self, tmp_path):
        path = self._write(tmp_path, [{"id": "Ada"}, {"id": "Bo", "instruction": "x"}])
        with pytest.raises(ConfigurationError):
            load_personas(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "personas.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_personas(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_personas(tmp_path / "nope.json")

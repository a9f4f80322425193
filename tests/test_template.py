"""Tests for the template data model and its schema."""

import pytest

from bitauth.defaults import DEFAULT_TEMPLATES
from bitauth.errors import ConfigurationError
from bitauth.schema import validate_template_document
from bitauth.template import Entity, VariableKind, parse_template


class TestParseTemplate:

    def test_bundled_templates_are_valid(self):
        for alias, document in DEFAULT_TEMPLATES.items():
            assert validate_template_document(document) == [], alias
            assert parse_template(document).ok

    def test_builds_entities_and_variables(self):
        template = parse_template(DEFAULT_TEMPLATES["2-of-2-recoverable"]).unwrap()
        assert template.entity_count == 3
        signer = template.entities["signer_1"]
        assert list(signer.variables) == ["first", "delay_seconds"]
        assert signer.variables["first"].kind is VariableKind.HD_KEY
        assert signer.variables["delay_seconds"].kind is VariableKind.WALLET_DATA
        assert template.raw is DEFAULT_TEMPLATES["2-of-2-recoverable"]

    def test_derivation_path_override_is_read(self):
        template = parse_template({
            "entities": {"e": {"variables": {
                "k": {"type": "HdKey", "hdPublicKeyDerivationPath": "m/0'"},
            }}},
        }).unwrap()
        assert template.entities["e"].variables["k"].hd_public_key_derivation_path == "m/0'"

    def test_missing_and_null_variables(self):
        template = parse_template({"entities": {"a": {}, "b": {"variables": None}}}).unwrap()
        assert template.entities["a"].variables == {}
        assert template.entities["b"].variables == {}

    def test_not_an_object(self):
        outcome = parse_template(["entities"])
        assert not outcome.ok
        assert isinstance(outcome.error, ConfigurationError)

    def test_reports_every_violation(self):
        outcome = parse_template({
            "name": 7,
            "entities": {
                "a": {"variables": {"k": {"name": "no type"}}},
                "b": "not an entity",
            },
        })
        assert not outcome.ok
        message = outcome.error.message
        assert "$.name" in message
        assert "$.entities.a.variables.k" in message
        assert "'type' is a required property" in message
        assert "$.entities.b" in message

    def test_missing_entities(self):
        problems = validate_template_document({"name": "x"})
        assert problems == ["$: 'entities' is a required property"]

    def test_unknown_tag_is_not_a_structural_error(self):
        template = parse_template({"entities": {"e": {"variables": {"x": {"type": "Mystery"}}}}}).unwrap()
        with pytest.raises(ConfigurationError, match='unknown variable type: "Mystery"'):
            template.entities["e"].variables["x"].kind

    def test_floats_refused_with_path(self):
        outcome = parse_template({
            "entities": {"e": {"variables": {"k": {"type": "Key"}}}},
            "version": 0.5,
            "scenarios": {"s": {"data": {"bytecode": [1, 2.25]}}},
        })
        assert isinstance(outcome.error, ConfigurationError)
        message = outcome.error.message
        assert "$.version: floats are not allowed" in message
        assert "$.scenarios.s.data.bytecode[1]: floats are not allowed" in message

    def test_integers_and_booleans_allowed(self):
        assert parse_template({"entities": {}, "version": 2, "experimental": True}).ok


class TestEntity:

    def test_display_name(self):
        assert Entity(id="signer_1", name="Signer 1").display_name == "Signer 1"
        assert Entity(id="signer_1").display_name == "Unnamed (signer_1)"

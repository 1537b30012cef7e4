"""Tests for the integrity rule configuration (phrase lists and thresholds)."""

import dataclasses

import pytest

from pblab.core.constants import (
    ARTIFACT_TEAM_PHRASES,
    EXTRA_ARTIFACT_PHRASES_ENV,
    EXTRA_OBJECTIVE_PHRASES_ENV,
    FORBIDDEN_ASSESSMENT_FIELDS,
    FORBIDDEN_FRAMEWORK_FIELDS,
    OBJECTIVE_TEAM_PHRASES,
    IntegrityRules,
)


class TestDefaults:
    def test_objective_phrases(self) -> None:
        assert OBJECTIVE_TEAM_PHRASES == ("team grade", "team score", "group grade", "collective assessment")

    def test_artifact_phrases(self) -> None:
        assert ARTIFACT_TEAM_PHRASES == ("team project", "group work", "collective", "shared")

    def test_ten_forbidden_assessment_fields(self) -> None:
        assert len(FORBIDDEN_ASSESSMENT_FIELDS) == 10
        assert len(set(FORBIDDEN_ASSESSMENT_FIELDS)) == 10

    def test_framework_fields(self) -> None:
        assert set(FORBIDDEN_FRAMEWORK_FIELDS) == {
            "team_competencies", "group_competencies",
            "team_criteria", "group_criteria",
            "team_weight", "group_weight",
        }

    def test_thresholds(self) -> None:
        rules = IntegrityRules()
        assert rules.minimum_objectives == 3
        assert rules.competency_range == (1, 5)
        assert rules.score_range == (0.0, 100.0)
        assert rules.low_competency_average == 2.0


class TestExtension:
    def test_rules_are_frozen(self) -> None:
        rules = IntegrityRules()
        with pytest.raises(dataclasses.FrozenInstanceError):
            rules.minimum_objectives = 1

    def test_with_extra_phrases_returns_copy(self) -> None:
        base = IntegrityRules()
        extended = base.with_extra_phrases(objective=["  Squad Mark "], artifact=["pair work"])
        assert extended.objective_team_phrases[-1] == "squad mark"
        assert extended.artifact_team_phrases[-1] == "pair work"
        assert base.objective_team_phrases == OBJECTIVE_TEAM_PHRASES

    def test_duplicates_and_blanks_skipped(self) -> None:
        extended = IntegrityRules().with_extra_phrases(objective=["TEAM GRADE", ""])
        assert extended.objective_team_phrases == OBJECTIVE_TEAM_PHRASES

    def test_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv(EXTRA_OBJECTIVE_PHRASES_ENV, "squad mark, crew score")
        monkeypatch.setenv(EXTRA_ARTIFACT_PHRASES_ENV, "pair work")
        rules = IntegrityRules.from_env()
        assert rules.objective_team_phrases[-2:] == ("squad mark", "crew score")
        assert rules.artifact_team_phrases[-1] == "pair work"

    def test_from_env_without_variables(self, monkeypatch) -> None:
        monkeypatch.delenv(EXTRA_OBJECTIVE_PHRASES_ENV, raising=False)
        monkeypatch.delenv(EXTRA_ARTIFACT_PHRASES_ENV, raising=False)
        assert IntegrityRules.from_env() == IntegrityRules()

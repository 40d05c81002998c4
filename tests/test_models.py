"""Tests for configuration, scenario and verdict models."""

import json

import pytest
from pydantic import ValidationError

from dashcheck.models.config import OracleConfig
from dashcheck.models.scenario import InteractionKind, Scenario, ScenarioManifest
from dashcheck.models.verdict import ScenarioVerdict


class TestOracleConfig:
    def test_defaults(self):
        config = OracleConfig()
        assert config.viewport.width == 1440
        assert config.viewport.height == 900
        assert config.navigation_timeout_ms == 45000
        assert config.settle.filter == 1200
        assert config.settle.show_when_toggle == 900
        assert config.headless is True

    def test_save_and_load(self, oracle_config, tmp_path):
        path = tmp_path / "nested" / "config.json"
        oracle_config.save(path)
        loaded = OracleConfig.load(path)
        assert loaded == oracle_config

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            OracleConfig.load(tmp_path / "nope.json")

    def test_partial_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"headless": False, "settle": {"filter": 2000}}))
        config = OracleConfig.load(path)
        assert config.headless is False
        assert config.settle.filter == 2000
        assert config.settle.slider == 1200


class TestScenario:
    def test_scalars_wrapped(self):
        scenario = Scenario(id="s", url="http://x", required_selectors=".a",
                            interaction_plan="filter", expect_chart_backend="plotly")
        assert scenario.required_selectors == [".a"]
        assert scenario.interaction_plan == [InteractionKind.FILTER]
        assert scenario.expect_chart_backend == ["plotly"]

    def test_null_lists(self):
        scenario = Scenario(id="s", url="http://x", required_texts=None)
        assert scenario.required_texts == []

    def test_needs_url(self):
        with pytest.raises(ValidationError, match="needs a url or url_path"):
            Scenario(id="s")

    def test_unknown_interaction(self):
        with pytest.raises(ValidationError):
            Scenario(id="s", url="http://x", interaction_plan=["double_click"])

    def test_blank_preferred_var(self):
        scenario = Scenario(id="s", url="http://x", preferred_filter_var="  ", preferred_slider_var=" year ")
        assert scenario.preferred_filter_var is None
        assert scenario.preferred_slider_var == "year"

    def test_unknown_fields_ignored(self):
        scenario = Scenario(id="s", url="http://x", local_file_url="file:///tmp/x.html")
        assert not hasattr(scenario, "local_file_url")

    def test_umbrella_flag(self):
        scenario = Scenario(id="s", url="http://x", require_all_inputs_affect_all_charts=True)
        assert scenario.all_charts_change_on_filter
        assert scenario.all_charts_change_on_slider
        assert scenario.all_input_vars_affect_all_charts

    def test_explicit_backends(self):
        assert Scenario(id="s", url="x", expect_chart_backend=["mixed"]).explicit_backends == []
        assert Scenario(id="s", url="x", expect_chart_backend=["plotly"]).explicit_backends == ["plotly"]

    def test_frozen(self):
        scenario = Scenario(id="s", url="http://x")
        with pytest.raises(ValidationError):
            scenario.url = "http://y"


class TestManifest:
    def test_resolve_by_mode(self, manifest_file):
        manifest = ScenarioManifest.load(manifest_file)
        assert [s.id for s in manifest.resolve("smoke", "http://localhost:8000/")] == ["sales", "docs_home"]
        assert [s.id for s in manifest.resolve("full", "http://localhost:8000")] == ["sales", "deep", "docs_home"]

    def test_base_url_joined(self, manifest_file):
        sales = ScenarioManifest.load(manifest_file).resolve("smoke", "http://localhost:8000/")[0]
        assert sales.url == "http://localhost:8000/sales.html"
        assert sales.interaction_plan == [InteractionKind.FILTER]

    def test_defaults_applied(self, manifest_file):
        sales = ScenarioManifest.load(manifest_file).resolve("smoke")[0]
        assert sales.min_category_matches == 1

    def test_source_type_filter(self, manifest_file):
        manifest = ScenarioManifest.load(manifest_file)
        resolved = manifest.resolve("full", "http://h", include_source_types=["docs"])
        assert [s.id for s in resolved] == ["deep", "docs_home"]

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Scenario manifest not found"):
            ScenarioManifest.load(tmp_path / "missing.json")


class TestVerdict:
    def test_status_computed(self):
        assert ScenarioVerdict(id="a").status == "pass"
        assert ScenarioVerdict(id="a", failures=["x"]).status == "fail"

    def test_status_serialized(self, scenario_verdict):
        data = json.loads(scenario_verdict.model_dump_json())
        assert data["status"] == "fail"
        assert data["interaction_results"][0]["kind"] == "filter"
        assert data["interaction_results"][0]["performed"] is True

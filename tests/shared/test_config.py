"""Tests for configuration models and YAML loading."""

import pytest
from pydantic import ValidationError

from hand_abstraction.shared.config import Config, EquityConfig, deep_merge_dicts
from hand_abstraction.shared.config_loader import load_config, load_named_config


class TestConfigModels:
    """Tests for the Pydantic schema."""

    def test_defaults(self):
        config = Config.default()

        assert config.clustering.n_clusters == 50
        assert config.clustering.epsilon == 0.005
        assert config.clustering.max_iterations == 300
        assert config.equity.streets == ["preflop", "flop", "turn", "river"]
        assert config.system.seed is None

    def test_from_dict_keeps_unlisted_defaults(self):
        config = Config.from_dict({"clustering": {"n_clusters": 12}})

        assert config.clustering.n_clusters == 12
        assert config.clustering.n_restarts == 10

    def test_rejects_non_positive_clusters(self):
        with pytest.raises(ValidationError):
            Config.from_dict({"clustering": {"n_clusters": 0}})

    def test_rejects_unknown_keys(self):
        with pytest.raises(ValidationError):
            Config.from_dict({"clustering": {"clusters": 5}})

    def test_rejects_unknown_metric(self):
        with pytest.raises(ValidationError):
            Config.from_dict({"clustering": {"metric": "cosine"}})

    def test_frozen(self):
        config = Config.default()
        with pytest.raises(ValidationError):
            config.clustering.n_clusters = 3

    @pytest.mark.parametrize(
        "streets", [[], ["flop", "preflop"], ["flop", "flop"]]
    )
    def test_streets_validation(self, streets):
        with pytest.raises(ValidationError):
            EquityConfig(streets=streets)

    def test_merge_returns_new_config(self):
        config = Config.default()
        merged = config.merge({"system": {"seed": 9}})

        assert merged.system.seed == 9
        assert config.system.seed is None

    def test_deep_merge_dicts(self):
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        merged = deep_merge_dicts(base, {"a": {"y": 3}, "c": 4})

        assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}
        assert base == {"a": {"x": 1, "y": 2}, "b": 1}


class TestConfigLoader:
    """Tests for YAML loading and overrides."""

    def test_no_file(self):
        assert load_config() == Config.default()

    def test_yaml_overrides(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("clustering:\n  n_clusters: 20\n  metric: emd\n")

        config = load_config(path)

        assert config.clustering.n_clusters == 20
        assert config.clustering.metric == "emd"
        assert config.clustering.n_restarts == 10

    def test_extends(self, tmp_path):
        (tmp_path / "base.yaml").write_text("clustering:\n  n_clusters: 20\n  n_restarts: 3\n")
        child = tmp_path / "child.yaml"
        child.write_text("extends: base.yaml\nclustering:\n  n_clusters: 7\n")

        config = load_config(child)

        assert config.clustering.n_clusters == 7
        assert config.clustering.n_restarts == 3

    def test_extends_loop(self, tmp_path):
        (tmp_path / "a.yaml").write_text("extends: b.yaml\n")
        (tmp_path / "b.yaml").write_text("extends: a.yaml\n")

        with pytest.raises(ValueError):
            load_config(tmp_path / "a.yaml")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ValueError):
            load_config(path)

    def test_keyword_overrides_win(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("clustering:\n  n_clusters: 20\n")

        config = load_config(path, clustering__n_clusters=5, system__seed=1)

        assert config.clustering.n_clusters == 5
        assert config.system.seed == 1

    def test_invalid_override(self):
        with pytest.raises(ValidationError):
            load_config(equity__n_workers=0)

    def test_named_config(self):
        config = load_named_config("fast_test")

        assert config.system.config_name == "fast_test"
        assert config.clustering.n_clusters == 8
        assert config.equity.streets == ["preflop"]
        # Inherited from default.yaml
        assert config.system.seed == 42

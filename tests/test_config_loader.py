"""
Tests for TOML configuration loading and request models.
"""
from pathlib import Path

import pytest
from pydantic import ValidationError

from crenv.config.loader import (
    load_config,
    merge_tables,
    resolve_config_paths,
    resolve_deployer_key,
)
from crenv.config.models import (
    DEFAULT_DEPLOYER_PRIVATE_KEY,
    BlockchainInput,
    InfraInput,
    NodeSetInput,
    NodeSpec,
)
from crenv.core.exceptions import InvalidConfigError
from crenv.core.types import InfraType, TopologyMode

BASE = """
[[blockchains]]
chain_id = "1337"
port = 8545

[jd]
image = "job-distributor:0.12.7"

[[nodesets]]
name = "workflow"
nodes = 5
"""

OVERRIDE = """
[jd]
csa_encryption_key = "00ff"

[[blockchains]]
chain_id = 2337
read_only = true
"""

REPO_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def config_files(tmp_path):
    base = tmp_path / "base.toml"
    base.write_text(BASE)
    override = tmp_path / "override.toml"
    override.write_text(OVERRIDE)
    return base, override


class TestConfigPaths:
    """CTF_CONFIGS resolution."""

    def test_default_per_topology(self):
        assert resolve_config_paths(TopologyMode.SIMPLIFIED, env={}) == [Path("configs/single-don.toml")]
        assert resolve_config_paths(TopologyMode.FULL, env={}) == [
            Path("configs/workflow-capabilities-don.toml")
        ]

    def test_comma_separated(self):
        """Entries are split on commas and trimmed."""
        env = {"CTF_CONFIGS": "a.toml, b.toml ,"}
        assert resolve_config_paths(TopologyMode.FULL, env=env) == [Path("a.toml"), Path("b.toml")]


class TestLoadConfig:
    """Loading and merging."""

    def test_single_file(self, config_files):
        config = load_config([config_files[0]])

        assert config.blockchains[0].chain_id == 1337
        assert config.node_sets[0].node_count == 5
        assert config.infra.type == InfraType.DOCKER

    def test_merge_left_to_right(self, config_files):
        """Tables merge, arrays are replaced."""
        config = load_config(list(config_files))

        assert config.jd.image == "job-distributor:0.12.7"
        assert config.jd.csa_encryption_key == "00ff"
        assert [chain.chain_id for chain in config.blockchains] == [2337]
        assert config.blockchains[0].read_only

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidConfigError, match="config file not found"):
            load_config([tmp_path / "absent.toml"])

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[jd\nimage = ")
        with pytest.raises(InvalidConfigError, match="invalid TOML"):
            load_config([path])

    def test_validation_error(self, tmp_path):
        """A config without node sets is rejected."""
        path = tmp_path / "empty.toml"
        path.write_text('[[blockchains]]\nchain_id = "1337"\n')

        with pytest.raises(InvalidConfigError) as exc_info:
            load_config([path])
        assert exc_info.value.details["errors"]

    def test_no_paths(self):
        with pytest.raises(InvalidConfigError):
            load_config([])

    @pytest.mark.parametrize("name", ["single-don.toml", "workflow-capabilities-don.toml"])
    def test_shipped_configs_load(self, name):
        """The bundled configs are valid."""
        config = load_config([REPO_ROOT / "configs" / name])
        assert config.blockchains[0].chain_id == 1337

    def test_merge_tables_nested(self):
        merged = merge_tables({"a": {"b": 1, "c": 2}, "d": [1]}, {"a": {"c": 3}, "d": [2]})
        assert merged == {"a": {"b": 1, "c": 3}, "d": [2]}


class TestModels:
    """Model validation rules."""

    def test_chain_id_string(self):
        assert BlockchainInput(chain_id=" 1337 ").chain_id == 1337

    def test_chain_id_not_a_number(self):
        with pytest.raises(ValidationError, match="failed to convert chain ID"):
            BlockchainInput(chain_id="mainnet")

    def test_crib_requires_namespace(self):
        with pytest.raises(ValidationError, match="namespace"):
            InfraInput(type=InfraType.CRIB)

    def test_override_mode_each(self):
        """With override_mode=each the node count follows the node specs."""
        node_set = NodeSetInput(name="caps", nodes=10, override_mode="each", node_specs=[NodeSpec(), NodeSpec()])
        assert node_set.node_count == 2

    def test_frozen(self):
        chain = BlockchainInput(chain_id=1337)
        with pytest.raises(ValidationError):
            chain.chain_id = 1


class TestDeployerKey:

    def test_from_env(self):
        assert resolve_deployer_key({"PRIVATE_KEY": "abc"}) == "abc"

    def test_default(self):
        assert resolve_deployer_key({}) == DEFAULT_DEPLOYER_PRIVATE_KEY

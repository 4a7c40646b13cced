"""
Tests for the cre.yaml settings artifact.
"""
import os
import stat

import pytest
import yaml

from crenv.core.exceptions import SettingsWriteError
from crenv.core.types import InfraType
from crenv.provisioning.models import (
    BlockchainOutput,
    DonTopology,
    JobDistributorOutput,
    ProvisioningResult,
)
from crenv.settings.writer import SETTINGS_FILE_NAME, build_settings, write_settings_file


@pytest.fixture
def result():
    return ProvisioningResult(
        blockchains=[
            BlockchainOutput(
                chain_id=1337,
                chain_selector=3379446385462418246,
                rpc_http_url="http://localhost:8545",
                deployer_address="0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
                contract_addresses={"workflow_registry": "0xabc"},
            ),
            BlockchainOutput(chain_id=2337, chain_selector=12922642891491394802, rpc_http_url="http://localhost:8546"),
        ],
        topology=DonTopology(workflow_don_id=1, don_ids={"workflow": 1}, node_groups=()),
        job_distributor=JobDistributorOutput(external_grpc_url="localhost:14231"),
        infra_type=InfraType.DOCKER,
    )


class TestBuildSettings:

    def test_content(self, result):
        """Home chain, workflow DON and every RPC are listed."""
        settings = build_settings(result)["test"]

        assert settings["user-workflow"] == {
            "workflow-owner-address": "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
            "workflow-don-id": 1,
        }
        assert settings["home-chain-selector"] == 3379446385462418246
        assert settings["contracts"] == {"workflow_registry": "0xabc"}
        assert settings["rpcs"] == {
            3379446385462418246: "http://localhost:8545",
            12922642891491394802: "http://localhost:8546",
        }

    def test_profile(self, result):
        assert list(build_settings(result, "staging")) == ["staging"]


class TestWriteSettingsFile:

    def test_written_owner_only(self, result, tmp_path):
        """The file is readable by its owner only."""
        path = write_settings_file(result, tmp_path)

        assert path == tmp_path / SETTINGS_FILE_NAME
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
        assert yaml.safe_load(path.read_text())["test"]["user-workflow"]["workflow-don-id"] == 1

    def test_overwrites_existing(self, result, tmp_path):
        """An existing file is replaced and its mode tightened."""
        path = tmp_path / SETTINGS_FILE_NAME
        path.write_text("stale: true\n" * 50)
        path.chmod(0o644)

        write_settings_file(result, tmp_path)

        content = yaml.safe_load(path.read_text())
        assert "stale" not in content
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_unwritable_directory(self, result, tmp_path):
        with pytest.raises(SettingsWriteError) as exc_info:
            write_settings_file(result, tmp_path / "nope")

        assert exc_info.value.path.endswith(SETTINGS_FILE_NAME)

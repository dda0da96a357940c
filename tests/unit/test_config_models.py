"""Unit tests for pydantic config models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from kubeprov.config.models import (
    CloudProvider,
    ClusterConfig,
    MachineControllerConfig,
    ProvisionerConfig,
    TerraformConfig,
)


class TestProvisionerConfig:
    def test_minimal(self):
        cfg = ProvisionerConfig(provider="hetzner", test_path="/tmp/run")
        assert cfg.provider == CloudProvider.HETZNER
        assert cfg.test_path == Path("/tmp/run")
        assert cfg.identifier == ""
        assert cfg.timeout_seconds is None
        assert cfg.terraform == TerraformConfig()

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            ProvisionerConfig(provider="gcp", test_path="/tmp/run")

    def test_extra_field_rejected(self):
        with pytest.raises(ValidationError):
            ProvisionerConfig(provider="aws", test_path="/tmp/run", region="eu-west-1")

    @pytest.mark.parametrize("identifier", ["1234", "pr-17/build.3", "nightly_run"])
    def test_valid_identifiers(self, identifier: str):
        cfg = ProvisionerConfig(provider="aws", test_path="/tmp", identifier=identifier)
        assert cfg.identifier == identifier

    @pytest.mark.parametrize("identifier", ["-leading", "has space", "semi;colon"])
    def test_invalid_identifiers(self, identifier: str):
        with pytest.raises(ValidationError, match="identifier"):
            ProvisionerConfig(provider="aws", test_path="/tmp", identifier=identifier)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            ProvisionerConfig(provider="aws", test_path="/tmp", timeout_seconds=0)


class TestTerraformConfig:
    def test_defaults(self):
        cfg = TerraformConfig()
        assert cfg.binary == "terraform"
        assert cfg.state_file == "terraform.tfstate"

    def test_empty_state_file_rejected(self):
        with pytest.raises(ValidationError):
            TerraformConfig(state_file="")


class TestMachineControllerConfig:
    def test_defaults(self):
        cfg = MachineControllerConfig()
        assert cfg.deploy is True
        assert cfg.namespace == "kube-system"
        assert cfg.delete_poll_interval_seconds == 5.0
        assert cfg.delete_timeout_seconds == 180.0
        assert cfg.settle_delay_seconds == 10.0

    def test_interval_longer_than_timeout_rejected(self):
        with pytest.raises(ValidationError, match="must not exceed"):
            MachineControllerConfig(
                delete_poll_interval_seconds=60, delete_timeout_seconds=30
            )

    def test_zero_interval_rejected(self):
        with pytest.raises(ValidationError):
            MachineControllerConfig(delete_poll_interval_seconds=0)


class TestClusterConfig:
    def test_defaults(self):
        cfg = ClusterConfig(name="e2e")
        assert cfg.kubeconfig is None
        assert cfg.machine_controller == MachineControllerConfig()

    def test_extra_field_rejected(self):
        with pytest.raises(ValidationError):
            ClusterConfig(name="e2e", workers=3)

"""Protocol conformance tests — verify all implementations satisfy their protocols."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from fakes import FakeClusterClient, FakeRunner

from kubeprov.cluster.client import ClusterClient
from kubeprov.cluster.kubectl import KubectlDeployer, RolloutProbe
from kubeprov.cluster.kubernetes import KubernetesClusterClient
from kubeprov.execution.runner import CommandRunner, SubprocessRunner
from kubeprov.machinecontroller.context import Deployer, ReadinessProbe
from kubeprov.provisioning.base import Provisioner
from kubeprov.provisioning.providers import get_provider
from kubeprov.provisioning.provisioner import TerraformProvisioner


class TestProtocolConformance:
    def test_terraform_provisioner_satisfies_provisioner(self):
        provisioner = TerraformProvisioner(get_provider("aws"), Path("/tmp/run"))
        assert isinstance(provisioner, Provisioner)

    def test_subprocess_runner_satisfies_command_runner(self):
        assert isinstance(SubprocessRunner(), CommandRunner)

    def test_kubernetes_client_satisfies_cluster_client(self):
        with patch("kubeprov.cluster.kubernetes.CustomObjectsApi"):
            client = KubernetesClusterClient(MagicMock())
        assert isinstance(client, ClusterClient)

    def test_kubectl_deployer_satisfies_deployer(self):
        deployer = KubectlDeployer(
            SubprocessRunner(), controller_manifest=None, webhook_manifest=None
        )
        assert isinstance(deployer, Deployer)

    def test_rollout_probe_satisfies_readiness_probe(self):
        probe = RolloutProbe(SubprocessRunner(), namespace="kube-system", deployment="mc")
        assert isinstance(probe, ReadinessProbe)

    # -- test doubles ----------------------------------------------------------
    def test_fakes_satisfy_protocols(self):
        assert isinstance(FakeRunner(), CommandRunner)
        assert isinstance(FakeClusterClient(), ClusterClient)

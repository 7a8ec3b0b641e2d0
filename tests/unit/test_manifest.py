"""Unit tests for the deployment manifest."""

import json
import re
from pathlib import Path

from contract_deployer.manifest import DeploymentManifest
from contract_deployer.types import CompiledArtifact, MaterializedComponent

ABI = [{"type": "function", "name": "owner", "inputs": [], "outputs": [{"type": "address"}]}]
ADDRESS = "0x" + "56" * 20


def record(manifest: DeploymentManifest, name: str = "ProxyFeePool", source: str = "Proxy"):
    component = MaterializedComponent(
        name=name, address=ADDRESS, abi=ABI, source=source, deployed=True, txn="0xfeed"
    )
    manifest.record_deployment(
        component,
        CompiledArtifact(abi=ABI, bytecode="0x6080"),
        "0x6080linked",
        network="local",
        link=f"https://explorer.test/address/{ADDRESS}",
    )


class TestManifestLoad:
    """Test loading the manifest."""

    def test_creates_empty_manifest(self, tmp_path: Path):
        """Test that a missing manifest is created with empty maps."""
        path = tmp_path / "deployment.json"

        manifest = DeploymentManifest.load(path)

        assert manifest.targets == {}
        assert manifest.sources == {}
        assert json.loads(path.read_text()) == {"targets": {}, "sources": {}}

    def test_missing_sections_defaulted(self, tmp_path: Path):
        """Test that a manifest without a sources map still loads."""
        path = tmp_path / "deployment.json"
        path.write_text(json.dumps({"targets": {}}))

        assert DeploymentManifest.load(path).sources == {}


class TestManifestLookups:
    """Test address and ABI lookups."""

    def test_unknown_component(self, manifest: DeploymentManifest):
        """Test that unknown components have no address or ABI."""
        assert manifest.address_of("Synthetix") is None
        assert manifest.abi_of("Synthetix") is None

    def test_empty_address_treated_as_missing(self, manifest: DeploymentManifest):
        """Test that a target with an empty address is treated as absent."""
        manifest.targets["Synthetix"] = {"name": "Synthetix", "address": ""}
        assert manifest.address_of("Synthetix") is None

    def test_abi_resolved_through_source(self, manifest: DeploymentManifest):
        """Test that the ABI is looked up via the target's source entry."""
        record(manifest)
        assert manifest.abi_of("ProxyFeePool") == ABI


class TestRecordDeployment:
    """Test recording deployments."""

    def test_writes_target_and_source(self, manifest: DeploymentManifest):
        """Test the recorded target and source entries."""
        record(manifest)

        target = manifest.targets["ProxyFeePool"]
        assert target["name"] == "ProxyFeePool"
        assert target["address"] == ADDRESS
        assert target["source"] == "Proxy"
        assert target["link"] == f"https://explorer.test/address/{ADDRESS}"
        assert target["txn"] == "0xfeed"
        assert target["network"] == "local"
        assert re.match(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} UTC$", target["timestamp"])
        assert manifest.sources["Proxy"] == {"bytecode": "0x6080linked", "abi": ABI}

    def test_persisted_before_returning(self, manifest: DeploymentManifest):
        """Test that the deployment is on disk as soon as it's recorded."""
        record(manifest)

        reloaded = DeploymentManifest.load(manifest.path)
        assert reloaded.address_of("ProxyFeePool") == ADDRESS

    def test_shared_source_recorded_once(self, manifest: DeploymentManifest):
        """Test that two components from one source share a sources entry."""
        record(manifest, "ProxyFeePool")
        record(manifest, "ProxySynthetix")

        assert set(manifest.targets) == {"ProxyFeePool", "ProxySynthetix"}
        assert list(manifest.sources) == ["Proxy"]

    def test_other_entries_untouched(self, manifest: DeploymentManifest):
        """Test that recording one component keeps existing entries."""
        manifest.targets["Synthetix"] = {"name": "Synthetix", "address": "0x" + "78" * 20}
        record(manifest)

        reloaded = DeploymentManifest.load(manifest.path)
        assert reloaded.address_of("Synthetix") == "0x" + "78" * 20

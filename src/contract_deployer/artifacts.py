"""Compiled artifact loading for contract-deployer library."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .exceptions import ArtifactSourceError
from .types import CompiledArtifact


class ArtifactFormat(Enum):
    """
    Compiled artifact file formats.

    - SOLC: one contract from solc standard-json output ({abi, evm: {bytecode}})
    - HARDHAT: hardhat artifact ({abi, bytecode, linkReferences})
    """

    SOLC = "solc"
    HARDHAT = "hardhat"


def detect_artifact_format(data: Dict[str, Any]) -> Optional[ArtifactFormat]:
    """
    Detect the format of a parsed artifact file.

    Returns:
        ArtifactFormat, or None if the file is not a compiled contract
    """
    if "abi" not in data:
        return None
    if isinstance(data.get("evm"), dict) and "bytecode" in data["evm"]:
        return ArtifactFormat.SOLC
    if isinstance(data.get("bytecode"), str):
        return ArtifactFormat.HARDHAT
    return None


def parse_artifact(file_path: Path) -> Optional[CompiledArtifact]:
    """
    Parse a compiled artifact JSON file.

    Args:
        file_path: Path to artifact JSON file

    Returns:
        CompiledArtifact, or None if the file is not a compiled contract
    """
    with open(file_path) as f:
        data = json.load(f)

    artifact_format = detect_artifact_format(data)
    if artifact_format == ArtifactFormat.SOLC:
        bytecode = data["evm"]["bytecode"]
        return CompiledArtifact(
            abi=data["abi"],
            bytecode=bytecode.get("object", ""),
            link_references=bytecode.get("linkReferences", {}),
        )
    elif artifact_format == ArtifactFormat.HARDHAT:
        return CompiledArtifact(
            abi=data["abi"],
            bytecode=data["bytecode"],
            link_references=data.get("linkReferences", {}),
        )

    return None


def load_compiled_artifacts(build_dir: Union[Path, str]) -> Dict[str, CompiledArtifact]:
    """
    Load every compiled artifact in a build folder.

    The source id of each artifact is its file stem (``Proxy.json`` -> ``Proxy``).
    JSON files that aren't compiled contracts (e.g. debug files) are ignored.

    Args:
        build_dir: Folder of artifact JSON files

    Returns:
        Dictionary mapping source id -> CompiledArtifact

    Raises:
        ArtifactSourceError: If the folder doesn't exist
    """
    build_path = Path(build_dir)
    if not build_path.is_dir():
        raise ArtifactSourceError(f"Compiled artifact folder not found at {build_path}")

    artifacts: Dict[str, CompiledArtifact] = {}
    for artifact_file in sorted(build_path.glob("*.json")):
        artifact = parse_artifact(artifact_file)
        if artifact is not None:
            artifacts[artifact_file.stem] = artifact

    return artifacts

"""Library linking for contract-deployer library."""

import logging
import re
from typing import Dict, List, Mapping, Optional

from eth_utils import keccak

logger = logging.getLogger(__name__)

PLACEHOLDER_LENGTH = 40

_HEX_ADDRESS = re.compile(r"^[0-9a-fA-F]{40}$")


def normalize_library_address(address: str) -> str:
    """
    Convert a library address to the 40 hex characters written into bytecode.

    Accepts 0x-prefixed addresses and Tron hex addresses (41-prefixed).

    Raises:
        ValueError: If the address is not 20 bytes of hex
    """
    body = address[2:] if address.lower().startswith("0x") else address
    if len(body) == 42 and body.startswith("41"):
        body = body[2:]
    if not _HEX_ADDRESS.match(body):
        raise ValueError(f"Invalid library address: {address}")
    return body.lower()


def legacy_placeholder(library: str) -> str:
    """solc < 0.5 placeholder: __<name>__ padded with underscores to 40 chars."""
    return ("__" + library[:36]).ljust(PLACEHOLDER_LENGTH, "_")


def hashed_placeholder(library: str) -> str:
    """solc >= 0.5 placeholder: __$<first 34 hex chars of keccak256(name)>$__."""
    return "__$" + keccak(text=library).hex()[:34] + "$__"


def _candidate_names(library: str, source: Optional[str]) -> List[str]:
    if ":" in library:
        return [library]
    names = [library, f"{library}.sol:{library}"]
    if source:
        names.append(f"{source}.sol:{library}")
    return names


def link_bytecode(
    bytecode: str,
    libraries: Mapping[str, str],
    link_references: Optional[Dict[str, Dict[str, List[Dict[str, int]]]]] = None,
    source: Optional[str] = None,
) -> str:
    """
    Replace library placeholders in bytecode with deployed library addresses.

    Every library is linked speculatively: a library whose placeholder does
    not occur in the bytecode leaves it unchanged.

    Args:
        bytecode: Hex bytecode, with or without 0x prefix
        libraries: Library name -> deployed address. Names may be bare
                   ("SafeDecimalMath") or fully qualified ("Math.sol:SafeDecimalMath")
        link_references: Placeholder offsets as emitted by solc/hardhat
                         ({file: {library: [{start, length}]}}), used when present
        source: Source id of the component being linked, tried as the
                library's file name when matching textual placeholders

    Returns:
        Linked bytecode, keeping the input's 0x prefix (or lack of one)
    """
    prefix = "0x" if bytecode.startswith("0x") else ""
    body = bytecode[len(prefix):]

    for file_name, refs in (link_references or {}).items():
        for library, positions in refs.items():
            address = libraries.get(f"{file_name}:{library}") or libraries.get(library)
            if address is None:
                continue
            hex_address = normalize_library_address(address)
            for position in positions:
                start = position["start"] * 2
                end = start + position["length"] * 2
                body = body[:start] + hex_address + body[end:]
            logger.debug("Linked %s into %d offset(s)", library, len(positions))

    for library, address in libraries.items():
        hex_address = normalize_library_address(address)
        for name in _candidate_names(library, source):
            for placeholder in (legacy_placeholder(name), hashed_placeholder(name)):
                if placeholder in body:
                    body = body.replace(placeholder, hex_address)
                    logger.debug("Linked %s via placeholder %s", library, placeholder)

    return prefix + body

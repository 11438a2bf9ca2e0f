"""
Contract Artifacts
Named-contract lookup over compiled Hardhat artifacts
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from .exceptions import ArtifactNotFoundError, InvalidArtifactError

_LINK_PLACEHOLDER_RE = re.compile(r"__\$[0-9a-fA-F]{34}\$__")
_HEX_RE = re.compile(r"^(0x)?[0-9a-fA-F]*$")


@dataclass(frozen=True)
class ContractArtifact:
    """Creation bytecode and ABI for one compiled contract."""

    name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    source_name: Optional[str] = None

    @property
    def fully_qualified_name(self) -> str:
        if self.source_name:
            return f"{self.source_name}:{self.name}"
        return self.name

    def bind(self, identity):
        """
        Create a contract factory on the identity's connection

        Args:
            identity: SigningIdentity whose Web3 instance will deploy the contract

        Returns:
            Web3 contract class ready for constructor().build_transaction()
        """
        return identity.w3.eth.contract(abi=self.abi, bytecode=self.bytecode)


def parse_artifact(contract_json: Dict[str, Any], path: Optional[Path] = None) -> ContractArtifact:
    """
    Validate a loaded artifact and turn it into a ContractArtifact

    Args:
        contract_json: Parsed artifact JSON
        path: Where it was read from, for error messages

    Returns:
        ContractArtifact
    """
    where = str(path) if path else "artifact"

    try:
        abi = contract_json['abi']
        bytecode = contract_json['bytecode']
    except KeyError as e:
        raise InvalidArtifactError(f"{where} is missing {e.args[0]!r}") from e

    # Foundry nests the hex string under "object"
    if isinstance(bytecode, dict):
        bytecode = bytecode.get('object', '')

    if not isinstance(abi, list) or not isinstance(bytecode, str):
        raise InvalidArtifactError(f"{where} has a malformed abi or bytecode field")

    if _LINK_PLACEHOLDER_RE.search(bytecode) or contract_json.get('linkReferences'):
        raise InvalidArtifactError(f"{where} has unlinked library references")

    if not _HEX_RE.match(bytecode):
        raise InvalidArtifactError(f"{where} bytecode is not hex")

    if not bytecode.startswith('0x'):
        bytecode = '0x' + bytecode

    if bytecode == '0x':
        raise InvalidArtifactError(
            f"{where} has no bytecode (interface or abstract contract cannot be deployed)"
        )

    name = contract_json.get('contractName') or (path.stem if path else "")
    return ContractArtifact(
        name=name,
        abi=abi,
        bytecode=bytecode,
        source_name=contract_json.get('sourceName'),
    )


class ArtifactStore:
    """
    Looks up compiled contracts by name in an artifacts directory

    Hardhat writes one JSON file per contract at
    artifacts/<sourceName>/<ContractName>.json next to a .dbg.json file.
    """

    def __init__(self, artifacts_dir: str = "artifacts"):
        """
        Initialize Artifact Store

        Args:
            artifacts_dir: Root of the compiler's artifact tree
        """
        self.artifacts_dir = Path(artifacts_dir)

    def get(self, name: str) -> ContractArtifact:
        """
        Load the artifact for a contract

        Args:
            name: Contract name ("WithdrawalFinalizer") or fully qualified
                name ("contracts/WithdrawalFinalizer.sol:WithdrawalFinalizer")

        Returns:
            ContractArtifact
        """
        path = self._find(name)

        with open(path, 'r') as f:
            try:
                contract_json = json.load(f)
            except json.JSONDecodeError as e:
                raise InvalidArtifactError(f"{path} is not valid JSON: {e}") from e

        artifact = parse_artifact(contract_json, path)
        logger.debug(f"Loaded artifact {artifact.fully_qualified_name} from {path}")
        return artifact

    def _find(self, name: str) -> Path:
        if not self.artifacts_dir.is_dir():
            raise ArtifactNotFoundError(
                f"Artifacts directory not found: {self.artifacts_dir} (compile the contracts first)"
            )

        if ':' in name:
            source_name, contract_name = name.rsplit(':', 1)
            path = self.artifacts_dir / source_name / f"{contract_name}.json"
            if not path.is_file():
                raise ArtifactNotFoundError(f"Artifact not found: {name}")
            return path

        matches = sorted(
            p for p in self.artifacts_dir.rglob(f"{name}.json")
            if 'build-info' not in p.parts
        )

        if not matches:
            raise ArtifactNotFoundError(
                f"No artifact for contract {name!r} under {self.artifacts_dir}"
            )
        if len(matches) > 1:
            candidates = ", ".join(str(p.relative_to(self.artifacts_dir)) for p in matches)
            raise InvalidArtifactError(
                f"Contract name {name!r} is ambiguous, use a fully qualified name: {candidates}"
            )

        return matches[0]

"""Shared pytest fixtures for contract-deployer tests."""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from contract_deployer.chain import ChainClient
from contract_deployer.exceptions import ChainCallError
from contract_deployer.manifest import DeploymentManifest
from contract_deployer.operations import find_function
from contract_deployer.owner_actions import OwnerActionQueue
from contract_deployer.types import CompiledArtifact, DeployResult

ACCOUNT_ADDRESS = "0x1111111111111111111111111111111111111111"
OTHER_ADDRESS = "0x2222222222222222222222222222222222222222"
EXPLORER_URL = "https://explorer.test"


def _hashable(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(_hashable(v) for v in value)
    if isinstance(value, str):
        return value.lower()
    return value


def _state_key(method: str, args: Sequence[Any]) -> tuple:
    return (method, _hashable(args))


def _set_delegates(chain: "FakeChain", contract: Dict[str, Any], args: Sequence[Any]) -> None:
    contract["state"][_state_key("delegates", ())] = args[0]


def _add_synth(chain: "FakeChain", contract: Dict[str, Any], args: Sequence[Any]) -> None:
    synth = chain.contracts[args[0].lower()]
    key = synth["constructor"]["currencyKey"]
    contract["state"][_state_key("synths", (key,))] = args[0]


def _add_aggregator(chain: "FakeChain", contract: Dict[str, Any], args: Sequence[Any]) -> None:
    contract["state"][_state_key("aggregators", (args[0],))] = args[1]


def _import_fee_period(chain: "FakeChain", contract: Dict[str, Any], args: Sequence[Any]) -> None:
    contract["state"][_state_key("recentFeePeriods", (args[0],))] = tuple(args[1:])


class FakeChain(ChainClient):
    """
    In-memory chain.

    Named constructor inputs become public state (``owner`` sets the owner,
    otherwise the deployer owns the contract). ``setX(*keys, value)`` writes
    the value read back by ``x(*keys)``, or by each attribute ``aliases`` lists
    for the setter; other writes need an entry in ``effects``.
    """

    def __init__(self):
        self.contracts: Dict[str, Dict[str, Any]] = {}
        self.deploys: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []
        self.sends: List[tuple] = []
        self.fail_on_deploy: Optional[int] = None
        self.effects: Dict[str, Callable] = {
            "setDelegateApprovals": _set_delegates,
            "addSynth": _add_synth,
            "addAggregator": _add_aggregator,
            "importFeePeriod": _import_fee_period,
        }
        self.aliases: Dict[str, Sequence[str]] = {}
        self._counter = 0

    def deploy(self, abi, bytecode, args, sender) -> DeployResult:
        if self.fail_on_deploy is not None and len(self.deploys) + 1 == self.fail_on_deploy:
            raise ChainCallError("Deployment transaction reverted")

        constructor = next((item for item in abi if item.get("type") == "constructor"), None)
        names = [item["name"] for item in constructor["inputs"]] if constructor else []
        if len(names) != len(args):
            raise ChainCallError(f"Constructor takes {len(names)} argument(s), {len(args)} given")

        self._counter += 1
        address = "0x%040x" % (0x1000 + self._counter)
        kwargs = dict(zip(names, args))
        state = {_state_key(name, ()): value for name, value in kwargs.items()}
        self.contracts[address] = {
            "owner": kwargs.get("owner", sender),
            "constructor": kwargs,
            "state": state,
            "bytecode": bytecode,
        }
        txn = "0x%064x" % self._counter
        self.deploys.append({"address": address, "bytecode": bytecode, "args": list(args)})
        return DeployResult(address=address, txn=txn)

    def call(self, address, abi, method, args):
        find_function(abi, method, len(args))
        self.calls.append((address, method, tuple(args)))
        contract = self.contracts[address.lower()]
        if method == "owner":
            return contract["owner"]
        return contract["state"].get(_state_key(method, args))

    def send(self, address, abi, method, args, sender):
        find_function(abi, method, len(args))
        contract = self.contracts[address.lower()]
        if not self.address_equals(contract["owner"], sender):
            raise ChainCallError(f"{method} reverted: only the contract owner may perform this")

        self.sends.append((address, method, tuple(args)))
        effect = self.effects.get(method)
        if effect is not None:
            effect(self, contract, args)
        elif method.startswith("set"):
            attributes = self.aliases.get(method) or (method[3].lower() + method[4:],)
            for attribute in attributes:
                contract["state"][_state_key(attribute, args[:-1])] = args[-1]
        return "0x%064x" % (0x10000 + len(self.sends))

    def set_owner(self, address: str, owner: str) -> None:
        self.contracts[address.lower()]["owner"] = owner

    def read(self, address: str, method: str, *args: Any) -> Any:
        return self.contracts[address.lower()]["state"].get(_state_key(method, args))

    def write(self, address: str, method: str, *args: Any) -> None:
        """Set what ``method(*args[:-1])`` returns to ``args[-1]``, bypassing ownership."""
        state = self.contracts[address.lower()]["state"]
        state[_state_key(method, args[:-1])] = args[-1]


def build_abi(functions: Dict[str, int], constructor: Sequence[str] = ()) -> List[Dict[str, Any]]:
    """ABI with one function per name -> arity, plus ``owner()`` and a constructor."""
    abi = [
        {
            "type": "constructor",
            "inputs": [{"name": name, "type": "uint256"} for name in constructor],
        }
    ]
    for name, arity in {"owner": 0, **functions}.items():
        abi.append(
            {
                "type": "function",
                "name": name,
                "inputs": [{"name": f"arg{i}", "type": "uint256"} for i in range(arity)],
                "outputs": [{"name": "", "type": "uint256"}],
            }
        )
    return abi


@pytest.fixture
def account() -> str:
    """Return the deploying account."""
    return ACCOUNT_ADDRESS


@pytest.fixture
def chain() -> FakeChain:
    """Return a fresh in-memory chain."""
    return FakeChain()


@pytest.fixture
def make_artifact() -> Callable[..., CompiledArtifact]:
    """Return a factory for compiled artifacts with generated ABIs."""

    def factory(
        functions: Optional[Dict[str, int]] = None,
        constructor: Sequence[str] = (),
        bytecode: str = "0x6080604052",
    ) -> CompiledArtifact:
        return CompiledArtifact(abi=build_abi(functions or {}, constructor), bytecode=bytecode)

    return factory


@pytest.fixture
def deployment_dir(tmp_path: Path) -> Path:
    """Return a temporary deployment folder."""
    return tmp_path / "deployments" / "local"


@pytest.fixture
def manifest(deployment_dir: Path) -> DeploymentManifest:
    """Return an empty manifest backed by a temporary deployment.json."""
    return DeploymentManifest.load(deployment_dir / "deployment.json")


@pytest.fixture
def owner_actions(deployment_dir: Path) -> OwnerActionQueue:
    """Return an empty owner action queue backed by a temporary owner-actions.json."""
    return OwnerActionQueue.load(deployment_dir / "owner-actions.json", EXPLORER_URL)

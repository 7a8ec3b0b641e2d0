"""Chain client interface and JSON-RPC implementation for contract-deployer library."""

import logging
import time
from typing import Any, Dict, List, Optional, Sequence

import requests
from eth_abi import decode, encode
from eth_abi.exceptions import EncodingError
from eth_utils import function_abi_to_4byte_selector, is_same_address, to_checksum_address
from eth_utils.abi import collapse_if_tuple

from .constants import RECEIPT_POLL_INTERVAL, RPC_TIMEOUT
from .exceptions import ChainCallError
from .operations import find_function
from .types import DeployResult

logger = logging.getLogger(__name__)


class ChainClient:
    """
    Narrow interface the engine uses to reach the chain.

    All methods block until the node has answered; state-changing methods
    block until the transaction is mined.
    """

    def deploy(
        self, abi: List[Dict[str, Any]], bytecode: str, args: Sequence[Any], sender: str
    ) -> DeployResult:
        raise NotImplementedError

    def call(
        self, address: str, abi: List[Dict[str, Any]], method: str, args: Sequence[Any]
    ) -> Any:
        raise NotImplementedError

    def send(
        self,
        address: str,
        abi: List[Dict[str, Any]],
        method: str,
        args: Sequence[Any],
        sender: str,
    ) -> str:
        raise NotImplementedError

    def address_equals(self, a: Optional[str], b: Optional[str]) -> bool:
        if not a or not b:
            return False
        try:
            return is_same_address(a, b)
        except ValueError:
            return a == b


def _input_types(entry: Dict[str, Any]) -> List[str]:
    return [collapse_if_tuple(item) for item in entry.get("inputs", [])]


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def _encode_args(types: List[str], args: Sequence[Any], context: str) -> str:
    try:
        return encode(types, list(args)).hex()
    except EncodingError as e:
        raise ChainCallError(f"Cannot encode arguments for {context}: {e}") from e


class JsonRpcChainClient(ChainClient):
    """
    ChainClient speaking Ethereum JSON-RPC over HTTP.

    Transactions are submitted with eth_sendTransaction, so the sender must be
    an account managed by the node (or a signing proxy in front of it).
    """

    def __init__(
        self,
        rpc_url: str,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
        timeout: int = RPC_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.rpc_url = rpc_url
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._session = session or requests.Session()
        self._request_id = 0

    def _rpc(self, method: str, params: List[Any]) -> Any:
        """
        Issue one JSON-RPC request.

        Raises:
            ChainCallError: On network errors, HTTP errors or RPC errors
        """
        self._request_id += 1
        try:
            response = self._session.post(
                self.rpc_url,
                json={
                    "jsonrpc": "2.0",
                    "method": method,
                    "params": params,
                    "id": self._request_id,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ChainCallError(f"Network error during {method}: {e}") from e

        if response.status_code != 200:
            raise ChainCallError(f"{method} failed with status {response.status_code}")

        try:
            result = response.json()
        except ValueError as e:
            raise ChainCallError(f"{method} returned a malformed response: {e}") from e

        if "error" in result:
            raise ChainCallError(f"{method} RPC error: {result['error']}")

        return result.get("result")

    def _wait_for_receipt(self, txn: str) -> Dict[str, Any]:
        while True:
            receipt = self._rpc("eth_getTransactionReceipt", [txn])
            if receipt is not None:
                break
            time.sleep(self.poll_interval)

        if int(receipt.get("status", "0x1"), 16) != 1:
            raise ChainCallError(f"Transaction {txn} reverted")
        return receipt

    def deploy(
        self, abi: List[Dict[str, Any]], bytecode: str, args: Sequence[Any], sender: str
    ) -> DeployResult:
        constructor = next((item for item in abi if item.get("type") == "constructor"), None)
        types = _input_types(constructor) if constructor else []
        if len(types) != len(args):
            raise ChainCallError(
                f"Constructor takes {len(types)} argument(s), {len(args)} given"
            )

        data = "0x" + _strip_0x(bytecode) + _encode_args(types, args, "constructor")
        txn = self._rpc("eth_sendTransaction", [{"from": sender, "data": data}])
        receipt = self._wait_for_receipt(txn)

        address = receipt.get("contractAddress")
        if not address:
            raise ChainCallError(f"Transaction {txn} did not create a contract")
        return DeployResult(address=to_checksum_address(address), txn=txn)

    def _calldata(self, abi: List[Dict[str, Any]], method: str, args: Sequence[Any]) -> tuple:
        entry = find_function(abi, method, len(args))
        selector = function_abi_to_4byte_selector(entry)
        data = "0x" + selector.hex() + _encode_args(_input_types(entry), args, f"{method}()")
        return entry, data

    def call(
        self, address: str, abi: List[Dict[str, Any]], method: str, args: Sequence[Any]
    ) -> Any:
        entry, data = self._calldata(abi, method, args)
        raw = self._rpc("eth_call", [{"to": address, "data": data}, "latest"])

        output_types = [collapse_if_tuple(item) for item in entry.get("outputs", [])]
        if not output_types:
            return None
        if not raw or raw == "0x":
            raise ChainCallError(f"{method}() on {address} returned no data")

        decoded = decode(output_types, bytes.fromhex(_strip_0x(raw)))
        if len(decoded) == 1:
            return decoded[0]
        return decoded

    def send(
        self,
        address: str,
        abi: List[Dict[str, Any]],
        method: str,
        args: Sequence[Any],
        sender: str,
    ) -> str:
        _, data = self._calldata(abi, method, args)
        txn = self._rpc("eth_sendTransaction", [{"from": sender, "to": address, "data": data}])
        self._wait_for_receipt(txn)
        logger.debug("%s on %s mined in %s", method, address, txn)
        return txn

"""JSON-RPC transport to the vehicle record contract via web3.py."""
import logging
from typing import Any, Optional, Protocol

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from vinledger.config import (
    CONTRACT_ADDRESS,
    RPC_TIMEOUT_SEC,
    RPC_URL,
    SENDER_ADDRESS,
)
from vinledger.core.contract_abi import CONTRACT_ABI
from vinledger.core.errors import LedgerRevert, LedgerTransportError
from vinledger.models.operation import TransactionReceipt

logger = logging.getLogger(__name__)

# web3 v6 raises plain ValueError for node RPC errors; connection failures surface as OSError
_TRANSPORT_ERRORS = (Web3Exception, ValueError, OSError)


class LedgerTransport(Protocol):
    """What LedgerClient needs from the wire. Raises LedgerRevert / LedgerTransportError."""

    def call(self, function_name: str, *args: Any) -> Any: ...

    def transact(self, function_name: str, *args: Any) -> str: ...

    def wait_for_receipt(self, tx_hash: str, timeout: float, poll_latency: float) -> TransactionReceipt: ...

    @property
    def account(self) -> Optional[str]: ...


class Web3LedgerTransport:
    """Contract calls over an HTTP JSON-RPC node; transactions are signed by the node."""

    def __init__(
        self,
        rpc_url: str = RPC_URL,
        contract_address: str = CONTRACT_ADDRESS,
        sender: str = SENDER_ADDRESS,
        request_timeout: float = RPC_TIMEOUT_SEC,
    ) -> None:
        self._w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout}))
        self._contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=CONTRACT_ABI,
        )
        self._sender = Web3.to_checksum_address(sender) if sender else None
        logger.info("Ledger transport: %s contract=%s", rpc_url, contract_address)

    @property
    def account(self) -> Optional[str]:
        """Address transactions are sent from, or None if the node has no accounts."""
        if self._sender is not None:
            return self._sender
        try:
            accounts = self._w3.eth.accounts
        except _TRANSPORT_ERRORS as e:
            logger.warning("Ledger transport: eth_accounts failed: %s", e)
            return None
        return accounts[0] if accounts else None

    def call(self, function_name: str, *args: Any) -> Any:
        fn = getattr(self._contract.functions, function_name)(*args)
        try:
            return fn.call()
        except ContractLogicError as e:
            raise LedgerRevert(str(e)) from e
        except _TRANSPORT_ERRORS as e:
            raise LedgerTransportError(f"{function_name}: {e}") from e

    def transact(self, function_name: str, *args: Any) -> str:
        """Send a state-changing call; returns the transaction hash as 0x-hex."""
        fn = getattr(self._contract.functions, function_name)(*args)
        sender = self.account
        if sender is None:
            raise LedgerTransportError("no sender account available on the node")
        try:
            tx_hash = fn.transact({"from": sender})
        except ContractLogicError as e:
            raise LedgerRevert(str(e)) from e
        except _TRANSPORT_ERRORS as e:
            raise LedgerTransportError(f"{function_name}: {e}") from e
        return Web3.to_hex(tx_hash)

    def wait_for_receipt(self, tx_hash: str, timeout: float, poll_latency: float) -> TransactionReceipt:
        try:
            receipt = self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=timeout, poll_latency=poll_latency
            )
        except TimeExhausted as e:
            raise LedgerTransportError(f"no receipt for {tx_hash} after {timeout:.0f}s") from e
        except _TRANSPORT_ERRORS as e:
            raise LedgerTransportError(f"receipt for {tx_hash}: {e}") from e
        return TransactionReceipt(
            tx_hash=tx_hash,
            block_number=int(receipt.get("blockNumber") or 0),
            succeeded=receipt.get("status") == 1,
        )

"""
Ledger access for the DCA executor.

LedgerClient is the seam between the execution core and the chain. The
production implementation talks Sui JSON-RPC over HTTP; transaction encoding
and signing are delegated to a pluggable TransactionSigner so the core never
handles key material.
"""

import importlib
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from core.exceptions import AccountReadError, LedgerError
from core.models import SwapPlan

logger = logging.getLogger(__name__)

RPC_URLS = {
    "mainnet": "https://fullnode.mainnet.sui.io:443",
    "testnet": "https://fullnode.testnet.sui.io:443",
    "devnet": "https://fullnode.devnet.sui.io:443",
}


class TransactionSigner(ABC):
    """Turns a swap plan into signed transaction bytes for one address."""

    @property
    @abstractmethod
    def address(self) -> str:
        ...

    @abstractmethod
    def encode(self, plan: SwapPlan) -> str:
        """Return base64 transaction bytes for the plan, sender = self.address."""

    @abstractmethod
    def sign(self, tx_bytes: str) -> str:
        """Return the serialized signature over tx_bytes."""


class LedgerClient(ABC):
    @property
    @abstractmethod
    def signer_address(self) -> Optional[str]:
        ...

    @abstractmethod
    def read_object(self, object_id: str) -> Dict[str, Any]:
        """Return the Move struct fields of an object or raise AccountReadError."""

    @abstractmethod
    def simulate(self, plan: SwapPlan) -> Dict[str, Any]:
        """Dry-run the plan and return an effects summary. Never mutates state."""

    @abstractmethod
    def sign_and_submit(self, plan: SwapPlan) -> Dict[str, Any]:
        """Sign, submit and wait for effects. Returns {"digest", "effects"}."""


def load_signer(factory_path: Optional[str], **kwargs: Any) -> Optional[TransactionSigner]:
    """
    Build a signer from a "package.module:callable" factory path.

    Returns None when no factory is configured; the executor then runs
    read-only and every ready account fails the delegatee check.
    """
    if not factory_path:
        logger.warning("No signer configured - running in read-only mode")
        return None

    module_name, sep, attr = factory_path.partition(":")
    if not sep or not attr:
        raise ValueError(f"Invalid signer factory {factory_path!r}; expected 'module:callable'")

    factory = getattr(importlib.import_module(module_name), attr)
    signer = factory(**kwargs)
    if not isinstance(signer, TransactionSigner):
        raise TypeError(f"Signer factory {factory_path} returned {type(signer).__name__}, not a TransactionSigner")
    logger.info("Signer loaded from %s (address=%s)", factory_path, signer.address)
    return signer


class SuiRpcClient(LedgerClient):
    """Sui fullnode JSON-RPC client."""

    def __init__(self, rpc_url: str, timeout: float = 30.0, signer: Optional[TransactionSigner] = None):
        self.rpc_url = rpc_url
        self.timeout = float(timeout)
        self._signer = signer
        self._ids = itertools.count(1)

    @classmethod
    def for_network(cls, network: str, rpc_url: Optional[str] = None, **kwargs: Any) -> "SuiRpcClient":
        url = rpc_url or RPC_URLS.get(network)
        if not url:
            raise ValueError(f"No RPC URL known for network {network!r}")
        return cls(url, **kwargs)

    @property
    def signer_address(self) -> Optional[str]:
        return self._signer.address if self._signer else None

    def _call(self, method: str, params: list) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = requests.post(
                self.rpc_url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            raise LedgerError(method, str(e), original=e) from e
        except ValueError as e:
            raise LedgerError(method, f"invalid JSON response: {e}", original=e) from e

        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise LedgerError(method, message or "unknown RPC error")
        if "result" not in body:
            raise LedgerError(method, "response has no result")
        return body["result"]

    def read_object(self, object_id: str) -> Dict[str, Any]:
        try:
            result = self._call("sui_getObject", [object_id, {"showContent": True, "showType": True}])
        except LedgerError as e:
            raise AccountReadError(object_id, AccountReadError.UNREACHABLE, e.detail, original=e) from e

        data = (result or {}).get("data") or {}
        content = data.get("content") or {}
        if content.get("dataType") != "moveObject":
            error = (result or {}).get("error") or {}
            detail = error.get("code") if isinstance(error, dict) else None
            raise AccountReadError(object_id, AccountReadError.NOT_FOUND, detail or "object not found or not a Move object")

        fields = content.get("fields")
        if not isinstance(fields, dict):
            raise AccountReadError(object_id, AccountReadError.DECODE, "object has no fields")
        return fields

    def _require_signer(self, method: str) -> TransactionSigner:
        if self._signer is None:
            raise LedgerError(method, "no signer configured")
        return self._signer

    def simulate(self, plan: SwapPlan) -> Dict[str, Any]:
        signer = self._require_signer("sui_dryRunTransactionBlock")
        tx_bytes = signer.encode(plan)
        result = self._call("sui_dryRunTransactionBlock", [tx_bytes])
        effects = (result or {}).get("effects") or {}
        summary = {
            "status": (effects.get("status") or {}).get("status", "unknown"),
            "error": (effects.get("status") or {}).get("error"),
            "gasUsed": effects.get("gasUsed"),
            "balanceChanges": (result or {}).get("balanceChanges", []),
        }
        logger.info("Dry run completed for %s: %s", plan.account_id, summary["status"])
        return summary

    def sign_and_submit(self, plan: SwapPlan) -> Dict[str, Any]:
        signer = self._require_signer("sui_executeTransactionBlock")
        tx_bytes = signer.encode(plan)
        signature = signer.sign(tx_bytes)
        result = self._call(
            "sui_executeTransactionBlock",
            [
                tx_bytes,
                [signature],
                {"showEffects": True, "showObjectChanges": True},
                "WaitForLocalExecution",
            ],
        )
        effects = (result or {}).get("effects") or {}
        digest = (result or {}).get("digest")
        logger.info(
            "Transaction executed for %s: digest=%s status=%s",
            plan.account_id,
            digest,
            (effects.get("status") or {}).get("status"),
        )
        return {"digest": digest, "effects": effects}


__all__ = ["LedgerClient", "TransactionSigner", "SuiRpcClient", "load_signer", "RPC_URLS"]

"""Minimal Sui fullnode JSON-RPC client used by the indexer."""
import itertools
import logging
import requests

from typing import Any, Dict, List, Optional
from typing_extensions import TypedDict


class SuiEventId(TypedDict):
    txDigest: str
    eventSeq: str


class SuiEvent(TypedDict, total=False):
    id: SuiEventId
    packageId: str
    transactionModule: str
    sender: str
    type: str
    parsedJson: Dict[str, Any]
    timestampMs: str


class EventPage(TypedDict):
    data: List[SuiEvent]
    nextCursor: Optional[SuiEventId]
    hasNextPage: bool


class SuiRpcError(Exception):
    """Raised when a fullnode call fails at the transport or JSON-RPC level"""

    def __init__(
        self, message: str, code: Optional[int] = None, method: Optional[str] = None
    ):
        self.code = code
        self.method = method
        super().__init__(
            f"RPC Error [{code}] in {method}: {message}" if code else message
        )


class SuiClient:
    def __init__(
        self,
        rpc_url: str,
        timeout_secs: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout_secs = timeout_secs
        self.session = session or requests.Session()
        self.session.headers["content-type"] = "application/json"
        self._request_ids = itertools.count(1)

    def call(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        try:
            response = self.session.post(
                self.rpc_url, json=payload, timeout=self.timeout_secs
            )
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            raise SuiRpcError(
                f"Request to {self.rpc_url} failed: {e}", method=method
            ) from e
        except ValueError as e:
            raise SuiRpcError("Response is not valid JSON", method=method) from e

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            raise SuiRpcError(
                error.get("message", "Unknown error"), error.get("code"), method
            )
        if not isinstance(body, dict) or "result" not in body:
            raise SuiRpcError("Response has no result", method=method)

        logging.debug(
            "[SuiClient] RPC call succeeded",
            extra={"method": method, "request_id": payload["id"]},
        )
        return body["result"]

    def query_events(
        self,
        move_event_type: str,
        cursor: Optional[SuiEventId] = None,
        limit: int = 50,
        descending_order: bool = False,
    ) -> EventPage:
        result = self.call(
            "suix_queryEvents",
            [{"MoveEventType": move_event_type}, cursor, limit, descending_order],
        )
        return {
            "data": result.get("data") or [],
            "nextCursor": result.get("nextCursor"),
            "hasNextPage": bool(result.get("hasNextPage")),
        }

    def get_object(
        self, object_id: str, show_content: bool = True, show_owner: bool = True
    ) -> dict:
        return self.call(
            "sui_getObject",
            [object_id, {"showContent": show_content, "showOwner": show_owner}],
        )

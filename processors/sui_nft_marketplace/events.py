"""Typed marketplace events built from raw Sui events.

`classify` never raises: anything it cannot turn into one of the four known
variants comes back as an `UnknownEvent` carrying the reason.
"""
from dataclasses import dataclass
from typing import Any, Dict, Union
from processors.sui_nft_marketplace.marketplace_enums import MarketplaceEventType
from utils.event_utils import get_event_type_short
from utils.general_utils import standardize_address
from utils.sui_client import SuiEvent


@dataclass(frozen=True)
class MarketplaceEventBase:
    tx_digest: str
    event_seq: str
    sender: str
    timestamp_ms: int
    # Fully qualified Move type, e.g. 0x...::marketplace::NFTListed
    type_str: str


@dataclass(frozen=True)
class MintedEvent(MarketplaceEventBase):
    nft_id: str
    creator: str
    name: str


@dataclass(frozen=True)
class ListedEvent(MarketplaceEventBase):
    nft_id: str
    seller: str
    price: int


@dataclass(frozen=True)
class PurchasedEvent(MarketplaceEventBase):
    nft_id: str
    buyer: str
    seller: str
    price: int


@dataclass(frozen=True)
class DelistedEvent(MarketplaceEventBase):
    nft_id: str
    seller: str


@dataclass(frozen=True)
class UnknownEvent(MarketplaceEventBase):
    reason: str


MarketplaceEvent = Union[
    MintedEvent, ListedEvent, PurchasedEvent, DelistedEvent, UnknownEvent
]


def get_event_envelope(event: SuiEvent) -> Dict[str, Any]:
    event_id = event.get("id") or {}
    try:
        timestamp_ms = int(event.get("timestampMs") or 0)
    except (TypeError, ValueError):
        timestamp_ms = 0
    return {
        "tx_digest": str(event_id.get("txDigest", "")),
        "event_seq": str(event_id.get("eventSeq", "0")),
        "sender": str(event.get("sender", "")),
        "timestamp_ms": timestamp_ms,
        "type_str": str(event.get("type", "")),
    }


def classify(event: SuiEvent) -> MarketplaceEvent:
    envelope = get_event_envelope(event)
    event_type = get_event_type_short(envelope["type_str"])
    data = event.get("parsedJson") or {}

    try:
        match event_type:
            case MarketplaceEventType.NFT_MINTED.value:
                return MintedEvent(
                    **envelope,
                    nft_id=standardize_address(data["nft_id"]),
                    creator=standardize_address(data["creator"]),
                    name=str(data["name"]),
                )
            case MarketplaceEventType.NFT_LISTED.value:
                return ListedEvent(
                    **envelope,
                    nft_id=standardize_address(data["nft_id"]),
                    seller=standardize_address(data["seller"]),
                    price=int(data["price"]),
                )
            case MarketplaceEventType.NFT_PURCHASED.value:
                return PurchasedEvent(
                    **envelope,
                    nft_id=standardize_address(data["nft_id"]),
                    buyer=standardize_address(data["buyer"]),
                    seller=standardize_address(data["seller"]),
                    price=int(data["price"]),
                )
            case MarketplaceEventType.NFT_DELISTED.value:
                return DelistedEvent(
                    **envelope,
                    nft_id=standardize_address(data["nft_id"]),
                    seller=standardize_address(data["seller"]),
                )
            case _:
                return UnknownEvent(
                    **envelope, reason=f"Unrecognized event type {event_type!r}"
                )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        return UnknownEvent(
            **envelope, reason=f"Malformed {event_type} payload: {e!r}"
        )

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import pytest
from sqlalchemy.orm import sessionmaker

from processors.sui_nft_marketplace import models as marketplace_models  # noqa: F401
from processors.sui_nft_marketplace.processor import SuiNFTMarketplaceProcessor
from processors.sui_nft_marketplace.store import MarketplaceStore
from utils.config import SuiNFTMarketplaceConfig
from utils.general_utils import standardize_address
from utils.models.general_models import Base
from utils.session import create_db_engine
from utils.sui_client import EventPage, SuiEvent, SuiEventId, SuiRpcError

PACKAGE_ID = standardize_address("0xabc")
MARKETPLACE_ID = standardize_address("0xdef")
CREATOR = standardize_address("0xc0ffee")
SELLER = CREATOR
BUYER = standardize_address("0xb0b")
NFT_X = standardize_address("0x1001")


class FakeSuiClient:
    """In-memory stand-in for the fullnode, keyed by Move event type."""

    def __init__(self) -> None:
        self.events: Dict[str, List[SuiEvent]] = {}
        self.objects: Dict[str, dict] = {}
        self.object_errors: Dict[str, Exception] = {}
        self.query_calls: List[tuple[str, Optional[SuiEventId], int]] = []

    def add_event(self, event: SuiEvent) -> None:
        self.events.setdefault(event["type"], []).append(event)

    def query_events(
        self,
        move_event_type: str,
        cursor: Optional[SuiEventId] = None,
        limit: int = 50,
        descending_order: bool = False,
    ) -> EventPage:
        self.query_calls.append((move_event_type, cursor, limit))
        events = self.events.get(move_event_type, [])
        start = 0
        if cursor is not None:
            ids = [event["id"] for event in events]
            # A cursor this node has never served points past the end
            start = ids.index(cursor) + 1 if cursor in ids else len(events)
        page = events[start : start + limit]
        has_next_page = start + limit < len(events)
        return {
            "data": page,
            "nextCursor": page[-1]["id"] if page else cursor,
            "hasNextPage": has_next_page,
        }

    def get_object(self, object_id: str) -> dict:
        if object_id in self.object_errors:
            raise self.object_errors[object_id]
        if object_id in self.objects:
            return self.objects[object_id]
        return {"error": {"code": "notExists", "object_id": object_id}}

    def set_nft_object(self, nft_id: str, name: str, description: str, url: str) -> None:
        self.objects[nft_id] = {
            "data": {
                "objectId": nft_id,
                "content": {
                    "dataType": "moveObject",
                    "type": f"{PACKAGE_ID}::marketplace::NFT",
                    "fields": {"id": {"id": nft_id}, "name": name, "description": description, "url": url},
                },
            }
        }

    def fail_object(self, nft_id: str, error: Exception = None) -> None:
        self.object_errors[nft_id] = error or SuiRpcError("connection reset", method="sui_getObject")


@pytest.fixture
def session_factory(tmp_path) -> sessionmaker:
    engine = create_db_engine(f"sqlite:///{(tmp_path / 'marketplace.db').as_posix()}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def store(session_factory) -> MarketplaceStore:
    return MarketplaceStore(session_factory)


@pytest.fixture
def marketplace_config() -> SuiNFTMarketplaceConfig:
    return SuiNFTMarketplaceConfig(
        type="sui_nft_marketplace_processor",
        package_id=PACKAGE_ID,
        marketplace_id=MARKETPLACE_ID,
    )


@pytest.fixture
def sui_client() -> FakeSuiClient:
    return FakeSuiClient()


@pytest.fixture
def processor(marketplace_config, sui_client, session_factory) -> SuiNFTMarketplaceProcessor:
    return SuiNFTMarketplaceProcessor(marketplace_config, sui_client, session_factory)


@pytest.fixture
def make_event() -> Callable[..., SuiEvent]:
    def _make_event(
        event_type: str,
        data: Dict[str, Any],
        tx_digest: str,
        timestamp_ms: int,
        event_seq: str = "0",
        sender: str = CREATOR,
    ) -> SuiEvent:
        return {
            "id": {"txDigest": tx_digest, "eventSeq": event_seq},
            "packageId": PACKAGE_ID,
            "transactionModule": "marketplace",
            "sender": sender,
            "type": f"{PACKAGE_ID}::marketplace::{event_type}",
            "parsedJson": data,
            "timestampMs": str(timestamp_ms),
        }

    return _make_event


@pytest.fixture
def minted(make_event) -> Callable[..., SuiEvent]:
    def _minted(nft_id: str = NFT_X, tx_digest: str = "tx-mint", timestamp_ms: int = 1000, name: str = "Pepe #1") -> SuiEvent:
        return make_event(
            "NFTMinted",
            {"nft_id": nft_id, "creator": CREATOR, "name": name},
            tx_digest,
            timestamp_ms,
        )

    return _minted


@pytest.fixture
def listed(make_event) -> Callable[..., SuiEvent]:
    def _listed(nft_id: str = NFT_X, tx_digest: str = "tx-list", timestamp_ms: int = 2000, price: str = "100") -> SuiEvent:
        return make_event(
            "NFTListed",
            {"nft_id": nft_id, "seller": SELLER, "price": price},
            tx_digest,
            timestamp_ms,
        )

    return _listed


@pytest.fixture
def purchased(make_event) -> Callable[..., SuiEvent]:
    def _purchased(
        nft_id: str = NFT_X,
        tx_digest: str = "tx-buy",
        timestamp_ms: int = 3000,
        price: str = "100",
        buyer: str = BUYER,
    ) -> SuiEvent:
        return make_event(
            "NFTPurchased",
            {"nft_id": nft_id, "buyer": buyer, "seller": SELLER, "price": price},
            tx_digest,
            timestamp_ms,
            sender=buyer,
        )

    return _purchased


@pytest.fixture
def delisted(make_event) -> Callable[..., SuiEvent]:
    def _delisted(nft_id: str = NFT_X, tx_digest: str = "tx-delist", timestamp_ms: int = 2500) -> SuiEvent:
        return make_event(
            "NFTDelisted",
            {"nft_id": nft_id, "seller": SELLER},
            tx_digest,
            timestamp_ms,
        )

    return _delisted

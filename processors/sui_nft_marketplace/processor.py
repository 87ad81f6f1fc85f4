import logging

from typing import Dict, List, Optional, Protocol
from processors.sui_nft_marketplace.events import (
    classify,
    DelistedEvent,
    ListedEvent,
    MarketplaceEvent,
    MintedEvent,
    PurchasedEvent,
    UnknownEvent,
)
from processors.sui_nft_marketplace.marketplace_enums import (
    ListingStatus,
    MarketplaceEventType,
)
from processors.sui_nft_marketplace.models import (
    Listing,
    MarketplaceTransaction,
    NFT,
)
from processors.sui_nft_marketplace.store import MarketplaceStore
from sqlalchemy.orm import sessionmaker
from time import perf_counter
from utils import event_utils, object_utils
from utils.config import SuiNFTMarketplaceConfig
from utils.events_processor import EventsProcessor, ProcessingResult
from utils.metrics import (
    FAILED_EVENTS_COUNTER,
    LATEST_PROCESSED_TIMESTAMP,
    PROCESSED_EVENTS_COUNTER,
)
from utils.processor_name import ProcessorName
from utils.session import Session
from utils.sui_client import SuiEvent


class ObjectFetcher(Protocol):
    def get_object(self, object_id: str) -> dict:
        ...


class SuiNFTMarketplaceProcessor(EventsProcessor):
    def __init__(
        self,
        config: SuiNFTMarketplaceConfig,
        object_fetcher: ObjectFetcher,
        session_factory: sessionmaker = Session,
    ):
        super().__init__(session_factory)
        self.config = config
        self.object_fetcher = object_fetcher
        self.store = MarketplaceStore(session_factory)

    def name(self) -> str:
        return ProcessorName.SUI_NFT_MARKETPLACE_PROCESSOR.value

    def event_types(self) -> Dict[str, str]:
        return {
            event_type.value: event_utils.get_move_event_type(
                self.config.package_id, self.config.module_name, event_type.value
            )
            for event_type in MarketplaceEventType
        }

    def process_events(self, events: List[SuiEvent]) -> ProcessingResult:
        start_time = perf_counter()
        result = ProcessingResult(num_events=len(events))

        for raw_event in events:
            event = classify(raw_event)
            try:
                if not self.project(event):
                    result.num_skipped += 1
                    continue
                self.record_transaction(event)
            except Exception:
                # One bad event must not block the rest of the batch
                logging.exception(
                    "[Processor] Error processing event",
                    extra={
                        "processor_name": self.name(),
                        "tx_digest": event.tx_digest,
                        "event_type": event.type_str,
                    },
                )
                result.num_failed += 1
                result.failed_event_ids.append(raw_event.get("id"))
                FAILED_EVENTS_COUNTER.labels(processor_name=self.name()).inc()
                continue

            result.num_processed += 1
            if result.start_timestamp_ms is None:
                result.start_timestamp_ms = event.timestamp_ms
            result.end_timestamp_ms = event.timestamp_ms
            PROCESSED_EVENTS_COUNTER.labels(
                processor_name=self.name(),
                event_type=event_utils.get_event_type_short(event.type_str),
            ).inc()

        if result.end_timestamp_ms is not None:
            LATEST_PROCESSED_TIMESTAMP.labels(processor_name=self.name()).set(
                result.end_timestamp_ms
            )
        result.processing_duration_in_secs = perf_counter() - start_time
        return result

    # Applies one event to the marketplace tables.
    # Returns False for events that are not indexed.
    def project(self, event: MarketplaceEvent) -> bool:
        match event:
            case MintedEvent():
                self.handle_nft_minted(event)
            case ListedEvent():
                self.handle_nft_listed(event)
            case PurchasedEvent():
                self.handle_nft_purchased(event)
            case DelistedEvent():
                self.handle_nft_delisted(event)
            case UnknownEvent():
                logging.info(
                    "[Processor] Skipping unknown event",
                    extra={
                        "processor_name": self.name(),
                        "tx_digest": event.tx_digest,
                        "event_type": event.type_str,
                        "reason": event.reason,
                    },
                )
                return False
        return True

    def handle_nft_minted(self, event: MintedEvent) -> None:
        fields = self.fetch_nft_fields(event.nft_id)
        if fields is None:
            # Save with the event data only, the mint is never dropped
            nft = NFT(
                id=event.nft_id,
                name=event.name,
                description="",
                image_url="",
                creator=event.creator,
                owner=event.creator,
                created_at=event.timestamp_ms,
            )
        else:
            nft = NFT(
                id=event.nft_id,
                name=fields.get("name") or event.name,
                description=fields.get("description") or "",
                image_url=object_utils.get_url_field(fields.get("url")) or "",
                creator=event.creator,
                owner=event.creator,
                created_at=event.timestamp_ms,
            )
        self.store.upsert_nft(nft)
        logging.info(
            "[Processor] NFT minted",
            extra={"nft_id": nft.id, "nft_name": nft.name, "creator": nft.creator},
        )

    def fetch_nft_fields(self, nft_id: str) -> Optional[dict]:
        # The mint is never dropped over its details, any failure here falls
        # back to the event data
        try:
            object_response = self.object_fetcher.get_object(nft_id)
            fields = object_utils.get_move_object_fields(object_response)
        except Exception as e:
            logging.warning(
                "[Processor] Error fetching NFT object, using event data",
                extra={"nft_id": nft_id, "error": repr(e)},
            )
            return None

        if fields is None:
            logging.warning(
                "[Processor] NFT object has no content, using event data",
                extra={"nft_id": nft_id, "object_response": object_response},
            )
        return fields

    def handle_nft_listed(self, event: ListedEvent) -> None:
        self.store.upsert_listing(
            Listing(
                nft_id=event.nft_id,
                seller=event.seller,
                price=str(event.price),
                status=ListingStatus.ACTIVE.value,
                listed_at=event.timestamp_ms,
            )
        )
        logging.info(
            "[Processor] NFT listed",
            extra={"nft_id": event.nft_id, "price": str(event.price)},
        )

    # The listing and the owner are two independent writes
    def handle_nft_purchased(self, event: PurchasedEvent) -> None:
        listings_updated = self.store.update_listing_status(
            event.nft_id, ListingStatus.SOLD
        )
        nfts_updated = self.store.update_nft_owner(event.nft_id, event.buyer)
        logging.info(
            "[Processor] NFT purchased",
            extra={
                "nft_id": event.nft_id,
                "buyer": event.buyer,
                "listings_updated": listings_updated,
                "nfts_updated": nfts_updated,
            },
        )

    def handle_nft_delisted(self, event: DelistedEvent) -> None:
        listings_updated = self.store.update_listing_status(
            event.nft_id, ListingStatus.DELISTED
        )
        logging.info(
            "[Processor] NFT delisted",
            extra={"nft_id": event.nft_id, "listings_updated": listings_updated},
        )

    def record_transaction(self, event: MarketplaceEvent) -> None:
        inserted = self.store.append_transaction(get_transaction_record(event))
        if not inserted:
            logging.debug(
                "[Processor] Transaction already recorded",
                extra={"tx_digest": event.tx_digest},
            )


def get_transaction_record(event: MarketplaceEvent) -> MarketplaceTransaction:
    nft_id = getattr(event, "nft_id", None)
    buyer = getattr(event, "buyer", None)
    seller = getattr(event, "seller", None)
    price = getattr(event, "price", None)
    return MarketplaceTransaction(
        tx_digest=event.tx_digest,
        event_type=event_utils.get_event_type_short(event.type_str),
        nft_id=nft_id,
        from_address=event.sender or None,
        to_address=buyer or seller,
        price=str(price) if price is not None else None,
        timestamp=event.timestamp_ms,
    )

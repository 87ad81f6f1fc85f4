"""Reads and writes of the marketplace tables.

The indexer, the REST layer and the mint/buy handlers all go through this
store. Every method runs a single statement in its own transaction and every
write is keyed by a stable id, so the same logical write arriving twice (from
the indexer and from a handler, or from a re-delivered event) is harmless.
"""
from dataclasses import dataclass
from typing import List, Optional
from sqlalchemy import func, select, update
from sqlalchemy.orm import sessionmaker
from processors.sui_nft_marketplace.marketplace_enums import (
    ListingStatus,
    MarketplaceEventType,
)
from processors.sui_nft_marketplace.models import (
    Listing,
    MarketplaceTransaction,
    NFT,
)
from utils.session import Session, insert_for


@dataclass
class ListingDetails:
    nft_id: str
    seller: str
    price: str
    status: str
    listed_at: int
    # Display fields of the listed NFT, None while its mint is not indexed
    name: Optional[str]
    description: Optional[str]
    image_url: Optional[str]
    creator: Optional[str]


@dataclass
class MarketplaceStats:
    total_nfts: int
    active_listings: int
    total_sales: int
    # Sum of sale prices in MIST
    total_volume: int


class MarketplaceStore:
    def __init__(self, session_factory: sessionmaker = Session):
        self.session_factory = session_factory

    # NFTs

    def upsert_nft(self, nft: NFT) -> None:
        nft_dict = {
            "id": nft.id,
            "name": nft.name,
            "description": nft.description,
            "image_url": nft.image_url,
            "creator": nft.creator,
            "owner": nft.owner,
            "created_at": nft.created_at,
        }
        with self.session_factory() as session, session.begin():
            insert_stmt = insert_for(session, NFT).values(nft_dict)
            do_update_stmt = insert_stmt.on_conflict_do_update(
                index_elements=["id"],
                set_=dict(insert_stmt.excluded.items()),
            )
            session.execute(do_update_stmt)

    def get_nft(self, nft_id: str) -> Optional[NFT]:
        with self.session_factory() as session:
            return session.get(NFT, nft_id)

    def list_nfts_by_owner(self, owner: str) -> List[NFT]:
        with self.session_factory() as session:
            return list(
                session.scalars(
                    select(NFT).where(NFT.owner == owner).order_by(NFT.created_at.desc())
                )
            )

    # Returns the number of rows updated, 0 when the NFT is not indexed
    def update_nft_owner(self, nft_id: str, owner: str) -> int:
        with self.session_factory() as session, session.begin():
            result = session.execute(
                update(NFT).where(NFT.id == nft_id).values(owner=owner)
            )
            return result.rowcount

    # Listings

    def upsert_listing(self, listing: Listing) -> None:
        listing_dict = {
            "nft_id": listing.nft_id,
            "seller": listing.seller,
            "price": listing.price,
            "status": listing.status,
            "listed_at": listing.listed_at,
        }
        with self.session_factory() as session, session.begin():
            insert_stmt = insert_for(session, Listing).values(listing_dict)
            do_update_stmt = insert_stmt.on_conflict_do_update(
                index_elements=["nft_id"],
                set_=dict(insert_stmt.excluded.items()),
            )
            session.execute(do_update_stmt)

    def get_listing(self, nft_id: str) -> Optional[Listing]:
        with self.session_factory() as session:
            return session.get(Listing, nft_id)

    def list_listings(self, status: Optional[ListingStatus] = None) -> List[ListingDetails]:
        query = (
            select(
                Listing.nft_id,
                Listing.seller,
                Listing.price,
                Listing.status,
                Listing.listed_at,
                NFT.name,
                NFT.description,
                NFT.image_url,
                NFT.creator,
            )
            .join(NFT, NFT.id == Listing.nft_id, isouter=True)
            .order_by(Listing.listed_at.desc())
        )
        if status is not None:
            query = query.where(Listing.status == status.value)

        with self.session_factory() as session:
            return [ListingDetails(**row._asdict()) for row in session.execute(query)]

    # Returns the number of rows updated, 0 when the NFT was never listed
    def update_listing_status(self, nft_id: str, status: ListingStatus) -> int:
        with self.session_factory() as session, session.begin():
            result = session.execute(
                update(Listing)
                .where(Listing.nft_id == nft_id)
                .values(status=status.value)
            )
            return result.rowcount

    # Transactions

    # Returns False when a record with the same digest already exists
    def append_transaction(self, transaction: MarketplaceTransaction) -> bool:
        transaction_dict = {
            "tx_digest": transaction.tx_digest,
            "event_type": transaction.event_type,
            "nft_id": transaction.nft_id,
            "from_address": transaction.from_address,
            "to_address": transaction.to_address,
            "price": transaction.price,
            "timestamp": transaction.timestamp,
        }
        with self.session_factory() as session, session.begin():
            insert_stmt = insert_for(session, MarketplaceTransaction).values(
                transaction_dict
            )
            result = session.execute(
                insert_stmt.on_conflict_do_nothing(index_elements=["tx_digest"])
            )
            return result.rowcount > 0

    def list_transactions(self, limit: int = 100) -> List[MarketplaceTransaction]:
        with self.session_factory() as session:
            return list(
                session.scalars(
                    select(MarketplaceTransaction)
                    .order_by(MarketplaceTransaction.timestamp.desc())
                    .limit(limit)
                )
            )

    def list_transactions_by_nft(self, nft_id: str) -> List[MarketplaceTransaction]:
        with self.session_factory() as session:
            return list(
                session.scalars(
                    select(MarketplaceTransaction)
                    .where(MarketplaceTransaction.nft_id == nft_id)
                    .order_by(MarketplaceTransaction.timestamp.desc())
                )
            )

    # Stats

    def get_stats(self) -> MarketplaceStats:
        with self.session_factory() as session:
            total_nfts = session.scalar(select(func.count()).select_from(NFT))
            active_listings = session.scalar(
                select(func.count())
                .select_from(Listing)
                .where(Listing.status == ListingStatus.ACTIVE.value)
            )
            # Summed in Python, u64 prices overflow the databases' BIGINT
            sale_prices = session.scalars(
                select(MarketplaceTransaction.price).where(
                    MarketplaceTransaction.event_type
                    == MarketplaceEventType.NFT_PURCHASED.value
                )
            )
            total_sales = 0
            total_volume = 0
            for price in sale_prices:
                total_sales += 1
                total_volume += int(price or 0)

        return MarketplaceStats(
            total_nfts=total_nfts or 0,
            active_listings=active_listings or 0,
            total_sales=total_sales,
            total_volume=total_volume,
        )

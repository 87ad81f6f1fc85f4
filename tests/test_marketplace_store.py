from __future__ import annotations

import threading

from conftest import BUYER, CREATOR, NFT_X, SELLER
from processors.sui_nft_marketplace.marketplace_enums import ListingStatus
from processors.sui_nft_marketplace.models import Listing, MarketplaceTransaction, NFT
from utils.general_utils import standardize_address

NFT_Y = standardize_address("0x1002")
NFT_Z = standardize_address("0x1003")


def _nft(nft_id: str = NFT_X, name: str = "Pepe #1", owner: str = CREATOR, created_at: int = 1000) -> NFT:
    return NFT(
        id=nft_id,
        name=name,
        description="A frog",
        image_url="https://img.example/pepe.png",
        creator=CREATOR,
        owner=owner,
        created_at=created_at,
    )


def _listing(nft_id: str, listed_at: int, status: ListingStatus = ListingStatus.ACTIVE, price: str = "100") -> Listing:
    return Listing(nft_id=nft_id, seller=SELLER, price=price, status=status.value, listed_at=listed_at)


def _sale(tx_digest: str, price: str, timestamp: int, nft_id: str = NFT_X) -> MarketplaceTransaction:
    return MarketplaceTransaction(
        tx_digest=tx_digest,
        event_type="NFTPurchased",
        nft_id=nft_id,
        from_address=BUYER,
        to_address=BUYER,
        price=price,
        timestamp=timestamp,
    )


def test_upsert_nft_replaces_row(store) -> None:
    store.upsert_nft(_nft(name="First"))
    store.upsert_nft(_nft(name="Second", owner=BUYER))

    nft = store.get_nft(NFT_X)
    assert nft.name == "Second"
    assert nft.owner == BUYER
    assert nft.updated_at is not None


def test_get_nft_missing(store) -> None:
    assert store.get_nft(NFT_Y) is None


def test_list_nfts_by_owner_newest_first(store) -> None:
    store.upsert_nft(_nft(NFT_X, created_at=1000))
    store.upsert_nft(_nft(NFT_Y, created_at=3000))
    store.upsert_nft(_nft(NFT_Z, owner=BUYER, created_at=2000))

    assert [nft.id for nft in store.list_nfts_by_owner(CREATOR)] == [NFT_Y, NFT_X]
    assert [nft.id for nft in store.list_nfts_by_owner(BUYER)] == [NFT_Z]


def test_update_returns_zero_for_missing_rows(store) -> None:
    assert store.update_nft_owner(NFT_X, BUYER) == 0
    assert store.update_listing_status(NFT_X, ListingStatus.SOLD) == 0


def test_update_listing_status(store) -> None:
    store.upsert_listing(_listing(NFT_X, 2000))

    assert store.update_listing_status(NFT_X, ListingStatus.DELISTED) == 1
    assert store.get_listing(NFT_X).status == "delisted"


def test_list_listings_filters_and_joins_nft(store) -> None:
    store.upsert_nft(_nft(NFT_X, name="Pepe #1"))
    store.upsert_listing(_listing(NFT_X, 1000))
    store.upsert_listing(_listing(NFT_Y, 3000))
    store.upsert_listing(_listing(NFT_Z, 2000, status=ListingStatus.SOLD))

    active = store.list_listings(ListingStatus.ACTIVE)
    everything = store.list_listings()

    assert [listing.nft_id for listing in active] == [NFT_Y, NFT_X]
    assert [listing.nft_id for listing in everything] == [NFT_Y, NFT_Z, NFT_X]
    assert active[1].name == "Pepe #1"
    assert active[1].image_url == "https://img.example/pepe.png"
    # Listing whose mint was never indexed still shows up
    assert active[0].name is None
    assert active[0].creator is None


def test_append_transaction_rejects_duplicate_digest(store) -> None:
    assert store.append_transaction(_sale("tx-1", "100", 1000)) is True
    assert store.append_transaction(_sale("tx-1", "999", 5000)) is False

    [record] = store.list_transactions()
    assert record.price == "100"


def test_list_transactions_newest_first_with_limit(store) -> None:
    store.append_transaction(_sale("tx-1", "100", 1000))
    store.append_transaction(_sale("tx-2", "200", 3000, nft_id=NFT_Y))
    store.append_transaction(_sale("tx-3", "300", 2000))

    assert [tx.tx_digest for tx in store.list_transactions()] == ["tx-2", "tx-3", "tx-1"]
    assert [tx.tx_digest for tx in store.list_transactions(limit=2)] == ["tx-2", "tx-3"]
    assert [tx.tx_digest for tx in store.list_transactions_by_nft(NFT_X)] == ["tx-3", "tx-1"]


def test_stats(store) -> None:
    store.upsert_nft(_nft(NFT_X))
    store.upsert_nft(_nft(NFT_Y))
    store.upsert_listing(_listing(NFT_X, 1000))
    store.upsert_listing(_listing(NFT_Y, 1000, status=ListingStatus.SOLD))
    store.append_transaction(_sale("tx-1", "100", 1000))
    store.append_transaction(_sale("tx-2", "200", 2000))
    store.append_transaction(_sale("tx-3", "300", 3000))
    store.append_transaction(
        MarketplaceTransaction(
            tx_digest="tx-list",
            event_type="NFTListed",
            nft_id=NFT_X,
            from_address=SELLER,
            to_address=SELLER,
            price="5000",
            timestamp=500,
        )
    )

    stats = store.get_stats()

    assert stats.total_nfts == 2
    assert stats.active_listings == 1
    assert stats.total_sales == 3
    assert stats.total_volume == 600


def test_stats_volume_keeps_u64_precision(store) -> None:
    u64_max = "18446744073709551615"
    store.append_transaction(_sale("tx-1", "6000000000000000000", 1000))
    store.append_transaction(_sale("tx-2", "6000000000000000000", 2000))
    store.append_transaction(_sale("tx-3", u64_max, 3000))

    stats = store.get_stats()

    assert stats.total_sales == 3
    assert stats.total_volume == 12_000_000_000_000_000_000 + int(u64_max)


def test_stats_on_empty_store(store) -> None:
    stats = store.get_stats()

    assert (stats.total_nfts, stats.active_listings, stats.total_sales, stats.total_volume) == (0, 0, 0, 0)


def test_concurrent_writers_converge_to_one_row(store) -> None:
    """The mint handler and the indexer may save the same NFT at the same time."""
    barrier = threading.Barrier(2)
    errors = []

    def write(name: str) -> None:
        try:
            barrier.wait(timeout=5)
            for _ in range(5):
                store.upsert_nft(_nft(name=name))
                store.append_transaction(
                    MarketplaceTransaction(
                        tx_digest="tx-mint",
                        event_type="NFTMinted",
                        nft_id=NFT_X,
                        from_address=CREATOR,
                        timestamp=1000,
                    )
                )
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=write, args=(name,)) for name in ("from handler", "from indexer")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert errors == []
    nft = store.get_nft(NFT_X)
    assert nft.name in ("from handler", "from indexer")
    assert nft.image_url == "https://img.example/pepe.png"
    assert len(store.list_transactions()) == 1

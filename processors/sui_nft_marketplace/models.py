from utils.models.annotated_types import (
    BigIntegerType,
    InsertedAtType,
    NullableStringType,
    StringPrimaryKeyType,
    StringType,
    UpdatedAtType,
)
from utils.models.general_models import Base
from sqlalchemy import Index


class NFT(Base):
    __tablename__ = "nfts"
    __table_args__ = (Index("nfts_owner_index", "owner"),)

    # Sui object id
    id: StringPrimaryKeyType
    name: StringType
    description: NullableStringType
    image_url: NullableStringType
    creator: StringType
    owner: StringType
    # Timestamp of the mint event in ms
    created_at: BigIntegerType
    updated_at: UpdatedAtType


# One row per NFT; listing again replaces the previous row.
# No foreign key to `nfts`: a listing may be indexed before its mint.
class Listing(Base):
    __tablename__ = "listings"
    __table_args__ = (
        Index("listings_status_listed_at_index", "status", "listed_at"),
        Index("listings_seller_index", "seller"),
    )

    nft_id: StringPrimaryKeyType
    seller: StringType
    # Price in MIST, kept as text so u64 values never lose precision
    price: StringType
    status: StringType
    listed_at: BigIntegerType
    updated_at: UpdatedAtType


class MarketplaceTransaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("transactions_nft_id_index", "nft_id"),
        Index("transactions_timestamp_index", "timestamp"),
        Index("transactions_event_type_index", "event_type"),
    )

    tx_digest: StringPrimaryKeyType
    event_type: StringType
    nft_id: NullableStringType
    from_address: NullableStringType
    to_address: NullableStringType
    price: NullableStringType
    timestamp: BigIntegerType
    inserted_at: InsertedAtType

from enum import Enum


# Event struct names emitted by the `marketplace` Move module
class MarketplaceEventType(Enum):
    NFT_MINTED = "NFTMinted"
    NFT_LISTED = "NFTListed"
    NFT_PURCHASED = "NFTPurchased"
    NFT_DELISTED = "NFTDelisted"


class ListingStatus(Enum):
    ACTIVE = "active"
    SOLD = "sold"
    DELISTED = "delisted"

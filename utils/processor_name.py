from enum import Enum


class ProcessorName(Enum):
    SUI_NFT_MARKETPLACE_PROCESSOR = "sui_nft_marketplace_processor"

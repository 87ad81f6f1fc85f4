from decimal import Decimal

MIST_PER_SUI = 1_000_000_000


def standardize_address(address: str) -> str:
    address = address.removeprefix("0x")
    return "0x" + address.zfill(64)


# Presentation helper for readers of the store, prices are kept in MIST
def format_mist_as_sui(mist: int | str | None, places: int = 4) -> str:
    sui = Decimal(int(mist or 0)) / MIST_PER_SUI
    return f"{sui:.{places}f}"

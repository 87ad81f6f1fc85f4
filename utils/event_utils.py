from utils.general_utils import standardize_address

# Sui event types look like `0x<package>::<module>::<Name>`, optionally
# followed by type arguments, e.g. `0x2::coin::CoinEvent<0x2::sui::SUI>`.


def strip_type_arguments(type_str: str) -> str:
    return type_str.split("<", 1)[0]


def get_event_type_short(type_str: str) -> str:
    type_strings = strip_type_arguments(type_str).split("::")
    return type_strings[-1]


def get_move_event_type(package_id: str, module_name: str, event_name: str) -> str:
    return f"{standardize_address(package_id)}::{module_name}::{event_name}"

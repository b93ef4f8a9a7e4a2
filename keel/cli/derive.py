from typing import Tuple

import rich_click as click


def parse_seed(seed: str) -> bytes:
    from keel.development.primitive_types import Address

    kind, sep, value = seed.partition(":")
    if not sep:
        return seed.encode("utf-8")
    if kind == "str":
        return value.encode("utf-8")
    elif kind == "hex":
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)
    elif kind == "pubkey":
        return bytes(Address(value))
    raise ValueError(f"Unknown seed prefix '{kind}'")


@click.command(name="derive")
@click.option(
    "--program-id",
    "-p",
    required=True,
    help="Address of the program the account is derived for.",
)
@click.argument("seeds", nargs=-1, required=True)
def run_derive(program_id: str, seeds: Tuple[str, ...]) -> None:
    """
    Derive a program address from seeds.

    Seeds are UTF-8 strings by default; use `str:`, `hex:` or `pubkey:` prefixes to be explicit.
    """
    from keel.development.primitive_types import Address
    from keel.testing.accounts import find_program_address
    from keel.testing.exceptions import AddressDerivationExhausted

    from .console import console

    try:
        program = Address(program_id)
        seed_bytes = [parse_seed(seed) for seed in seeds]
        address, bump = find_program_address(seed_bytes, program)
    except (ValueError, AddressDerivationExhausted) as e:
        raise click.BadParameter(str(e))

    console.print(f"{address} (bump {bump})")

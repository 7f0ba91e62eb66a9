from typing import Optional
from eth_abi import encode
from eth_utils import keccak, to_bytes, to_canonical_address, to_checksum_address
from swap_router.errors import InvalidPath
from swap_router.services.path_codec import check_fee, sort_tokens


def compute_pool_address(
        factory: str,
        init_code_hash: str,
        token_a: str,
        token_b: str,
        fee: Optional[int] = None
) -> str:
    """
    Derive a pool address the way the factory deploys it (CREATE2).

    Reserve pools salt with the packed sorted pair, tick pools with the
    ABI-encoded sorted pair and fee tier. Nothing is read from chain.
    """
    token0, token1 = sort_tokens(token_a, token_b)
    if fee is None:
        salt = keccak(to_canonical_address(token0) + to_canonical_address(token1))
    else:
        salt = keccak(encode(["address", "address", "uint24"], [token0, token1, check_fee(fee)]))

    digest = keccak(
        b"\xff"
        + to_canonical_address(factory)
        + salt
        + to_bytes(hexstr=init_code_hash)
    )
    return to_checksum_address(digest[12:])


class PoolLocator:
    def __init__(self, factory: str, init_code_hash: str, with_fee: bool):
        self.factory = to_checksum_address(factory)
        self.init_code_hash = init_code_hash
        self.with_fee = with_fee

    def pool_address(self, token_a: str, token_b: str, fee: Optional[int] = None) -> str:
        if self.with_fee and fee is None:
            raise InvalidPath("tick pool address needs a fee tier")
        return compute_pool_address(
            self.factory,
            self.init_code_hash,
            token_a,
            token_b,
            fee if self.with_fee else None
        )

    @classmethod
    def reserve_pools(cls, settings) -> "PoolLocator":
        return cls(settings.V2_FACTORY_ADDRESS, settings.V2_INIT_CODE_HASH, with_fee=False)

    @classmethod
    def tick_pools(cls, settings) -> "PoolLocator":
        return cls(settings.V3_FACTORY_ADDRESS, settings.V3_INIT_CODE_HASH, with_fee=True)

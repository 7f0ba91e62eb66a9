from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple
from eth_utils import to_canonical_address, to_checksum_address
from swap_router.errors import InvalidPath, MalformedPath

ADDR_SIZE = 20
FEE_SIZE = 3
MAX_FEE = (1 << (8 * FEE_SIZE)) - 1

# Reserve-based pools all share one fee class (0.3%, in hundredths of a bip)
RESERVE_POOL_FEE = 3000


class PoolKind(str, Enum):
    RESERVE = "reserve"
    TICK = "tick"


@dataclass(frozen=True)
class Hop:
    token_in: str
    token_out: str
    fee: int
    kind: PoolKind


def hop_stride(kind: PoolKind) -> int:
    """Bytes between the start of two consecutive tokens in a path"""
    return ADDR_SIZE + FEE_SIZE if kind is PoolKind.TICK else ADDR_SIZE


def sort_tokens(token_a: str, token_b: str) -> Tuple[str, str]:
    """Return the pair with the numerically smaller address first"""
    if int(token_a, 16) == int(token_b, 16):
        raise InvalidPath(f"identical tokens {token_a}")
    if int(token_a, 16) < int(token_b, 16):
        return token_a, token_b
    return token_b, token_a


def check_fee(fee: int) -> int:
    """Fee tiers are uint24 hundredths of a bip"""
    if not 0 <= fee <= MAX_FEE:
        raise InvalidPath(f"fee tier {fee} does not fit in {FEE_SIZE} bytes")
    return fee


def encode_path(tokens: Sequence[str], fees: Optional[Sequence[int]] = None) -> bytes:
    """
    Pack a route into bytes.

    Without fees the result is a run of 20-byte addresses; with fees every
    pair of addresses is separated by a 3-byte big-endian fee tier.
    """
    if len(tokens) < 2:
        raise InvalidPath(f"route needs at least two tokens, got {len(tokens)}")
    if fees is not None and len(fees) != len(tokens) - 1:
        raise InvalidPath(f"{len(tokens)} tokens need {len(tokens) - 1} fee tiers, got {len(fees)}")

    encoded = bytearray(to_canonical_address(tokens[0]))
    for i, token in enumerate(tokens[1:]):
        if fees is not None:
            encoded += check_fee(fees[i]).to_bytes(FEE_SIZE, "big")
        encoded += to_canonical_address(token)
    return bytes(encoded)


def encode_route(tokens: Sequence[str], fees: Optional[Sequence[int]] = None, reverse: bool = False) -> bytes:
    """Encode tokens/fees, optionally output-token first as exact-output chains expect"""
    if reverse:
        tokens = list(reversed(tokens))
        fees = list(reversed(fees)) if fees is not None else None
    return encode_path(tokens, fees)


def validate_path(path: bytes, kind: PoolKind) -> None:
    stride = hop_stride(kind)
    if len(path) < stride + ADDR_SIZE:
        raise MalformedPath(f"path of {len(path)} bytes holds fewer than two tokens")
    if (len(path) - ADDR_SIZE) % stride != 0:
        raise MalformedPath(f"path of {len(path)} bytes does not match a {stride}-byte hop stride")


def decode_hop(path: bytes, offset: int = 0, kind: PoolKind = PoolKind.TICK) -> Tuple[Hop, int]:
    """Decode the hop starting at ``offset``; returns it with the offset of the next hop"""
    stride = hop_stride(kind)
    end = offset + stride + ADDR_SIZE
    if offset < 0 or end > len(path):
        raise MalformedPath(f"no hop at offset {offset} of a {len(path)}-byte path")

    token_in = to_checksum_address(path[offset:offset + ADDR_SIZE])
    token_out = to_checksum_address(path[offset + stride:end])
    if kind is PoolKind.TICK:
        fee = int.from_bytes(path[offset + ADDR_SIZE:offset + stride], "big")
    else:
        fee = RESERVE_POOL_FEE
    return Hop(token_in=token_in, token_out=token_out, fee=fee, kind=kind), offset + stride


def has_more_hops(path: bytes, offset: int = 0, kind: PoolKind = PoolKind.TICK) -> bool:
    """True when another hop follows the one starting at ``offset``"""
    stride = hop_stride(kind)
    return len(path) - offset >= 2 * stride + ADDR_SIZE


def decode_route(path: bytes, kind: PoolKind) -> List[Hop]:
    validate_path(path, kind)
    hops = []
    offset = 0
    while True:
        hop, next_offset = decode_hop(path, offset, kind)
        hops.append(hop)
        if not has_more_hops(path, offset, kind):
            return hops
        offset = next_offset


def first_hop(path: bytes, kind: PoolKind = PoolKind.TICK) -> bytes:
    """Slice holding only the first hop's tokens (and fee)"""
    return path[:hop_stride(kind) + ADDR_SIZE]


def skip_token(path: bytes, kind: PoolKind = PoolKind.TICK) -> bytes:
    """Drop the first token (and fee) so the path starts at the next hop"""
    return path[hop_stride(kind):]

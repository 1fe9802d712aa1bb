"""
Bitcoin address utilities: scriptPubKey <-> address for a given network.

Supported script templates:
- P2WPKH: 0014<20-byte-hash>
- P2WSH: 0020<32-byte-hash>
- P2PKH: 76a914<20-byte-hash>88ac
- P2SH: a914<20-byte-hash>87
- P2TR and later witness versions: OP_1..OP_16 <2..40 bytes>, bech32m (BIP350)

Anything else (data carriers, bare pubkeys, multisig) has no address here
and decodes to None.
"""

from __future__ import annotations

from dataclasses import dataclass

import base58
import bech32
from loguru import logger

from txreport.config import NetworkType

# Sentinel recorded when a spent output's script has no address form
UNDECODABLE_ADDRESS = "undecodable"

BECH32_HRP = {
    NetworkType.MAINNET: "bc",
    NetworkType.TESTNET: "tb",
    NetworkType.SIGNET: "tb",
    NetworkType.REGTEST: "bcrt",
}

# (P2PKH, P2SH) base58 version bytes
BASE58_VERSIONS = {
    NetworkType.MAINNET: (0x00, 0x05),
    NetworkType.TESTNET: (0x6F, 0xC4),
    NetworkType.SIGNET: (0x6F, 0xC4),
    NetworkType.REGTEST: (0x6F, 0xC4),
}

# BIP350 checksum constant for witness version 1 and above
BECH32M_CONST = 0x2BC830A3


def _bech32m_encode(hrp: str, witver: int, witprog: bytes) -> str:
    data = [witver] + bech32.convertbits(witprog, 8, 5)
    polymod = bech32.bech32_polymod(bech32.bech32_hrp_expand(hrp) + data + [0] * 6)
    polymod ^= BECH32M_CONST
    checksum = [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]
    return hrp + "1" + "".join(bech32.CHARSET[d] for d in data + checksum)


def _bech32m_decode(hrp: str, address: str) -> tuple[int, bytes]:
    """Decode a witness v1+ address. Raises ValueError on any mismatch."""
    if address.lower() != address and address.upper() != address:
        raise ValueError(f"Mixed case in address: {address}")
    address = address.lower()
    sep = address.rfind("1")
    if address[:sep] != hrp or sep + 7 > len(address) or len(address) > 90:
        raise ValueError(f"Invalid bech32m address: {address}")
    try:
        data = [bech32.CHARSET.index(c) for c in address[sep + 1 :]]
    except ValueError as e:
        raise ValueError(f"Invalid bech32m character in {address}") from e
    if bech32.bech32_polymod(bech32.bech32_hrp_expand(hrp) + data) != BECH32M_CONST:
        raise ValueError(f"Invalid bech32m checksum: {address}")

    witver = data[0]
    witprog = bech32.convertbits(data[1:-6], 5, 8, False)
    if not 1 <= witver <= 16 or witprog is None or not 2 <= len(witprog) <= 40:
        raise ValueError(f"Unsupported witness program in {address}")
    return witver, bytes(witprog)


@dataclass(frozen=True)
class Address:
    """An address string validated for one network."""

    value: str
    network: NetworkType

    def __str__(self) -> str:
        return self.value


def scriptpubkey_to_address(scriptpubkey: bytes, network: NetworkType) -> str:
    """Convert scriptPubKey to address. Raises ValueError for other templates."""
    network = NetworkType(network)
    p2pkh_version, p2sh_version = BASE58_VERSIONS[network]

    # P2WPKH / P2WSH: OP_0 <20 or 32 bytes>
    if (len(scriptpubkey) == 22 and scriptpubkey[:2] == b"\x00\x14") or (
        len(scriptpubkey) == 34 and scriptpubkey[:2] == b"\x00\x20"
    ):
        result = bech32.encode(BECH32_HRP[network], 0, scriptpubkey[2:])
        if result is None:
            raise ValueError(f"Failed to encode witness program: {scriptpubkey.hex()}")
        return result

    # Witness v1+ (P2TR is v1 with 32 bytes): OP_n <program>
    if (
        4 <= len(scriptpubkey) <= 42
        and 0x51 <= scriptpubkey[0] <= 0x60
        and scriptpubkey[1] == len(scriptpubkey) - 2
    ):
        return _bech32m_encode(BECH32_HRP[network], scriptpubkey[0] - 0x50, scriptpubkey[2:])

    # P2PKH: OP_DUP OP_HASH160 <20 bytes> OP_EQUALVERIFY OP_CHECKSIG
    if (
        len(scriptpubkey) == 25
        and scriptpubkey[:3] == b"\x76\xa9\x14"
        and scriptpubkey[23:] == b"\x88\xac"
    ):
        return base58.b58encode_check(bytes([p2pkh_version]) + scriptpubkey[3:23]).decode()

    # P2SH: OP_HASH160 <20 bytes> OP_EQUAL
    if len(scriptpubkey) == 23 and scriptpubkey[:2] == b"\xa9\x14" and scriptpubkey[22] == 0x87:
        return base58.b58encode_check(bytes([p2sh_version]) + scriptpubkey[2:22]).decode()

    raise ValueError(f"Unsupported scriptPubKey: {scriptpubkey.hex()}")


def script_to_address(script_hex: str, network: NetworkType) -> Address | None:
    """
    Decode a hex scriptPubKey into an address for the network.

    Returns None when the script has no standard address form. This is an
    expected outcome (e.g. OP_RETURN outputs), not an error.
    """
    try:
        value = scriptpubkey_to_address(bytes.fromhex(script_hex), network)
    except ValueError as e:
        logger.debug(f"Script has no address form: {e}")
        return None
    return Address(value=value, network=NetworkType(network))


def address_to_scriptpubkey(address: str, network: NetworkType) -> bytes:
    """
    Convert an address valid for the network into its scriptPubKey.

    Raises ValueError if the address is malformed or belongs to another network.
    """
    network = NetworkType(network)
    hrp = BECH32_HRP[network]

    if address.lower().startswith(hrp + "1"):
        witver, witprog = bech32.decode(hrp, address)
        # Version 1 and above must carry the bech32m checksum
        if witver is None or witprog is None or witver != 0:
            try:
                witver, witprog = _bech32m_decode(hrp, address)
            except ValueError as e:
                raise ValueError(f"Invalid bech32 address: {address}") from e
        elif len(witprog) not in (20, 32):
            raise ValueError(f"Unsupported witness program in {address}")
        version_op = 0x50 + witver if witver else 0x00
        return bytes([version_op, len(witprog)]) + bytes(witprog)

    try:
        decoded = base58.b58decode_check(address)
    except ValueError as e:
        raise ValueError(f"Invalid address for {network.value}: {address}") from e

    if len(decoded) != 21:
        raise ValueError(f"Invalid base58 payload length in {address}")

    p2pkh_version, p2sh_version = BASE58_VERSIONS[network]
    version, payload = decoded[0], decoded[1:]
    if version == p2pkh_version:
        return bytes([0x76, 0xA9, 0x14]) + payload + bytes([0x88, 0xAC])
    if version == p2sh_version:
        return bytes([0xA9, 0x14]) + payload + bytes([0x87])

    raise ValueError(f"Address {address} is not valid for {network.value}")


def validate_address(address: str, network: NetworkType) -> Address:
    """Validate an address string for the network and tag it."""
    address_to_scriptpubkey(address, network)
    return Address(value=address, network=NetworkType(network))

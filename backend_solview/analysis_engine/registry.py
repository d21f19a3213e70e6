"""
Program registry: known Solana program ids -> human-readable names.

An explicitly constructed, immutable value. The orchestrator receives one at
startup (default table, or the default overridden by a JSON file) so tests can
inject their own.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from backend_solview.core.exceptions import ConfigurationError

UNKNOWN_PROGRAM = "Unknown Program"

JUPITER_V6 = "JUPITER_V6"
JUPITER_V4 = "JUPITER_V4"
RAYDIUM_AMM = "RAYDIUM_AMM"
RAYDIUM_CLMM = "RAYDIUM_CLMM"
ORCA_WHIRLPOOL = "ORCA_WHIRLPOOL"
ORCA_SWAP = "ORCA_SWAP"
SOLEND = "SOLEND"
MARINADE = "MARINADE"
LIDO = "LIDO"
SPL_TOKEN = "SPL_TOKEN"
SYSTEM = "SYSTEM"

# Mainnet program ids
DEFAULT_PROGRAMS: dict[str, tuple[str, str]] = {
    JUPITER_V6: ("JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4", "Jupiter V6"),
    JUPITER_V4: ("JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB", "Jupiter V4"),
    RAYDIUM_AMM: ("675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8", "Raydium AMM"),
    RAYDIUM_CLMM: ("CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK", "Raydium CLMM"),
    ORCA_WHIRLPOOL: ("whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc", "Orca Whirlpool"),
    ORCA_SWAP: ("9W959DqEETiGZocYWCQPaJ6sBmUzgfxXfqGeTEdp3aQP", "Orca Swap"),
    SOLEND: ("So1endDq2YkqhipRh3WViPa8hdiSpxWy6z3Z6tMCpAo", "Solend"),
    MARINADE: ("MarBmsSgKXdrN1egZf5sqe1TMai9K1rChYNDJgjq7aD", "Marinade Finance"),
    LIDO: ("CrX7kMhLC3cSsXJdT7JDgqrRVWGnUpX3gfEfxxU2NVLi", "Lido"),
    SPL_TOKEN: ("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA", "SPL Token Program"),
    SYSTEM: ("11111111111111111111111111111111", "System Program"),
}


@dataclass(frozen=True)
class ProgramInfo:
    address: str
    name: str

    def to_dict(self) -> dict[str, str]:
        return {"address": self.address, "name": self.name}


class ProgramRegistry:
    """
    Read-only table of known programs keyed by role (JUPITER_V6, MARINADE, ...).

    Lookups by role return the configured address; lookups by address return
    the display name. Instances are never mutated after construction.
    """

    __slots__ = ("_programs", "_names")

    def __init__(self, programs: Mapping[str, ProgramInfo]) -> None:
        self._programs: Mapping[str, ProgramInfo] = MappingProxyType(dict(programs))
        self._names: Mapping[str, str] = MappingProxyType(
            {p.address: p.name for p in self._programs.values()}
        )

    @classmethod
    def default(cls) -> "ProgramRegistry":
        return cls({key: ProgramInfo(addr, name) for key, (addr, name) in DEFAULT_PROGRAMS.items()})

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Any],
        base: "ProgramRegistry | None" = None,
    ) -> "ProgramRegistry":
        """
        Build from {key: {"address": ..., "name": ...}}. Keys present in `mapping`
        replace the same key in `base`; other base entries are kept.
        """
        programs = dict(base._programs) if base is not None else {}
        for key, entry in mapping.items():
            if not isinstance(entry, Mapping) or not entry.get("address"):
                raise ConfigurationError(f"program registry entry {key!r} needs an address")
            address = str(entry["address"])
            programs[str(key)] = ProgramInfo(address=address, name=str(entry.get("name") or address))
        return cls(programs)

    @classmethod
    def from_json_file(cls, path: str | Path) -> "ProgramRegistry":
        """Load overrides from a JSON object file and merge them over the default table."""
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"cannot read program registry {path}: {e}") from e
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"program registry {path} must contain a JSON object")
        return cls.from_mapping(data, base=cls.default())

    def address(self, key: str) -> str | None:
        info = self._programs.get(key)
        return info.address if info else None

    def name_for(self, address: str) -> str:
        return self._names.get(address, UNKNOWN_PROGRAM)

    def has_any(self, addresses: Iterable[str], *keys: str) -> bool:
        """True if any of the programs registered under `keys` is in `addresses`."""
        wanted = {self.address(k) for k in keys} - {None}
        return any(a in wanted for a in addresses)

    def describe(self, addresses: Iterable[str]) -> list[ProgramInfo]:
        return [ProgramInfo(address=a, name=self.name_for(a)) for a in sorted(addresses)]

    def __contains__(self, address: object) -> bool:
        return address in self._names

    def __len__(self) -> int:
        return len(self._programs)

"""Mint configuration — loads and validates config/mint_params.json.

The file fixes everything set at initialisation: the allow-list root,
the two prices, the owner, metadata and royalty defaults, and an
optional supply cap. Values are only read when no snapshot exists yet;
after the first run the persisted state is authoritative.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from allowmint.crypto.merkle import normalize_identity, to_digest

CONFIG_FILENAME = "mint_params.json"


@dataclass(frozen=True)
class RoyaltyConfig:
    receiver: str
    fee_basis_points: int


@dataclass(frozen=True)
class MintConfig:
    """Validated initialisation parameters."""
    merkle_root: str
    privileged_price: int
    standard_price: int
    owner: str
    base_uri: str = ""
    uri_extension: str = ".json"
    royalty: Optional[RoyaltyConfig] = None
    max_supply: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MintConfig:
        """Build a config, raising ValueError on any invalid field."""
        missing = [
            k for k in ("merkle_root", "privileged_price", "standard_price", "owner")
            if k not in data
        ]
        if missing:
            raise ValueError(f"Missing config keys: {', '.join(missing)}")

        # Validate shapes early so the service never starts half-configured
        to_digest(data["merkle_root"])
        normalize_identity(data["owner"])
        for key in ("privileged_price", "standard_price"):
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{key} must be a non-negative integer, got {value!r}")

        royalty = None
        raw_royalty = data.get("royalty")
        if raw_royalty:
            normalize_identity(raw_royalty["receiver"])
            royalty = RoyaltyConfig(
                receiver=raw_royalty["receiver"],
                fee_basis_points=int(raw_royalty.get("fee_basis_points", 0)),
            )

        max_supply = data.get("max_supply")
        if max_supply is not None and (not isinstance(max_supply, int) or max_supply < 0):
            raise ValueError(f"max_supply must be a non-negative integer or null, got {max_supply!r}")

        return cls(
            merkle_root=data["merkle_root"],
            privileged_price=data["privileged_price"],
            standard_price=data["standard_price"],
            owner=data["owner"],
            base_uri=data.get("base_uri", ""),
            uri_extension=data.get("uri_extension", ".json"),
            royalty=royalty,
            max_supply=max_supply,
        )

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> MintConfig:
        """Load mint_params.json from a config directory."""
        path = config_dir / CONFIG_FILENAME
        if not path.exists():
            raise FileNotFoundError(f"Mint config not found: {path}")
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))

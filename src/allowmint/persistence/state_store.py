"""State store — restart-safe snapshot of the mint service.

The snapshot is a single JSON document rewritten on every mutation.
Writes go to a sibling temp file first and are moved into place with
os.replace, so a crash mid-write leaves the previous snapshot intact.

Addresses are stored as checksum strings, digests as 0x-hex, amounts as
integers. ``last_event_id`` names the newest audit record the snapshot
already reflects; records after it are replayed on load.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

SNAPSHOT_VERSION = 1


@dataclass
class MintState:
    """Everything the service needs to resume after a restart."""
    merkle_root: str
    root_version: int
    privileged_price: int
    standard_price: int
    owner: str
    supply: int = 0
    claimed: list[str] = field(default_factory=list)
    token_owners: dict[str, str] = field(default_factory=dict)
    base_uri: str = ""
    uri_extension: str = ".json"
    royalty_receiver: Optional[str] = None
    royalty_fee_basis_points: int = 0
    proceeds: int = 0
    max_supply: Optional[int] = None
    last_event_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot_version": SNAPSHOT_VERSION,
            "merkle_root": self.merkle_root,
            "root_version": self.root_version,
            "privileged_price": self.privileged_price,
            "standard_price": self.standard_price,
            "owner": self.owner,
            "supply": self.supply,
            "claimed": list(self.claimed),
            "token_owners": dict(self.token_owners),
            "base_uri": self.base_uri,
            "uri_extension": self.uri_extension,
            "royalty_receiver": self.royalty_receiver,
            "royalty_fee_basis_points": self.royalty_fee_basis_points,
            "proceeds": self.proceeds,
            "max_supply": self.max_supply,
            "last_event_id": self.last_event_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MintState:
        version = data.get("snapshot_version")
        if version != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version: {version}")
        state = cls(
            merkle_root=data["merkle_root"],
            root_version=int(data["root_version"]),
            privileged_price=int(data["privileged_price"]),
            standard_price=int(data["standard_price"]),
            owner=data["owner"],
            supply=int(data.get("supply", 0)),
            claimed=list(data.get("claimed", [])),
            token_owners=dict(data.get("token_owners", {})),
            base_uri=data.get("base_uri", ""),
            uri_extension=data.get("uri_extension", ".json"),
            royalty_receiver=data.get("royalty_receiver"),
            royalty_fee_basis_points=int(data.get("royalty_fee_basis_points", 0)),
            proceeds=int(data.get("proceeds", 0)),
            max_supply=data.get("max_supply"),
            last_event_id=data.get("last_event_id"),
        )
        if len(state.token_owners) != state.supply:
            raise ValueError(
                f"Snapshot inconsistent: {len(state.token_owners)} owners "
                f"for supply {state.supply}"
            )
        return state


class StateStore:
    """JSON-file snapshot store.

    Usage:
        store = StateStore(Path("data/state.json"))
        state = store.load()      # None on first run
        store.save(state)
    """

    def __init__(self, storage_path: Path) -> None:
        self._storage_path = storage_path

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def load(self) -> Optional[MintState]:
        if not self._storage_path.exists():
            return None
        data = json.loads(self._storage_path.read_text(encoding="utf-8"))
        return MintState.from_dict(data)

    def save(self, state: MintState) -> None:
        """Atomically replace the snapshot. Raises OSError on failure."""
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        payload = json.dumps(state.to_dict(), indent=2, sort_keys=True)
        with tmp.open("w", encoding="utf-8") as f:
            f.write(payload + "\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self._storage_path)

"""In-memory, ordered collection of generated assets (newest first)."""

import logging
from typing import Any, Iterable, List, Optional

from schemas.asset import GeneratedAsset
from services.errors import AssetNotFoundError

logger = logging.getLogger(__name__)


class AssetStore:
    def __init__(self) -> None:
        self._assets: List[GeneratedAsset] = []

    def list(self) -> List[GeneratedAsset]:
        return list(self._assets)

    def __len__(self) -> int:
        return len(self._assets)

    def _index_of(self, asset_id: str) -> int:
        for index, asset in enumerate(self._assets):
            if asset.id == asset_id:
                return index
        raise AssetNotFoundError(asset_id)

    def get(self, asset_id: str) -> GeneratedAsset:
        return self._assets[self._index_of(asset_id)]

    def find(self, asset_id: str) -> Optional[GeneratedAsset]:
        try:
            return self.get(asset_id)
        except AssetNotFoundError:
            return None

    def prepend_many(self, assets: Iterable[GeneratedAsset]) -> List[GeneratedAsset]:
        """Insert `assets` as one contiguous block ahead of existing entries."""
        block = list(assets)
        if not block:
            return []
        self._assets = block + self._assets
        logger.info("Committed %d assets (total %d)", len(block), len(self._assets))
        return block

    def update(self, asset_id: str, **changes: Any) -> GeneratedAsset:
        index = self._index_of(asset_id)
        current = self._assets[index]
        updated = GeneratedAsset.model_validate({**current.model_dump(), **changes})
        self._assets[index] = updated
        return updated

    def toggle_favorite(self, asset_id: str) -> GeneratedAsset:
        asset = self.get(asset_id)
        return self.update(asset_id, is_favorite=not asset.is_favorite)

    def reorder(self, asset_ids: List[str]) -> List[GeneratedAsset]:
        """Reorder by id; `asset_ids` must be a permutation of the stored ids."""
        current_ids = [asset.id for asset in self._assets]
        if len(asset_ids) != len(current_ids) or set(asset_ids) != set(current_ids):
            raise ValueError("Order must list every asset exactly once")
        by_id = {asset.id: asset for asset in self._assets}
        self._assets = [by_id[asset_id] for asset_id in asset_ids]
        return self.list()

    def clear(self) -> None:
        self._assets = []


_store: Optional[AssetStore] = None


def get_asset_store() -> AssetStore:
    """Get the process-wide asset store."""
    global _store
    if _store is None:
        _store = AssetStore()
    return _store

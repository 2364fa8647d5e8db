"""Pre-save normalization for assets. Importing this module installs the listener."""

import logging

from sqlalchemy import event
from sqlalchemy.orm import Session

from orm import AssetItemORM, AssetORM
from totals import apply_totals

logger = logging.getLogger(__name__)


def _assets_to_normalize(session: Session) -> list[AssetORM]:
    seen: dict[int, AssetORM] = {}
    for obj in list(session.new) + list(session.dirty):
        if isinstance(obj, AssetORM):
            asset = obj
        elif isinstance(obj, AssetItemORM) and obj.asset is not None:
            asset = obj.asset
        else:
            continue
        if asset in session.deleted:
            continue
        seen[id(asset)] = asset
    return list(seen.values())


@event.listens_for(Session, "before_flush")
def normalize_assets_before_flush(session, flush_context, instances):
    for asset in _assets_to_normalize(session):
        apply_totals(asset)
        logger.debug(
            "asset=%s total_amount=%s grand_total=%s",
            asset.id,
            asset.total_amount,
            asset.grand_total,
        )

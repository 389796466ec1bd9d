"""Pet stat decay for child profiles.

Designed to be called by a Celery beat task once a day. Each run lowers every
child's pet stats by fixed amounts; running twice in one period decays twice,
so at-most-once scheduling is the scheduler's job.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from app.config import settings
from app.core.exceptions import StoreError
from app.core.metrics import track_pet_stat_updates
from app.store.document_store import DocumentStore
from app.store.paths import ACCOUNTS, CHILDREN, account_collection

logger = logging.getLogger(__name__)

STAT_MIN = 0
STAT_MAX = 100
DEFAULT_STAT = 50

# Amount subtracted from each stat per decay run
DECAY_DELTAS = {
    "happiness": 5,
    "energy": 10,
    "knowledge": 2,
}


@dataclass
class DecayReport:
    """Outcome of one decay run."""

    accounts_scanned: int = 0
    profiles_updated: int = 0
    failed_paths: list[str] = field(default_factory=list)

    @property
    def partial_failure(self) -> bool:
        return bool(self.failed_paths)


def _clamp(value: int) -> int:
    return max(STAT_MIN, min(STAT_MAX, value))


def _stat_value(stats: dict[str, Any], name: str) -> int:
    value = stats.get(name, DEFAULT_STAT)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_STAT
    return int(value)


def decayed_stats(pet_stats: Optional[dict[str, Any]]) -> dict[str, int]:
    """
    Apply one decay step to a pet stat map.

    Missing stats start at 50. Results are clamped into [0, 100]; decay never
    raises a value.

    Examples:
        >>> decayed_stats({"happiness": 3, "energy": 50, "knowledge": 100})
        {'happiness': 0, 'energy': 40, 'knowledge': 98}
        >>> decayed_stats(None)
        {'happiness': 45, 'energy': 40, 'knowledge': 48}
    """
    stats = pet_stats if isinstance(pet_stats, dict) else {}
    return {
        name: _clamp(_stat_value(stats, name) - delta)
        for name, delta in DECAY_DELTAS.items()
    }


class PetStatsService:
    """Scheduled batch mutation over every account's child profiles."""

    @staticmethod
    async def decay_all(
        store: DocumentStore, *, batch_size: Optional[int] = None
    ) -> DecayReport:
        """
        Decay pet stats for every child profile of every account.

        Updates are committed in batches of ``batch_size``. When a batch is
        rejected, its profiles are retried one by one so that a single bad
        document does not block the rest; profiles that still fail are listed
        in the report. Nothing is retried beyond that within a run.

        Returns:
            DecayReport with counts and failed document paths
        """
        batch_size = batch_size or settings.DECAY_BATCH_SIZE
        report = DecayReport()
        staged: list[tuple[str, dict[str, int]]] = []

        accounts = await store.list_collection(ACCOUNTS)
        for account in accounts:
            report.accounts_scanned += 1
            try:
                children = await store.list_collection(account_collection(account.id, CHILDREN))
            except StoreError as exc:
                logger.error("Pet stat decay: failed to list children of %s: %s", account.id, exc)
                report.failed_paths.append(account.path)
                continue

            for child in children:
                staged.append((child.path, decayed_stats(child.data.get("petStats"))))
                if len(staged) >= batch_size:
                    await PetStatsService._flush(store, staged, report)
                    staged = []

        if staged:
            await PetStatsService._flush(store, staged, report)

        track_pet_stat_updates("success", report.profiles_updated)
        track_pet_stat_updates("failure", len(report.failed_paths))

        if report.partial_failure:
            logger.error(
                "Pet stat decay finished with failures: %d accounts, %d profiles updated, %d failed: %s",
                report.accounts_scanned,
                report.profiles_updated,
                len(report.failed_paths),
                report.failed_paths,
            )
        else:
            logger.info(
                "Pet stat decay complete: %d accounts, %d profiles updated",
                report.accounts_scanned,
                report.profiles_updated,
            )
        return report

    @staticmethod
    async def _flush(
        store: DocumentStore,
        staged: list[tuple[str, dict[str, int]]],
        report: DecayReport,
    ) -> None:
        batch = store.batch()
        for path, stats in staged:
            batch.update(path, {"petStats": stats})

        try:
            await batch.commit()
            report.profiles_updated += len(staged)
            return
        except StoreError as exc:
            logger.warning(
                "Pet stat decay: batch of %d rejected (%s), retrying profiles individually",
                len(staged),
                exc,
            )

        for path, stats in staged:
            try:
                await store.update(path, {"petStats": stats})
                report.profiles_updated += 1
            except StoreError as exc:
                logger.error("Pet stat decay: failed to update %s: %s", path, exc)
                report.failed_paths.append(path)

# fuelogic/tanks/config_store.py
"""
Per-owner threshold configuration.

Reads never fail: an owner without a stored row gets the defaults, which are
persisted on first access. Updates are validated before anything is written
and replace the row inside a single transaction.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from ..db.engine import SessionFactory, session_scope
from ..logging import get_logger
from .thresholds import ThresholdConfig

logger = get_logger(__name__)


class ConfigurationStore:
    """Threshold configuration backed by the threshold_config table."""

    def __init__(
        self,
        session_factory: SessionFactory,
        defaults: Optional[ThresholdConfig] = None,
    ):
        self.session_factory = session_factory
        self.defaults = (defaults or ThresholdConfig()).validate()

    def get(self, owner_id: str) -> ThresholdConfig:
        """Return the owner's thresholds, creating the defaults if absent."""
        stored = self._load(owner_id)
        if stored is not None:
            return stored

        try:
            with session_scope(self.session_factory) as session:
                self._insert(session, owner_id, self.defaults)
            logger.info(
                "threshold_defaults_created",
                owner_id=owner_id,
                **self.defaults.to_api(),
            )
        except IntegrityError:
            # Another request created the row first
            pass

        return self._load(owner_id) or self.defaults

    def update(self, owner_id: str, config: ThresholdConfig) -> ThresholdConfig:
        """
        Replace the owner's thresholds.

        Raises:
            ValidationError: critical >= attention or a value outside [0, 100];
                the stored configuration is left untouched.
        """
        config.validate()

        try:
            with session_scope(self.session_factory) as session:
                if not self._update(session, owner_id, config):
                    self._insert(session, owner_id, config)
        except IntegrityError:
            # Another request inserted the owner's first row in between
            with session_scope(self.session_factory) as session:
                self._update(session, owner_id, config)

        logger.info("threshold_updated", owner_id=owner_id, **config.to_api())
        return config

    @staticmethod
    def _update(session, owner_id: str, config: ThresholdConfig) -> bool:
        """Overwrite an existing row; False when the owner has none."""
        result = session.execute(
            text("""
                UPDATE threshold_config
                SET threshold_critico = :critical,
                    threshold_atencao = :attention,
                    updated_at = :updated_at
                WHERE owner_id = :owner_id
            """),
            {
                "critical": config.critical_percent,
                "attention": config.attention_percent,
                "updated_at": _now(),
                "owner_id": owner_id,
            },
        )
        return result.rowcount > 0

    def _load(self, owner_id: str) -> Optional[ThresholdConfig]:
        with session_scope(self.session_factory) as session:
            row = session.execute(
                text("""
                    SELECT threshold_critico, threshold_atencao
                    FROM threshold_config
                    WHERE owner_id = :owner_id
                """),
                {"owner_id": owner_id},
            ).fetchone()

        if row is None:
            return None
        return ThresholdConfig(
            critical_percent=float(row[0]),
            attention_percent=float(row[1]),
        )

    @staticmethod
    def _insert(session, owner_id: str, config: ThresholdConfig) -> None:
        session.execute(
            text("""
                INSERT INTO threshold_config
                    (owner_id, threshold_critico, threshold_atencao, updated_at)
                VALUES (:owner_id, :critical, :attention, :updated_at)
            """),
            {
                "owner_id": owner_id,
                "critical": config.critical_percent,
                "attention": config.attention_percent,
                "updated_at": _now(),
            },
        )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

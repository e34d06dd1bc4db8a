"""
Import session and import config persistence.

Tables:
    import_sessions   one row per feed import
    import_configs    price feed URLs for the scheduled sync
"""

import uuid
from datetime import datetime
from typing import Any, Optional
import structlog

from config import get_supabase_client
from models.session import (
    ImportConfig,
    ImportConfigCreate,
    ImportSession,
    SessionStatus,
)
from exceptions import (
    ImportConfigNotFoundError,
    ImportSessionNotFoundError,
    DatabaseError
)

logger = structlog.get_logger(__name__)


def _serialize(value: Any) -> Any:
    if isinstance(value, SessionStatus):
        return value.value
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value


class SessionService:
    """
    Import session CRUD.

    Sessions hold the feed URL, the on-disk file path, the parsed
    summary and the operator's selection.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "import_sessions"
        self.configs_table = "import_configs"

    # ===================
    # SESSIONS
    # ===================

    def create(self, xml_url: str) -> ImportSession:
        """
        Create a session in 'parsing' status.

        Args:
            xml_url: Feed URL

        Returns:
            Created ImportSession
        """
        logger.info("creating_import_session", xml_url=xml_url)

        now = datetime.utcnow().isoformat()
        row = {
            "id": str(uuid.uuid4()),
            "xml_url": xml_url,
            "status": SessionStatus.PARSING.value,
            "selected_categories": [],
            "selected_brands": [],
            "selected_product_ids": [],
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = self.db.table(self.table).insert(row).execute()
        except Exception as e:
            logger.error("create_import_session_failed", error=str(e))
            raise DatabaseError("insert", str(e))

        session = ImportSession(**result.data[0])
        logger.info("import_session_created", session_id=session.id)
        return session

    def get(self, session_id: str) -> ImportSession:
        """
        Get a session by id.

        Raises:
            ImportSessionNotFoundError: If it does not exist
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", session_id)
                .execute()
            )

            if not result.data:
                raise ImportSessionNotFoundError(session_id)

            return ImportSession(**result.data[0])

        except ImportSessionNotFoundError:
            raise
        except Exception as e:
            logger.error("get_import_session_failed", session_id=session_id, error=str(e))
            raise DatabaseError("select", str(e))

    def update(self, session_id: str, **fields: Any) -> ImportSession:
        """
        Update session fields.

        Args:
            session_id: Session id
            **fields: Column values (enums and schemas are serialized)

        Returns:
            Updated ImportSession

        Raises:
            ImportSessionNotFoundError: If it does not exist
        """
        row = {key: _serialize(value) for key, value in fields.items()}
        row["updated_at"] = datetime.utcnow().isoformat()

        try:
            result = (
                self.db.table(self.table)
                .update(row)
                .eq("id", session_id)
                .execute()
            )

            if not result.data:
                raise ImportSessionNotFoundError(session_id)

        except ImportSessionNotFoundError:
            raise
        except Exception as e:
            logger.error("update_import_session_failed", session_id=session_id, error=str(e))
            raise DatabaseError("update", str(e))

        if "status" in row:
            logger.info("import_session_status_changed", session_id=session_id, status=row["status"])
        return ImportSession(**result.data[0])

    def list_sessions(self, limit: int = 50) -> list[ImportSession]:
        """Most recent sessions first."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
            return [ImportSession(**row) for row in result.data or []]
        except Exception as e:
            logger.error("list_import_sessions_failed", error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # CONFIGS
    # ===================

    def create_config(self, data: ImportConfigCreate) -> ImportConfig:
        logger.info("creating_import_config", price_xml_url=data.price_xml_url)

        now = datetime.utcnow().isoformat()
        row = {
            "id": str(uuid.uuid4()),
            **data.model_dump(),
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = self.db.table(self.configs_table).insert(row).execute()
            return ImportConfig(**result.data[0])
        except Exception as e:
            logger.error("create_import_config_failed", error=str(e))
            raise DatabaseError("insert", str(e))

    def list_configs(self, enabled_only: bool = False) -> list[ImportConfig]:
        try:
            query = self.db.table(self.configs_table).select("*")
            if enabled_only:
                query = query.eq("enabled", True)
            result = query.execute()
            return [ImportConfig(**row) for row in result.data or []]
        except Exception as e:
            logger.error("list_import_configs_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_config(self, config_id: str) -> ImportConfig:
        """
        Raises:
            ImportConfigNotFoundError: If it does not exist
        """
        try:
            result = (
                self.db.table(self.configs_table)
                .select("*")
                .eq("id", config_id)
                .execute()
            )

            if not result.data:
                raise ImportConfigNotFoundError(config_id)

            return ImportConfig(**result.data[0])

        except ImportConfigNotFoundError:
            raise
        except Exception as e:
            logger.error("get_import_config_failed", config_id=config_id, error=str(e))
            raise DatabaseError("select", str(e))


# Singleton instance for convenience
_session_service: Optional[SessionService] = None

def get_session_service() -> SessionService:
    """Get or create SessionService instance."""
    global _session_service
    if _session_service is None:
        _session_service = SessionService()
    return _session_service

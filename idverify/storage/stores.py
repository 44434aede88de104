"""Application and verification status stores.

The pipeline reads identity data of record from an application store and
writes its outcome to a verification status store. Both contracts are
protocols; an in-memory store and a SQLite store implement them.
"""

import json
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from idverify.errors import PersistenceError
from idverify.models import ApplicationIdentityRecord, VerificationStatus
from idverify.utils.logger import get_logger

logger = get_logger(__name__)


class ApplicationStore(Protocol):
    """Read-only source of identity data of record."""

    def get_application_identity_record(
        self, application_id: int
    ) -> ApplicationIdentityRecord | None: ...


class VerificationStatusStore(Protocol):
    """Sink for verification outcomes, one current status per application."""

    def update_verification_status(
        self,
        application_id: int,
        status: VerificationStatus,
        payload: dict[str, Any],
    ) -> None: ...


def _utc_now_iso() -> str:
    """ISO 8601 timestamp with timezone, second precision."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class InMemoryStore:
    """Dictionary-backed store implementing both protocols."""

    def __init__(
        self, applications: dict[int, ApplicationIdentityRecord] | None = None
    ) -> None:
        self.applications: dict[int, ApplicationIdentityRecord] = dict(
            applications or {}
        )
        self.statuses: dict[int, tuple[VerificationStatus, dict[str, Any]]] = {}

    def add_application(
        self, application_id: int, record: ApplicationIdentityRecord
    ) -> None:
        self.applications[application_id] = record

    def get_application_identity_record(
        self, application_id: int
    ) -> ApplicationIdentityRecord | None:
        return self.applications.get(application_id)

    def update_verification_status(
        self,
        application_id: int,
        status: VerificationStatus,
        payload: dict[str, Any],
    ) -> None:
        # Last writer wins; earlier outcomes are not kept.
        self.statuses[application_id] = (status, dict(payload))


class SqliteStore:
    """SQLite-backed store implementing both protocols.

    Applications live in ``loan_applications``; the latest verification
    outcome per application lives in ``document_verifications`` and is
    overwritten by each new run.

    Args:
        db_path: Path of the SQLite database file. Parent directories are
            created on first use.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._schema_ready = False

    def _connect(self) -> sqlite3.Connection:
        if not self._schema_ready:
            self._ensure_schema()
        return sqlite3.connect(self.db_path)

    def _ensure_schema(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS loan_applications (
                    id             INTEGER PRIMARY KEY,
                    full_name      TEXT NOT NULL,
                    date_of_birth  TEXT,
                    street         TEXT NOT NULL,
                    city           TEXT NOT NULL,
                    state          TEXT NOT NULL,
                    zip_code       TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS document_verifications (
                    application_id    INTEGER PRIMARY KEY,
                    status            TEXT NOT NULL,
                    confidence_score  INTEGER NOT NULL,
                    flags             TEXT NOT NULL,   -- JSON-encoded list
                    extracted_data    TEXT NOT NULL,   -- JSON-encoded object
                    updated_at        TEXT NOT NULL
                );
                """
            )
        self._schema_ready = True

    def add_application(
        self, application_id: int, record: ApplicationIdentityRecord
    ) -> None:
        """Insert or replace an application's identity data of record."""
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO loan_applications
                      (id, full_name, date_of_birth, street, city, state, zip_code)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        application_id,
                        record.full_name,
                        record.date_of_birth,
                        record.street,
                        record.city,
                        record.state,
                        record.zip_code,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Could not store application {application_id}: {exc}"
            ) from exc

    def get_application_identity_record(
        self, application_id: int
    ) -> ApplicationIdentityRecord | None:
        try:
            with closing(self._connect()) as conn, conn:
                row = conn.execute(
                    """
                    SELECT full_name, date_of_birth, street, city, state, zip_code
                    FROM loan_applications WHERE id = ?
                    """,
                    (application_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Could not read application {application_id}: {exc}"
            ) from exc

        if row is None:
            return None
        return ApplicationIdentityRecord(*row)

    def update_verification_status(
        self,
        application_id: int,
        status: VerificationStatus,
        payload: dict[str, Any],
    ) -> None:
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO document_verifications
                      (application_id, status, confidence_score, flags,
                       extracted_data, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        application_id,
                        str(status),
                        int(payload["confidenceScore"]),
                        payload["flags"],
                        payload["extractedData"],
                        _utc_now_iso(),
                    ),
                )
        except (sqlite3.Error, KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(
                f"Could not update verification status for {application_id}: {exc}"
            ) from exc
        logger.debug("Stored status %s for application %d", status, application_id)

    def get_verification_status(self, application_id: int) -> dict[str, Any] | None:
        """Return the stored outcome for an application, decoded from JSON."""
        try:
            with closing(self._connect()) as conn, conn:
                row = conn.execute(
                    """
                    SELECT status, confidence_score, flags, extracted_data, updated_at
                    FROM document_verifications WHERE application_id = ?
                    """,
                    (application_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Could not read verification status for {application_id}: {exc}"
            ) from exc

        if row is None:
            return None
        status, score, flags, extracted, updated_at = row
        return {
            "status": status,
            "confidenceScore": score,
            "flags": json.loads(flags),
            "extractedData": json.loads(extracted),
            "updatedAt": updated_at,
        }

from __future__ import annotations

import json
import os
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Iterable

import numpy as np

from career_identity.core.config import settings

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        type TEXT NOT NULL CHECK (type IN ('resume', 'story')),
        filename TEXT,
        raw_text TEXT,
        content_hash TEXT,
        status TEXT NOT NULL DEFAULT 'processing',
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS evidence (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        document_id TEXT REFERENCES documents(id) ON DELETE CASCADE,
        evidence_type TEXT NOT NULL,
        text TEXT NOT NULL,
        context_json TEXT,
        embedding_json TEXT,
        source_type TEXT NOT NULL DEFAULT 'resume',
        evidence_date TEXT,
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS identity_claims (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        type TEXT NOT NULL,
        label TEXT NOT NULL,
        description TEXT,
        confidence REAL NOT NULL DEFAULT 0.5,
        embedding_json TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS claim_evidence (
        id TEXT PRIMARY KEY,
        claim_id TEXT NOT NULL REFERENCES identity_claims(id) ON DELETE CASCADE,
        evidence_id TEXT NOT NULL REFERENCES evidence(id) ON DELETE CASCADE,
        strength TEXT NOT NULL CHECK (strength IN ('weak', 'medium', 'strong')),
        created_at TEXT NOT NULL,
        UNIQUE (claim_id, evidence_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS work_history (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        document_id TEXT REFERENCES documents(id) ON DELETE CASCADE,
        company TEXT NOT NULL,
        company_domain TEXT,
        title TEXT NOT NULL,
        start_date TEXT NOT NULL,
        end_date TEXT,
        location TEXT,
        summary TEXT,
        entry_type TEXT NOT NULL DEFAULT 'work',
        order_index INTEGER NOT NULL,
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS opportunities (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        company TEXT,
        url TEXT,
        description TEXT,
        requirements_json TEXT,
        embedding_json TEXT,
        status TEXT NOT NULL DEFAULT 'tracking',
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS tailored_profiles (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        opportunity_id TEXT NOT NULL REFERENCES opportunities(id) ON DELETE CASCADE,
        talking_points_json TEXT NOT NULL,
        narrative TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL,
        UNIQUE (user_id, opportunity_id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_documents_user_hash ON documents (user_id, content_hash);",
    "CREATE INDEX IF NOT EXISTS idx_evidence_user ON evidence (user_id);",
    "CREATE INDEX IF NOT EXISTS idx_identity_claims_user ON identity_claims (user_id);",
    "CREATE INDEX IF NOT EXISTS idx_claim_evidence_claim ON claim_evidence (claim_id);",
    "CREATE INDEX IF NOT EXISTS idx_work_history_user ON work_history (user_id, order_index);",
)


class StoreError(RuntimeError):
    pass


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


def _dumps(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def _loads(value: str | None) -> Any:
    if not value:
        return None
    return json.loads(value)


class IdentityStore:
    """Evidence, identity claims and opportunities for all users, backed by sqlite."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _get_connection(self) -> sqlite3.Connection:
        with self._lock:
            if self._conn is not None:
                return self._conn

            directory = os.path.dirname(self.db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=5,
                isolation_level=None,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA busy_timeout=5000;")
            conn.execute("PRAGMA foreign_keys=ON;")
            for statement in _SCHEMA:
                conn.execute(statement)
            self._conn = conn
            return conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _fetchone(self, sql: str, params: Iterable[Any] = ()) -> sqlite3.Row | None:
        conn = self._get_connection()
        with self._lock:
            return conn.execute(sql, tuple(params)).fetchone()

    def _fetchall(self, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
        conn = self._get_connection()
        with self._lock:
            return conn.execute(sql, tuple(params)).fetchall()

    def _execute(self, sql: str, params: Iterable[Any] = ()) -> int:
        conn = self._get_connection()
        with self._lock:
            cur = conn.execute(sql, tuple(params))
            return int(cur.rowcount or 0)

    def _executemany(self, sql: str, rows: list[tuple[Any, ...]]) -> None:
        conn = self._get_connection()
        with self._lock:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            try:
                cursor.executemany(sql, rows)
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    # documents

    def create_document(
        self,
        *,
        user_id: str,
        doc_type: str,
        raw_text: str,
        content_hash: str,
        filename: str | None = None,
    ) -> dict[str, Any]:
        document = {
            "id": _new_id(),
            "user_id": user_id,
            "type": doc_type,
            "filename": filename,
            "raw_text": raw_text,
            "content_hash": content_hash,
            "status": "processing",
            "created_at": _utc_now(),
        }
        try:
            self._execute(
                """
                INSERT INTO documents (id, user_id, type, filename, raw_text, content_hash, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    document["id"],
                    user_id,
                    doc_type,
                    filename,
                    raw_text,
                    content_hash,
                    document["status"],
                    document["created_at"],
                ),
            )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to create document: {exc}") from exc
        return document

    def find_document_by_hash(self, user_id: str, content_hash: str) -> dict[str, Any] | None:
        row = self._fetchone(
            """
            SELECT id, type, filename, status, created_at
            FROM documents
            WHERE user_id = ? AND content_hash = ?
            ORDER BY created_at ASC
            LIMIT 1
            """,
            (user_id, content_hash),
        )
        return dict(row) if row else None

    def get_document(self, document_id: str, user_id: str | None = None) -> dict[str, Any] | None:
        sql = """
            SELECT id, user_id, type, filename, raw_text, content_hash, status, created_at
            FROM documents
            WHERE id = ?
        """
        params: tuple[Any, ...] = (document_id,)
        if user_id is not None:
            sql += " AND user_id = ?"
            params = (document_id, user_id)
        row = self._fetchone(sql, params)
        return dict(row) if row else None

    def update_document_status(self, document_id: str, status: str) -> None:
        try:
            self._execute("UPDATE documents SET status = ? WHERE id = ?", (status, document_id))
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to update document status: {exc}") from exc

    def delete_document(self, document_id: str) -> None:
        """Delete a document; its evidence and work history cascade."""
        self._execute("DELETE FROM documents WHERE id = ?", (document_id,))

    # evidence

    def insert_evidence(
        self, *, user_id: str, document_id: str, items: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        now = _utc_now()
        stored: list[dict[str, Any]] = []
        rows: list[tuple[Any, ...]] = []
        for item in items:
            record = {
                "id": _new_id(),
                "user_id": user_id,
                "document_id": document_id,
                "evidence_type": item["evidence_type"],
                "text": item["text"],
                "context": item.get("context"),
                "embedding": item.get("embedding"),
                "source_type": item.get("source_type") or "resume",
                "evidence_date": item.get("evidence_date"),
                "created_at": now,
            }
            stored.append(record)
            rows.append(
                (
                    record["id"],
                    user_id,
                    document_id,
                    record["evidence_type"],
                    record["text"],
                    _dumps(record["context"]),
                    _dumps(record["embedding"]),
                    record["source_type"],
                    record["evidence_date"],
                    now,
                )
            )
        if not rows:
            return []
        try:
            self._executemany(
                """
                INSERT INTO evidence (
                    id, user_id, document_id, evidence_type, text, context_json,
                    embedding_json, source_type, evidence_date, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to store evidence: {exc}") from exc
        return stored

    def list_document_evidence(self, document_id: str) -> list[dict[str, Any]]:
        rows = self._fetchall(
            """
            SELECT id, text, evidence_type, source_type, evidence_date, created_at
            FROM evidence
            WHERE document_id = ?
            ORDER BY created_at DESC, rowid DESC
            """,
            (document_id,),
        )
        return [dict(row) for row in rows]

    def count_evidence(self, document_id: str) -> int:
        row = self._fetchone("SELECT COUNT(*) FROM evidence WHERE document_id = ?", (document_id,))
        return int(row[0]) if row else 0

    # work history

    def insert_work_history(
        self, *, user_id: str, document_id: str, entries: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        now = _utc_now()
        stored: list[dict[str, Any]] = []
        rows: list[tuple[Any, ...]] = []
        for index, entry in enumerate(entries):
            record_id = _new_id()
            stored.append({"id": record_id, "company": entry["company"], "title": entry["title"]})
            rows.append(
                (
                    record_id,
                    user_id,
                    document_id,
                    entry["company"],
                    entry.get("company_domain"),
                    entry["title"],
                    entry["start_date"],
                    entry.get("end_date"),
                    entry.get("location"),
                    entry.get("summary"),
                    entry.get("entry_type") or "work",
                    index,
                    now,
                )
            )
        if not rows:
            return []
        try:
            self._executemany(
                """
                INSERT INTO work_history (
                    id, user_id, document_id, company, company_domain, title, start_date,
                    end_date, location, summary, entry_type, order_index, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to store work history: {exc}") from exc
        return stored

    def list_work_history(self, user_id: str) -> list[dict[str, Any]]:
        rows = self._fetchall(
            """
            SELECT id, company, company_domain, title, start_date, end_date, location, summary, entry_type
            FROM work_history
            WHERE user_id = ?
            ORDER BY order_index ASC
            """,
            (user_id,),
        )
        return [dict(row) for row in rows]

    # claims

    def insert_claim(
        self,
        *,
        user_id: str,
        claim_type: str,
        label: str,
        description: str | None,
        confidence: float,
        embedding: list[float] | None,
    ) -> dict[str, Any]:
        now = _utc_now()
        claim = {
            "id": _new_id(),
            "user_id": user_id,
            "type": claim_type,
            "label": label,
            "description": description,
            "confidence": confidence,
            "created_at": now,
            "updated_at": now,
        }
        try:
            self._execute(
                """
                INSERT INTO identity_claims (
                    id, user_id, type, label, description, confidence, embedding_json, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    claim["id"],
                    user_id,
                    claim_type,
                    label,
                    description,
                    confidence,
                    _dumps(embedding),
                    now,
                    now,
                ),
            )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to insert claim '{label}': {exc}") from exc
        return claim

    def get_claim(self, claim_id: str, user_id: str | None = None) -> dict[str, Any] | None:
        sql = """
            SELECT id, user_id, type, label, description, confidence, created_at, updated_at
            FROM identity_claims
            WHERE id = ?
        """
        params: tuple[Any, ...] = (claim_id,)
        if user_id is not None:
            sql += " AND user_id = ?"
            params = (claim_id, user_id)
        row = self._fetchone(sql, params)
        return dict(row) if row else None

    def list_claims(self, user_id: str) -> list[dict[str, Any]]:
        rows = self._fetchall(
            """
            SELECT c.id, c.type, c.label, c.description, c.confidence, c.created_at, c.updated_at,
                   COUNT(ce.id) AS evidence_count
            FROM identity_claims c
            LEFT JOIN claim_evidence ce ON ce.claim_id = c.id
            WHERE c.user_id = ?
            GROUP BY c.id
            ORDER BY c.confidence DESC, c.label ASC
            """,
            (user_id,),
        )
        return [dict(row) for row in rows]

    def list_claim_ids(self, user_id: str | None = None) -> list[str]:
        if user_id is None:
            rows = self._fetchall("SELECT id FROM identity_claims ORDER BY created_at ASC")
        else:
            rows = self._fetchall(
                "SELECT id FROM identity_claims WHERE user_id = ? ORDER BY created_at ASC",
                (user_id,),
            )
        return [row["id"] for row in rows]

    def update_claim_confidence(self, claim_id: str, confidence: float) -> None:
        self._execute(
            "UPDATE identity_claims SET confidence = ?, updated_at = ? WHERE id = ?",
            (confidence, _utc_now(), claim_id),
        )

    def link_evidence(self, claim_id: str, evidence_id: str, strength: str) -> bool:
        """Link evidence to a claim; an existing link is left untouched."""
        try:
            inserted = self._execute(
                """
                INSERT OR IGNORE INTO claim_evidence (id, claim_id, evidence_id, strength, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (_new_id(), claim_id, evidence_id, strength, _utc_now()),
            )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to link evidence {evidence_id} to claim {claim_id}: {exc}") from exc
        return inserted > 0

    def get_claim_evidence(self, claim_id: str) -> list[dict[str, Any]]:
        rows = self._fetchall(
            """
            SELECT ce.strength, e.id AS evidence_id, e.text, e.evidence_type, e.context_json,
                   e.source_type, e.evidence_date
            FROM claim_evidence ce
            JOIN evidence e ON e.id = ce.evidence_id
            WHERE ce.claim_id = ?
            ORDER BY ce.created_at ASC
            """,
            (claim_id,),
        )
        links: list[dict[str, Any]] = []
        for row in rows:
            link = dict(row)
            link["context"] = _loads(link.pop("context_json"))
            links.append(link)
        return links

    def list_claims_with_evidence(self, user_id: str) -> list[dict[str, Any]]:
        claims = self._fetchall(
            "SELECT id, label, type, description FROM identity_claims WHERE user_id = ? ORDER BY confidence DESC",
            (user_id,),
        )
        result: list[dict[str, Any]] = []
        for claim in claims:
            item = dict(claim)
            item["evidence"] = [
                {"text": link["text"], "type": link["evidence_type"], "context": link["context"]}
                for link in self.get_claim_evidence(claim["id"])
            ]
            result.append(item)
        return result

    # vector retrieval

    def _rank_claims(
        self, query_embedding: list[float], user_id: str, threshold: float
    ) -> list[dict[str, Any]]:
        rows = self._fetchall(
            """
            SELECT id, type, label, description, confidence, embedding_json
            FROM identity_claims
            WHERE user_id = ? AND embedding_json IS NOT NULL
            """,
            (user_id,),
        )
        query = np.asarray(query_embedding, dtype="float32")
        query_norm = float(np.linalg.norm(query))
        if not rows or query_norm <= 0:
            return []

        candidates: list[dict[str, Any]] = []
        vectors: list[list[float]] = []
        for row in rows:
            vector = _loads(row["embedding_json"])
            if not vector or len(vector) != query.shape[0]:
                continue
            candidates.append(
                {
                    "id": row["id"],
                    "type": row["type"],
                    "label": row["label"],
                    "description": row["description"],
                    "confidence": row["confidence"],
                }
            )
            vectors.append(vector)
        if not candidates:
            return []

        matrix = np.asarray(vectors, dtype="float32")
        norms = np.linalg.norm(matrix, axis=1)
        norms[norms == 0] = np.inf
        similarities = (matrix @ query) / (norms * query_norm)

        ranked: list[dict[str, Any]] = []
        for idx in np.argsort(-similarities, kind="stable").tolist():
            similarity = float(similarities[idx])
            if similarity <= threshold:
                break
            ranked.append({**candidates[idx], "similarity": similarity})
        return ranked

    def match_identity_claims(
        self,
        query_embedding: list[float],
        user_id: str,
        match_threshold: float,
        match_count: int,
    ) -> list[dict[str, Any]]:
        """Claims more similar than match_threshold, most similar first."""
        return self._rank_claims(query_embedding, user_id, match_threshold)[:match_count]

    def find_relevant_claims_for_synthesis(
        self,
        query_embedding: list[float],
        user_id: str,
        similarity_threshold: float,
        max_claims: int,
    ) -> list[dict[str, Any]]:
        return self._rank_claims(query_embedding, user_id, similarity_threshold)[:max_claims]

    # opportunities

    def create_opportunity(
        self,
        *,
        user_id: str,
        title: str,
        company: str | None,
        url: str | None,
        description: str,
        requirements: dict[str, Any],
        embedding: list[float] | None,
    ) -> dict[str, Any]:
        opportunity = {
            "id": _new_id(),
            "user_id": user_id,
            "title": title,
            "company": company,
            "url": url,
            "description": description,
            "requirements": requirements,
            "status": "tracking",
            "created_at": _utc_now(),
        }
        try:
            self._execute(
                """
                INSERT INTO opportunities (
                    id, user_id, title, company, url, description, requirements_json,
                    embedding_json, status, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    opportunity["id"],
                    user_id,
                    title,
                    company,
                    url,
                    description,
                    _dumps(requirements),
                    _dumps(embedding),
                    opportunity["status"],
                    opportunity["created_at"],
                ),
            )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to save opportunity: {exc}") from exc
        return opportunity

    def get_opportunity(self, opportunity_id: str, user_id: str | None = None) -> dict[str, Any] | None:
        sql = """
            SELECT id, user_id, title, company, url, description, requirements_json, status, created_at
            FROM opportunities
            WHERE id = ?
        """
        params: tuple[Any, ...] = (opportunity_id,)
        if user_id is not None:
            sql += " AND user_id = ?"
            params = (opportunity_id, user_id)
        row = self._fetchone(sql, params)
        if not row:
            return None
        opportunity = dict(row)
        opportunity["requirements"] = _loads(opportunity.pop("requirements_json"))
        return opportunity


    # tailored profiles

    def get_tailored_profile(self, user_id: str, opportunity_id: str) -> dict[str, Any] | None:
        row = self._fetchone(
            """
            SELECT id, user_id, opportunity_id, talking_points_json, narrative, created_at
            FROM tailored_profiles
            WHERE user_id = ? AND opportunity_id = ?
            """,
            (user_id, opportunity_id),
        )
        if not row:
            return None
        profile = dict(row)
        profile["talking_points"] = _loads(profile.pop("talking_points_json"))
        return profile

    def delete_tailored_profile(self, user_id: str, opportunity_id: str) -> int:
        return self._execute(
            "DELETE FROM tailored_profiles WHERE user_id = ? AND opportunity_id = ?",
            (user_id, opportunity_id),
        )

    def insert_tailored_profile(
        self, *, user_id: str, opportunity_id: str, talking_points: dict[str, Any], narrative: str
    ) -> dict[str, Any]:
        profile = {
            "id": _new_id(),
            "user_id": user_id,
            "opportunity_id": opportunity_id,
            "talking_points": talking_points,
            "narrative": narrative,
            "created_at": _utc_now(),
        }
        try:
            self._execute(
                """
                INSERT INTO tailored_profiles (
                    id, user_id, opportunity_id, talking_points_json, narrative, created_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    profile["id"],
                    user_id,
                    opportunity_id,
                    _dumps(talking_points),
                    narrative,
                    profile["created_at"],
                ),
            )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to save profile: {exc}") from exc
        return profile

@lru_cache(maxsize=1)
def get_store() -> IdentityStore:
    return IdentityStore(settings.identity_db_path)

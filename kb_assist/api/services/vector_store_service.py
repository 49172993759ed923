"""
SQLite vector store service for the two retrieval tiers.

Chunk records live in one SQLite file: ``kb_domain`` (global) and ``kb_org``
(scoped by org_id). Search ranks by cosine distance, in SQL through the
sqlite-vec extension when it loads, otherwise in Python.
"""
from __future__ import annotations

import importlib
import json
import logging
import math
import sqlite3
import struct
from contextlib import closing
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional, Sequence, Union

from ...errors import (
    EmbeddingDimensionMismatch,
    InvalidEmbeddingShape,
    InvalidTier,
    MissingOrgId,
    StorageError,
)

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    """Retrieval scope of a chunk record"""
    DOMAIN = "domain"
    ORG = "org"

    @property
    def table(self) -> str:
        return "kb_org" if self is Tier.ORG else "kb_domain"

    @classmethod
    def parse(cls, value: Union[str, "Tier", None]) -> "Tier":
        if isinstance(value, Tier):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            raise InvalidTier(f"Missing or invalid tier: {value!r} (expected 'domain' or 'org')") from None


@dataclass
class SearchResult:
    """A single nearest-neighbor hit"""
    id: str
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    distance: float = 0.0

    @property
    def source(self) -> Optional[str]:
        return self.metadata.get("source")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "metadata": dict(self.metadata),
            "distance": self.distance,
        }


def _coerce_element(value: Any) -> Optional[float]:
    """Return a finite float, or None when the element must fall back to 0."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    elif isinstance(value, (int, float)):
        number = float(value)
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_embedding(values: Any) -> List[float]:
    """
    Coerce a caller-provided embedding into a list of floats.

    Numeric strings are parsed; non-numeric or non-finite elements become
    0.0 and are reported in a warning.

    Raises:
        InvalidEmbeddingShape: If ``values`` is not a list or tuple
    """
    if not isinstance(values, (list, tuple)):
        raise InvalidEmbeddingShape(
            f"Embedding must be an array, got {type(values).__name__}"
        )

    vector: List[float] = []
    replaced = 0
    for value in values:
        number = _coerce_element(value)
        if number is None:
            replaced += 1
            number = 0.0
        vector.append(number)
    if replaced:
        logger.warning(f"Embedding had {replaced}/{len(vector)} invalid element(s) replaced with 0.0")
    return vector


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    # shortest round-trip digits, written without an exponent
    return format(Decimal(repr(value)), "f")


def to_vector_literal(values: Any) -> str:
    """Encode an embedding as ``[v1,v2,...]`` with decimal values."""
    return "[" + ",".join(_format_number(v) for v in coerce_embedding(values)) + "]"


class VectorStoreService:
    """Two-tier chunk storage and nearest-neighbor search in SQLite"""

    def __init__(self, db_path: Union[str, Path], dimension: Optional[int] = None):
        db_path_obj = Path(db_path)
        db_path_obj.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = db_path_obj
        # None or 0: dimension is fixed by the first record of each tier
        self.dimension = dimension or None
        self._lock = Lock()
        self._sqlite_vec_available = True
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=30, check_same_thread=False)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open vector store {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        if self._sqlite_vec_available:
            self._try_load_sqlite_vec(conn)
        return conn

    def _try_load_sqlite_vec(self, conn: sqlite3.Connection) -> None:
        """Best-effort sqlite-vec extension load for SQL-side distance search."""
        try:
            sqlite_vec = importlib.import_module("sqlite_vec")

            conn.enable_load_extension(True)
            sqlite_vec.load(conn)
            conn.enable_load_extension(False)
        except (ImportError, AttributeError, sqlite3.Error) as e:
            logger.info(f"sqlite-vec unavailable, using Python distance scoring: {e}")
            self._sqlite_vec_available = False

    def _ensure_schema(self) -> None:
        try:
            with closing(self._connect()) as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kb_domain (
                        id TEXT PRIMARY KEY,
                        text TEXT NOT NULL,
                        metadata_json TEXT NOT NULL,
                        embedding_literal TEXT NOT NULL,
                        embedding_blob BLOB NOT NULL,
                        embedding_dim INTEGER NOT NULL,
                        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kb_org (
                        id TEXT PRIMARY KEY,
                        org_id TEXT NOT NULL,
                        text TEXT NOT NULL,
                        metadata_json TEXT NOT NULL,
                        embedding_literal TEXT NOT NULL,
                        embedding_blob BLOB NOT NULL,
                        embedding_dim INTEGER NOT NULL,
                        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                    )
                    """
                )
                conn.execute("CREATE INDEX IF NOT EXISTS idx_kb_org_orgid ON kb_org (org_id)")
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to initialize vector store schema: {e}") from e

    @staticmethod
    def _pack_vector_float32(vector: Sequence[float]) -> bytes:
        return struct.pack(f"<{len(vector)}f", *vector)

    @staticmethod
    def _cosine_distance(query: Sequence[float], candidate: Sequence[float]) -> float:
        if len(query) != len(candidate):
            return 1.0
        dot = 0.0
        q_norm = 0.0
        c_norm = 0.0
        for q_val, c_val in zip(query, candidate):
            dot += q_val * c_val
            q_norm += q_val * q_val
            c_norm += c_val * c_val
        if q_norm <= 0.0 or c_norm <= 0.0:
            return 1.0
        return max(0.0, 1.0 - dot / (math.sqrt(q_norm) * math.sqrt(c_norm)))

    def _tier_dimension(self, conn: sqlite3.Connection, tier: Tier, exclude_id: str) -> Optional[int]:
        if self.dimension:
            return self.dimension
        row = conn.execute(
            f"SELECT embedding_dim FROM {tier.table} WHERE id != ? LIMIT 1",
            (exclude_id,),
        ).fetchone()
        return int(row["embedding_dim"]) if row else None

    def ping(self) -> bool:
        """Check the store answers a trivial statement."""
        try:
            with closing(self._connect()) as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except (sqlite3.Error, StorageError):
            return False

    def upsert(
        self,
        tier: Union[str, Tier],
        id: str,
        text: str,
        metadata: Dict[str, Any],
        embedding: Any,
    ) -> None:
        """
        Insert or replace one chunk record (last writer wins).

        Raises:
            MissingOrgId: Org-tier record without metadata.org_id
            InvalidEmbeddingShape: Embedding is not a non-empty array
            EmbeddingDimensionMismatch: Length differs from the tier dimension
            StorageError: SQLite rejected the write
        """
        tier = Tier.parse(tier)
        metadata = {k: v for k, v in (metadata or {}).items() if v is not None}
        org_id = str(metadata.get("org_id") or "").strip()
        if tier is Tier.ORG and not org_id:
            raise MissingOrgId("Org-tier records require metadata.org_id")

        vector = coerce_embedding(embedding)
        if not vector:
            raise InvalidEmbeddingShape("Embedding must not be empty")
        literal = to_vector_literal(vector)
        blob = self._pack_vector_float32(vector)
        metadata_json = json.dumps(metadata, ensure_ascii=False)

        try:
            with self._lock, closing(self._connect()) as conn:
                expected = self._tier_dimension(conn, tier, id)
                if expected is not None and expected != len(vector):
                    raise EmbeddingDimensionMismatch(expected, len(vector))

                if tier is Tier.ORG:
                    conn.execute(
                        """
                        INSERT INTO kb_org (
                            id, org_id, text, metadata_json, embedding_literal,
                            embedding_blob, embedding_dim, updated_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                        ON CONFLICT(id) DO UPDATE SET
                            org_id = excluded.org_id,
                            text = excluded.text,
                            metadata_json = excluded.metadata_json,
                            embedding_literal = excluded.embedding_literal,
                            embedding_blob = excluded.embedding_blob,
                            embedding_dim = excluded.embedding_dim,
                            updated_at = CURRENT_TIMESTAMP
                        """,
                        (id, org_id, text, metadata_json, literal, blob, len(vector)),
                    )
                else:
                    conn.execute(
                        """
                        INSERT INTO kb_domain (
                            id, text, metadata_json, embedding_literal,
                            embedding_blob, embedding_dim, updated_at
                        ) VALUES (?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                        ON CONFLICT(id) DO UPDATE SET
                            text = excluded.text,
                            metadata_json = excluded.metadata_json,
                            embedding_literal = excluded.embedding_literal,
                            embedding_blob = excluded.embedding_blob,
                            embedding_dim = excluded.embedding_dim,
                            updated_at = CURRENT_TIMESTAMP
                        """,
                        (id, text, metadata_json, literal, blob, len(vector)),
                    )
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to upsert {tier.value} chunk {id}: {e}") from e

    @staticmethod
    def _row_to_result(row: sqlite3.Row, distance: float) -> SearchResult:
        try:
            metadata = json.loads(row["metadata_json"] or "{}")
        except ValueError:
            metadata = {}
        return SearchResult(
            id=str(row["id"]),
            text=str(row["text"] or ""),
            metadata=metadata,
            distance=float(distance),
        )

    def _search_with_sqlite_vec(
        self,
        conn: sqlite3.Connection,
        *,
        tier: Tier,
        org_id: Optional[str],
        literal: str,
        dim: int,
        limit: int,
    ) -> Optional[List[SearchResult]]:
        where = "embedding_dim = ?"
        params: List[Any] = [literal, dim]
        if org_id is not None:
            where += " AND org_id = ?"
            params.append(org_id)
        params.append(limit)
        try:
            rows = conn.execute(
                f"""
                SELECT id, text, metadata_json,
                       vec_distance_cosine(embedding_blob, ?) AS distance
                FROM {tier.table}
                WHERE {where}
                ORDER BY distance ASC, rowid ASC
                LIMIT ?
                """,
                params,
            ).fetchall()
        except sqlite3.OperationalError as e:
            if "no such function" in str(e).lower():
                logger.info(f"sqlite-vec functions missing, using Python scoring from now on: {e}")
                self._sqlite_vec_available = False
            else:
                logger.warning(f"sqlite-vec search failed, scoring this query in Python: {e}")
            return None
        return [
            self._row_to_result(row, max(0.0, float(row["distance"] or 0.0)))
            for row in rows
        ]

    def _search_in_python(
        self,
        conn: sqlite3.Connection,
        *,
        tier: Tier,
        org_id: Optional[str],
        query: List[float],
        limit: int,
    ) -> List[SearchResult]:
        where = "embedding_dim = ?"
        params: List[Any] = [len(query)]
        if org_id is not None:
            where += " AND org_id = ?"
            params.append(org_id)
        rows = conn.execute(
            f"""
            SELECT id, text, metadata_json, embedding_literal
            FROM {tier.table}
            WHERE {where}
            ORDER BY rowid ASC
            """,
            params,
        ).fetchall()

        ranked: List[SearchResult] = []
        for row in rows:
            candidate = json.loads(row["embedding_literal"])
            ranked.append(self._row_to_result(row, self._cosine_distance(query, candidate)))
        # sort is stable, so equal distances keep rowid order
        ranked.sort(key=lambda item: item.distance)
        return ranked[:limit]

    def _search(
        self,
        tier: Tier,
        query_embedding: Any,
        limit: int,
        org_id: Optional[str] = None,
    ) -> List[SearchResult]:
        if limit <= 0:
            return []
        query = coerce_embedding(query_embedding)
        if not query:
            return []
        literal = to_vector_literal(query)

        try:
            with closing(self._connect()) as conn:
                if self._sqlite_vec_available:
                    results = self._search_with_sqlite_vec(
                        conn, tier=tier, org_id=org_id, literal=literal, dim=len(query), limit=limit,
                    )
                    if results is not None:
                        return results
                return self._search_in_python(conn, tier=tier, org_id=org_id, query=query, limit=limit)
        except sqlite3.Error as e:
            raise StorageError(f"Search in {tier.table} failed: {e}") from e

    def search_domain(self, query_embedding: Any, limit: int) -> List[SearchResult]:
        """Return up to ``limit`` domain-tier records by ascending distance."""
        return self._search(Tier.DOMAIN, query_embedding, limit)

    def search_org(self, org_id: str, query_embedding: Any, limit: int) -> List[SearchResult]:
        """Return up to ``limit`` records of one organization by ascending distance."""
        if not org_id:
            raise MissingOrgId("Org-tier search requires an org_id")
        return self._search(Tier.ORG, query_embedding, limit, org_id=org_id)

    def get(self, tier: Union[str, Tier], id: str) -> Optional[SearchResult]:
        """Fetch one record by id (distance is 0)."""
        tier = Tier.parse(tier)
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    f"SELECT id, text, metadata_json FROM {tier.table} WHERE id = ?",
                    (id,),
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Lookup in {tier.table} failed: {e}") from e
        return self._row_to_result(row, 0.0) if row else None

    def count(self, tier: Union[str, Tier], org_id: Optional[str] = None) -> int:
        """Number of records in a tier, optionally for one organization."""
        tier = Tier.parse(tier)
        try:
            with closing(self._connect()) as conn:
                if tier is Tier.ORG and org_id:
                    row = conn.execute("SELECT COUNT(*) FROM kb_org WHERE org_id = ?", (org_id,)).fetchone()
                else:
                    row = conn.execute(f"SELECT COUNT(*) FROM {tier.table}").fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Count in {tier.table} failed: {e}") from e
        return int(row[0])

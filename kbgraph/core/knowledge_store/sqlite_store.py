"""
SQLite knowledge store using aiosqlite.

Vectors are stored as JSON text. Similarity search is delegated to a
vector index when one is attached, otherwise rows are scored with numpy.
"""

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from kbgraph.core.knowledge_store.base import (
    KnowledgeStore,
    ensure_transition,
    rank_by_similarity,
)
from kbgraph.core.vector_store.base import VectorIndex
from kbgraph.models.entity import EntityType, StoredEntity
from kbgraph.models.knowledge import (
    EmbeddingStatus,
    KnowledgeBaseItem,
    KnowledgeEmbedding,
    SimilarityMatch,
)
from kbgraph.models.relationship import (
    RelationshipDirection,
    RelationshipType,
    StoredRelationship,
)
from kbgraph.utils.exceptions import NotFoundError, StoreError
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS knowledge_items (
        id TEXT PRIMARY KEY,
        workspace_id TEXT NOT NULL,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        entity_type TEXT,
        embedding_status TEXT NOT NULL,
        embedding_error TEXT,
        embeddings_count INTEGER DEFAULT 0,
        metadata TEXT DEFAULT '{}',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS embeddings (
        id TEXT PRIMARY KEY,
        workspace_id TEXT NOT NULL,
        knowledge_item_id TEXT NOT NULL,
        chunk_index INTEGER NOT NULL,
        content TEXT NOT NULL,
        embedding TEXT NOT NULL,
        token_count INTEGER DEFAULT 0,
        model TEXT,
        metadata TEXT DEFAULT '{}',
        created_at TEXT NOT NULL,
        FOREIGN KEY (knowledge_item_id) REFERENCES knowledge_items(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS entities (
        id TEXT PRIMARY KEY,
        workspace_id TEXT NOT NULL,
        knowledge_item_id TEXT,
        entity_type TEXT NOT NULL,
        name TEXT NOT NULL,
        description TEXT,
        confidence REAL NOT NULL,
        source_chunk_ids TEXT DEFAULT '[]',
        metadata TEXT DEFAULT '{}',
        attributes TEXT DEFAULT '{}',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS relationships (
        id TEXT PRIMARY KEY,
        workspace_id TEXT NOT NULL,
        knowledge_item_id TEXT,
        source_entity_id TEXT NOT NULL,
        target_entity_id TEXT NOT NULL,
        relationship_type TEXT NOT NULL,
        confidence REAL NOT NULL,
        metadata TEXT DEFAULT '{}',
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_items_workspace ON knowledge_items(workspace_id)",
    "CREATE INDEX IF NOT EXISTS idx_embeddings_workspace ON embeddings(workspace_id)",
    "CREATE INDEX IF NOT EXISTS idx_embeddings_item ON embeddings(knowledge_item_id)",
    "CREATE INDEX IF NOT EXISTS idx_entities_workspace ON entities(workspace_id)",
    "CREATE INDEX IF NOT EXISTS idx_entities_item ON entities(knowledge_item_id)",
    "CREATE INDEX IF NOT EXISTS idx_entities_type ON entities(entity_type)",
    "CREATE INDEX IF NOT EXISTS idx_relationships_workspace ON relationships(workspace_id)",
    "CREATE INDEX IF NOT EXISTS idx_relationships_source ON relationships(source_entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_relationships_target ON relationships(target_entity_id)",
]

ITEM_COLUMNS = (
    "id, workspace_id, title, content, entity_type, embedding_status, embedding_error, "
    "embeddings_count, metadata, created_at, updated_at"
)
EMBEDDING_COLUMNS = (
    "id, workspace_id, knowledge_item_id, chunk_index, content, embedding, token_count, "
    "model, metadata, created_at"
)
ENTITY_COLUMNS = (
    "id, workspace_id, knowledge_item_id, entity_type, name, description, confidence, "
    "source_chunk_ids, metadata, attributes, created_at"
)
RELATIONSHIP_COLUMNS = (
    "id, workspace_id, knowledge_item_id, source_entity_id, target_entity_id, "
    "relationship_type, confidence, metadata, created_at"
)


def _placeholders(values: list[Any]) -> str:
    return ",".join("?" * len(values))


class SQLiteKnowledgeStore(KnowledgeStore):
    """
    SQLite-backed KnowledgeStore.

    Features:
    - Local single-file storage with WAL journaling
    - JSON columns for metadata, attributes and vectors
    - Every statement bounded by a deadline
    - Optional vector index for similarity search
    """

    def __init__(
        self,
        db_path: str = "data/kbgraph.db",
        timeout: float = 30.0,
        vector_index: VectorIndex | None = None,
    ):
        """
        Initialize SQLite knowledge store.

        Args:
            db_path: Path to SQLite database file
            timeout: Deadline in seconds for each database call
            vector_index: Optional index that answers match_embeddings
        """
        self.db_path = db_path
        self.timeout = timeout
        self.vector_index = vector_index
        self.connection: aiosqlite.Connection | None = None

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        """Establish connection to SQLite."""
        if self.connection is None:
            try:
                self.connection = await aiosqlite.connect(self.db_path, timeout=self.timeout)
                await self.connection.execute("PRAGMA foreign_keys = ON")
                await self.connection.execute("PRAGMA journal_mode = WAL")
                await self.connection.commit()
            except aiosqlite.Error as e:
                self.connection = None
                raise StoreError(
                    f"Failed to open SQLite database: {e}", context={"db_path": self.db_path}
                ) from e

    async def initialize(self) -> None:
        """Initialize database schema."""
        await self.connect()
        for statement in SCHEMA:
            await self._execute(statement, commit=False)
        await self._commit()

    async def close(self) -> None:
        if self.connection is not None:
            await self.connection.close()
            self.connection = None
        if self.vector_index is not None:
            await self.vector_index.close()

    # ═══════════════════════════════════════════════════════════
    # EXECUTION HELPERS
    # ═══════════════════════════════════════════════════════════

    async def _execute(self, sql: str, params: Any = (), commit: bool = True) -> int:
        """Run a write statement. Returns the affected row count."""
        await self.connect()
        try:
            cursor = await asyncio.wait_for(
                self.connection.execute(sql, params), timeout=self.timeout
            )
            if commit:
                await self._commit()
            return cursor.rowcount
        except asyncio.TimeoutError as e:
            raise StoreError(
                f"SQLite statement timed out after {self.timeout}s", context={"sql": sql[:80]}
            ) from e
        except aiosqlite.Error as e:
            logger.error("SQLite statement failed", extra={"sql": sql[:80], "error": str(e)})
            raise StoreError(f"SQLite statement failed: {e}") from e

    async def _execute_many(self, sql: str, rows: list[tuple]) -> None:
        if not rows:
            return
        await self.connect()
        try:
            await asyncio.wait_for(self.connection.executemany(sql, rows), timeout=self.timeout)
            await self._commit()
        except asyncio.TimeoutError as e:
            raise StoreError(
                f"SQLite batch write timed out after {self.timeout}s", context={"rows": len(rows)}
            ) from e
        except aiosqlite.Error as e:
            logger.error("SQLite batch write failed", extra={"rows": len(rows), "error": str(e)})
            raise StoreError(f"SQLite batch write failed: {e}") from e

    async def _fetchall(self, sql: str, params: Any = ()) -> list[tuple]:
        await self.connect()
        try:
            cursor = await asyncio.wait_for(
                self.connection.execute(sql, params), timeout=self.timeout
            )
            return list(await asyncio.wait_for(cursor.fetchall(), timeout=self.timeout))
        except asyncio.TimeoutError as e:
            raise StoreError(
                f"SQLite query timed out after {self.timeout}s", context={"sql": sql[:80]}
            ) from e
        except aiosqlite.Error as e:
            logger.error("SQLite query failed", extra={"sql": sql[:80], "error": str(e)})
            raise StoreError(f"SQLite query failed: {e}") from e

    async def _commit(self) -> None:
        try:
            await asyncio.wait_for(self.connection.commit(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise StoreError(f"SQLite commit timed out after {self.timeout}s") from e

    # ═══════════════════════════════════════════════════════════
    # KNOWLEDGE ITEMS
    # ═══════════════════════════════════════════════════════════

    async def create_knowledge_item(self, item: KnowledgeBaseItem) -> KnowledgeBaseItem:
        await self._execute(
            f"INSERT OR REPLACE INTO knowledge_items ({ITEM_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                item.id,
                item.workspace_id,
                item.title,
                item.content,
                item.entity_type,
                item.embedding_status.value,
                item.embedding_error,
                item.embeddings_count,
                json.dumps(item.metadata),
                item.created_at.isoformat(),
                item.updated_at.isoformat(),
            ),
        )
        return item

    async def get_knowledge_item(self, item_id: str) -> KnowledgeBaseItem | None:
        rows = await self._fetchall(
            f"SELECT {ITEM_COLUMNS} FROM knowledge_items WHERE id = ?", (item_id,)
        )
        return self._row_to_item(rows[0]) if rows else None

    async def list_knowledge_items(
        self,
        workspace_id: str,
        status: EmbeddingStatus | None = None,
        limit: int = 100,
    ) -> list[KnowledgeBaseItem]:
        query = f"SELECT {ITEM_COLUMNS} FROM knowledge_items WHERE workspace_id = ?"
        params: list[Any] = [workspace_id]

        if status is not None:
            query += " AND embedding_status = ?"
            params.append(status.value)

        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)

        return [self._row_to_item(row) for row in await self._fetchall(query, params)]

    async def update_embedding_status(
        self,
        item_id: str,
        status: EmbeddingStatus,
        error: str | None = None,
        embeddings_count: int | None = None,
    ) -> KnowledgeBaseItem:
        item = await self.get_knowledge_item(item_id)
        if item is None:
            raise NotFoundError(f"Knowledge item not found: {item_id}")

        ensure_transition(item.embedding_status, status)

        item.embedding_status = status
        item.embedding_error = error if status == EmbeddingStatus.FAILED else None
        if embeddings_count is not None:
            item.embeddings_count = embeddings_count
        item.updated_at = datetime.now()

        await self._execute(
            """
            UPDATE knowledge_items
            SET embedding_status = ?, embedding_error = ?, embeddings_count = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                item.embedding_status.value,
                item.embedding_error,
                item.embeddings_count,
                item.updated_at.isoformat(),
                item_id,
            ),
        )
        return item

    async def delete_knowledge_item(self, item_id: str) -> bool:
        if await self.get_knowledge_item(item_id) is None:
            return False

        await self.delete_embeddings_for_item(item_id)
        await self.delete_relationships_for_item(item_id)
        await self.delete_entities_for_item(item_id)
        await self._execute("DELETE FROM knowledge_items WHERE id = ?", (item_id,))

        logger.debug("Deleted knowledge item {}", item_id)
        return True

    # ═══════════════════════════════════════════════════════════
    # EMBEDDINGS
    # ═══════════════════════════════════════════════════════════

    async def store_embeddings(self, embeddings: list[KnowledgeEmbedding]) -> None:
        await self._execute_many(
            f"INSERT OR REPLACE INTO embeddings ({EMBEDDING_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (
                    e.id,
                    e.workspace_id,
                    e.knowledge_item_id,
                    e.chunk_index,
                    e.content,
                    json.dumps(e.embedding),
                    e.token_count,
                    e.model,
                    json.dumps(e.metadata),
                    e.created_at.isoformat(),
                )
                for e in embeddings
            ],
        )

        if self.vector_index is not None and embeddings:
            await self.vector_index.upsert_embeddings(embeddings)

    async def get_embeddings_for_item(self, item_id: str) -> list[KnowledgeEmbedding]:
        rows = await self._fetchall(
            f"SELECT {EMBEDDING_COLUMNS} FROM embeddings "
            "WHERE knowledge_item_id = ? ORDER BY chunk_index",
            (item_id,),
        )
        return [self._row_to_embedding(row) for row in rows]

    async def get_embeddings_by_ids(self, embedding_ids: list[str]) -> list[KnowledgeEmbedding]:
        if not embedding_ids:
            return []
        rows = await self._fetchall(
            f"SELECT {EMBEDDING_COLUMNS} FROM embeddings "
            f"WHERE id IN ({_placeholders(embedding_ids)})",
            embedding_ids,
        )
        by_id = {row[0]: self._row_to_embedding(row) for row in rows}
        return [by_id[eid] for eid in embedding_ids if eid in by_id]

    async def delete_embeddings_for_item(self, item_id: str) -> int:
        deleted = await self._execute(
            "DELETE FROM embeddings WHERE knowledge_item_id = ?", (item_id,)
        )
        if self.vector_index is not None:
            await self.vector_index.delete_for_item(item_id)
        return deleted

    async def count_embeddings(
        self, workspace_id: str, knowledge_item_id: str | None = None
    ) -> int:
        query = "SELECT COUNT(*) FROM embeddings WHERE workspace_id = ?"
        params: list[Any] = [workspace_id]

        if knowledge_item_id is not None:
            query += " AND knowledge_item_id = ?"
            params.append(knowledge_item_id)

        rows = await self._fetchall(query, params)
        return rows[0][0] if rows else 0

    async def match_embeddings(
        self,
        workspace_id: str,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
    ) -> list[SimilarityMatch]:
        if self.vector_index is not None:
            return await self.vector_index.search(
                workspace_id, query_embedding, match_threshold, match_count
            )

        rows = await self._fetchall(
            "SELECT id, embedding FROM embeddings WHERE workspace_id = ?", (workspace_id,)
        )
        candidates = ((row[0], json.loads(row[1])) for row in rows)
        return rank_by_similarity(query_embedding, candidates, match_threshold, match_count)

    # ═══════════════════════════════════════════════════════════
    # ENTITIES
    # ═══════════════════════════════════════════════════════════

    async def store_entities(self, entities: list[StoredEntity]) -> None:
        await self._execute_many(
            f"INSERT OR REPLACE INTO entities ({ENTITY_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (
                    e.id,
                    e.workspace_id,
                    e.knowledge_item_id,
                    e.entity_type.value,
                    e.name,
                    e.description,
                    e.confidence,
                    json.dumps(e.source_chunk_ids),
                    json.dumps(e.metadata),
                    json.dumps(e.attributes),
                    e.created_at.isoformat(),
                )
                for e in entities
            ],
        )

    async def get_entity(self, entity_id: str) -> StoredEntity | None:
        rows = await self._fetchall(
            f"SELECT {ENTITY_COLUMNS} FROM entities WHERE id = ?", (entity_id,)
        )
        return self._row_to_entity(rows[0]) if rows else None

    async def get_entities_for_item(self, item_id: str) -> list[StoredEntity]:
        rows = await self._fetchall(
            f"SELECT {ENTITY_COLUMNS} FROM entities "
            "WHERE knowledge_item_id = ? ORDER BY confidence DESC",
            (item_id,),
        )
        return [self._row_to_entity(row) for row in rows]

    async def get_entities_for_workspace(
        self,
        workspace_id: str,
        entity_types: list[EntityType] | None = None,
        min_confidence: float | None = None,
        knowledge_item_ids: list[str] | None = None,
        limit: int | None = None,
    ) -> list[StoredEntity]:
        query = f"SELECT {ENTITY_COLUMNS} FROM entities WHERE workspace_id = ?"
        params: list[Any] = [workspace_id]

        if entity_types:
            values = [EntityType(t).value for t in entity_types]
            query += f" AND entity_type IN ({_placeholders(values)})"
            params.extend(values)

        if min_confidence is not None:
            query += " AND confidence >= ?"
            params.append(min_confidence)

        if knowledge_item_ids:
            query += f" AND knowledge_item_id IN ({_placeholders(knowledge_item_ids)})"
            params.extend(knowledge_item_ids)

        query += " ORDER BY confidence DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        return [self._row_to_entity(row) for row in await self._fetchall(query, params)]

    async def search_entities(
        self, workspace_id: str, query: str, limit: int = 20
    ) -> list[StoredEntity]:
        rows = await self._fetchall(
            f"SELECT {ENTITY_COLUMNS} FROM entities "
            "WHERE workspace_id = ? AND instr(lower(name), lower(?)) > 0 "
            "ORDER BY confidence DESC LIMIT ?",
            (workspace_id, query, limit),
        )
        return [self._row_to_entity(row) for row in rows]

    async def delete_entities_for_item(self, item_id: str) -> int:
        return await self._execute("DELETE FROM entities WHERE knowledge_item_id = ?", (item_id,))

    # ═══════════════════════════════════════════════════════════
    # RELATIONSHIPS
    # ═══════════════════════════════════════════════════════════

    async def store_relationships(self, relationships: list[StoredRelationship]) -> None:
        await self._execute_many(
            f"INSERT OR REPLACE INTO relationships ({RELATIONSHIP_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (
                    r.id,
                    r.workspace_id,
                    r.knowledge_item_id,
                    r.source_entity_id,
                    r.target_entity_id,
                    r.relationship_type.value,
                    r.confidence,
                    json.dumps(r.metadata),
                    r.created_at.isoformat(),
                )
                for r in relationships
            ],
        )

    async def get_relationships_for_entity(
        self,
        entity_id: str,
        direction: RelationshipDirection = RelationshipDirection.BOTH,
    ) -> list[StoredRelationship]:
        if direction == RelationshipDirection.OUTGOING:
            where, params = "source_entity_id = ?", (entity_id,)
        elif direction == RelationshipDirection.INCOMING:
            where, params = "target_entity_id = ?", (entity_id,)
        else:
            where, params = "source_entity_id = ? OR target_entity_id = ?", (entity_id, entity_id)

        rows = await self._fetchall(
            f"SELECT {RELATIONSHIP_COLUMNS} FROM relationships WHERE {where}", params
        )
        return [self._row_to_relationship(row) for row in rows]

    async def get_relationships_for_workspace(
        self,
        workspace_id: str,
        relationship_types: list[RelationshipType] | None = None,
        min_confidence: float | None = None,
        knowledge_item_ids: list[str] | None = None,
    ) -> list[StoredRelationship]:
        query = f"SELECT {RELATIONSHIP_COLUMNS} FROM relationships WHERE workspace_id = ?"
        params: list[Any] = [workspace_id]

        if relationship_types:
            values = [RelationshipType(t).value for t in relationship_types]
            query += f" AND relationship_type IN ({_placeholders(values)})"
            params.extend(values)

        if min_confidence is not None:
            query += " AND confidence >= ?"
            params.append(min_confidence)

        if knowledge_item_ids:
            query += f" AND knowledge_item_id IN ({_placeholders(knowledge_item_ids)})"
            params.extend(knowledge_item_ids)

        query += " ORDER BY confidence DESC"

        return [self._row_to_relationship(row) for row in await self._fetchall(query, params)]

    async def delete_relationships_for_item(self, item_id: str) -> int:
        return await self._execute(
            "DELETE FROM relationships WHERE knowledge_item_id = ?", (item_id,)
        )

    # ═══════════════════════════════════════════════════════════
    # HELPER METHODS
    # ═══════════════════════════════════════════════════════════

    def _row_to_item(self, row: tuple) -> KnowledgeBaseItem:
        return KnowledgeBaseItem(
            id=row[0],
            workspace_id=row[1],
            title=row[2],
            content=row[3],
            entity_type=row[4],
            embedding_status=EmbeddingStatus(row[5]),
            embedding_error=row[6],
            embeddings_count=row[7] or 0,
            metadata=json.loads(row[8]) if row[8] else {},
            created_at=datetime.fromisoformat(row[9]),
            updated_at=datetime.fromisoformat(row[10]),
        )

    def _row_to_embedding(self, row: tuple) -> KnowledgeEmbedding:
        return KnowledgeEmbedding(
            id=row[0],
            workspace_id=row[1],
            knowledge_item_id=row[2],
            chunk_index=row[3],
            content=row[4],
            embedding=json.loads(row[5]),
            token_count=row[6] or 0,
            model=row[7] or "",
            metadata=json.loads(row[8]) if row[8] else {},
            created_at=datetime.fromisoformat(row[9]),
        )

    def _row_to_entity(self, row: tuple) -> StoredEntity:
        return StoredEntity(
            id=row[0],
            workspace_id=row[1],
            knowledge_item_id=row[2],
            entity_type=EntityType(row[3]),
            name=row[4],
            description=row[5],
            confidence=row[6],
            source_chunk_ids=json.loads(row[7]) if row[7] else [],
            metadata=json.loads(row[8]) if row[8] else {},
            attributes=json.loads(row[9]) if row[9] else {},
            created_at=datetime.fromisoformat(row[10]),
        )

    def _row_to_relationship(self, row: tuple) -> StoredRelationship:
        return StoredRelationship(
            id=row[0],
            workspace_id=row[1],
            knowledge_item_id=row[2],
            source_entity_id=row[3],
            target_entity_id=row[4],
            relationship_type=RelationshipType(row[5]),
            confidence=row[6],
            metadata=json.loads(row[7]) if row[7] else {},
            created_at=datetime.fromisoformat(row[8]),
        )

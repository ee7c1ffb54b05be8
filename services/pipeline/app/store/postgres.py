"""PostgreSQL implementation of :class:`PipelineStore` using psycopg 3."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID, uuid4

from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from manuscript_schemas import (
    TIER_TOKEN_LIMITS,
    BookConcept,
    BrainstormResult,
    ChapterRecord,
    ChapterStatus,
    ConceptSet,
    CoverDesign,
    CreationStep,
    OutlineChapter,
    Project,
    ProjectSettings,
    ProjectStatus,
    SubscriptionTier,
    UserAccount,
)
from manuscript_schemas.models.book import DEFAULT_TARGET_WORD_COUNT

from ..errors import NotFoundError
from .base import (
    EDITABLE_PROJECT_FIELDS,
    RECENT_PROJECTS_LIMIT,
    PipelineStore,
    generate_session_token,
    hash_token,
)

logger = logging.getLogger(__name__)

_STATUS_ARRAY = "ARRAY[" + ", ".join(f"'{status.value}'" for status in ProjectStatus) + "]"

# Status follows the resulting step; Postgres arrays are 1-based.
_ADVANCE_STEP_SQL = f"""
    UPDATE projects
    SET current_step = GREATEST(current_step, %(step)s),
        status = ({_STATUS_ARRAY})[GREATEST(current_step, %(step)s) + 1],
        updated_at = NOW()
    WHERE id = %(project_id)s AND deleted_at IS NULL
"""

_PROJECT_COLUMNS = {
    "title": "title",
    "keyword": "seed_keyword",
    "description": "description",
    "genre": "genre",
    "target_audience": "target_audience",
    "writing_style": "writing_style",
    "cover_style": "cover_style",
    "word_count_goal": "word_count_goal",
}

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS app_users (
    id UUID PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    subscription_tier TEXT NOT NULL DEFAULT 'Free',
    tokens_used BIGINT NOT NULL DEFAULT 0,
    tokens_this_month BIGINT NOT NULL DEFAULT 0,
    token_limit BIGINT NOT NULL DEFAULT 50000,
    project_count INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP WITHOUT TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITHOUT TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS user_sessions (
    id UUID PRIMARY KEY,
    user_id UUID REFERENCES app_users(id) ON DELETE CASCADE,
    token_hash TEXT NOT NULL UNIQUE,
    expires_at TIMESTAMP WITHOUT TIME ZONE NOT NULL,
    created_at TIMESTAMP WITHOUT TIME ZONE DEFAULT NOW(),
    last_seen_at TIMESTAMP WITHOUT TIME ZONE DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_user_sessions_user_id
    ON user_sessions(user_id);

CREATE TABLE IF NOT EXISTS projects (
    id UUID PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES app_users(id) ON DELETE CASCADE,
    title TEXT NOT NULL DEFAULT 'Untitled Project',
    seed_keyword TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    genre TEXT NOT NULL DEFAULT 'Non-Fiction',
    target_audience TEXT NOT NULL DEFAULT '',
    writing_style TEXT NOT NULL DEFAULT 'Formal',
    cover_style TEXT NOT NULL DEFAULT 'Minimalist',
    word_count_goal INTEGER NOT NULL DEFAULT 50000,
    current_step INTEGER NOT NULL DEFAULT 0 CHECK (current_step BETWEEN 0 AND 6),
    status TEXT NOT NULL DEFAULT 'setup',
    deleted_at TIMESTAMP WITHOUT TIME ZONE,
    created_at TIMESTAMP WITHOUT TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITHOUT TIME ZONE DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_projects_user_updated
    ON projects(user_id, updated_at DESC);

CREATE TABLE IF NOT EXISTS book_concepts (
    id UUID PRIMARY KEY,
    project_id UUID NOT NULL UNIQUE REFERENCES projects(id) ON DELETE CASCADE,
    thesis_statement TEXT,
    brainstorm_map JSONB,
    concepts_json JSONB,
    selected_title TEXT,
    selected_tagline TEXT,
    selected_description TEXT,
    market_positioning TEXT,
    created_at TIMESTAMP WITHOUT TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITHOUT TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS chapters (
    id UUID PRIMARY KEY,
    project_id UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    order_index INTEGER NOT NULL CHECK (order_index >= 0),
    summary_context TEXT NOT NULL DEFAULT '',
    sections JSONB NOT NULL DEFAULT '[]'::jsonb,
    content_markdown TEXT,
    target_word_count INTEGER NOT NULL DEFAULT 2000,
    word_count INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'draft',
    created_at TIMESTAMP WITHOUT TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITHOUT TIME ZONE DEFAULT NOW(),
    UNIQUE (project_id, order_index)
);

CREATE TABLE IF NOT EXISTS cover_designs (
    id UUID PRIMARY KEY,
    project_id UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    image_prompt TEXT NOT NULL,
    image_url TEXT NOT NULL,
    storage_path TEXT NOT NULL,
    style_variant TEXT NOT NULL,
    created_at TIMESTAMP WITHOUT TIME ZONE DEFAULT clock_timestamp()
);

CREATE INDEX IF NOT EXISTS idx_cover_designs_project_created
    ON cover_designs(project_id, created_at DESC);

CREATE OR REPLACE FUNCTION increment_token_usage(p_user_id UUID, p_tokens BIGINT)
RETURNS VOID AS $$
BEGIN
    UPDATE app_users
    SET tokens_used = tokens_used + p_tokens,
        tokens_this_month = tokens_this_month + p_tokens,
        updated_at = NOW()
    WHERE id = p_user_id;
END;
$$ LANGUAGE plpgsql;
"""


class PostgresStore(PipelineStore):
    """Store backed by a shared psycopg connection pool."""

    def __init__(self, conninfo: str, *, min_size: int = 1, max_size: int = 10) -> None:
        self._pool = ConnectionPool(conninfo, min_size=min_size, max_size=max_size, open=True)

    def initialise_schema(self) -> None:
        """Create tables and the usage procedure when they do not exist."""

        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute(SCHEMA_DDL)
            conn.commit()
        logger.info("Database schema initialised")

    def purge_expired_sessions(self) -> None:
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute("DELETE FROM user_sessions WHERE expires_at < NOW()")
            conn.commit()

    def close(self) -> None:
        self._pool.close()

    # Accounts and sessions -------------------------------------------------

    def get_account(self, user_id: UUID) -> Optional[UserAccount]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute("SELECT * FROM app_users WHERE id = %s", (user_id,))
            row = cur.fetchone()
        return _account_from_row(row) if row else None

    def create_account(
        self,
        email: str,
        *,
        tier: SubscriptionTier = SubscriptionTier.FREE,
        token_limit: int | None = None,
    ) -> UserAccount:
        limit = TIER_TOKEN_LIMITS[tier] if token_limit is None else token_limit
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                INSERT INTO app_users (id, email, subscription_tier, token_limit)
                VALUES (%s, %s, %s, %s)
                RETURNING *
                """,
                (uuid4(), email.strip().lower(), tier.value, limit),
            )
            row = cur.fetchone()
            conn.commit()
        return _account_from_row(row)

    def increment_token_usage(self, user_id: UUID, tokens: int) -> None:
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute("SELECT increment_token_usage(%s, %s)", (user_id, tokens))
            conn.commit()

    def issue_session(self, user_id: UUID, ttl: timedelta) -> str:
        token = generate_session_token()
        expires_at = datetime.utcnow() + ttl
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO user_sessions (id, user_id, token_hash, expires_at)
                VALUES (%s, %s, %s, %s)
                """,
                (uuid4(), user_id, hash_token(token), expires_at),
            )
            conn.commit()
        return token

    def resolve_session(self, token: str) -> Optional[UserAccount]:
        now = datetime.utcnow()
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT s.id AS session_id, s.expires_at, u.*
                FROM user_sessions s
                JOIN app_users u ON u.id = s.user_id
                WHERE s.token_hash = %s
                """,
                (hash_token(token),),
            )
            row = cur.fetchone()
            if not row:
                return None
            if row["expires_at"] < now:
                cur.execute("DELETE FROM user_sessions WHERE id = %s", (row["session_id"],))
                conn.commit()
                return None
            cur.execute("UPDATE user_sessions SET last_seen_at = NOW() WHERE id = %s", (row["session_id"],))
            conn.commit()
        return _account_from_row(row)

    # Projects --------------------------------------------------------------

    def create_project(self, user_id: UUID, settings: ProjectSettings) -> Project:
        values = settings.model_dump(mode="json")
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            with conn.transaction():
                cur.execute(
                    """
                    INSERT INTO projects (
                        id, user_id, title, seed_keyword, description, genre,
                        target_audience, writing_style, cover_style, word_count_goal
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING *
                    """,
                    (
                        uuid4(),
                        user_id,
                        values["title"],
                        values["keyword"],
                        values["description"],
                        values["genre"],
                        values["target_audience"],
                        values["writing_style"],
                        values["cover_style"],
                        values["word_count_goal"],
                    ),
                )
                row = cur.fetchone()
                cur.execute(
                    "UPDATE app_users SET project_count = project_count + 1, updated_at = NOW() WHERE id = %s",
                    (user_id,),
                )
        return _project_from_row(row)

    def get_project(self, project_id: UUID) -> Optional[Project]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                "SELECT * FROM projects WHERE id = %s AND deleted_at IS NULL",
                (project_id,),
            )
            row = cur.fetchone()
        return _project_from_row(row) if row else None

    def list_projects(self, user_id: UUID, limit: int = RECENT_PROJECTS_LIMIT) -> list[Project]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT * FROM projects
                WHERE user_id = %s AND deleted_at IS NULL
                ORDER BY updated_at DESC
                LIMIT %s
                """,
                (user_id, limit),
            )
            rows = cur.fetchall()
        return [_project_from_row(row) for row in rows]

    def update_project(self, project_id: UUID, changes: dict[str, Any]) -> Project:
        assignments = []
        params: list[Any] = []
        for key, value in changes.items():
            if key in EDITABLE_PROJECT_FIELDS:
                assignments.append(f"{_PROJECT_COLUMNS[key]} = %s")
                params.append(value)
        assignments.append("updated_at = NOW()")
        params.append(project_id)
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"UPDATE projects SET {', '.join(assignments)} WHERE id = %s AND deleted_at IS NULL RETURNING *",
                params,
            )
            row = cur.fetchone()
            conn.commit()
        if not row:
            raise NotFoundError("Project not found")
        return _project_from_row(row)

    def save_step(self, project_id: UUID, step: CreationStep) -> Project:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                UPDATE projects
                SET current_step = %s, status = %s, updated_at = NOW()
                WHERE id = %s AND deleted_at IS NULL
                RETURNING *
                """,
                (step.value, step.status.value, project_id),
            )
            row = cur.fetchone()
            conn.commit()
        if not row:
            raise NotFoundError("Project not found")
        return _project_from_row(row)

    def soft_delete_project(self, project_id: UUID) -> None:
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute(
                "UPDATE projects SET deleted_at = NOW() WHERE id = %s AND deleted_at IS NULL",
                (project_id,),
            )
            updated = cur.rowcount
            conn.commit()
        if not updated:
            raise NotFoundError("Project not found")

    # Concept sets ----------------------------------------------------------

    def get_concept_set(self, project_id: UUID) -> Optional[ConceptSet]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute("SELECT * FROM book_concepts WHERE project_id = %s", (project_id,))
            row = cur.fetchone()
        return _concept_set_from_row(row) if row else None

    def save_brainstorm(
        self, project_id: UUID, result: BrainstormResult, *, advance_to: CreationStep
    ) -> ConceptSet:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            with conn.transaction():
                cur.execute(
                    """
                    INSERT INTO book_concepts (id, project_id, thesis_statement, brainstorm_map)
                    VALUES (%s, %s, %s, %s::jsonb)
                    ON CONFLICT (project_id) DO UPDATE
                    SET thesis_statement = EXCLUDED.thesis_statement,
                        brainstorm_map = EXCLUDED.brainstorm_map,
                        updated_at = NOW()
                    RETURNING *
                    """,
                    (uuid4(), project_id, result.thesis, json.dumps(result.model_dump(by_alias=True))),
                )
                row = cur.fetchone()
                self._advance(cur, project_id, advance_to)
        return _concept_set_from_row(row)

    def save_concepts(
        self, project_id: UUID, concepts: list[BookConcept], *, advance_to: CreationStep
    ) -> ConceptSet:
        payload = json.dumps([concept.model_dump(by_alias=True) for concept in concepts])
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            with conn.transaction():
                cur.execute(
                    """
                    INSERT INTO book_concepts (id, project_id, concepts_json)
                    VALUES (%s, %s, %s::jsonb)
                    ON CONFLICT (project_id) DO UPDATE
                    SET concepts_json = EXCLUDED.concepts_json,
                        updated_at = NOW()
                    RETURNING *
                    """,
                    (uuid4(), project_id, payload),
                )
                row = cur.fetchone()
                self._advance(cur, project_id, advance_to)
        return _concept_set_from_row(row)

    # Chapters --------------------------------------------------------------

    def list_chapters(self, project_id: UUID) -> list[ChapterRecord]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                "SELECT * FROM chapters WHERE project_id = %s ORDER BY order_index ASC",
                (project_id,),
            )
            rows = cur.fetchall()
        return [_chapter_from_row(row) for row in rows]

    def get_chapter(self, chapter_id: UUID) -> Optional[ChapterRecord]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute("SELECT * FROM chapters WHERE id = %s", (chapter_id,))
            row = cur.fetchone()
        return _chapter_from_row(row) if row else None

    def get_chapter_by_index(self, project_id: UUID, order_index: int) -> Optional[ChapterRecord]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                "SELECT * FROM chapters WHERE project_id = %s AND order_index = %s",
                (project_id, order_index),
            )
            row = cur.fetchone()
        return _chapter_from_row(row) if row else None

    def replace_outline(
        self,
        project_id: UUID,
        concept: BookConcept,
        chapters: list[OutlineChapter],
        *,
        advance_to: CreationStep,
    ) -> list[ChapterRecord]:
        inserted: list[ChapterRecord] = []
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            with conn.transaction():
                cur.execute(
                    """
                    INSERT INTO book_concepts (
                        id, project_id, selected_title, selected_tagline,
                        selected_description, market_positioning
                    )
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT (project_id) DO UPDATE
                    SET selected_title = EXCLUDED.selected_title,
                        selected_tagline = EXCLUDED.selected_tagline,
                        selected_description = EXCLUDED.selected_description,
                        market_positioning = EXCLUDED.market_positioning,
                        updated_at = NOW()
                    """,
                    (
                        uuid4(),
                        project_id,
                        concept.title,
                        concept.tagline,
                        concept.description,
                        concept.target_market,
                    ),
                )
                cur.execute("DELETE FROM chapters WHERE project_id = %s", (project_id,))
                for index, entry in enumerate(chapters):
                    cur.execute(
                        """
                        INSERT INTO chapters (
                            id, project_id, title, order_index, summary_context,
                            sections, target_word_count, status
                        )
                        VALUES (%s, %s, %s, %s, %s, %s::jsonb, %s, %s)
                        RETURNING *
                        """,
                        (
                            uuid4(),
                            project_id,
                            entry.title,
                            index,
                            entry.summary,
                            json.dumps(list(entry.sections)),
                            DEFAULT_TARGET_WORD_COUNT,
                            ChapterStatus.DRAFT.value,
                        ),
                    )
                    inserted.append(_chapter_from_row(cur.fetchone()))
                cur.execute(
                    "UPDATE projects SET title = %s WHERE id = %s",
                    (concept.title, project_id),
                )
                self._advance(cur, project_id, advance_to)
        return inserted

    def mark_chapter_generating(self, chapter_id: UUID) -> None:
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute(
                "UPDATE chapters SET status = %s, updated_at = NOW() WHERE id = %s",
                (ChapterStatus.GENERATING.value, chapter_id),
            )
            conn.commit()

    def complete_chapter(
        self,
        chapter_id: UUID,
        content: str,
        word_count: int,
        *,
        advance_to: CreationStep,
    ) -> ChapterRecord:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            with conn.transaction():
                cur.execute(
                    """
                    UPDATE chapters
                    SET content_markdown = %s, word_count = %s, status = %s, updated_at = NOW()
                    WHERE id = %s
                    RETURNING *
                    """,
                    (content, word_count, ChapterStatus.GENERATED.value, chapter_id),
                )
                row = cur.fetchone()
                if not row:
                    raise NotFoundError("Chapter not found")
                self._advance(cur, row["project_id"], advance_to)
        return _chapter_from_row(row)

    # Covers ----------------------------------------------------------------

    def append_cover(
        self,
        project_id: UUID,
        *,
        prompt: str,
        image_url: str,
        storage_path: str,
        style: str,
        advance_to: CreationStep,
    ) -> CoverDesign:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            with conn.transaction():
                cur.execute(
                    """
                    INSERT INTO cover_designs (id, project_id, image_prompt, image_url, storage_path, style_variant)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    RETURNING *
                    """,
                    (uuid4(), project_id, prompt, image_url, storage_path, style),
                )
                row = cur.fetchone()
                self._advance(cur, project_id, advance_to)
        return _cover_from_row(row)

    def latest_cover(self, project_id: UUID) -> Optional[CoverDesign]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT * FROM cover_designs
                WHERE project_id = %s
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (project_id,),
            )
            row = cur.fetchone()
        return _cover_from_row(row) if row else None

    # Internals -------------------------------------------------------------

    @staticmethod
    def _advance(cur, project_id: UUID, step: CreationStep) -> None:
        cur.execute(_ADVANCE_STEP_SQL, {"step": step.value, "project_id": project_id})
        if cur.rowcount == 0:
            raise NotFoundError("Project not found")


def _account_from_row(row: dict[str, Any]) -> UserAccount:
    return UserAccount(
        id=row["id"],
        email=row["email"],
        tier=SubscriptionTier(row["subscription_tier"]),
        tokens_used=row["tokens_used"],
        tokens_this_month=row["tokens_this_month"],
        token_limit=row["token_limit"],
        project_count=row["project_count"],
        created_at=row["created_at"],
    )


def _project_from_row(row: dict[str, Any]) -> Project:
    return Project(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        keyword=row["seed_keyword"],
        description=row["description"],
        genre=row["genre"],
        target_audience=row["target_audience"],
        writing_style=row["writing_style"],
        cover_style=row["cover_style"],
        word_count_goal=row["word_count_goal"],
        current_step=row["current_step"],
        status=ProjectStatus(row["status"]),
        deleted_at=row["deleted_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _concept_set_from_row(row: dict[str, Any]) -> ConceptSet:
    brainstorm = row.get("brainstorm_map")
    return ConceptSet(
        id=row["id"],
        project_id=row["project_id"],
        thesis_statement=row["thesis_statement"],
        brainstorm=BrainstormResult.model_validate(brainstorm) if brainstorm else None,
        concepts=row["concepts_json"],
        selected_title=row["selected_title"],
        selected_tagline=row["selected_tagline"],
        selected_description=row["selected_description"],
        market_positioning=row["market_positioning"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _chapter_from_row(row: dict[str, Any]) -> ChapterRecord:
    return ChapterRecord(
        id=row["id"],
        project_id=row["project_id"],
        title=row["title"],
        order_index=row["order_index"],
        summary=row["summary_context"] or "",
        sections=list(row["sections"] or []),
        content=row["content_markdown"],
        target_word_count=row["target_word_count"] or DEFAULT_TARGET_WORD_COUNT,
        word_count=row["word_count"] or 0,
        status=ChapterStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _cover_from_row(row: dict[str, Any]) -> CoverDesign:
    return CoverDesign(
        id=row["id"],
        project_id=row["project_id"],
        prompt=row["image_prompt"],
        image_url=row["image_url"],
        storage_path=row["storage_path"],
        style=row["style_variant"],
        created_at=row["created_at"],
    )

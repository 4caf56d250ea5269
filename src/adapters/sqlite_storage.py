"""SQLite storage adapter.

Implements the TurnStore, RuleSource, PersonaSource and AuditSink ports using
a simple SQLite database.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from datetime import datetime, timezone
from typing import Any, Optional

from core.models import AuditEvent, Categorization, Turn


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the storage-facing ports."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - chat_message: both sides of every turn
        - block_rule: tenant content rules, evaluated in id order
        - chat_block_persona: persona attributes linked to a conversation
        - audit_event: append-only structured events
        """

        with self._connect() as conn:
            # chat_message stores the original inbound text, never the
            # rule-substituted copy sent to the model.
            # Fields:
            # - type: USER for inbound, BOT for replies
            # - category: classifier category for both sides of the turn
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS chat_message (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    chat_block_id TEXT NOT NULL,
                    user_id TEXT,
                    content TEXT NOT NULL,
                    type TEXT NOT NULL,
                    content_type TEXT NOT NULL,
                    category TEXT,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS block_rule (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    company_id TEXT NOT NULL,
                    name TEXT,
                    matcher TEXT,
                    substitution TEXT,
                    match_type TEXT NOT NULL DEFAULT 'literal',
                    enabled INTEGER NOT NULL DEFAULT 1
                )
                """
            )
            # attributes is a JSON object mapping trait name to level.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS chat_block_persona (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    chat_block_id TEXT NOT NULL,
                    persona_name TEXT,
                    attributes TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS audit_event (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    type TEXT NOT NULL,
                    severity TEXT NOT NULL,
                    company_id TEXT,
                    user_id TEXT,
                    data TEXT,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )

    def _insert_message(
        self,
        turn: Turn,
        content: str,
        message_type: str,
        categorization: Categorization,
        user_id: Optional[str],
    ) -> int:
        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO chat_message (
                    chat_block_id,
                    user_id,
                    content,
                    type,
                    content_type,
                    category,
                    created_at,
                    updated_at
                ) VALUES (?, ?, ?, ?, 'TEXT', ?, ?, ?)
                """,
                (
                    turn.chat_block_id,
                    user_id,
                    content,
                    message_type,
                    categorization.category,
                    now,
                    now,
                ),
            )
            return int(cur.lastrowid)

    def persist_inbound(self, turn: Turn, content: str, categorization: Categorization) -> int:
        """Store the user's message and return its id."""

        return self._insert_message(turn, content, "USER", categorization, turn.user_id)

    def persist_outbound(self, turn: Turn, reply: str, categorization: Categorization) -> int:
        """Store the bot reply and return its id."""

        return self._insert_message(turn, reply, "BOT", categorization, None)

    def fetch_rules(self, company_id: str) -> list[dict]:
        """Return raw rule rows for a company in evaluation (id) order."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM block_rule WHERE company_id = ? ORDER BY id",
                (company_id,),
            ).fetchall()
        return [dict(row) for row in rows]

    def fetch_persona(self, chat_block_id: str) -> Optional[Any]:
        """Return the attributes of the first persona linked to a chat block."""

        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT attributes FROM chat_block_persona
                WHERE chat_block_id = ?
                ORDER BY id
                LIMIT 1
                """,
                (chat_block_id,),
            ).fetchone()
        if row is None:
            return None
        return json.loads(row["attributes"])

    def list_messages(self, chat_block_id: str) -> list[dict]:
        """Return stored messages for a chat block, oldest first."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM chat_message WHERE chat_block_id = ? ORDER BY id",
                (chat_block_id,),
            ).fetchall()
        return [dict(row) for row in rows]

    def _insert_event(self, event: AuditEvent) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO audit_event (type, severity, company_id, user_id, data, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    event.type,
                    event.severity,
                    event.company_id,
                    event.user_id,
                    json.dumps(event.data, default=str),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )

    async def record(self, event: AuditEvent) -> None:
        """AuditSink: append an event without blocking the event loop."""

        await asyncio.to_thread(self._insert_event, event)

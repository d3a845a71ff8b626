"""
History Service

Stores and reads user activity history in PostgreSQL. Each activity row can
have one type-specific row (summary, quiz, mind map, video or picture) that
is merged back into the activity's result when history is read.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from psycopg2.extras import Json

from db import Database, database

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = ("summary", "quiz", "flashcard", "mindmap", "video", "picture", "chat", "exam")
ACTIVITY_STATUSES = ("completed", "failed", "processing")

UPSERT_USER_SQL = """
    INSERT INTO users (email) VALUES (%s)
    ON CONFLICT (email) DO UPDATE SET email = EXCLUDED.email
    RETURNING id
"""

INSERT_ACTIVITY_SQL = """
    INSERT INTO activities
    (user_id, type, title, input_text, result, status, duration, metadata)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
    RETURNING id
"""

SELECT_ACTIVITIES_SQL = """
    SELECT
        a.*,
        CASE
            WHEN a.type = 'summary' THEN json_build_object(
                'summary', s.summary_text,
                'keyPoints', s.key_points,
                'wordCount', s.word_count,
                'originalWordCount', s.original_word_count
            )
            WHEN a.type = 'quiz' THEN json_build_object(
                'questions', q.questions,
                'difficulty', q.difficulty,
                'score', q.score
            )
            WHEN a.type = 'mindmap' THEN json_build_object(
                'nodes', m.nodes,
                'connections', m.connections
            )
            WHEN a.type = 'video' THEN json_build_object(
                'videoUrl', v.video_url,
                'transcript', v.transcript,
                'duration', v.duration,
                'style', v.style
            )
            WHEN a.type = 'picture' THEN json_build_object(
                'imageUrl', p.image_url,
                'prompt', p.prompt,
                'style', p.style
            )
        END AS type_specific_data
    FROM activities a
    LEFT JOIN users u ON a.user_id = u.id
    LEFT JOIN summaries s ON a.id = s.activity_id
    LEFT JOIN quizzes q ON a.id = q.activity_id
    LEFT JOIN mindmaps m ON a.id = m.activity_id
    LEFT JOIN videos v ON a.id = v.activity_id
    LEFT JOIN pictures p ON a.id = p.activity_id
    WHERE u.email = %s
"""

STATS_SQL = """
    SELECT
        a.type,
        COUNT(*) AS count,
        COUNT(CASE WHEN a.status = 'completed' THEN 1 END) AS completed,
        COUNT(CASE WHEN a.status = 'failed' THEN 1 END) AS failed
    FROM activities a
    LEFT JOIN users u ON a.user_id = u.id
    {where}
    GROUP BY a.type
    ORDER BY count DESC
"""


class InvalidActivityError(ValueError):
    """Activity type or status outside the allowed set."""


def _type_specific_insert(activity_type: str, activity_id: int, result: Dict, metadata: Dict):
    """(sql, params) for the per-type row, or None when the key field is missing"""
    if activity_type == "summary" and result.get("summary"):
        return (
            "INSERT INTO summaries (activity_id, summary_text, key_points, word_count, original_word_count) "
            "VALUES (%s, %s, %s, %s, %s)",
            (activity_id, result["summary"], Json(result.get("keyPoints")),
             result.get("wordCount"), result.get("originalWordCount")),
        )
    if activity_type == "quiz" and result.get("questions"):
        return (
            "INSERT INTO quizzes (activity_id, questions, difficulty, score) VALUES (%s, %s, %s, %s)",
            (activity_id, Json(result["questions"]), metadata.get("difficulty"), metadata.get("score")),
        )
    if activity_type == "mindmap" and result.get("nodes"):
        return (
            "INSERT INTO mindmaps (activity_id, nodes, connections) VALUES (%s, %s, %s)",
            (activity_id, Json(result["nodes"]), Json(result.get("connections"))),
        )
    if activity_type == "video" and result.get("videoUrl"):
        return (
            "INSERT INTO videos (activity_id, video_url, transcript, duration, style) VALUES (%s, %s, %s, %s, %s)",
            (activity_id, result["videoUrl"], result.get("transcript"), result.get("duration"),
             metadata.get("style")),
        )
    if activity_type == "picture" and result.get("imageUrl"):
        return (
            "INSERT INTO pictures (activity_id, image_url, prompt, style) VALUES (%s, %s, %s, %s)",
            (activity_id, result["imageUrl"], result.get("prompt"), metadata.get("style")),
        )
    return None


def row_to_activity(row: Dict[str, Any]) -> Dict[str, Any]:
    stored = row.get("result")
    merged = dict(stored) if isinstance(stored, dict) else {}
    extra = row.get("type_specific_data") or {}
    merged.update({key: value for key, value in extra.items() if value is not None})

    created_at = row.get("created_at")
    return {
        "id": row["id"],
        "type": row["type"],
        "title": row["title"],
        "inputText": row.get("input_text"),
        "result": merged,
        "status": row["status"],
        "duration": row.get("duration"),
        "metadata": row.get("metadata"),
        "timestamp": created_at.isoformat() if isinstance(created_at, datetime) else created_at,
    }


class HistoryService:
    """Service for recording and reading activity history"""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or database

    def is_available(self) -> bool:
        return self.db.is_configured()

    def create_activity(self, user_email: str, activity_type: str, title: str,
                        input_text: str = "", result: Optional[Dict] = None,
                        status: str = "completed", duration: int = 0,
                        metadata: Optional[Dict] = None) -> int:
        """
        Record one activity in a single transaction

        Returns:
            int: The new activity id

        Raises:
            InvalidActivityError: unknown activity type or status
            psycopg2.Error: the transaction was rolled back
        """
        if activity_type not in ACTIVITY_TYPES:
            raise InvalidActivityError(f"Unknown activity type: {activity_type}")
        if status not in ACTIVITY_STATUSES:
            raise InvalidActivityError(f"Unknown activity status: {status}")

        result = result if isinstance(result, dict) else ({"value": result} if result is not None else None)
        metadata = metadata or {}

        with self.db.transaction() as cursor:
            cursor.execute(UPSERT_USER_SQL, (user_email,))
            user_id = cursor.fetchone()["id"]

            cursor.execute(INSERT_ACTIVITY_SQL, (
                user_id, activity_type, title, input_text or "",
                Json(result) if result is not None else None,
                status, duration or 0, Json(metadata),
            ))
            activity_id = cursor.fetchone()["id"]

            type_insert = _type_specific_insert(activity_type, activity_id, result or {}, metadata)
            if type_insert:
                cursor.execute(*type_insert)

        logger.info(f"📝 Recorded {status} {activity_type} activity {activity_id} for {user_email}")
        return activity_id

    def get_activities_by_user(self, email: str, activity_type: Optional[str] = None,
                               search: Optional[str] = None) -> List[Dict[str, Any]]:
        """Activities of one user, newest first, with type-specific data merged into result"""
        sql = SELECT_ACTIVITIES_SQL
        params: List[Any] = [email]
        if activity_type:
            sql += " AND a.type = %s"
            params.append(activity_type)
        if search:
            sql += " AND (a.title ILIKE %s OR a.metadata->>'topic' ILIKE %s)"
            pattern = f"%{search}%"
            params.extend([pattern, pattern])
        sql += " ORDER BY a.created_at DESC"

        rows = self.db.query(sql, params)
        return [row_to_activity(row) for row in rows]

    def get_activity_stats(self, email: Optional[str] = None) -> Dict[str, Any]:
        """Counts per activity type, optionally for one user"""
        if email:
            rows = self.db.query(STATS_SQL.format(where="WHERE u.email = %s"), [email])
        else:
            rows = self.db.query(STATS_SQL.format(where=""))

        stats = [
            {
                "type": row["type"],
                "count": int(row["count"]),
                "completed": int(row["completed"]),
                "failed": int(row["failed"]),
            }
            for row in rows
        ]
        return {
            "stats": stats,
            "total": sum(item["count"] for item in stats),
            "completed": sum(item["completed"] for item in stats),
            "failed": sum(item["failed"] for item in stats),
        }


# Global instance
history_service = HistoryService()

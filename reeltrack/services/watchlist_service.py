"""Watchlist service — SQLite row store for tracked titles."""
from __future__ import annotations

import json
import logging
import re
import unicodedata
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from rapidfuzz import fuzz

from reeltrack.database import db_connect
from reeltrack.models.status import REFRESHABLE_STATUSES, MediaType, ensure_status_for_type
from reeltrack.models.watchlist import WatchlistItem

if TYPE_CHECKING:
    from reeltrack.services.config_service import ConfigService

logger = logging.getLogger(__name__)

# Minimum rapidfuzz score for a title to match a library search
TITLE_MATCH_THRESHOLD = 80

_COLUMNS = (
    "id, user_id, tmdb_id, type, title, poster_path, vote_average, status, "
    "metadata, last_watched_season, progress, created_at, updated_at"
)


def normalize_title(title: str) -> str:
    """Lowercase, strip accents and punctuation for fuzzy comparison."""
    n = (title or "").strip().lower()
    n = "".join(c for c in unicodedata.normalize("NFD", n) if unicodedata.category(c) != "Mn")
    n = re.sub(r"[^\w\s]", " ", n)
    return re.sub(r"\s+", " ", n).strip()


def title_score(query: str, title: str) -> float:
    q, t = normalize_title(query), normalize_title(title)
    if not q or not t:
        return 0.0
    return max(fuzz.partial_ratio(q, t), fuzz.token_sort_ratio(q, t))


def _row_to_item(row) -> WatchlistItem:
    try:
        metadata = json.loads(row["metadata"] or "{}")
    except json.JSONDecodeError:
        logger.warning(f"Corrupt metadata on watchlist row {row['id']}, resetting")
        metadata = {}
    return WatchlistItem(
        id=row["id"],
        user_id=row["user_id"],
        tmdb_id=row["tmdb_id"],
        type=row["type"],
        title=row["title"] or "",
        poster_path=row["poster_path"],
        vote_average=row["vote_average"],
        status=row["status"],
        metadata=metadata,
        last_watched_season=row["last_watched_season"] or 0,
        progress=row["progress"] or 0,
        created_at=row["created_at"] or "",
        updated_at=row["updated_at"] or "",
    )


class WatchlistService:
    """Per-user watchlist rows keyed by ``(user_id, tmdb_id, type)``.

    Every method opens its own connection; ``sqlite3.Error`` is logged and
    re-raised so the caller can report the failed write.
    """

    def __init__(self, config_service: "ConfigService"):
        self.db_path = config_service.db_path

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_items(
        self,
        user_id: str,
        media_type=None,
        status=None,
        query: str | None = None,
    ) -> list[WatchlistItem]:
        sql = f"SELECT {_COLUMNS} FROM watchlist WHERE user_id = ?"
        params: list = [user_id]
        if media_type:
            sql += " AND type = ?"
            params.append(MediaType(media_type).value)
        if status:
            sql += " AND status = ?"
            params.append(str(getattr(status, "value", status)))
        sql += " ORDER BY created_at DESC"

        conn = db_connect(self.db_path)
        try:
            items = [_row_to_item(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

        if query and query.strip():
            scored = [(title_score(query, item.title), item) for item in items]
            scored = [s for s in scored if s[0] >= TITLE_MATCH_THRESHOLD]
            scored.sort(key=lambda s: -s[0])
            items = [item for _, item in scored]
        return items

    def get_item(self, user_id: str, tmdb_id: int, media_type) -> Optional[WatchlistItem]:
        conn = db_connect(self.db_path)
        try:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM watchlist WHERE user_id = ? AND tmdb_id = ? AND type = ?",
                (user_id, int(tmdb_id), MediaType(media_type).value),
            ).fetchone()
            return _row_to_item(row) if row else None
        finally:
            conn.close()

    def list_refresh_candidates(self, limit: int | None = None) -> list[WatchlistItem]:
        """Rows in a refreshable status, least recently updated first (all users)."""
        placeholders = ",".join("?" * len(REFRESHABLE_STATUSES))
        sql = (
            f"SELECT {_COLUMNS} FROM watchlist WHERE status IN ({placeholders}) "
            "ORDER BY updated_at ASC"
        )
        params: list = [s.value for s in REFRESHABLE_STATUSES]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        conn = db_connect(self.db_path)
        try:
            return [_row_to_item(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_item(self, item: WatchlistItem) -> WatchlistItem:
        ensure_status_for_type(item.status, item.type)
        conn = db_connect(self.db_path)
        try:
            conn.execute(
                f"INSERT INTO watchlist ({_COLUMNS}) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?)",
                (
                    item.id, item.user_id, item.tmdb_id, item.type.value, item.title,
                    item.poster_path, item.vote_average, item.status.value,
                    json.dumps(item.metadata or {}), item.last_watched_season,
                    item.progress, item.created_at, item.updated_at,
                ),
            )
            conn.commit()
            logger.info(f"Added {item.type.value} '{item.title}' ({item.tmdb_id}) for {item.user_id}")
            return item
        except Exception as e:
            logger.error(f"Error inserting watchlist item {item.tmdb_id}: {e}")
            raise
        finally:
            conn.close()

    def update_item(self, user_id: str, tmdb_id: int, media_type, **fields) -> Optional[WatchlistItem]:
        """Write *fields* onto the row and return the stored result (``None`` if missing)."""
        media_type = MediaType(media_type)
        if "status" in fields:
            fields["status"] = ensure_status_for_type(fields["status"], media_type).value
        if "metadata" in fields:
            fields["metadata"] = json.dumps(fields["metadata"] or {})
        fields["updated_at"] = datetime.now().isoformat()

        allowed = {"title", "poster_path", "vote_average", "status", "metadata",
                   "last_watched_season", "progress", "updated_at"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Unknown watchlist fields: {', '.join(sorted(unknown))}")

        assignments = ", ".join(f"{name} = ?" for name in fields)
        conn = db_connect(self.db_path)
        try:
            cur = conn.execute(
                f"UPDATE watchlist SET {assignments} WHERE user_id = ? AND tmdb_id = ? AND type = ?",
                (*fields.values(), user_id, int(tmdb_id), media_type.value),
            )
            conn.commit()
            if cur.rowcount == 0:
                return None
        except Exception as e:
            logger.error(f"Error updating watchlist item {tmdb_id}: {e}")
            raise
        finally:
            conn.close()
        return self.get_item(user_id, tmdb_id, media_type)

    def delete_item(self, user_id: str, tmdb_id: int, media_type) -> bool:
        conn = db_connect(self.db_path)
        try:
            cur = conn.execute(
                "DELETE FROM watchlist WHERE user_id = ? AND tmdb_id = ? AND type = ?",
                (user_id, int(tmdb_id), MediaType(media_type).value),
            )
            conn.commit()
            return cur.rowcount > 0
        except Exception as e:
            logger.error(f"Error deleting watchlist item {tmdb_id}: {e}")
            raise
        finally:
            conn.close()

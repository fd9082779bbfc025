"""
Read/update helpers for linked Riot accounts used by the active-match monitor.

The linked_accounts_riot table belongs to the web application; this
service only touches the in-game tracking columns.
"""

from ladder_tracker.db.helpers import execute_query, fetch_all
from ladder_tracker.features.lp_tracking.domain import LinkedRiotAccount
from ladder_tracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class LinkedAccountRepository:
    ACCOUNT_SELECT_COLUMNS = """
        user_id, puuid, active_shard, is_in_game, last_known_game_id,
        last_active_check, last_updated
    """

    @classmethod
    def _row_to_account(cls, row: dict) -> LinkedRiotAccount:
        game_id = row.get("last_known_game_id")
        return LinkedRiotAccount(
            user_id=str(row["user_id"]),
            puuid=row["puuid"],
            active_shard=row.get("active_shard"),
            is_in_game=bool(row.get("is_in_game")),
            last_known_game_id=str(game_id) if game_id is not None else None,
            last_active_check=row.get("last_active_check"),
            last_updated=row.get("last_updated"),
        )

    @classmethod
    async def list_in_game_accounts(cls, limit: int) -> list[LinkedRiotAccount]:
        query = f"""
            SELECT {cls.ACCOUNT_SELECT_COLUMNS}
            FROM linked_accounts_riot
            WHERE is_in_game = true
              AND puuid IS NOT NULL
            ORDER BY last_active_check ASC NULLS FIRST
            LIMIT %s
        """
        rows = await fetch_all(query, (limit,))
        return [cls._row_to_account(row) for row in rows]

    @classmethod
    async def list_idle_accounts(cls, limit: int) -> list[LinkedRiotAccount]:
        """Accounts not in game, least recently synced first."""
        query = f"""
            SELECT {cls.ACCOUNT_SELECT_COLUMNS}
            FROM linked_accounts_riot
            WHERE is_in_game = false
              AND puuid IS NOT NULL
            ORDER BY last_updated ASC NULLS FIRST
            LIMIT %s
        """
        rows = await fetch_all(query, (limit,))
        return [cls._row_to_account(row) for row in rows]

    @classmethod
    async def mark_game_started(cls, user_id: str, game_id: str) -> None:
        query = """
            UPDATE linked_accounts_riot
            SET is_in_game = true,
                last_known_game_id = %s,
                last_active_check = NOW()
            WHERE user_id = %s
        """
        await execute_query(query, (game_id, user_id))
        logger.info("Linked account marked in game", user_id=user_id, game_id=game_id)

    @classmethod
    async def mark_game_ended(cls, user_id: str) -> None:
        query = """
            UPDATE linked_accounts_riot
            SET is_in_game = false,
                last_known_game_id = NULL,
                last_active_check = NOW()
            WHERE user_id = %s
        """
        await execute_query(query, (user_id,))
        logger.info("Linked account marked out of game", user_id=user_id)

    @classmethod
    async def touch_active_check(cls, user_id: str) -> None:
        await execute_query(
            "UPDATE linked_accounts_riot SET last_active_check = NOW() WHERE user_id = %s",
            (user_id,),
        )

    @classmethod
    async def touch_last_updated(cls, user_id: str) -> None:
        await execute_query(
            "UPDATE linked_accounts_riot SET last_updated = NOW() WHERE user_id = %s",
            (user_id,),
        )

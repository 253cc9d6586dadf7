"""
Umpire assignment over committed games.

Games are visited in chronological order and each receives up to
``umpires_per_game`` umpires. An umpire is eligible for a game when none of
their enabled exclusion windows overlaps it, they are below their daily cap on
that date (the smaller of the season cap and their own), and they are not
already working an overlapping game. Eligible umpires are ranked by games that
day, then games this season, then id.

A game with too few eligible umpires takes what is available and is reported
as an UmpireShortfall; the run never fails on umpire capacity.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Iterable, Optional

from .problem import ProblemModel
from .solver import ScheduledGame, UmpireShortfall

logger = logging.getLogger(__name__)


class UmpireAssigner:
    """
    Assigns umpire crews to already-placed games.

    Usage:
        assigner = UmpireAssigner(model)
        games, shortfalls = assigner.assign(result.games)
    """

    def __init__(
        self,
        model: ProblemModel,
        umpires_per_game: Optional[int] = None,
        max_games_per_day: Optional[int] = None,
    ):
        self.model = model
        self.umpires_per_game = (
            umpires_per_game if umpires_per_game is not None else model.umpires_per_game
        )
        self.max_games_per_day = (
            max_games_per_day if max_games_per_day is not None
            else model.max_games_per_umpire_per_day
        )
        self.umpire_ids = sorted(model.umpires)

    def assign(
        self, games: Iterable[ScheduledGame]
    ) -> tuple[list[ScheduledGame], list[UmpireShortfall]]:
        """
        Assign umpires to games.

        Existing umpire assignments on the input games are discarded. Slots
        are never changed.

        Args:
            games: Committed games

        Returns:
            (games with umpires in chronological order, shortfalls)
        """
        required = self.umpires_per_game
        ordered = sorted(games, key=lambda g: g.sort_key)
        if required == 0:
            return [g.with_umpires(()) for g in ordered], []

        per_day: dict[tuple[str, date], int] = defaultdict(int)
        per_season: dict[str, int] = defaultdict(int)
        busy: dict[str, list[tuple[datetime, datetime]]] = defaultdict(list)

        updated: list[ScheduledGame] = []
        shortfalls: list[UmpireShortfall] = []

        for game in ordered:
            eligible = [
                uid for uid in self.umpire_ids
                if self._eligible(uid, game, per_day, busy)
            ]
            eligible.sort(key=lambda uid: (per_day[(uid, game.date)], per_season[uid], uid))
            crew = tuple(eligible[:required])

            for uid in crew:
                per_day[(uid, game.date)] += 1
                per_season[uid] += 1
                busy[uid].append((game.start, game.end))

            updated.append(game.with_umpires(crew))
            if len(crew) < required:
                shortfalls.append(
                    UmpireShortfall(
                        matchup_id=game.matchup_id,
                        start=game.start,
                        required=required,
                        assigned=len(crew),
                    )
                )
                logger.warning(
                    "Umpire shortfall for %s at %s: %d of %d",
                    game.matchup, game.slot, len(crew), required,
                )

        logger.info(
            "Assigned umpires to %d games (%d shortfalls)", len(updated), len(shortfalls)
        )
        return updated, shortfalls

    def daily_cap(self, umpire_id: str) -> Optional[int]:
        """Effective cap for one umpire: min of the season cap and their own."""
        own = self.model.umpires[umpire_id].max_games_per_day
        caps = [c for c in (self.max_games_per_day, own) if c is not None]
        return min(caps) if caps else None

    def _eligible(
        self,
        umpire_id: str,
        game: ScheduledGame,
        per_day: dict[tuple[str, date], int],
        busy: dict[str, list[tuple[datetime, datetime]]],
    ) -> bool:
        if not self.model.umpire_available(umpire_id, game.start, game.end):
            return False
        cap = self.daily_cap(umpire_id)
        if cap is not None and per_day[(umpire_id, game.date)] >= cap:
            return False
        return not any(
            start < game.end and end > game.start for start, end in busy[umpire_id]
        )


def umpire_load(games: Iterable[ScheduledGame]) -> dict[str, int]:
    """Count games per umpire."""
    load: dict[str, int] = defaultdict(int)
    for game in games:
        for uid in game.umpire_ids:
            load[uid] += 1
    return dict(sorted(load.items()))

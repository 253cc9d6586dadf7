"""
Assignment solver: binds each matchup to a (field, start time) slot.

Each matchup is a variable whose domain is the list of slots inside its own
game window where neither participating team is excluded, in (date, time,
field) order with its preferred fields first. Matchups are visited
most-constrained-first and committed to their first candidate that does not
double-book the field or either team and keeps both teams under the daily cap.

When a matchup runs out of candidates the search backjumps: it returns to the
most recently committed matchup that blocked one of the candidates, moves that
matchup to its next candidate and continues forward. Blocking sets are merged
on each jump (conflict-directed backjumping), so a matchup that exhausts its
candidates with nobody left to blame is provably unplaceable alongside the
others and is reported as unresolved instead of aborting the run.

Before jumping, the dead-end matchup and its blockers are counted against the
room their candidate slots offer. When they outnumber it, some matchup in the
group can never be placed, so the dead-end one is dropped on the spot. This
keeps over-subscribed seasons from trying every ordering of interchangeable
matchups.

The number of backjumps, and optionally wall-clock time, is bounded by a
SearchBudget. When the budget runs out the deepest consistent partial
assignment seen so far is restored, a single greedy pass tries to place the
remaining matchups, and whatever is left is reported as BUDGET_EXCEEDED.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .data.models import Matchup
from .problem import ProblemModel
from .slots import Slot, SlotCalendar, merge_calendars

logger = logging.getLogger(__name__)


# =============================================================================
# Result Types
# =============================================================================

class UnresolvedReason(str, Enum):
    """Why a matchup could not be placed."""
    NO_COMPATIBLE_SLOT = "NO_COMPATIBLE_SLOT"
    BUDGET_EXCEEDED = "BUDGET_EXCEEDED"


class SolverStatus(str, Enum):
    """Overall outcome of a scheduling run."""
    COMPLETE = "COMPLETE"
    PARTIAL = "PARTIAL"
    BUDGET_EXCEEDED = "BUDGET_EXCEEDED"


@dataclass(frozen=True)
class ScheduledGame:
    """A matchup bound to exactly one slot, plus its umpire crew."""
    matchup: Matchup
    slot: Slot
    umpire_ids: tuple[str, ...] = ()

    @property
    def matchup_id(self) -> str:
        return self.matchup.id

    @property
    def field_id(self) -> str:
        return self.slot.field_id

    @property
    def start(self) -> datetime:
        return self.slot.start

    @property
    def end(self) -> datetime:
        return self.slot.end

    @property
    def date(self) -> date:
        return self.slot.date

    @property
    def team_ids(self) -> tuple[str, ...]:
        return self.matchup.team_ids

    @property
    def sort_key(self) -> tuple[datetime, str, str]:
        return (self.slot.start, self.slot.field_id, self.matchup.id)

    def with_umpires(self, umpire_ids: Sequence[str]) -> ScheduledGame:
        """Copy of this game with a different umpire crew."""
        return replace(self, umpire_ids=tuple(umpire_ids))


@dataclass(frozen=True)
class UnresolvedMatchup:
    """A matchup the solver could not place."""
    matchup: Matchup
    reason: UnresolvedReason
    detail: str = ""


@dataclass(frozen=True)
class UmpireShortfall:
    """A game that received fewer umpires than required."""
    matchup_id: str
    start: datetime
    required: int
    assigned: int

    @property
    def missing(self) -> int:
        return self.required - self.assigned


@dataclass
class SolverStats:
    """Search statistics."""
    slots_considered: int = 0
    steps: int = 0
    max_depth: int = 0
    greedy_fill_placed: int = 0
    elapsed_ms: int = 0


@dataclass
class SchedulingResult:
    """Complete outcome of a scheduling run."""
    status: SolverStatus
    games: list[ScheduledGame]
    unresolved: list[UnresolvedMatchup] = field(default_factory=list)
    shortfalls: list[UmpireShortfall] = field(default_factory=list)
    stats: SolverStats = field(default_factory=SolverStats)
    run_id: str = ""

    @property
    def is_complete(self) -> bool:
        return self.status == SolverStatus.COMPLETE and not self.shortfalls

    @property
    def budget_exceeded(self) -> bool:
        return self.status == SolverStatus.BUDGET_EXCEEDED


# =============================================================================
# Configuration
# =============================================================================

class SearchBudget(BaseModel):
    """Engine tuning: how much search the solver may spend."""
    model_config = ConfigDict(extra="forbid")

    max_steps: int = Field(default=20000, ge=0, description="Maximum number of backjumps")
    time_limit_seconds: Optional[float] = Field(
        default=None, gt=0, description="Wall-clock cap; None for no cap"
    )


# =============================================================================
# Resource Occupancy
# =============================================================================

class _Occupancy:
    """
    Busy intervals per resource, bucketed by calendar date.

    Resources are fields and teams. Slots never cross midnight, so two
    overlapping slots always share a start date, and a team's bucket for a
    date holds exactly its games that day.
    """

    def __init__(self, team_daily_cap: Optional[int] = None) -> None:
        self._busy: dict[tuple[str, str, date], list[tuple[datetime, datetime, int]]] = defaultdict(list)
        self.team_daily_cap = team_daily_cap

    @staticmethod
    def keys(matchup: Matchup, slot: Slot) -> list[tuple[str, str, date]]:
        day = slot.date
        return [("field", slot.field_id, day)] + [("team", t, day) for t in matchup.team_ids]

    def blockers(self, keys: Iterable[tuple[str, str, date]], slot: Slot) -> set[int]:
        found: set[int] = set()
        start, end = slot.start, slot.end
        cap = self.team_daily_cap
        for key in keys:
            entries = self._busy.get(key, ())
            if cap is not None and key[0] == "team" and len(entries) >= cap:
                # Team is full that day: any of its games there is to blame
                found.update(owner for _, _, owner in entries)
                continue
            for busy_start, busy_end, owner in entries:
                if busy_start < end and busy_end > start:
                    found.add(owner)
        return found

    def add(self, keys: Iterable[tuple[str, str, date]], slot: Slot, owner: int) -> None:
        for key in keys:
            self._busy[key].append((slot.start, slot.end, owner))

    def remove(self, keys: Iterable[tuple[str, str, date]], owner: int) -> None:
        for key in keys:
            self._busy[key] = [entry for entry in self._busy[key] if entry[2] != owner]


# =============================================================================
# Solver
# =============================================================================

class AssignmentSolver:
    """
    Places matchups into slots with bounded conflict-directed backjumping.

    Usage:
        model = ProblemModel(spec)
        solver = AssignmentSolver(model, budget=SearchBudget(max_steps=5000))
        result = solver.solve()

    The result's games carry no umpires yet; see UmpireAssigner.
    """

    def __init__(
        self,
        model: ProblemModel,
        calendars: Optional[Mapping[str, SlotCalendar]] = None,
        budget: Optional[SearchBudget] = None,
    ):
        self.model = model
        self.calendars = dict(calendars) if calendars is not None else model.build_calendars()
        self.budget = budget or SearchBudget()

        # Every legal slot of every field, earliest date/time first, then
        # lowest field id
        self.slots: list[Slot] = list(
            merge_calendars(self.calendars[fid] for fid in sorted(self.calendars))
        )

    # -------------------------------------------------------------------------
    # Domains
    # -------------------------------------------------------------------------

    def domain(self, matchup: Matchup) -> list[int]:
        """
        Indices into self.slots that are compatible with the matchup.

        Slots on the matchup's preferred fields come first, each group in
        slot order.
        """
        model = self.model
        compatible = [
            idx for idx, slot in enumerate(self.slots)
            if not model.field_excluded_on(slot.field_id, slot.date)
            and not model.season_excluded(slot.start, slot.end)
            and model.matchup_available(matchup, slot.start, slot.end)
        ]
        if not matchup.preferred_field_ids:
            return compatible
        preferred = set(matchup.preferred_field_ids)
        return (
            [idx for idx in compatible if self.slots[idx].field_id in preferred]
            + [idx for idx in compatible if self.slots[idx].field_id not in preferred]
        )

    # -------------------------------------------------------------------------
    # Solving
    # -------------------------------------------------------------------------

    def solve(self, matchups: Optional[Sequence[Matchup]] = None) -> SchedulingResult:
        """
        Assign slots to matchups.

        Args:
            matchups: Matchups to place (defaults to all matchups in the model)

        Returns:
            SchedulingResult with committed games (no umpires) and the
            unresolved matchups
        """
        started = time.monotonic()
        matchups = list(matchups) if matchups is not None else list(self.model.spec.matchups)
        stats = SolverStats(slots_considered=len(self.slots))

        domains = [self.domain(m) for m in matchups]
        unresolved: dict[int, UnresolvedMatchup] = {}
        for i, (matchup, dom) in enumerate(zip(matchups, domains)):
            if not dom:
                unresolved[i] = UnresolvedMatchup(
                    matchup,
                    UnresolvedReason.NO_COMPATIBLE_SLOT,
                    "no open slot is free of field, season and team exclusions "
                    "inside the game window",
                )
                logger.warning("Matchup %s has no compatible slot", matchup)

        # Most constrained first; input order breaks ties
        order = sorted(
            (i for i in range(len(matchups)) if domains[i]),
            key=lambda i: (len(domains[i]), i),
        )

        search = _BackjumpSearch(
            matchups=matchups,
            domains=domains,
            order=order,
            slots=self.slots,
            budget=self.budget,
            started=started,
            stats=stats,
            team_daily_cap=self.model.max_games_per_team_per_day,
        )
        assignment, dropped, stopped = search.run()

        for i, detail in dropped.items():
            unresolved[i] = UnresolvedMatchup(matchups[i], UnresolvedReason.NO_COMPATIBLE_SLOT, detail)
        for i in order:
            if i not in assignment and i not in unresolved:
                unresolved[i] = UnresolvedMatchup(
                    matchups[i],
                    UnresolvedReason.BUDGET_EXCEEDED,
                    "search budget ran out before the matchup was placed",
                )

        games = sorted(
            (ScheduledGame(matchups[i], self.slots[s]) for i, s in assignment.items()),
            key=lambda g: g.sort_key,
        )

        if stopped:
            status = SolverStatus.BUDGET_EXCEEDED
        elif unresolved:
            status = SolverStatus.PARTIAL
        else:
            status = SolverStatus.COMPLETE

        stats.elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Solver finished: %s, %d placed, %d unresolved, %d steps in %d ms",
            status.value, len(games), len(unresolved), stats.steps, stats.elapsed_ms,
        )

        return SchedulingResult(
            status=status,
            games=games,
            unresolved=[unresolved[i] for i in sorted(unresolved)],
            stats=stats,
            run_id=self.model.run_id,
        )


class _BackjumpSearch:
    """
    State for one conflict-directed backjumping run.

    Positions index into ``order``; ``owner`` values stored in the occupancy
    table are positions, so blockers can be compared by recency.
    """

    def __init__(
        self,
        matchups: list[Matchup],
        domains: list[list[int]],
        order: list[int],
        slots: list[Slot],
        budget: SearchBudget,
        started: float,
        stats: SolverStats,
        team_daily_cap: Optional[int] = None,
    ):
        self.matchups = matchups
        self.domains = domains
        self.order = order
        self.slots = slots
        self.budget = budget
        self.started = started
        self.stats = stats
        self.team_daily_cap = team_daily_cap

        n = len(order)
        self.cursor: list[int] = [0] * n
        self.conflicts: list[set[int]] = [set() for _ in range(n)]
        self.assigned: dict[int, int] = {}      # position -> slot index
        self.dropped: dict[int, str] = {}       # position -> why it is unplaceable
        self.occupancy = _Occupancy(team_daily_cap)
        self.best: dict[int, int] = {}

    def _keys(self, pos: int, slot_idx: int) -> list[tuple[str, str, date]]:
        return _Occupancy.keys(self.matchups[self.order[pos]], self.slots[slot_idx])

    def _commit(self, pos: int, slot_idx: int) -> None:
        self.assigned[pos] = slot_idx
        self.occupancy.add(self._keys(pos, slot_idx), self.slots[slot_idx], pos)
        if len(self.assigned) > len(self.best):
            self.best = dict(self.assigned)
            self.stats.max_depth = len(self.best)

    def _uncommit(self, pos: int) -> None:
        slot_idx = self.assigned.pop(pos)
        self.occupancy.remove(self._keys(pos, slot_idx), pos)

    def _out_of_time(self) -> bool:
        limit = self.budget.time_limit_seconds
        return limit is not None and time.monotonic() - self.started >= limit

    def _capacity(self, positions: Iterable[int]) -> tuple[int, int]:
        """
        Upper bound on how many of the given matchups can be placed together.

        Every matchup needs its own slot and slots on one field must not
        overlap. When all of them share a team, their slots must also be
        pairwise disjoint in time and respect the team's daily cap.

        Returns:
            (bound, number of distinct candidate slots)
        """
        positions = list(positions)
        union = sorted({s for p in positions for s in self.domains[self.order[p]]})
        candidates = [self.slots[s] for s in union]

        by_field: dict[str, list[Slot]] = defaultdict(list)
        for slot in candidates:
            by_field[slot.field_id].append(slot)
        bound = sum(_max_disjoint(slots) for slots in by_field.values())

        shared = set.intersection(
            *(set(self.matchups[self.order[p]].team_ids) for p in positions)
        )
        if shared:
            by_day: dict[date, list[Slot]] = defaultdict(list)
            for slot in candidates:
                by_day[slot.date].append(slot)
            cap = self.team_daily_cap
            team_bound = sum(
                _max_disjoint(slots) if cap is None else min(cap, _max_disjoint(slots))
                for slots in by_day.values()
            )
            bound = min(bound, team_bound)

        return bound, len(union)

    def _drop(self, pos: int, detail: str) -> None:
        self.dropped[pos] = detail
        logger.debug("Dropping matchup %s: %s", self.matchups[self.order[pos]], detail)

    def run(self) -> tuple[dict[int, int], dict[int, str], bool]:
        """
        Run the search.

        Returns:
            (matchup index -> slot index, dropped matchup index -> detail,
            stopped early)
        """
        pos = 0
        stopped = False
        n = len(self.order)

        while pos < n:
            if self._out_of_time():
                stopped = True
                break

            if pos in self.dropped:
                pos += 1
                continue

            domain = self.domains[self.order[pos]]
            c = self.cursor[pos]
            while c < len(domain):
                slot_idx = domain[c]
                blockers = self.occupancy.blockers(self._keys(pos, slot_idx), self.slots[slot_idx])
                if not blockers:
                    break
                self.conflicts[pos] |= blockers
                c += 1

            if c < len(domain):
                self.cursor[pos] = c
                self._commit(pos, domain[c])
                pos += 1
                continue

            # Dead end
            self.cursor[pos] = len(domain)
            if not self.conflicts[pos]:
                # Nothing earlier is to blame: unplaceable together with the
                # matchups that pushed it out
                self._drop(
                    pos,
                    f"all {len(domain)} candidate slots conflict with other scheduled games",
                )
                pos += 1
                continue

            group = self.conflicts[pos] | {pos}
            bound, candidates = self._capacity(group)
            if len(group) > bound:
                # No reordering of this group can place all of it
                self._drop(
                    pos,
                    f"{len(group)} matchups compete for {candidates} candidate slots "
                    f"with room for {bound} games",
                )
                pos += 1
                continue

            if self.stats.steps >= self.budget.max_steps:
                stopped = True
                break
            self.stats.steps += 1

            culprit = max(self.conflicts[pos])
            self.conflicts[culprit] |= self.conflicts[pos] - {culprit}
            for p in range(culprit, pos):
                if p in self.assigned:
                    self._uncommit(p)
            for p in range(culprit + 1, pos + 1):
                self.cursor[p] = 0
                self.conflicts[p] = set()
            self.cursor[culprit] += 1
            pos = culprit

            if self.stats.steps % 1000 == 0:
                logger.debug(
                    "Search step %d: depth %d, best %d",
                    self.stats.steps, len(self.assigned), len(self.best),
                )

        if stopped:
            self._restore_best()
            self._greedy_fill()

        assignment = {self.order[p]: s for p, s in self.assigned.items()}
        dropped = {self.order[p]: detail for p, detail in self.dropped.items()}
        return assignment, dropped, stopped

    def _restore_best(self) -> None:
        """Replace the current assignment with the deepest one seen."""
        best = self.best
        for p in list(self.assigned):
            self._uncommit(p)
        for p in sorted(best):
            self._commit(p, best[p])

    def _greedy_fill(self) -> None:
        """One pass placing leftover matchups in their first free slot."""
        for pos in range(len(self.order)):
            if pos in self.assigned or pos in self.dropped:
                continue
            for slot_idx in self.domains[self.order[pos]]:
                if not self.occupancy.blockers(self._keys(pos, slot_idx), self.slots[slot_idx]):
                    self._commit(pos, slot_idx)
                    self.stats.greedy_fill_placed += 1
                    break


def _max_disjoint(slots: Iterable[Slot]) -> int:
    """Size of the largest set of pairwise non-overlapping slots (earliest end first)."""
    count = 0
    last_end: Optional[datetime] = None
    for slot in sorted(slots, key=lambda s: (s.end, s.start)):
        if last_end is None or slot.start >= last_end:
            count += 1
            last_end = slot.end
    return count

"""
Lineup assignment engine.

Holds the mapping of roster players to court slots for one match. State is
immutable: every operation takes a ``LineupState`` and returns a new one, and
every player is always in exactly one place, either a court side or the
unassigned pool.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from availability import bucket_players, latest_statuses
from constants import LINE_TYPE_LABELS, LINEUP_SIDES
from models import (
    AvailabilityBuckets, AvailabilityMark, CourtSlot, CourtSummary, ExistingLineupRow,
    LineConfiguration, LineupPlayer, LineupState, PlannedCourt, RosterMember,
)

logger = logging.getLogger(__name__)


class LineupError(ValueError):
    """Raised for a court index or side that does not exist in the lineup."""


def build_lineup(
    roster: Iterable[RosterMember],
    marks: Iterable[AvailabilityMark],
    line_config: LineConfiguration,
    existing_rows: Iterable[ExistingLineupRow] = (),
) -> LineupState:
    """
    Build the editing state for a match from a roster snapshot.

    Inactive members are left out. Saved rows restore their courts; a second
    player stored on a singles line is dropped, and a member referenced by more
    than one row keeps only the first slot.
    """
    statuses = latest_statuses(marks)
    players = []
    for member in roster:
        if not member.is_active:
            continue
        fields = member.model_dump()
        fields["availability"] = statuses.get(member.id)
        players.append(LineupPlayer(**fields))
    by_id = {player.id: player for player in players}
    rows_by_court = {row.court_number: row for row in existing_rows}

    assigned: set[str] = set()

    def take(player_id: Optional[str]) -> Optional[LineupPlayer]:
        player = by_id.get(player_id) if player_id else None
        if player is None or player.id in assigned:
            return None
        assigned.add(player.id)
        return player

    slots = []
    for index in range(line_config.total_lines):
        court_number = index + 1
        row = rows_by_court.get(court_number)
        player1 = take(row.player1_id) if row else None
        player2 = None
        if row and not line_config.is_singles(index):
            player2 = take(row.player2_id)
        slots.append(CourtSlot(
            court_number=court_number,
            player1=player1,
            player2=player2,
            lineup_id=row.lineup_id if row else None,
        ))

    return LineupState(
        line_config=line_config,
        slots=tuple(slots),
        unassigned=tuple(p for p in players if p.id not in assigned),
    )


def _check_position(state: LineupState, court_index: int, side: str) -> None:
    if not 0 <= court_index < len(state.slots):
        raise LineupError(f"Court index {court_index} is out of range (0-{len(state.slots) - 1})")
    if side not in LINEUP_SIDES:
        raise LineupError(f"Unknown side '{side}'")
    if side == "player2" and state.line_config.is_singles(court_index):
        raise LineupError(f"Court {court_index + 1} is a singles line and has no second player")


def _vacate(slot: CourtSlot, player_id: str) -> CourtSlot:
    update = {}
    for side in LINEUP_SIDES:
        occupant = getattr(slot, side)
        if occupant is not None and occupant.id == player_id:
            update[side] = None
    return slot.model_copy(update=update) if update else slot


def find_player(state: LineupState, player_id: str) -> Optional[LineupPlayer]:
    for slot in state.slots:
        for side in LINEUP_SIDES:
            player = getattr(slot, side)
            if player is not None and player.id == player_id:
                return player
    for player in state.unassigned:
        if player.id == player_id:
            return player
    return None


def assign(state: LineupState, player: LineupPlayer, court_index: int, side: str = "player1") -> LineupState:
    """
    Place ``player`` on a court side.

    The player leaves whatever side they held before; whoever was already on the
    target side goes back to the unassigned pool.
    """
    _check_position(state, court_index, side)

    slots = [_vacate(slot, player.id) for slot in state.slots]
    target = slots[court_index]
    displaced = getattr(target, side)

    unassigned = [p for p in state.unassigned if p.id != player.id]
    if displaced is not None:
        logger.debug("Court %s %s: %s displaced by %s", target.court_number, side, displaced.id, player.id)
        unassigned.append(displaced)

    slots[court_index] = target.model_copy(update={side: player})
    return state.model_copy(update={"slots": tuple(slots), "unassigned": tuple(unassigned)})


def unassign(state: LineupState, court_index: int, side: str = "player1") -> LineupState:
    _check_position(state, court_index, side)

    slot = state.slots[court_index]
    player = getattr(slot, side)
    if player is None:
        return state

    slots = list(state.slots)
    slots[court_index] = slot.model_copy(update={side: None})
    return state.model_copy(update={
        "slots": tuple(slots),
        "unassigned": state.unassigned + (player,),
    })


def classify(state: LineupState) -> AvailabilityBuckets:
    return bucket_players(state.unassigned)


def _rating(player: Optional[LineupPlayer]) -> float:
    if player is None or player.ntrp_rating is None:
        return 0.0
    return float(player.ntrp_rating)


def combined_rating(slot: CourtSlot, is_singles: bool) -> float:
    if is_singles:
        return _rating(slot.player1)
    return _rating(slot.player1) + _rating(slot.player2)


def _round_tenth(value: float) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def is_over_limit(slot: CourtSlot, is_singles: bool, rating_limit: Optional[float]) -> bool:
    """
    Whether the court breaks the team's rating limit.

    The stored limit is per player, so doubles and mixed courts are held to
    twice it. Both sides are rounded to one decimal; matching the limit exactly
    is allowed. A missing or zero limit never flags.
    """
    if not rating_limit:
        return False

    effective_limit = rating_limit if is_singles else rating_limit * 2
    return _round_tenth(combined_rating(slot, is_singles)) > _round_tenth(effective_limit)


def is_court_complete(slot: CourtSlot, is_singles: bool) -> bool:
    return slot.player1 is not None and (is_singles or slot.player2 is not None)


def line_type_label(line_type: str) -> str:
    return LINE_TYPE_LABELS.get(line_type, LINE_TYPE_LABELS["doubles"])


def summarize_courts(state: LineupState, rating_limit: Optional[float] = None) -> list[CourtSummary]:
    summaries = []
    for index, slot in enumerate(state.slots):
        line_type = state.line_config.line_type(index)
        is_singles = line_type == "singles"
        summaries.append(CourtSummary(
            court_number=slot.court_number,
            line_type=line_type,
            label=f"Court {slot.court_number} - {line_type_label(line_type)}",
            combined_rating=float(_round_tenth(combined_rating(slot, is_singles))),
            is_complete=is_court_complete(slot, is_singles),
            is_over_limit=is_over_limit(slot, is_singles, rating_limit),
        ))
    return summaries


def to_persistable_plan(state: LineupState, line_config: Optional[LineConfiguration] = None) -> list[PlannedCourt]:
    """One row per court, ready to upsert. Singles lines never carry a second player."""
    config = line_config or state.line_config
    plan = []
    for index, slot in enumerate(state.slots):
        player2_id = None
        if not config.is_singles(index) and slot.player2 is not None:
            player2_id = slot.player2.id
        plan.append(PlannedCourt(
            court_number=slot.court_number,
            player1_id=slot.player1.id if slot.player1 else None,
            player2_id=player2_id,
            lineup_id=slot.lineup_id,
        ))
    return plan

"""
Pick order and availability.

Pure functions over already-loaded rows so the API and any display-only caller derive the
same answer. Anything with the right attributes works (ORM rows, dataclasses in tests).
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from typing import Protocol, TypeVar


class _Ordered(Protocol):
    id: uuid.UUID
    draft_position: int


class _Linked(Protocol):
    player_id: uuid.UUID | None


class _Pickable(Protocol):
    id: uuid.UUID
    drafted_by_captain_id: uuid.UUID | None


C = TypeVar("C", bound=_Ordered)
P = TypeVar("P", bound=_Pickable)


def sort_captains(captains: Iterable[C]) -> list[C]:
    return sorted(captains, key=lambda c: c.draft_position)


def position_at_pick(captain_count: int, pick_index: int, draft_type: str) -> int:
    """
    Index into the base order (sorted by draft_position) of whoever picks at pick_index (0-based).

    Round robin repeats the base order. Snake reverses it on every odd round:
    n=3 -> 0,1,2,2,1,0,0,1,2,...
    """
    if captain_count < 1:
        raise ValueError("captain_count must be >= 1")
    if pick_index < 0:
        raise ValueError("pick_index must be >= 0")
    round_idx, within = divmod(pick_index, captain_count)
    if draft_type == "snake" and round_idx % 2 == 1:
        return captain_count - 1 - within
    return within


def captain_at_pick(captains: Sequence[C], pick_index: int, draft_type: str) -> C | None:
    if not captains:
        return None
    ordered = sort_captains(captains)
    return ordered[position_at_pick(len(ordered), pick_index, draft_type)]


def pick_order(captains: Sequence[C], total_picks: int, draft_type: str) -> list[C]:
    """Who picks at each index in range(total_picks). Used for previews beyond the current pick."""
    if not captains:
        return []
    ordered = sort_captains(captains)
    n = len(ordered)
    return [ordered[position_at_pick(n, i, draft_type)] for i in range(total_picks)]


def linked_player_ids(captains: Iterable[_Linked]) -> set[uuid.UUID]:
    return {c.player_id for c in captains if c.player_id is not None}


def is_available(player: _Pickable, linked_ids: set[uuid.UUID]) -> bool:
    return player.drafted_by_captain_id is None and player.id not in linked_ids


def available_players(players: Iterable[P], captains: Iterable[_Linked]) -> list[P]:
    """Players nobody has drafted and who aren't a captain themselves."""
    linked = linked_player_ids(captains)
    return [p for p in players if is_available(p, linked)]

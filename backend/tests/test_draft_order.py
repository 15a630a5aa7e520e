from __future__ import annotations

import uuid
from dataclasses import dataclass

import pytest

from draft_api.services.draft_order import (
    available_players,
    captain_at_pick,
    is_available,
    linked_player_ids,
    pick_order,
    position_at_pick,
)


@dataclass
class Cap:
    id: uuid.UUID
    draft_position: int
    player_id: uuid.UUID | None = None


@dataclass
class Plr:
    id: uuid.UUID
    drafted_by_captain_id: uuid.UUID | None = None


def _captains(n: int) -> list[Cap]:
    return [Cap(id=uuid.uuid4(), draft_position=i + 1) for i in range(n)]


def test_snake_three_captains_two_rounds():
    p1, p2, p3 = _captains(3)
    order = pick_order([p3, p1, p2], 6, "snake")
    assert order == [p1, p2, p3, p3, p2, p1]


def test_round_robin_repeats_base_order():
    p1, p2, p3 = _captains(3)
    assert pick_order([p2, p3, p1], 7, "round_robin") == [p1, p2, p3, p1, p2, p3, p1]


@pytest.mark.parametrize("n", [1, 2, 3, 5])
def test_snake_every_round_is_a_permutation_and_boundaries_repeat(n):
    for r in range(4):
        seen = [position_at_pick(n, r * n + k, "snake") for k in range(n)]
        assert sorted(seen) == list(range(n))
    for r in range(1, 4):
        # Whoever ends a round also opens the next one.
        assert position_at_pick(n, r * n - 1, "snake") == position_at_pick(n, r * n, "snake")


@pytest.mark.parametrize("n", [1, 2, 3, 5])
def test_position_formula_for_first_four_rounds(n):
    for i in range(4 * n):
        r, pos = divmod(i, n)
        assert position_at_pick(n, i, "round_robin") == pos
        assert position_at_pick(n, i, "snake") == (pos if r % 2 == 0 else n - 1 - pos)


def test_single_captain_always_picks():
    (only,) = _captains(1)
    assert {position_at_pick(1, i, "snake") for i in range(10)} == {0}
    assert captain_at_pick([only], 9, "round_robin") is only


def test_no_captains_resolves_to_none():
    assert captain_at_pick([], 0, "snake") is None
    assert pick_order([], 4, "snake") == []


def test_invalid_inputs_raise():
    with pytest.raises(ValueError):
        position_at_pick(0, 0, "snake")
    with pytest.raises(ValueError):
        position_at_pick(3, -1, "snake")


def test_available_players_excludes_drafted_and_captain_linked():
    drafted_by = uuid.uuid4()
    free = Plr(id=uuid.uuid4())
    taken = Plr(id=uuid.uuid4(), drafted_by_captain_id=drafted_by)
    captain_self = Plr(id=uuid.uuid4())
    caps = [Cap(id=uuid.uuid4(), draft_position=1, player_id=captain_self.id), Cap(id=uuid.uuid4(), draft_position=2)]

    assert linked_player_ids(caps) == {captain_self.id}
    assert available_players([free, taken, captain_self], caps) == [free]
    assert is_available(free, set())
    assert not is_available(captain_self, {captain_self.id})

"""Fold a completed game into a player's aggregate statistics.

Some counters cannot be read off the final board: a tile may reach 2048
and be merged away before the game ends, and "moves until the first 2048"
needs the move index. So the whole per-move board history is replayed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sync.rules import TWENTY_FORTY_EIGHT

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shared.dal.models import PlayerStats
    from sync.rules import Board, GameState


@dataclass(frozen=True)
class GameTally:
    """What one game contributed to the aggregates."""

    score: int
    peak_tile: int  # highest value on any board of the game
    twenty_forty_eights_found: int
    turns_till_2048: int  # 1-based move index of the first 2048; 0 if none


@dataclass(frozen=True)
class StatsUpdate:
    stats: PlayerStats
    tally: GameTally


def apply_completed_game(
    stats: PlayerStats,
    final_state: GameState,
    history: Sequence[Board],
) -> StatsUpdate:
    """Return new stats with one more completed game folded in.

    history[i] is the board after move i + 1. Each tile id that shows the
    value 2048 is counted once per game, however many boards it stays on.
    """
    peak_tile = final_state.board.peak_value()
    highest_block = stats.highest_number_block
    least_moves = stats.least_moves_to_find_twenty_forty_eight
    counted_tiles: set[int] = set()
    turns_till_2048 = 0

    for move, board in enumerate(history, start=1):
        for tile in board.iter_tiles():
            peak_tile = max(peak_tile, tile.value)
            highest_block = max(highest_block, tile.value)

            if tile.value != TWENTY_FORTY_EIGHT or tile.id in counted_tiles:
                continue
            counted_tiles.add(tile.id)
            if turns_till_2048 == 0:
                turns_till_2048 = move
                # 0 means no 2048 has ever been recorded
                if least_moves == 0 or move < least_moves:
                    least_moves = move

    score = final_state.score
    games_played = stats.games_played + 1
    total_score = stats.total_score + score
    updated = stats.model_copy(
        update={
            "games_played": games_played,
            "total_score": total_score,
            "average_score": total_score // games_played,
            "highest_score": max(stats.highest_score, score),
            "highest_number_block": max(highest_block, peak_tile),
            "times_twenty_forty_eight_been_found": stats.times_twenty_forty_eight_been_found + len(counted_tiles),
            "least_moves_to_find_twenty_forty_eight": least_moves,
        },
    )
    tally = GameTally(
        score=score,
        peak_tile=peak_tile,
        twenty_forty_eights_found=len(counted_tiles),
        turns_till_2048=turns_till_2048,
    )
    return StatsUpdate(stats=updated, tally=tally)

"""Contract for the external 2048 rule engine.

The engine owns the recording format and the board transition rules. This
package only consumes what it reconstructs: the final game state and the
board after every move.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

TWENTY_FORTY_EIGHT = 2048


@dataclass(frozen=True)
class Tile:
    id: int  # stable across moves until the tile is merged away
    value: int


@dataclass(frozen=True)
class Board:
    tiles: tuple[tuple[Tile | None, ...], ...]

    def iter_tiles(self) -> Iterator[Tile]:
        """Yield every occupied cell, row by row."""
        for row in self.tiles:
            for tile in row:
                if tile is not None:
                    yield tile

    def peak_value(self) -> int:
        return max((tile.value for tile in self.iter_tiles()), default=0)


@dataclass(frozen=True)
class GameState:
    board: Board
    score: int
    over: bool
    won: bool


class RuleEngine(Protocol):
    """Parse and replay seeded recordings.

    parse raises ParseError on malformed input; both reconstruct methods
    raise ReconstructionError when the recording cannot be replayed.
    """

    def parse(self, seeded_recording: str) -> Any: ...

    def reconstruct_final_state(self, recording: Any) -> GameState: ...

    def reconstruct_full_history(self, recording: Any) -> Sequence[Board]:
        """Return the board after each move; element 0 is the board after move 1."""
        ...

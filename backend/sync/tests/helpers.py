"""Scripted rule engine and in-memory remote repository for sync tests."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from shared.exceptions import ParseError, ReconstructionError, RecordNotFoundError, RemoteCallError
from sync.remote import RemoteRepository
from sync.rules import Board, GameState, Tile

BOARD_SIZE = 4


def make_board(*tiles: tuple[int, int]) -> Board:
    """Build a 4x4 board from (tile_id, value) pairs, filled row by row."""
    cells: list[Tile | None] = [Tile(id=tile_id, value=value) for tile_id, value in tiles]
    cells += [None] * (BOARD_SIZE * BOARD_SIZE - len(cells))
    rows = tuple(tuple(cells[r * BOARD_SIZE : (r + 1) * BOARD_SIZE]) for r in range(BOARD_SIZE))
    return Board(tiles=rows)


def simple_game(score: int, *, peak: int = 128, moves: int = 3, won: bool = False) -> tuple[GameState, list[Board]]:
    """A game whose boards never hold a 2048 unless peak is 2048."""
    history = [make_board((1, 2), (2, 4)) for _ in range(moves - 1)]
    final_board = make_board((1, peak), (3, 2))
    history.append(final_board)
    return GameState(board=final_board, score=score, over=True, won=won), history


@dataclass
class ScriptedGame:
    final_state: GameState
    history: list[Board]
    broken: bool = False


class FakeRuleEngine:
    """Recognizes only recordings registered with add_game."""

    def __init__(self) -> None:
        self._games: dict[str, ScriptedGame] = {}
        self.parse_calls = 0

    def add_game(self, recording: str, final_state: GameState, history: list[Board], *, broken: bool = False) -> str:
        self._games[recording] = ScriptedGame(final_state, history, broken)
        return recording

    def parse(self, seeded_recording: str) -> ScriptedGame:
        self.parse_calls += 1
        game = self._games.get(seeded_recording)
        if game is None:
            raise ParseError(f"unrecognized recording {seeded_recording!r}")
        return game

    def reconstruct_final_state(self, recording: ScriptedGame) -> GameState:
        if recording.broken:
            raise ReconstructionError("move sequence is not valid for this seed")
        return recording.final_state

    def reconstruct_full_history(self, recording: ScriptedGame) -> list[Board]:
        if recording.broken:
            raise ReconstructionError("move sequence is not valid for this seed")
        return recording.history


@dataclass
class FakeRemoteRepository(RemoteRepository):
    """Dict-backed repository with switchable failures."""

    did: str = "did:plc:testplayer"
    records: dict[tuple[str, str], dict[str, Any]] = field(default_factory=dict)
    fail_reads: bool = False
    fail_writes: bool = False
    calls: list[tuple[str, str, str]] = field(default_factory=list)

    @property
    def identity(self) -> str:
        return self.did

    async def get_record(self, collection: str, rkey: str) -> dict[str, Any]:
        self.calls.append(("get", collection, rkey))
        if self.fail_reads:
            raise RemoteCallError("connection reset")
        value = self.records.get((collection, rkey))
        if value is None:
            raise RecordNotFoundError(f"{collection}/{rkey}")
        return copy.deepcopy(value)

    async def create_record(self, collection: str, rkey: str, record: dict[str, Any]) -> None:
        self.calls.append(("create", collection, rkey))
        if self.fail_writes:
            raise RemoteCallError("service unavailable")
        if (collection, rkey) in self.records:
            raise RemoteCallError(f"record {collection}/{rkey} already exists")
        self.records[(collection, rkey)] = {"$type": collection, **copy.deepcopy(record)}

    async def put_record(self, collection: str, rkey: str, record: dict[str, Any]) -> None:
        self.calls.append(("put", collection, rkey))
        if self.fail_writes:
            raise RemoteCallError("service unavailable")
        self.records[(collection, rkey)] = {"$type": collection, **copy.deepcopy(record)}

    def writes(self) -> list[tuple[str, str, str]]:
        return [call for call in self.calls if call[0] != "get"]

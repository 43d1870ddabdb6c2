import pytest

from coupgame.game import Game, GameState
from coupgame.player import GameError, Player


def _game_with_players(count=3):
    game = Game("test")
    for i in range(count):
        game.add_player(Player(f"p{i}", f"Player {i}"))
    return game


def test_new_game():
    game = Game("test-game")
    assert game.id == "test-game"
    assert game.state is GameState.WAITING
    assert len(game.players) == 0
    assert len(game.deck) == 15
    assert game.min_players == 3
    assert game.max_players == 6
    assert game.started_at is None


def test_game_state_labels():
    game = _game_with_players()
    assert game.game_state()["state"] == "Waiting"
    game.start_game()
    assert game.game_state()["state"] == "Playing"
    assert str(game.state) == "Playing"
    assert [s.label for s in GameState] == ["Waiting", "Starting", "Playing", "Finished"]


def test_add_player():
    game = Game("test")
    p1 = Player("p1", "Player 1")
    p2 = Player("p2", "Player 2")
    game.add_player(p1)
    assert len(game.players) == 1
    assert len(game.player_order) == 1
    game.add_player(p2)
    assert game.player_order == ["p1", "p2"]
    with pytest.raises(GameError, match="already exists"):
        game.add_player(p1)


def test_add_player_not_waiting():
    game = Game("test")
    game.state = GameState.PLAYING
    with pytest.raises(GameError, match="not in waiting state"):
        game.add_player(Player("p1", "Player 1"))


def test_add_player_when_full():
    game = _game_with_players(6)
    with pytest.raises(GameError, match="game is full: maximum 6 players"):
        game.add_player(Player("p6", "Player 6"))
    assert len(game.players) == 6


def test_remove_player():
    game = Game("test")
    game.add_player(Player("p1", "Player 1"))
    game.remove_player("p1")
    assert len(game.players) == 0
    assert game.player_order == []
    with pytest.raises(GameError, match="not found"):
        game.remove_player("nonexistent")


def test_remove_player_while_playing_marks_inactive():
    game = Game("test")
    game.add_player(Player("p1", "Player 1"))
    game.state = GameState.PLAYING
    game.remove_player("p1")
    assert len(game.players) == 1
    assert game.players["p1"].is_active is False


def test_can_start():
    game = Game("test")
    assert game.can_start() is False
    for i in range(3):
        game.add_player(Player(f"p{i}", f"Player {i}"))
    assert game.can_start() is True
    game.state = GameState.PLAYING
    assert game.can_start() is False


def test_start_game():
    game = _game_with_players()
    game.start_game()
    assert game.state is GameState.PLAYING
    assert all(len(p.cards) == 2 for p in game.players.values())
    assert game.current_index == 0
    assert game.started_at is not None
    assert len(game.deck) + sum(len(p.cards) for p in game.players.values()) == 15


def test_start_game_needs_players():
    game = _game_with_players(2)
    with pytest.raises(GameError, match="need at least 3 players"):
        game.start_game()
    assert game.state is GameState.WAITING


def test_current_player():
    game = Game("test")
    assert game.current_player() is None
    for i in range(3):
        game.add_player(Player(f"p{i}", f"Player {i}"))
    game.start_game()
    current = game.current_player()
    assert current is not None
    assert current.id == "p0"


def test_next_turn():
    game = _game_with_players()
    game.start_game()
    game.next_turn()
    assert game.current_player().id == "p1"
    game.next_turn()
    game.next_turn()
    assert game.current_player().id == "p0"


def test_next_turn_skips_dead_players():
    game = _game_with_players(4)
    game.start_game()
    game.players["p1"].is_alive = False
    game.next_turn()
    assert game.current_player().id == "p2"
    assert game.state is GameState.PLAYING


def test_next_turn_ignored_when_not_playing():
    game = _game_with_players()
    game.next_turn()
    assert game.current_index == 0
    assert game.state is GameState.WAITING


def test_check_game_end():
    game = _game_with_players()
    game.start_game()
    game.players["p0"].is_alive = False
    game.players["p1"].is_alive = False
    game.check_game_end()
    assert game.state is GameState.FINISHED
    assert game.winner is not None
    assert game.winner.id == "p2"
    assert game.finished_at is not None


def test_check_game_end_keeps_playing_with_two_alive():
    game = _game_with_players()
    game.start_game()
    game.players["p0"].is_alive = False
    game.check_game_end()
    assert game.state is GameState.PLAYING
    assert game.winner is None


def test_alive_players():
    game = _game_with_players()
    assert len(game.alive_players()) == 3
    game.players["p1"].is_alive = False
    alive = game.alive_players()
    assert len(alive) == 2
    assert {p.id for p in alive} == {"p0", "p2"}


def test_game_state():
    game = Game("test")
    game.add_player(Player("p1", "Player 1"))
    state = game.game_state()
    assert state["id"] == "test"
    assert state["state"] == "Waiting"
    assert isinstance(state["players"], list)
    assert len(state["players"]) == 1
    assert state["players"][0]["id"] == "p1"
    assert "cards" not in state["players"][0]
    assert state["current_player"] == ""
    assert state["deck_size"] == 15
    assert "winner" not in state


def test_game_state_with_winner():
    game = _game_with_players()
    game.start_game()
    game.players["p0"].is_alive = False
    game.players["p2"].is_alive = False
    game.check_game_end()
    state = game.game_state()
    assert state["state"] == "Finished"
    assert state["winner"]["id"] == "p1"


def test_player_game_state():
    game = Game("test")
    game.add_player(Player("p1", "Player 1"))
    state = game.player_game_state("p1")
    assert "your_info" in state
    assert state["your_info"]["cards"] == []
    assert state["your_turn"] is False


def test_player_game_state_during_play():
    game = _game_with_players()
    game.start_game()
    mine = game.player_game_state("p0")
    other = game.player_game_state("p1")
    assert mine["your_turn"] is True
    assert other["your_turn"] is False
    assert len(mine["your_info"]["cards"]) == 2
    assert mine["current_player"] == "p0"


def test_player_game_state_unknown_player():
    game = Game("test")
    state = game.player_game_state("ghost")
    assert "your_info" not in state
    assert "your_turn" not in state
# coupgame

Building blocks for playing the card game Coup on a local network:

* `coupgame.cards`, `coupgame.player`, `coupgame.game`: the five character
  cards, the actions, players and their coins, dealing, turn order and
  finding the winner;
* `coupgame.lobby`: rooms with four-digit join codes;
* `coupgame.i18n`: translated messages loaded from JSON locale files;
* `coupgame.message`: the JSON messages sent over the socket;
* `coupgame.connections` and `coupgame.server`: an aiohttp server that
  serves static files and keeps track of WebSocket clients.

## Installing

```
pip install .
```

To install the test tools as well:

```
pip install ".[test]"
```

## Running the server

```
coupgame
```

Options:

* `--host` is the address to listen on. The default is every interface.
* `--port` is the port to listen on. The default is 8080.
* `--web-root` is the directory of static files served at `/`. The default is `web`.
* `--locales` is the directory of translation files. The default is `locales`.

The server loads the translation files first. If the locales directory
cannot be read, it logs the error and exits with status 1. It does the
same if the port cannot be opened.

Static files come from the web root. A directory is served as its
`index.html` if it has one. Otherwise a plain listing of the directory is
served.

WebSocket connections are accepted on `/ws`. A request that is not a GET
gets 405. A GET without the upgrade headers gets 400. Each new client is
given a random identifier and is sent a welcome message:

```json
{"type":"player_join","payload":{"clientId":"…","message":"Welcome to Coup Game!"}}
```

Incoming messages larger than 512 bytes close the connection. So does 60
seconds of silence. The server pings every 54 seconds. Messages that queue
up for a client are sent together, separated by newlines. A client can
queue up to 256 messages.

A `chat` message is passed on to every connected client as one line of
text, for example `Chat from <id>: map[message:Hello]`. `player_join` and
`game_action` messages are logged only. Ctrl+C stops the server. It closes
all clients before it exits.

## What the server does not do

The socket server is not connected to the game rules or to the lobby. It
does not create rooms, start games or apply actions that clients send.
Nothing is stored: games, rooms and clients live only in memory.

## Game rules

```python
from coupgame.cards import ActionType, Card, all_cards
from coupgame.game import Game, GameState
from coupgame.player import GameError, Player

game = Game("table-1")
for n in range(3):
    game.add_player(Player(f"p{n}", f"Player {n}"))

game.start_game()          # shuffles the deck, deals two cards each
assert game.state is GameState.PLAYING

current = game.current_player()
current.add_coins(ActionType.TAX.reward())
game.next_turn()

print(game.game_state())             # public view, for everyone
print(game.player_game_state("p0"))  # adds that player's own cards and "your_turn"
```

* A game takes 3 to 6 players. The deck holds 3 of each card, 15 in all.
* A player starts with 2 coins and holds at most 2 cards.
* `Player.must_coup()` is true at 10 coins or more.
* `ActionType.cost()` is 7 for a Coup and 3 for an assassination.
* `Card.can_block(action)` tells which cards block foreign aid, an
  assassination or a steal.
* A player who loses their last card is out. `next_turn()` skips players
  who are out. When one player or none is left, the game ends and the
  remaining player, if there is one, becomes `game.winner`.
* `remove_player()` takes a player out of a waiting game. In a game under
  way, it only marks the player inactive.

Any broken rule raises `GameError`. This covers a full table, a duplicate
player, starting with too few players, too few coins, a third card, or a
card the player does not hold.

## Lobby rooms

```python
from coupgame.lobby import RoomError, RoomPlayer, calculate_deck_size, create_room

room = create_room()                 # room.code is a four-digit string
room.add_player(RoomPlayer("player-1", "Alice"))
room.is_ready_to_start()             # needs at least 3 players
calculate_deck_size(8)               # 20: 4 of each card for 7-8 players
```

A room holds up to 10 players. Adding a player to a full room raises
`RoomError`. So does adding the same player twice or removing an unknown
one.

## Translations

Put one JSON file per language in a directory. The language comes from the
file name, for example `en.json`, `pt.json` or `active.pt-BR.json`. A file
is an object that maps message IDs to text. Nested objects give dotted IDs.
An entry may also be an object with an `other` or `translation` field.
Text may use `{{.Name}}` placeholders.

```python
from coupgame import i18n

i18n.init_with_locales_path("locales")
i18n.get_message("pt", "welcome_message")
i18n.get_message_with_data("en", "players_connected", {"Count": 3})
i18n.get_localizer("pt").localize("waiting_for_players")

bundle = i18n.new_bundle("locales")   # a separate bundle, English by default
bundle.set_default_language("pt")
bundle.get_message("fr", "welcome_message")   # falls back to the default
```

`new_bundle` refuses an empty path or one that contains `..`. It also
refuses a directory with no JSON files. `i18n.reset()` drops the shared
bundle.

An unknown message ID raises `MessageNotFoundError`. Other problems raise
`I18nError`:

* an empty language or ID;
* a malformed language tag;
* an unreadable directory or file;
* a call made before the shared bundle is loaded.

## Messages

```python
from coupgame.message import GameMessage, MessageType, from_json

data = GameMessage(MessageType.CHAT, {"message": "Hello"}).to_json()
# b'{"type":"chat","payload":{"message":"Hello"}}'
message = from_json(data)
```

`to_json()` writes compact JSON with sorted keys. It leaves out the
timestamp. `from_json()` raises `ValueError` for input it cannot decode.

## Running the tests

```
pytest
```
[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "coupgame"
version = "0.1.0"
description = "Rules, lobby rooms, translations and a WebSocket server for the card game Coup"
requires-python = ">=3.10"
keywords = ["coup", "card game", "board game", "websocket", "multiplayer", "aiohttp", "i18n"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: Board Games",
]
dependencies = [
    "aiohttp>=3.9",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "pytest-asyncio>=0.21",
]

[project.scripts]
coupgame = "coupgame.server:main"

[tool.hatch.build.targets.wheel]
packages = ["coupgame"]

[tool.hatch.build.targets.sdist]
include = [
    "coupgame",
    "tests",
    "README.md",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true

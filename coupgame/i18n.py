"""Translated messages loaded from JSON locale files."""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"
DEFAULT_LOCALES_PATH = "locales"

_TAG_RE = re.compile(r"[A-Za-z]{2,3}(?:-[A-Za-z0-9]{2,8})*")
_PLACEHOLDER_RE = re.compile(r"\{\{\s*\.([A-Za-z_]\w*)\s*\}\}")
_RESERVED_KEYS = frozenset(
    {
        "id",
        "description",
        "hash",
        "leftdelim",
        "rightdelim",
        "zero",
        "one",
        "two",
        "few",
        "many",
        "other",
        "translation",
    }
)
_TEXT_KEYS = ("other", "translation", "one", "zero", "two", "few", "many")

Catalog = Mapping[str, Mapping[str, str]]


class I18nError(Exception):
    """Raised when translations cannot be loaded or looked up."""


class MessageNotFoundError(I18nError):
    """Raised when no loaded language has the requested message."""


def _canonical_tag(lang: str) -> str:
    """Normalise a language tag such as 'pt_br' to 'pt-BR'."""
    text = lang.strip().replace("_", "-")
    if not _TAG_RE.fullmatch(text):
        raise I18nError(f"invalid language tag {lang}: ill-formed tag")
    primary, *subtags = text.split("-")
    parts = [primary.lower()]
    for sub in subtags:
        if len(sub) == 2 and sub.isalpha():
            parts.append(sub.upper())
        elif len(sub) == 4 and sub.isalpha():
            parts.append(sub.title())
        else:
            parts.append(sub.lower())
    return "-".join(parts)


def _requested_tags(languages: Iterable[str]) -> Iterator[str]:
    """Yield well-formed tags from plain tags or Accept-Language style lists."""
    for entry in languages:
        for piece in entry.split(","):
            candidate = piece.split(";", 1)[0].strip()
            if not candidate:
                continue
            try:
                yield _canonical_tag(candidate)
            except I18nError:
                continue


def _resolve_languages(languages: Iterable[str], available: Iterable[str]) -> tuple[str, ...]:
    """Order the available languages by how well they match the requested ones."""
    available = list(available)
    resolved: list[str] = []

    def add(tag: str) -> None:
        if tag in available and tag not in resolved:
            resolved.append(tag)

    for tag in _requested_tags(languages):
        parts = tag.split("-")
        while parts:
            add("-".join(parts))
            parts.pop()
        base = tag.split("-", 1)[0]
        for candidate in available:
            if candidate.split("-", 1)[0] == base:
                add(candidate)
    return tuple(resolved)


def _go_text(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _render(template: str, data: Optional[Mapping[str, Any]]) -> str:
    values = data or {}

    def substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in values:
            return "<no value>"
        return _go_text(values[key])

    return _PLACEHOLDER_RE.sub(substitute, template)


def _message_text(entry: Mapping[str, Any]) -> Optional[str]:
    for key in _TEXT_KEYS:
        value = entry.get(key)
        if isinstance(value, str):
            return value
    return None


def _is_message(entry: Mapping[str, Any]) -> bool:
    return any(
        key.lower() in _RESERVED_KEYS and isinstance(value, str)
        for key, value in entry.items()
    )


def _flatten(data: Any, prefix: str = "") -> Iterator[tuple[str, str]]:
    """Yield (message id, template) pairs from a parsed locale document."""
    if isinstance(data, list):
        for item in data:
            if isinstance(item, dict) and isinstance(item.get("id"), str):
                text = _message_text(item)
                if text is not None:
                    yield item["id"], text
        return
    if not isinstance(data, dict):
        raise I18nError("locale document must be a JSON object or array")
    for key, value in data.items():
        message_id = f"{prefix}.{key}" if prefix else key
        if isinstance(value, str):
            yield message_id, value
        elif isinstance(value, dict):
            if _is_message(value):
                text = _message_text(value)
                if text is not None:
                    yield message_id, text
            else:
                yield from _flatten(value, message_id)


def _language_from_filename(path: Path) -> str:
    stem = path.name[: -len(".json")]
    for part in reversed(stem.split(".")):
        try:
            return _canonical_tag(part)
        except I18nError:
            continue
    raise I18nError(f"failed to load translation file {path}: no language found in file name")


def _load_file(path: Path) -> tuple[str, dict[str, str]]:
    lang = _language_from_filename(path)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
        messages = dict(_flatten(document))
    except (OSError, ValueError, I18nError) as exc:
        raise I18nError(f"failed to load translation file {path}: {exc}") from exc
    return lang, messages


def _load_directory(locales_path: str | os.PathLike[str]) -> tuple[dict[str, dict[str, str]], int]:
    """Load every JSON file in a directory; return the catalog and the file count."""
    directory = Path(locales_path)
    try:
        entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
    except OSError as exc:
        raise I18nError(f"failed to read locales directory: {exc}") from exc

    catalog: dict[str, dict[str, str]] = {}
    loaded = 0
    for entry in entries:
        if entry.is_dir() or not entry.name.endswith(".json"):
            continue
        lang, messages = _load_file(entry)
        catalog.setdefault(lang, {}).update(messages)
        logger.info("Loaded translation file: %s", entry)
        loaded += 1
    return catalog, loaded


def _validate_request(lang: str, message_id: str) -> None:
    if not lang:
        raise I18nError("language cannot be empty")
    if not message_id:
        raise I18nError("messageID cannot be empty")


class Localizer:
    """Looks up messages in a list of languages, best match first."""

    def __init__(self, catalog: Catalog, languages: Iterable[str]) -> None:
        self._catalog = catalog
        self.languages = _resolve_languages(languages, catalog.keys())

    def localize(self, message_id: str, data: Optional[Mapping[str, Any]] = None) -> str:
        """Return the message rendered with data, from the best matching language."""
        for lang in self.languages:
            template = self._catalog[lang].get(message_id)
            if template is not None:
                return _render(template, data)
        language = self.languages[0] if self.languages else ""
        raise MessageNotFoundError(
            f'message "{message_id}" not found in language "{language}"'
        )


class Bundle:
    """A set of translations with a default language to fall back on."""

    def __init__(self, messages: Catalog, default_language: str = DEFAULT_LANGUAGE) -> None:
        self._default_language = _canonical_tag(default_language)
        self._messages: dict[str, dict[str, str]] = {}
        for lang, table in messages.items():
            self._messages.setdefault(_canonical_tag(lang), {}).update(table)

    @property
    def default_language(self) -> str:
        return self._default_language

    @property
    def languages(self) -> tuple[str, ...]:
        """The languages that have translations, sorted."""
        return tuple(sorted(self._messages))

    def set_default_language(self, lang: str) -> None:
        """Change the fallback language; raises I18nError for a malformed tag."""
        self._default_language = _canonical_tag(lang)

    def localizer(self, lang: str) -> Localizer:
        return Localizer(self._messages, [lang, self._default_language])

    def get_message(self, lang: str, message_id: str) -> str:
        _validate_request(lang, message_id)
        return self.localizer(lang).localize(message_id)

    def get_message_with_data(
        self, lang: str, message_id: str, data: Optional[Mapping[str, Any]]
    ) -> str:
        _validate_request(lang, message_id)
        return self.localizer(lang).localize(message_id, data)


def new_bundle(locales_path: str | os.PathLike[str]) -> Bundle:
    """Load a bundle from a locales directory, with English as the default."""
    raw = os.fspath(locales_path)
    if not raw:
        raise I18nError("locales path cannot be empty")
    clean = os.path.normpath(raw)
    if ".." in clean:
        raise I18nError("invalid locales path: directory traversal not allowed")
    catalog, loaded = _load_directory(clean)
    if loaded == 0:
        raise I18nError(f"no translation files found in directory: {clean}")
    return Bundle(catalog, DEFAULT_LANGUAGE)


_default_bundle: Optional[Bundle] = None


def init() -> None:
    """Load the shared bundle from the default locales directory."""
    try:
        init_with_locales_path(DEFAULT_LOCALES_PATH)
    except I18nError as exc:
        raise I18nError(f"failed to initialize i18n: {exc}") from exc


def init_with_locales_path(locales_path: str | os.PathLike[str]) -> None:
    """Load the shared bundle from the given locales directory."""
    global _default_bundle
    catalog, _ = _load_directory(locales_path)
    _default_bundle = Bundle(catalog, DEFAULT_LANGUAGE)


def reset() -> Optional[Bundle]:
    """Drop the shared bundle and return the one that was loaded, if any."""
    global _default_bundle
    previous = _default_bundle
    _default_bundle = None
    if previous is not None:
        logger.debug("Dropped shared i18n bundle with languages: %s", previous.languages)
    return previous


def get_localizer(lang: str) -> Localizer:
    if _default_bundle is None:
        raise I18nError("i18n bundle not initialized. Call init() first")
    return _default_bundle.localizer(lang)


def _require_bundle() -> Bundle:
    if _default_bundle is None:
        raise I18nError("i18n bundle not initialized")
    return _default_bundle


def get_message(lang: str, message_id: str) -> str:
    return _require_bundle().get_message(lang, message_id)


def get_message_with_data(
    lang: str, message_id: str, data: Optional[Mapping[str, Any]]
) -> str:
    return _require_bundle().get_message_with_data(lang, message_id, data)
"""Structured scanning of stylesheet text for ``url(...)`` references."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from urllib.parse import urlsplit

import tinycss2


@dataclass(frozen=True)
class UrlReference:
    """A single ``url(...)`` occurrence in a stylesheet."""

    url: str
    line: int
    column: int


def _url_from_token(token) -> str | None:
    """Return the URL wrapped by *token* if it is a ``url(...)`` value."""
    if token.type == "url":
        return token.value
    if token.type == "function" and token.lower_name == "url":
        args = [t for t in token.arguments if t.type not in ("whitespace", "comment")]
        if len(args) == 1 and args[0].type == "string":
            return args[0].value
    return None


def _walk(tokens: Iterable) -> Iterator[UrlReference]:
    for token in tokens:
        url = _url_from_token(token)
        if url is not None:
            yield UrlReference(url=url, line=token.source_line, column=token.source_column)
            continue
        if token.type == "function":
            yield from _walk(token.arguments)
        elif token.type in ("{} block", "[] block", "() block"):
            yield from _walk(token.content)


def scan_url_references(css_text: str) -> list[UrlReference]:
    """Return every ``url(...)`` reference in *css_text*, in document order.

    Both the unquoted form ``url(https://...)`` and the quoted form
    ``url('https://...')`` are recognised; nested blocks (``@font-face {}``)
    are descended into.
    """
    tokens = tinycss2.parse_component_value_list(css_text, skip_comments=True)
    return list(_walk(tokens))


def scan_import_urls(css_text: str) -> list[UrlReference]:
    """Return the target of every ``@import url(...)`` rule, in order."""
    refs: list[UrlReference] = []
    for rule in tinycss2.parse_stylesheet(css_text, skip_comments=True, skip_whitespace=True):
        if rule.type != "at-rule" or rule.lower_at_keyword != "import":
            continue
        for token in rule.prelude:
            url = _url_from_token(token)
            if url is not None:
                refs.append(UrlReference(url=url, line=token.source_line, column=token.source_column))
                break
    return refs


def is_truetype_https_url(url: str) -> bool:
    """Return True for an ``https://`` URL whose path ends in ``.ttf``.

    Nothing may follow the ``.ttf`` suffix (no query string or fragment).
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return (
        parts.scheme == "https"
        and bool(parts.netloc)
        and parts.path.endswith(".ttf")
        and url.endswith(".ttf")
    )

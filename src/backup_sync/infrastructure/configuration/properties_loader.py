"""Load the sync job configuration from a `.properties` file."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from pathlib import Path

from backup_sync.domain.errors import ConfigurationError
from backup_sync.domain.job_configuration import DEFAULT_PROPERTY_PREFIX, SyncConfiguration

_WHITESPACE = " \t\f"
_SEPARATORS = "=:"
_ESCAPE = re.compile(r"\\(?:u([0-9a-fA-F]{4})|(.))", re.DOTALL)
_ESCAPED_CHARACTERS = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}

logger = logging.getLogger(__name__)


def parse_properties(text: str) -> dict[str, str]:
    """Parse Java properties syntax into a flat dictionary.

    Supports `#`/`!` comments, `=`/`:`/whitespace separators, backslash line
    continuations and the usual escape sequences. Later keys override earlier ones.
    """

    properties: dict[str, str] = {}
    for line in _logical_lines(text):
        key, value = _split_entry(line)
        properties[_unescape(key)] = _unescape(value)
    return properties


def read_properties(path: Path) -> dict[str, str]:
    """Read and parse a UTF-8 properties file."""

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Unable to read configuration file {path}: {exc}") from exc
    return parse_properties(text)


def load_sync_configuration(
    path: Path,
    prefix: str = DEFAULT_PROPERTY_PREFIX,
) -> SyncConfiguration:
    """Read `path` and validate it into a `SyncConfiguration`."""

    configuration = SyncConfiguration.from_properties(read_properties(path), prefix=prefix)
    logger.info(
        "Loaded %s job(s) for host '%s' from %s%s.",
        len(configuration.jobs),
        configuration.host,
        path,
        " (dry run)" if configuration.dry_run else "",
    )
    return configuration


def _logical_lines(text: str) -> Iterator[str]:
    natural_lines = iter(text.splitlines())
    for raw_line in natural_lines:
        line = raw_line.lstrip(_WHITESPACE)
        if not line or line[0] in "#!":
            continue

        while _is_continued(line):
            line = line[:-1]
            next_line = next(natural_lines, None)
            if next_line is None:
                break
            line += next_line.lstrip(_WHITESPACE)
        yield line


def _is_continued(line: str) -> bool:
    trailing_backslashes = len(line) - len(line.rstrip("\\"))
    return trailing_backslashes % 2 == 1


def _split_entry(line: str) -> tuple[str, str]:
    index = 0
    escaped = False
    while index < len(line):
        char = line[index]
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char in _SEPARATORS or char in _WHITESPACE:
            break
        index += 1

    key = line[:index]
    rest = line[index:].lstrip(_WHITESPACE)
    if rest and rest[0] in _SEPARATORS:
        rest = rest[1:].lstrip(_WHITESPACE)
    return key, rest


def _unescape(value: str) -> str:
    def replace(match: re.Match[str]) -> str:
        code_point, char = match.groups()
        if code_point is not None:
            return chr(int(code_point, 16))
        return _ESCAPED_CHARACTERS.get(char, char)

    return _ESCAPE.sub(replace, value)


__all__ = ["load_sync_configuration", "parse_properties", "read_properties"]

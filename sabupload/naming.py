"""
Naming convention parsing.

Download names carry the content hash and catalog id as
``<hash>--[[<catalog_id>]]<optional .ext>``. Parsing is pure: no filesystem
access, so every strategy can be exercised on plain strings.
"""
import logging
import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import Callable, List, Optional, Tuple

from .errors import NamingMismatch
from .models import NamingToken

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"^([A-Za-z0-9]+)--\[\[([0-9]+)\]\](\..+)?$")
DIRECTORY_PATTERN = re.compile(r"^([A-Za-z0-9]+)--\[\[([0-9]+)\]\]$")
LEADING_HASH_PATTERN = re.compile(r"^[A-Za-z0-9]+")
# e.g. "Some.Movie.603.1999.1080p.mkv" -> catalog id 603, extension .mkv
FALLBACK_FILE_PATTERN = re.compile(r"\.(\d+)\..+(\.[^.]+)$")


def _basename(text: str) -> str:
    return PurePath(text.strip()).name if text else ""


def parse_token(text: str) -> Optional[NamingToken]:
    """Parse a bare name or the base name of a path."""
    match = TOKEN_PATTERN.match(_basename(text))
    if not match:
        return None
    content_hash, catalog_id, extension = match.groups()
    return NamingToken(content_hash, catalog_id, extension or "")


def parse_directory_name(name: str) -> Optional[NamingToken]:
    """Parse a directory name, which never carries an extension."""
    match = DIRECTORY_PATTERN.match(_basename(name))
    if not match:
        return None
    return NamingToken(match.group(1), match.group(2))


def leading_hash(name: str) -> Optional[str]:
    match = LEADING_HASH_PATTERN.match(_basename(name))
    return match.group(0) if match else None


def parse_fallback_file_name(file_name: str) -> Optional[Tuple[str, str]]:
    """Extract ``(catalog_id, extension)`` from a release-style file name."""
    match = FALLBACK_FILE_PATTERN.search(_basename(file_name))
    if not match:
        return None
    return match.group(1), match.group(2)


@dataclass(frozen=True)
class NamingSources:
    """Strings a token may be recovered from, in no particular order."""
    final_name: str
    directory_name: str
    file_name: str


NamingStrategy = Callable[[NamingSources], Optional[NamingToken]]


def primary_strategy(sources: NamingSources) -> Optional[NamingToken]:
    return parse_token(sources.final_name)


def directory_strategy(sources: NamingSources) -> Optional[NamingToken]:
    return parse_directory_name(sources.directory_name)


def degraded_strategy(sources: NamingSources) -> Optional[NamingToken]:
    content_hash = leading_hash(sources.directory_name)
    parsed = parse_fallback_file_name(sources.file_name)
    if not content_hash or not parsed:
        return None
    catalog_id, extension = parsed
    return NamingToken(content_hash, catalog_id, extension)


DEFAULT_STRATEGIES: List[Tuple[str, NamingStrategy]] = [
    ("primary", primary_strategy),
    ("directory", directory_strategy),
    ("degraded", degraded_strategy),
]


class NamingChain:
    """
    Ordered list of naming strategies; the first one to produce a token wins.

    Usage:
        chain = NamingChain()
        name, token = chain.resolve(NamingSources(final_name, dir_name, file_name))
    """

    def __init__(self, strategies: Optional[List[Tuple[str, NamingStrategy]]] = None):
        self._strategies = list(strategies or DEFAULT_STRATEGIES)

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self._strategies]

    def first_match(self, sources: NamingSources) -> Optional[Tuple[str, NamingToken]]:
        for name, strategy in self._strategies:
            token = strategy(sources)
            if token is not None:
                return name, token
            logger.debug("Naming strategy '%s' did not match", name)
        return None

    def resolve(self, sources: NamingSources) -> Tuple[str, NamingToken]:
        found = self.first_match(sources)
        if found is None:
            raise NamingMismatch(
                f"Neither final name '{sources.final_name}' nor directory "
                f"'{sources.directory_name}' (file '{sources.file_name}') match "
                f"the expected pattern {TOKEN_PATTERN.pattern}"
            )
        return found

"""Wildcard address matching for ``xmv`` actions.

A source address such as ``module.app[*].aws_instance.web`` is compiled into
a regular expression in which every ``*`` captures exactly one address
segment. The expression is matched against the current ``terraform state
list`` output, and each match becomes a concrete move whose destination is
built from a template referencing the captures as ``$1``, ``${2}``...
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from tfstate_migrator.errors import PatternCompileError

WILDCARD = "*"

# A wildcard stands for a single address segment, so it can match neither a
# dot, whitespace, nor square brackets.
WILDCARD_REGEX = r"([^.\]\[\t\n\v\f\r ]*)"

# Separator used to scan the listing in one pass; it cannot occur in an address.
LISTING_SEPARATOR = "\n"

# Reference names are greedy runs of ASCII word characters, so "$1_x" names
# group "1_x", which does not exist; write "${1}_x" instead.
_TEMPLATE_REFERENCE = re.compile(r"\$(?:\{(\w+)\}|(\w+)|(\$))", re.ASCII)


@dataclass(frozen=True)
class MoveOperation:
    """A concrete move between two fully resolved addresses.

    Attributes:
        source: Address to move from.
        destination: Address to move to.
    """

    source: str
    destination: str


def count_wildcards(source: str) -> int:
    """Return the number of wildcard tokens in an address."""
    return source.count(WILDCARD)


def make_source_pattern(source: str) -> str:
    """Return the regular expression text for a wildcard address.

    Every character other than the wildcard is escaped so that address
    syntax like ``.`` and ``[0]`` is matched literally. The expression is
    anchored to a full line of the listing.
    """
    escaped = re.escape(source)
    return "^" + escaped.replace(re.escape(WILDCARD), WILDCARD_REGEX) + "$"


def compile_pattern(source: str) -> re.Pattern[str]:
    """Compile a wildcard address into a capturing regular expression.

    Args:
        source: Address that may contain ``*`` wildcards.

    Returns:
        A compiled pattern with one group per wildcard, in order.

    Raises:
        PatternCompileError: If the derived expression is invalid.
    """
    raw = make_source_pattern(source)
    try:
        return re.compile(raw, re.MULTILINE)
    except re.error as e:
        raise PatternCompileError(source, raw, e) from e


def expand_template(match: re.Match[str], template: str) -> str:
    """Substitute a match's captures into a destination template.

    ``$N`` and ``${N}`` refer to the N-th wildcard (1-based); ``$$`` is a
    literal dollar sign. References to groups that do not exist expand to an
    empty string, and a ``$`` that starts no valid reference is kept as is.
    """

    def _substitute(ref: re.Match[str]) -> str:
        if ref.group(3):
            return "$"
        name = ref.group(1) or ref.group(2)
        if not name.isdigit():
            return ""
        index = int(name)
        if index > match.re.groups:
            return ""
        return match.group(index) or ""

    return _TEMPLATE_REFERENCE.sub(_substitute, template)


def expand(listing: Sequence[str], source: str, destination: str) -> list[MoveOperation]:
    """Expand a possibly wildcarded move into concrete move operations.

    Args:
        listing: Addresses currently in the state, in listing order.
        source: Source address, optionally with ``*`` wildcards.
        destination: Destination address or template.

    Returns:
        Moves in listing order. A source without wildcards yields exactly
        ``[MoveOperation(source, destination)]`` without looking at the
        listing; a pattern that matches nothing yields an empty list.

    Raises:
        PatternCompileError: If the source cannot be compiled.
    """
    if count_wildcards(source) == 0:
        return [MoveOperation(source, destination)]

    pattern = compile_pattern(source)
    if not listing:
        return []
    haystack = LISTING_SEPARATOR.join(listing)

    return [
        MoveOperation(match.group(0), expand_template(match, destination))
        for match in pattern.finditer(haystack)
    ]

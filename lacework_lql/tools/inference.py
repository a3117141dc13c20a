"""Reverse inference of a natural-language request from a tool name.

Tool names follow loose conventions (get-aws-<x>, list-<x>, find-<x>, ...).
NAME_PATTERNS is an ordered table, first match wins; each captured group
is de-hyphenated and substituted into the phrase template.
"""

import re
from typing import Any, Optional

_SEP = r"[-_]?"

# (regex over the lowercased name, phrase template)
NAME_PATTERNS: tuple[tuple[re.Pattern, str], ...] = tuple(
    (re.compile(pattern), template)
    for pattern, template in (
        # AWS
        (rf"^get{_SEP}aws{_SEP}(.*?){_SEP}(?:with|having){_SEP}(.*)", "show me AWS {0} with {1}"),
        (rf"^list{_SEP}aws{_SEP}(.*)", "list all AWS {0}"),
        (rf"^find{_SEP}aws{_SEP}(.*)", "find AWS {0}"),
        (rf"^get{_SEP}aws{_SEP}(.*)", "show me AWS {0}"),
        # Security
        (rf"^get{_SEP}(high|critical){_SEP}(.*?){_SEP}(vulnerabilit|risk|threat)", "show me {0} {1} {2}"),
        (rf"^list{_SEP}(.*?){_SEP}(fail|violation)s?", "list all {0} {1}"),
        (rf"^find{_SEP}(.*?){_SEP}(compliance|security)", "find {0} {1} issues"),
        # Containers
        (rf"^get{_SEP}container{_SEP}(.*)", "show me container {0}"),
        (rf"^list{_SEP}k8s{_SEP}(.*)", "list kubernetes {0}"),
        # Generic
        (rf"^get{_SEP}(.*){_SEP}with{_SEP}(.*)", "show me {0} with {1}"),
        (rf"^list{_SEP}(.*)", "list all {0}"),
        (rf"^find{_SEP}(.*)", "find {0}"),
    )
)

_VERB_PREFIX = re.compile(r"^(get|list|find|show)\s+")


def _readable(fragment: str) -> str:
    return re.sub(r"[-_]+", " ", fragment).strip()


def infer_natural_language(name: str, args: Optional[dict[str, Any]] = None) -> Optional[str]:
    """Best-effort phrase for a tool name.

    Tries NAME_PATTERNS, then args["query"], then a readable form of the
    name. Returns None only when every fallback is empty.
    """
    lowered = name.strip().lower()

    for regex, template in NAME_PATTERNS:
        match = regex.match(lowered)
        if match:
            phrase = template.format(*(_readable(g or "") for g in match.groups()))
            return re.sub(r"\s+", " ", phrase).strip()

    query = (args or {}).get("query")
    if isinstance(query, str) and query.strip():
        return query.strip()

    readable = _VERB_PREFIX.sub("show me ", _readable(lowered))
    return readable or None

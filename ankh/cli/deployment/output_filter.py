"""Kind-based filtering of rendered manifests.

YAML libraries do not round-trip comments and whitespace, so rendered
output is filtered textually: split on the ``---`` separator, keep each
document that has a ``kind:`` line matching a filter entry.
"""

from __future__ import annotations

from collections.abc import Sequence

SEPARATOR = "---"
KIND_PREFIX = "kind:"


def document_kind_matches(document: str, filters: Sequence[str]) -> bool:
    """True if any ``kind:`` line of ``document`` case-insensitively matches a filter."""
    for line in document.split("\n"):
        if not line.startswith(KIND_PREFIX):
            continue
        kind = line[len(KIND_PREFIX) :].strip(" ")
        if any(kind.casefold() == f.casefold() for f in filters):
            return True
    return False


def filter_output(manifest: str, filters: Sequence[str]) -> str:
    """Keep only documents whose kind is in ``filters``.

    The result always starts with a ``---`` separator, followed by the kept
    documents joined with ``---``.
    """
    kept = [doc for doc in manifest.split(SEPARATOR) if document_kind_matches(doc, filters)]
    return SEPARATOR + SEPARATOR.join(kept)

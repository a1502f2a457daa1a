"""Inline local ``$ref`` pointers of OpenAPI 2.0 and 3.0 documents.

Both dialects go through the same walker. A ref is followed only inside
the document itself (``#/components/...`` for 3.0, ``#/definitions/...``,
``#/parameters/...`` and ``#/responses/...`` for 2.0). The walker keeps the
chain of refs it is currently expanding; when a ref shows up again inside
its own expansion it resolves to ``None`` instead of recursing forever, so
a self-referencing schema is truncated one level deep.

Resolution never raises. A ref whose target is missing is left as the
original ``{"$ref": ...}`` node and reported as a diagnostic.
"""

import copy
import logging
from typing import Any

logger = logging.getLogger(__name__)

LOCAL_REF_PREFIXES = (
    "#/components/",
    "#/definitions/",
    "#/parameters/",
    "#/responses/",
)

_MISSING = object()


def resolve_refs(document: Any, diagnostics: list[str] | None = None) -> Any:
    """Return a copy of ``document`` with every local ``$ref`` inlined.

    Non-mapping input is returned unchanged. Messages about refs that could
    not be resolved are appended to ``diagnostics`` when a list is given.

    Each ref target is expanded once. Later occurrences of the same ref share
    that expansion, so the result may hold the same subtree in several
    places; treat it as read-only.
    """
    if not isinstance(document, dict):
        return document
    return _RefResolver(document, diagnostics).resolve(document, ())


class _RefResolver:
    def __init__(self, root: dict, diagnostics: list[str] | None):
        self.root = root
        self.diagnostics = diagnostics
        self.resolved: dict[str, Any] = {}
        # Bumped whenever a ref is cut short by the cycle guard.
        self.truncations = 0

    def resolve(self, node: Any, chain: tuple[str, ...]) -> Any:
        if isinstance(node, list):
            return [self.resolve(value, chain) for value in node]
        if not isinstance(node, dict):
            return node

        ref = node.get("$ref")
        if not isinstance(ref, str):
            return {key: self.resolve(value, chain) for key, value in node.items()}

        if not ref.startswith(LOCAL_REF_PREFIXES):
            logger.debug("Leaving non-local reference %r as is", ref)
            return copy.deepcopy(node)

        if ref in chain:
            self.truncations += 1
            return None

        if ref in self.resolved:
            return self.resolved[ref]

        target = _lookup(self.root, ref)
        if target is _MISSING:
            message = f'Reference "{ref}" not found'
            logger.warning(message)
            if self.diagnostics is not None:
                self.diagnostics.append(message)
            return copy.deepcopy(node)

        truncations = self.truncations
        value = self.resolve(target, chain + (ref,))
        # A cycle-truncated expansion depends on the chain it was reached by.
        if self.truncations == truncations:
            self.resolved[ref] = value
        return value


def _lookup(root: dict, ref: str) -> Any:
    """Follow a ``#/a/b/c`` JSON pointer from the document root."""
    current: Any = root
    for raw_token in ref[2:].split("/"):
        token = raw_token.replace("~1", "/").replace("~0", "~")
        if not isinstance(current, dict) or token not in current:
            return _MISSING
        current = current[token]
    return current

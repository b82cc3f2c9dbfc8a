"""Key-rename transform applied to snapshot documents before restore.

Rewrites field names (keys) in a serialized document according to a
rename table such as ``{"damage": "baseDamage"}`` so a snapshot taken
before a field was renamed can still be restored. String values are never
touched, even when they equal a renamed key.

Renames apply document-wide: a key is rewritten at every nesting depth.
Each key is rewritten at most once, from its original name, so a table
like ``{"a": "b", "b": "c"}`` turns ``a`` into ``b`` and ``b`` into ``c``
rather than chaining ``a`` into ``c``. Such tables are still reported by
``find_rename_conflicts`` because the intent is ambiguous.

Usage:
    from object_snapshot.backup.renames import rename_keys, find_rename_conflicts

    for warning in find_rename_conflicts(renames):
        logger.warning(warning)
    document = rename_keys(document, renames)
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

DOCUMENT_INDENT = 4


def rename_keys(document: str, renames: dict[str, str] | None) -> str:
    """Return *document* with keys renamed per *renames*.

    Parses the document and rewrites keys structurally, preserving key
    order. Documents that do not parse as JSON fall back to a textual
    rewrite of ``"old":`` key positions.

    Args:
        document: Serialized document text.
        renames: Mapping of old key to new key. Empty or ``None`` returns
            *document* unchanged.

    Returns:
        Rewritten document text (pretty-printed when parsed).

    Example:
        >>> print(rename_keys('{"damage": 10, "name": "damage"}', {"damage": "baseDamage"}))
        {
            "baseDamage": 10,
            "name": "damage"
        }
    """
    if not renames:
        return document

    try:
        tree = json.loads(document)
    except json.JSONDecodeError:
        logger.debug("Document is not valid JSON; renaming keys textually")
        return _rename_keys_textual(document, renames)

    renamed = _rename_tree(tree, renames, "")
    return json.dumps(renamed, indent=DOCUMENT_INDENT, ensure_ascii=False)


def find_rename_conflicts(renames: dict[str, str] | None) -> list[str]:
    """Describe rules whose rewrite order would matter.

    Flags rules whose target is another rule's source (chains and swaps),
    rules mapping a key onto itself, and several sources sharing one target.

    Returns:
        Human-readable warnings; empty when the table is confluent.
    """
    if not renames:
        return []

    warnings: list[str] = []
    for old, new in renames.items():
        if old == new:
            warnings.append(f"Rename '{old}' -> '{new}' maps a key onto itself")
        elif new in renames:
            warnings.append(
                f"Rename '{old}' -> '{new}' targets the source of "
                f"'{new}' -> '{renames[new]}'; keys are renamed once, "
                f"from their original name"
            )

    targets: dict[str, list[str]] = {}
    for old, new in renames.items():
        targets.setdefault(new, []).append(old)
    for new, sources in targets.items():
        if len(sources) > 1:
            warnings.append(
                f"Renames {', '.join(repr(s) for s in sources)} all target '{new}'; "
                f"the last one in document order wins"
            )

    return warnings


def _rename_tree(node: Any, renames: dict[str, str], path: str) -> Any:
    if isinstance(node, list):
        return [
            _rename_tree(item, renames, f"{path}[{i}]") for i, item in enumerate(node)
        ]
    if not isinstance(node, dict):
        return node

    result: dict[str, Any] = {}
    renamed_keys: set[str] = set()
    for key, value in node.items():
        new_key = renames.get(key, key)
        renamed = new_key != key
        child_path = f"{path}.{new_key}" if path else new_key
        child = _rename_tree(value, renames, child_path)

        if new_key in result:
            logger.warning(f"Key '{child_path}' occurs more than once after renaming")
            # A renamed value always wins over the field it lands on
            if not renamed and new_key in renamed_keys:
                continue
        result[new_key] = child
        if renamed:
            renamed_keys.add(new_key)
    return result


def _rename_keys_textual(document: str, renames: dict[str, str]) -> str:
    pattern = re.compile(
        r'"(' + "|".join(re.escape(k) for k in sorted(renames, key=len, reverse=True)) + r')"(\s*):'
    )

    def _replace(match: re.Match) -> str:
        return f'"{renames[match.group(1)]}"{match.group(2)}:'

    return pattern.sub(_replace, document)

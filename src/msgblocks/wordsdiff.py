"""Word-level diff ops for TextDiff blocks.

The classifier never diffs; callers that want a diff view compute the ops
here (or anywhere else) and pass them in.
"""

import difflib
import re

from msgblocks.core.blocks import DiffOp

_TOKEN_RE = re.compile(r"\s+|[^\s]+")


def _tokens(text: str) -> list[str]:
    return _TOKEN_RE.findall(text)


def words_diff(old_text: str, new_text: str) -> tuple[DiffOp, ...]:
    """Diff two texts word by word, whitespace runs kept as their own tokens."""
    old_tokens = _tokens(old_text)
    new_tokens = _tokens(new_text)
    matcher = difflib.SequenceMatcher(a=old_tokens, b=new_tokens, autojunk=False)
    ops: list[DiffOp] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            ops.append(DiffOp("equal", "".join(old_tokens[i1:i2])))
            continue
        if tag in ("delete", "replace"):
            ops.append(DiffOp("delete", "".join(old_tokens[i1:i2])))
        if tag in ("insert", "replace"):
            ops.append(DiffOp("insert", "".join(new_tokens[j1:j2])))
    return tuple(ops)

"""Exception types raised at msgblocks boundaries.

The classifier and recycler never raise; these cover caller-supplied data.
"""


class MsgblocksError(Exception):
    """Base class for msgblocks errors."""


class InvalidDiffOpError(MsgblocksError, ValueError):
    """A diff operation named something other than insert/delete/equal."""

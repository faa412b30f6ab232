# Overview: Asset code generation ({category prefix}{6-digit sequence}).

from __future__ import annotations

from ..extensions import db
from ..models import Asset
from ..validation import ConflictError


SEQUENCE_WIDTH = 6
SEQUENCE_MAX = 10 ** SEQUENCE_WIDTH - 1


def first_code(prefix: str) -> str:
    return f"{prefix}{1:0{SEQUENCE_WIDTH}d}"


def next_code(prefix: str, last_asset: Asset | None) -> str:
    """
    Next code after the highest issued one for this prefix.

        next_code("LA", None)                  -> "LA000001"
        next_code("LA", <Asset code=LA000041>) -> "LA000042"
        next_code("LA", <Asset code=LA-bad>)   -> "LA000001"

    A suffix that is not all digits falls back to the first code.

    Raises:
        ConflictError: the prefix already used LA999999
    """
    if last_asset is None or not last_asset.code:
        return first_code(prefix)

    suffix = last_asset.code[len(prefix):]
    if not suffix.isdigit():
        return first_code(prefix)

    # A seventh digit would sort below the six-digit codes
    if int(suffix) >= SEQUENCE_MAX:
        raise ConflictError(f"Maximum number of asset codes reached for prefix {prefix}")
    return f"{prefix}{int(suffix) + 1:0{SEQUENCE_WIDTH}d}"


def last_asset_with_prefix(prefix: str) -> Asset | None:
    """
    Highest code under the prefix, soft-deleted assets included so a code is
    never handed out twice.

    Descending string order equals numeric order only because the suffix is
    fixed width.
    """
    return (
        db.session.query(Asset)
        .filter(Asset.code.like(f"{prefix}%"))
        .order_by(Asset.code.desc())
        .first()
    )


def generate_code(prefix: str) -> str:
    """Reads the current maximum inside the caller's transaction."""
    prefix = prefix.upper()
    return next_code(prefix, last_asset_with_prefix(prefix))

"""Classify how a local snapshot differs from its remote counterpart."""

from enum import Flag, auto
from typing import Optional, Protocol

from .models import File


class Difference(Flag):
    """Independent ways two snapshots can differ."""

    NONE = 0
    MOD_TIME = auto()
    SIZE = auto()
    CHECKSUM = auto()
    DIR_TYPE = auto()
    NAME = auto()


ALL_DIFFERENCES = (
    Difference.MOD_TIME
    | Difference.SIZE
    | Difference.CHECKSUM
    | Difference.DIR_TYPE
    | Difference.NAME
)


class DiffOracle(Protocol):
    """Anything that can compare a local and a remote snapshot."""

    def __call__(
        self, src: Optional[File], dest: Optional[File], ignore_checksum: bool
    ) -> Difference: ...


def file_differences(
    src: Optional[File], dest: Optional[File], ignore_checksum: bool = False
) -> Difference:
    """Compare a local snapshot with a remote one.

    Args:
        src: Local snapshot
        dest: Remote snapshot
        ignore_checksum: Do not compare MD5 checksums; a size difference
            still counts as a content difference

    Returns:
        Every kind of difference found (everything when a side is missing)
    """
    if src is None or dest is None:
        return ALL_DIFFERENCES

    difference = Difference.NONE
    if src.is_dir != dest.is_dir:
        difference |= Difference.DIR_TYPE
    if src.name != dest.name:
        difference |= Difference.NAME
    if src.mod_time != dest.mod_time:
        difference |= Difference.MOD_TIME

    # Directories carry no content
    if src.is_dir or dest.is_dir:
        return difference

    if src.size != dest.size:
        difference |= Difference.SIZE | Difference.CHECKSUM
    elif not ignore_checksum and src.md5_checksum != dest.md5_checksum:
        difference |= Difference.CHECKSUM
    return difference


def checksum_differs(difference: Difference) -> bool:
    """True if the content itself must be considered changed."""
    return bool(difference & Difference.CHECKSUM)

"""Composed document assembly.

A compose artifact stores each compose file as one layer. The layers are
joined back into a single multi-document YAML stream.
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import BinaryIO


# YAML document separator written between consecutive layers
SEPARATOR = b"\n---\n"


def assemble(blocks: Iterable[bytes], dest: BinaryIO) -> int:
    """Write blocks to dest with SEPARATOR between consecutive blocks.

    Nothing is written before the first block or after the last one, so a
    single block is copied byte for byte. Blocks are consumed lazily, which
    lets callers fetch each layer only when it is about to be written.

    Args:
        blocks: Ordered content blocks.
        dest: Binary stream to write to.

    Returns:
        Number of blocks written.
    """
    count = 0
    for block in blocks:
        if count > 0:
            dest.write(SEPARATOR)
        dest.write(block)
        count += 1
    return count


def assemble_bytes(blocks: Iterable[bytes]) -> bytes:
    """Return the composed document for blocks as bytes."""
    buffer = io.BytesIO()
    assemble(blocks, buffer)
    return buffer.getvalue()

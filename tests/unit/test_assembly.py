"""Unit tests for composed document assembly."""

from __future__ import annotations

import io
from collections.abc import Iterator

import pytest

from composeremote.core.assembly import SEPARATOR, assemble, assemble_bytes


@pytest.mark.core
@pytest.mark.tier(0)
class TestAssemble:
    """Tests for assemble()."""

    def test_separator_is_yaml_document_marker(self) -> None:
        assert SEPARATOR == b"\n---\n"

    def test_single_block_is_copied_verbatim(self) -> None:
        """One block produces exactly its bytes, no separator."""
        block = b"services:\n  web:\n    image: nginx\n"

        assert assemble_bytes([block]) == block

    def test_no_blocks_writes_nothing(self) -> None:
        dest = io.BytesIO()

        assert assemble([], dest) == 0
        assert dest.getvalue() == b""

    def test_separators_between_blocks_only(self) -> None:
        """N blocks are joined by N-1 separators, in order."""
        blocks = [b"one", b"two", b"three", b"four"]

        result = assemble_bytes(blocks)

        assert result.count(SEPARATOR) == len(blocks) - 1
        assert result == b"one\n---\ntwo\n---\nthree\n---\nfour"
        assert not result.startswith(SEPARATOR)
        assert not result.endswith(SEPARATOR)

    def test_returns_block_count(self) -> None:
        assert assemble([b"a", b"b"], io.BytesIO()) == 2

    def test_compose_files(self) -> None:
        """Two compose files become one multi-document stream."""
        first = b"services:\n  a:\n    image: x\n"
        second = b"services:\n  b:\n    image: y\n"

        assert assemble_bytes([first, second]) == (
            b"services:\n  a:\n    image: x\n\n---\nservices:\n  b:\n    image: y\n"
        )

    def test_blocks_consumed_lazily(self) -> None:
        """Each block is written before the next one is requested."""
        dest = io.BytesIO()
        seen: list[bytes] = []

        def blocks() -> Iterator[bytes]:
            yield b"first"
            seen.append(dest.getvalue())
            yield b"second"

        assemble(blocks(), dest)

        assert seen == [b"first"]


@pytest.mark.core
@pytest.mark.tier(1)
@pytest.mark.property
class TestAssembleProperties:
    """Property tests for assemble() over generated blocks."""

    def test_output_is_blocks_joined_by_separator(self) -> None:
        """Property: any blocks assemble to the separator-joined stream."""
        from hypothesis import given
        from hypothesis.strategies import binary, lists

        @given(blocks=lists(binary()))
        def _check(blocks: list[bytes]) -> None:
            dest = io.BytesIO()

            assert assemble(iter(blocks), dest) == len(blocks)
            assert dest.getvalue() == SEPARATOR.join(blocks)

        _check()

    def test_separator_count_and_order(self) -> None:
        """Property: N blocks give N-1 separators and split back in order."""
        from hypothesis import given
        from hypothesis.strategies import binary, lists

        # Without dashes no block can contain or straddle a separator
        dashless = binary().map(lambda b: b.replace(b"-", b""))

        @given(blocks=lists(dashless, min_size=1))
        def _check(blocks: list[bytes]) -> None:
            result = assemble_bytes(blocks)

            assert result.count(SEPARATOR) == len(blocks) - 1
            assert result.split(SEPARATOR) == blocks

        _check()

    def test_single_block_identity(self) -> None:
        """Property: a single block is written byte for byte."""
        from hypothesis import given
        from hypothesis.strategies import binary

        @given(block=binary())
        def _check(block: bytes) -> None:
            assert assemble_bytes([block]) == block

        _check()

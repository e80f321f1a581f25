"""Unit tests for the single-pass streaming ingestion engine."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.chromosome_map import build_chromosome_map
from core.errors import VarIndexOrderingError
from core.types import FilterInfo, SourceKind, VariantFile
from ingest.streaming_ingest import IndexingContext, build_interval_map
from tests.variant_fakes import RecordingIndexWriter, chromosome, header, record


def _variant_file() -> VariantFile:
    return VariantFile(
        id=7,
        name="sample.vcf",
        path="/data/sample.vcf",
        source_kind=SourceKind.LOCAL_FILE,
        compressed=False,
        reference_id=1,
        created_at=datetime.now(timezone.utc),
        owner="tester",
    )


def _chromosome_map():
    return build_chromosome_map((chromosome(1, "chr1"), chromosome(2, "chr2")))


def _indexing(writer: RecordingIndexWriter) -> IndexingContext:
    return IndexingContext(writer=writer, filter_info=FilterInfo(), header=header())


def test_interval_map_tracks_first_and_last_start() -> None:
    """Sorted two-chromosome stream should yield per-chromosome bounds."""
    records = [
        record("chr1", 10),
        record("chr1", 20),
        record("chr1", 30),
        record("chr2", 5),
        record("chr2", 15),
    ]

    interval_map = build_interval_map(_variant_file(), records, _chromosome_map())

    assert interval_map == {"chr1": (10, 30), "chr2": (5, 15)}


def test_out_of_order_record_aborts_pass() -> None:
    """A decreasing start on the same contig should stop the pass."""
    consumed: list[int] = []

    def stream():
        for item in [record("chr1", 10), record("chr1", 30), record("chr1", 20), record("chr1", 40)]:
            consumed.append(item.start)
            yield item

    with pytest.raises(VarIndexOrderingError, match="chr1:20"):
        build_interval_map(_variant_file(), stream(), _chromosome_map())

    assert consumed == [10, 30, 20]


def test_unknown_contig_is_skipped_without_breaking_ordering() -> None:
    """Unknown contigs should not appear in the map nor mask later checks."""
    records = [
        record("chr1", 10),
        record("chrUn_gl000220", 5),
        record("chr2", 50),
        record("chr2", 40),
    ]

    with pytest.raises(VarIndexOrderingError):
        build_interval_map(_variant_file(), records, _chromosome_map())


def test_unknown_contig_never_becomes_interval_key() -> None:
    """Records on unknown contigs should only be consumed."""
    records = [record("chr1", 10), record("chrUn_gl000220", 5), record("chr2", 50)]

    interval_map = build_interval_map(_variant_file(), records, _chromosome_map())

    assert set(interval_map) == {"chr1", "chr2"}


def test_indexing_flushes_one_batch_per_known_chromosome() -> None:
    """Each known chromosome should be post-processed and flushed once."""
    writer = RecordingIndexWriter()
    records = [
        record("chr1", 10),
        record("chr1", 20),
        record("chrM", 3),
        record("chr2", 5),
    ]

    build_interval_map(_variant_file(), records, _chromosome_map(), _indexing(writer))

    assert writer.post_processed == ["chr1", "chr2"]
    assert [[entry.start_index for entry in batch] for batch in writer.flushed] == [[10, 20], [5]]


def test_empty_stream_yields_empty_map_and_no_flush() -> None:
    """An empty stream should produce nothing."""
    writer = RecordingIndexWriter()

    interval_map = build_interval_map(_variant_file(), [], _chromosome_map(), _indexing(writer))

    assert interval_map == {}
    assert writer.flushed == []


def test_prefix_mismatched_contig_is_known() -> None:
    """Contigs spelled without chr should match chr-prefixed references."""
    records = [record("1", 100), record("1", 200)]

    interval_map = build_interval_map(_variant_file(), records, _chromosome_map())

    assert interval_map == {"1": (100, 200)}

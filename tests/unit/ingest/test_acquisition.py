"""Unit tests for source-kind acquisition strategies."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from core.config import VarIndexConfig
from core.errors import VarIndexOrderingError, VarIndexRegistrationError
from core.types import CallSet, Genotype, RegistrationRequest, SourceKind
from ingest.acquisition import AcquisitionSelector
from ingest.header_metadata import FilterInfoExtractor
from store.file_catalog import FileCatalog
from tests.variant_fakes import (
    FakeDecoder,
    FakeIndexBuilder,
    RecordingIndexWriter,
    chromosome,
    header,
    record,
    reference,
    write_placeholder,
)


class _StubRecordService:
    def __init__(self, call_sets: list[CallSet]) -> None:
        self._call_sets = call_sets
        self.requested: list[str] = []

    def list_call_sets(self, variant_set_id: str) -> list[CallSet]:
        self.requested.append(variant_set_id)
        return self._call_sets


class _StubDownloader:
    def __init__(self, local_path: Path) -> None:
        self._local_path = local_path
        self.fetched: list[str] = []

    def fetch(self, url: str) -> Path:
        self.fetched.append(url)
        return self._local_path


def _selector(tmp_path: Path, decoder: FakeDecoder, **collaborators) -> AcquisitionSelector:
    config = replace(VarIndexConfig.from_env(), data_root=tmp_path, owner="tester")
    return AcquisitionSelector(
        config=config,
        catalog=FileCatalog(config),
        decoder=decoder,
        index_builder=collaborators.pop("index_builder", FakeIndexBuilder()),
        index_writer=collaborators.pop("index_writer", RecordingIndexWriter()),
        extractor=FilterInfoExtractor(),
        **collaborators,
    )


def test_local_file_builds_samples_index_and_metadata(tmp_path: Path) -> None:
    """Local acquisition should fill samples, index, and interval metadata."""
    vcf_path = write_placeholder(tmp_path / "calls.vcf")
    decoder = FakeDecoder()
    decoder.add(vcf_path, header(samples=("A", "B")), [record("chr1", 10), record("chr1", 20)])
    index_builder = FakeIndexBuilder()
    selector = _selector(tmp_path, decoder, index_builder=index_builder)
    request = RegistrationRequest(path=str(vcf_path), reference_id=1)

    variant_file = selector.acquire(request, reference(chromosome(1, "chr1")))

    assert [(sample.name, sample.offset) for sample in variant_file.samples] == [("A", 0), ("B", 1)]
    assert variant_file.index is not None and variant_file.index.name == "calls.vcf_index"
    assert variant_file.owner == "tester"
    assert index_builder.built == [vcf_path]
    assert (tmp_path / "variant_files" / str(variant_file.id) / "index_metadata.json").exists()


def test_local_file_closes_stream_on_ordering_error(tmp_path: Path) -> None:
    """Ordering failures should propagate and still close the stream."""
    vcf_path = write_placeholder(tmp_path / "unsorted.vcf")
    decoder = FakeDecoder()
    decoder.add(vcf_path, header(), [record("chr1", 20), record("chr1", 10)])
    selector = _selector(tmp_path, decoder)
    request = RegistrationRequest(path=str(vcf_path), reference_id=1)

    with pytest.raises(VarIndexOrderingError):
        selector.acquire(request, reference(chromosome(1, "chr1")))

    assert decoder.close_count == decoder.open_count == 1


def test_local_file_missing_path_is_registration_error(tmp_path: Path) -> None:
    """Missing local files should be rejected before decoding."""
    decoder = FakeDecoder()
    selector = _selector(tmp_path, decoder)
    request = RegistrationRequest(path=str(tmp_path / "absent.vcf"), reference_id=1)

    with pytest.raises(VarIndexRegistrationError, match="does not exist"):
        selector.acquire(request, reference(chromosome(1, "chr1")))

    assert decoder.open_count == 0


def test_local_file_undecodable_is_registration_error(tmp_path: Path) -> None:
    """Decoder open failures should surface as registration errors."""
    vcf_path = write_placeholder(tmp_path / "broken.vcf")
    selector = _selector(tmp_path, FakeDecoder())
    request = RegistrationRequest(path=str(vcf_path), reference_id=1)

    with pytest.raises(VarIndexRegistrationError, match="broken.vcf"):
        selector.acquire(request, reference(chromosome(1, "chr1")))


def test_url_requires_index_path(tmp_path: Path) -> None:
    """Remote files should not register without an index path."""
    selector = _selector(tmp_path, FakeDecoder())
    request = RegistrationRequest(
        path="https://data.example.org/calls.vcf.gz",
        reference_id=1,
        source_kind=SourceKind.URL,
    )

    with pytest.raises(VarIndexRegistrationError, match="index path"):
        selector.acquire(request, reference(chromosome(1, "chr1")))


def test_url_probe_without_records_is_registration_error(tmp_path: Path) -> None:
    """URL probe should fail when no reference chromosome has records."""
    url = "https://data.example.org/calls.vcf.gz"
    decoder = FakeDecoder()
    decoder.add(url, header(), [record("chr9", 100)])
    selector = _selector(tmp_path, decoder)
    request = RegistrationRequest(
        path=url,
        reference_id=1,
        source_kind=SourceKind.URL,
        index_path=url + ".tbi",
    )

    with pytest.raises(VarIndexRegistrationError, match="corrupted or empty"):
        selector.acquire(request, reference(chromosome(1, "chr1"), chromosome(2, "chr2")))


def test_url_probe_succeeds_on_later_chromosome(tmp_path: Path) -> None:
    """URL probe should keep trying chromosomes until one yields a record."""
    url = "https://data.example.org/calls.vcf.gz"
    decoder = FakeDecoder()
    decoder.add(url, header(samples=("S1",)), [record("chr2", 100)])
    selector = _selector(tmp_path, decoder)
    request = RegistrationRequest(
        path=url,
        reference_id=1,
        source_kind=SourceKind.URL,
        index_path=url + ".tbi",
    )

    variant_file = selector.acquire(request, reference(chromosome(1, "chr1"), chromosome(2, "chr2")))

    assert variant_file.source_kind is SourceKind.URL
    assert variant_file.compressed is False
    assert variant_file.index is not None and variant_file.index.path == url + ".tbi"


def test_download_drops_index_and_defaults_name(tmp_path: Path) -> None:
    """Downloads should continue as local files named after the URL."""
    local_path = write_placeholder(tmp_path / "downloaded.vcf.gz")
    decoder = FakeDecoder()
    decoder.add(local_path, header(), [record("chr1", 10)])
    downloader = _StubDownloader(local_path)
    selector = _selector(tmp_path, decoder, downloader=downloader)
    request = RegistrationRequest(
        path="https://data.example.org/cohort.vcf.gz",
        reference_id=1,
        source_kind=SourceKind.DOWNLOAD,
        index_path="https://data.example.org/cohort.vcf.gz.tbi",
    )

    variant_file = selector.acquire(request, reference(chromosome(1, "chr1")))

    assert downloader.fetched == ["https://data.example.org/cohort.vcf.gz"]
    assert variant_file.name == "cohort.vcf"
    assert variant_file.source_kind is SourceKind.LOCAL_FILE
    assert variant_file.compressed is True
    assert variant_file.index is not None
    assert variant_file.index.path.endswith(".tbi")
    assert "data.example.org" not in variant_file.index.path


def test_external_service_decomposes_call_set_ids(tmp_path: Path) -> None:
    """Call set suffixes should become sample offsets."""
    service = _StubRecordService(
        [
            CallSet(id="set-1-sampleA-0", sample_id="sampleA"),
            CallSet(id="set-1-sampleB-1", sample_id="sampleB"),
        ]
    )
    decoder = FakeDecoder()
    selector = _selector(tmp_path, decoder, record_service=service)
    request = RegistrationRequest(
        path="variantsets/42",
        reference_id=1,
        source_kind=SourceKind.EXTERNAL_SERVICE,
    )

    variant_file = selector.acquire(request, reference(chromosome(1, "chr1")))

    assert {(sample.name, sample.offset) for sample in variant_file.samples} == {
        ("sampleA", 0),
        ("sampleB", 1),
    }
    assert variant_file.compressed is True
    assert variant_file.index is not None and variant_file.index.path == "variantsets/42"
    assert decoder.open_count == 0


def test_external_service_rejects_malformed_call_set_id(tmp_path: Path) -> None:
    """Call set ids without a numeric suffix should fail registration."""
    service = _StubRecordService([CallSet(id="sampleA", sample_id="sampleA")])
    selector = _selector(tmp_path, FakeDecoder(), record_service=service)
    request = RegistrationRequest(
        path="variantsets/42",
        reference_id=1,
        source_kind=SourceKind.EXTERNAL_SERVICE,
    )

    with pytest.raises(VarIndexRegistrationError, match="sampleA"):
        selector.acquire(request, reference(chromosome(1, "chr1")))


def test_local_genotypes_are_not_required_for_samples(tmp_path: Path) -> None:
    """Sample list should come from the header even when records lack calls."""
    vcf_path = write_placeholder(tmp_path / "sites.vcf")
    decoder = FakeDecoder()
    decoder.add(
        vcf_path,
        header(samples=("N1",)),
        [record("chr1", 10, genotypes=(Genotype((0, 1)),)), record("chr1", 11)],
    )
    selector = _selector(tmp_path, decoder)
    request = RegistrationRequest(path=str(vcf_path), reference_id=1, do_index=False)

    variant_file = selector.acquire(request, reference(chromosome(1, "chr1")))

    assert [sample.name for sample in variant_file.samples] == ["N1"]

from collections import Counter

import pytest

from conftest import RecordingStore
from sdbload.config import LoaderConfig
from sdbload.loader import BulkLoader
from sdbload.partition import domain_name
from sdbload.sources import DelimitedFileSource, SyntheticSource
from sdbload.throttle import RampThrottle


def make_loader(config, store, clock):
    throttle = RampThrottle(
        config.domain_count,
        min_rps=config.min_rps,
        max_rps=config.max_rps,
        ramp_time=config.ramp_time,
        clock=clock,
        sleep=clock.sleep,
    )
    return BulkLoader(config, store, throttle=throttle)


@pytest.fixture
def config():
    return LoaderConfig(domain_count=25, batch_count=20, thread_count=8)


def test_synthetic_end_to_end(config, store, clock):
    source = SyntheticSource(10000, config.domain_count)
    report = make_loader(config, store, clock).run(source)

    assert report.items_read == 10000
    assert report.items_written == 10000
    assert report.batches_failed == 0
    assert report.batches_submitted == len(store.batches)
    assert sum(len(items) for _, items in store.batches) == 10000

    assigned = Counter(domain_name(config.domain_prefix, index) for _, index in source)
    sizes = store.sizes_by_domain()
    assert set(sizes) == set(assigned)

    for name, batch_sizes in sizes.items():
        assert sum(batch_sizes) == assigned[name]
        assert all(size <= config.batch_count + 1 for size in batch_sizes)


def test_full_batches_precede_final_flush(config, clock):
    store = RecordingStore()
    source = SyntheticSource(2000, config.domain_count)
    make_loader(config, store, clock).run(source)

    for name, batch_sizes in store.sizes_by_domain().items():
        # store.batches is in completion order, so sort out the one partial batch
        full = [size for size in batch_sizes if size == config.batch_count + 1]
        partial = [size for size in batch_sizes if size != config.batch_count + 1]
        assert len(partial) <= 1
        assert all(0 < size <= config.batch_count for size in partial)
        assert len(full) + len(partial) == len(batch_sizes)


def test_small_input_only_final_flush(store, clock):
    config = LoaderConfig(domain_count=4, batch_count=20, thread_count=2)
    report = make_loader(config, store, clock).run(SyntheticSource(10, config.domain_count))

    assert report.items_written == 10
    assert len(store.batches) == len(store.sizes_by_domain())


def test_empty_source(config, store, clock):
    report = make_loader(config, store, clock).run(SyntheticSource(0, config.domain_count))
    assert report.items_read == 0
    assert report.batches_submitted == 0
    assert store.batches == []
    assert "0 items" in report.summary()


def test_failed_domain_does_not_stop_the_run(config, clock):
    store = RecordingStore(fail_domains={"test_domain03"})
    source = SyntheticSource(3000, config.domain_count)
    report = make_loader(config, store, clock).run(source)

    on_failed_domain = sum(1 for _, index in source if index == 3)
    assert report.items_failed == on_failed_domain
    assert report.items_written == 3000 - on_failed_domain
    assert report.batches_failed > 0
    assert all(f.domain_name == "test_domain03" for f in report.failures)


def test_report_summary_line(config, store, clock):
    report = make_loader(config, store, clock).run(SyntheticSource(500, config.domain_count))
    line = report.summary()
    assert line.startswith("Took ")
    assert "for 500 items" in line
    assert "items per second" in line
    assert report.elapsed_seconds >= 0
    assert report.throttle_wait_seconds > 0


def test_file_with_undecodable_line_completes(config, store, clock, tmp_path):
    path = tmp_path / "items.tsv"
    path.write_bytes(b'good\t{"a":"1"}\nbad\t{"a":"\xff\xfe"}\nlater\t{"b":"2"}\n')
    source = DelimitedFileSource(path, config.domain_count)

    report = make_loader(config, store, clock).run(source)

    assert report.items_read == 3
    assert report.items_written == 3
    assert sorted(name for _, items in store.batches for name in items) == ["bad", "good", "later"]
    assert source.stats.malformed_lines == 1
    assert "for 3 items" in report.summary()


def test_logs_partial_flush_and_rate(store, clock, quiet_logger):
    out, _ = quiet_logger
    config = LoaderConfig(domain_count=4, batch_count=20, thread_count=2)
    report = make_loader(config, store, clock).run(SyntheticSource(10, config.domain_count))

    log = out.getvalue()
    assert "Flushing partial batches (items=10)" in log
    assert f"rate={report.items_per_second:.1f}/s" in log

"""
Tests for row filter pipeline
"""
import pytest

from weatherfilter.exceptions import ConfigurationError, MissingInputError
from weatherfilter.pipeline import FilterJob, RowFilterPipeline, iter_records
from weatherfilter.predicates import SubstringPredicate, ThresholdPredicate

from conftest import BARE_RECORDS


def default_jobs(out_dir):
    return [
        FilterJob("onlyat13", SubstringPredicate("13:00:00"), out_dir / "onlyat13.csv"),
        FilterJob("april", SubstringPredicate("-04-"), out_dir / "april.csv"),
        FilterJob("onlynegative", ThresholdPredicate(2, 0), out_dir / "onlynegative.csv"),
    ]


def is_subsequence(sub, seq):
    it = iter(seq)
    return all(any(item == candidate for candidate in it) for item in sub)


def test_exact_match_count(bare_data_file, tmp_path):
    """Test k records containing 13:00:00 give k output rows"""
    pipeline = RowFilterPipeline()
    job = FilterJob("onlyat13", SubstringPredicate("13:00:00"), tmp_path / "out.csv")

    results = pipeline.run(bare_data_file, [job])

    expected = [r for r in BARE_RECORDS if "13:00:00" in r]
    lines = (tmp_path / "out.csv").read_text().splitlines(keepends=True)
    assert len(lines) == len(expected) == 3
    assert lines == expected
    assert results[0].rows_matched == 3
    assert results[0].rows_scanned == len(BARE_RECORDS)


def test_outputs_are_ordered_subsequences(bare_data_file, tmp_path):
    """Test every output keeps input order with no duplicates"""
    jobs = default_jobs(tmp_path)

    RowFilterPipeline().run(bare_data_file, jobs)

    for job in jobs:
        lines = job.output_path.read_text().splitlines(keepends=True)
        assert is_subsequence(lines, BARE_RECORDS)
        assert len(lines) == len(set(lines))


def test_no_april_records_gives_empty_output(tmp_path):
    """Test a filter with no matches writes an empty file"""
    data = tmp_path / "baredata.csv"
    data.write_text("1961-01-01 06:00:00 -5.0 G\n1961-05-01 13:00:00 12.0 G\n")
    out = tmp_path / "april.csv"

    results = RowFilterPipeline().run(data, [FilterJob("april", SubstringPredicate("-04-"), out)])

    assert out.exists()
    assert out.read_text() == ""
    assert results[0].rows_matched == 0


def test_negative_values_selected_non_numeric_excluded(bare_data_file, tmp_path):
    """Negative temperatures are kept; the n/a row is excluded"""
    out = tmp_path / "neg.csv"

    RowFilterPipeline().run(bare_data_file, [FilterJob("neg", ThresholdPredicate(2, 0), out)])

    lines = out.read_text().splitlines(keepends=True)
    assert lines == [
        "1961-01-01 06:00:00 -5.0 G\n",
        "1961-01-01 13:00:00 -2.4 G\n",
        "1961-04-03 18:00:00 -0.5 Y\n",
    ]
    assert not any("n/a" in line for line in lines)


def test_rerun_overwrites_idempotently(bare_data_file, tmp_path):
    """Test running twice produces identical outputs"""
    jobs = default_jobs(tmp_path)
    for job in jobs:
        job.output_path.write_text("stale content\n")

    pipeline = RowFilterPipeline()
    pipeline.run(bare_data_file, jobs)
    first = {job.name: job.output_path.read_bytes() for job in jobs}
    pipeline.run(bare_data_file, jobs)
    second = {job.name: job.output_path.read_bytes() for job in jobs}

    assert first == second
    assert all(b"stale" not in content for content in second.values())
    assert not list(tmp_path.glob("*.tmp"))


def test_input_not_modified(bare_data_file, tmp_path):
    before = bare_data_file.read_bytes()

    RowFilterPipeline().run(bare_data_file, default_jobs(tmp_path))

    assert bare_data_file.read_bytes() == before


def test_missing_input_writes_nothing(tmp_path):
    """Test missing input aborts before any output is created"""
    jobs = default_jobs(tmp_path / "out")
    (tmp_path / "out").mkdir()

    with pytest.raises(MissingInputError):
        RowFilterPipeline().run(tmp_path / "nope.csv", jobs)

    assert list((tmp_path / "out").iterdir()) == []


def test_record_formatting_preserved(tmp_path):
    """Test CRLF endings and spacing survive; a final unterminated line gets a newline"""
    data = tmp_path / "baredata.csv"
    data.write_bytes(b"1961-01-01   13:00:00 -5.0 G\r\n1961-01-02 06:00:00 1.0 G\r\n1961-01-03 13:00:00 2.0 G")
    out = tmp_path / "out.csv"

    RowFilterPipeline().run(data, [FilterJob("at13", SubstringPredicate("13:00:00"), out)])

    assert out.read_bytes() == b"1961-01-01   13:00:00 -5.0 G\r\n1961-01-03 13:00:00 2.0 G\n"


def test_duplicate_outputs_rejected(bare_data_file, tmp_path):
    out = tmp_path / "same.csv"
    jobs = [
        FilterJob("a", SubstringPredicate("13:00:00"), out),
        FilterJob("b", SubstringPredicate("-04-"), out),
    ]

    with pytest.raises(ConfigurationError):
        RowFilterPipeline().run(bare_data_file, jobs)

    assert not out.exists()


def test_output_cannot_overwrite_input(bare_data_file):
    job = FilterJob("a", SubstringPredicate("13:00:00"), bare_data_file)

    with pytest.raises(ConfigurationError):
        RowFilterPipeline().run(bare_data_file, [job])


def test_explicit_logger_receives_messages(bare_data_file, tmp_path, caplog):
    """Test the pipeline logs through the logger it is given"""
    import logging

    log = logging.getLogger("test.pipeline.sink")
    with caplog.at_level(logging.INFO, logger="test.pipeline.sink"):
        RowFilterPipeline(log=log).run(bare_data_file, default_jobs(tmp_path))

    messages = [r.getMessage() for r in caplog.records if r.name == "test.pipeline.sink"]
    assert "Begin filtering..." in messages
    assert any("onlyat13: 3/7 rows matched" in m for m in messages)


def test_iter_records_keeps_terminators(bare_data_file):
    assert list(iter_records(bare_data_file)) == BARE_RECORDS


class ExplodingPredicate(SubstringPredicate):
    """Fails after letting a few records through"""

    def __init__(self, fail_after):
        super().__init__("1961")
        self.calls = 0
        self.fail_after = fail_after

    def __call__(self, record):
        self.calls += 1
        if self.calls > self.fail_after:
            raise RuntimeError("predicate failed")
        return super().__call__(record)


def test_failed_pass_keeps_previous_output(bare_data_file, tmp_path):
    """Test a pass that dies midway leaves the old output and no temp file"""
    out = tmp_path / "out.csv"
    out.write_text("previous run\n")
    job = FilterJob("boom", ExplodingPredicate(fail_after=2), out)

    with pytest.raises(RuntimeError):
        RowFilterPipeline().run(bare_data_file, [job])

    assert out.read_text() == "previous run\n"
    assert not list(tmp_path.glob("*.tmp"))

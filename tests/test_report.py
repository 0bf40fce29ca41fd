"""Tests for the HTML report"""

import pytest

from filterspector.aggregator import aggregate_frames
from filterspector.config import Settings
from filterspector.diagnostics import DiagnosticWarning
from filterspector.dictionary import parse_dictionary_files
from filterspector.evaluator import ChannelFilterConfig, evaluate_filters
from filterspector.models import FilterRule
from filterspector.report import generate_html_report, tag


@pytest.fixture
def frames(make_frame):
    return [make_frame(0x64, channel=2, timestamp=i * 0.01) for i in range(20)] + \
           [make_frame(0x18FEF100, channel=2, timestamp=i * 0.02, is_extended=True, data_length=12) for i in range(5)]


def test_tag():
    assert tag("ok") == '<span class="status-ok">OK</span>'
    assert tag("WARN", "<b>") == '<span class="status-warn">&lt;b&gt;</span>'
    assert tag("other", "x") == '<span class="status-info">x</span>'


def test_report_is_written(tmp_path, frames, engine_dbc):
    dictionary = parse_dictionary_files([("can2-engine.dbc", engine_dbc)])
    evaluation = evaluate_filters(frames, {2: ChannelFilterConfig(2, (FilterRule(name="e", f1=0x64, f2=0x64),))})
    aggregation = aggregate_frames(frames, dictionary, source_size_bytes=4096)
    warnings = [DiagnosticWarning("split_period", "Split period is short")]
    path = tmp_path / "session.html"
    written = generate_html_report(aggregation, str(path), evaluation=evaluation, settings=Settings(summary_limit=5),
                                   diagnostics=warnings)
    assert written == str(path)
    html = path.read_text(encoding="utf-8")
    assert "session" in html
    assert "Size Contributors" in html
    assert "EngineData" in html
    assert "Filter Evaluation" in html
    assert "Split period is short" in html
    assert "data:image/png;base64," in html


def test_empty_aggregation(tmp_path):
    path = tmp_path / "empty.html"
    assert generate_html_report(aggregate_frames([]), str(path), title="Empty run") == str(path)
    html = path.read_text(encoding="utf-8")
    assert "Empty run" in html
    assert "Size Contributors" not in html


def test_unwritable_path(tmp_path, frames):
    path = tmp_path / "missing" / "report.html"
    assert generate_html_report(aggregate_frames(frames), str(path)) is None

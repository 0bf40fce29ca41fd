"""Tests for size-contribution statistics"""

import pytest

from filterspector.aggregator import (
    frame_weight,
    mf4_ratio,
    session_metrics,
    aggregate_frames,
    search_entries,
    select_top,
    select_matched,
)
from filterspector.config import Settings
from filterspector.constants import BYTES_PER_MB
from filterspector.dictionary import parse_dictionary_files


@pytest.fixture
def dictionary(engine_dbc):
    return parse_dictionary_files([("can2-engine.dbc", engine_dbc)])


class TestFrameWeight:

    @pytest.mark.parametrize("length,weight", [
        (0, 4.0),
        (8, 4.0),
        (10, 5.5),
        (12, 7.0),
        (16, 8.48),
        (64, 16.64),
        (112, 24.8),
    ])
    def test_anchor_interpolation(self, length, weight):
        assert frame_weight(length) == pytest.approx(weight)

    def test_scale(self):
        assert frame_weight(12, scale=1.0) == pytest.approx(1.75)

    def test_monotonic(self):
        weights = [frame_weight(n) for n in range(0, 65)]
        assert weights == sorted(weights)


class TestAggregation:

    def test_percentages_and_order(self, make_frame):
        frames = [make_frame(0x100)] * 3 + [make_frame(0x200, data_length=64)]
        result = aggregate_frames(frames)
        assert [e.identifier for e in result.entries] == [0x200, 0x100]
        assert result.total_frames == 4
        assert result.total_weight == pytest.approx(3 * 4.0 + 16.64)
        assert sum(e.percentage for e in result.entries) == pytest.approx(100.0)
        assert result.entries[1].count == 3
        assert result.entries[0].percentage == pytest.approx(16.64 / 28.64 * 100)

    def test_empty_input(self):
        result = aggregate_frames([])
        assert result.entries == []
        assert result.total_frames == 0
        assert result.metrics.total_frames == 0

    def test_same_id_on_two_channels_is_two_entries(self, make_frame):
        result = aggregate_frames([make_frame(0x100, channel=1), make_frame(0x100, channel=2)])
        assert sorted(e.channel for e in result.entries) == [1, 2]

    def test_deterministic(self, make_frame):
        frames = [make_frame(i % 7, data_length=8 + (i % 3) * 4) for i in range(40)]
        first = aggregate_frames(frames)
        second = aggregate_frames(frames)
        assert first.entries == second.entries

    def test_channel_summaries(self, make_frame):
        frames = [make_frame(0x100), make_frame(0x101), make_frame(0x18FEF100, channel=2, is_extended=True)]
        result = aggregate_frames(frames)
        assert result.channels[1].identifiers == 2
        assert result.channels[1].extended_identifiers == 0
        assert result.channels[2].extended_identifiers == 1


class TestDictionaryAnnotation:

    def test_matched_entry(self, make_frame, dictionary):
        result = aggregate_frames([make_frame(0x64, channel=2)], dictionary)
        entry = result.entries[0]
        assert entry.name == "EngineData"
        assert entry.is_matched
        assert not entry.length_mismatch

    def test_length_mismatch(self, make_frame, dictionary):
        result = aggregate_frames([make_frame(0x64, channel=2, data_length=4)], dictionary)
        assert result.entries[0].length_mismatch

    def test_dictionary_only_entries(self, make_frame, dictionary):
        result = aggregate_frames([make_frame(0x64, channel=2)], dictionary)
        assert len(result.entries) == 2
        only = result.entries[1]
        assert only.from_dictionary_only
        assert only.percentage is None
        assert only.count == 0
        assert only.is_extended
        assert only.name == "EEC1"
        assert "no_data" in only.search_text
        assert len(result.trace_entries) == 1
        assert result.metrics.unique_entries == 1

    def test_pgn_match_consumes_dictionary_entry(self, make_frame, dictionary):
        frames = [make_frame(0x64, channel=2), make_frame(0x18FEF100, channel=2, is_extended=True)]
        result = aggregate_frames(frames, dictionary)
        assert not any(e.from_dictionary_only for e in result.entries)
        assert result.entries[1].name == "EEC1"


class TestPgnGrouping:

    def test_extended_ids_merge_by_pgn(self, make_frame):
        frames = [
            make_frame(0x18FEF100, is_extended=True),
            make_frame(0x18FEF100, is_extended=True),
            make_frame(0x18FEF1FE, is_extended=True),
            make_frame(0x100),
        ]
        result = aggregate_frames(frames, group_by_pgn=True)
        assert result.grouped_by_pgn
        assert len(result.entries) == 2
        group = result.entries[0]
        assert group.is_group
        assert group.pgn == 0xFEF1
        assert group.count == 3
        assert group.grouped_identifiers == (0x18FEF100, 0x18FEF1FE)
        assert group.percentage == pytest.approx(75.0)
        assert not result.entries[1].is_group

    def test_pdu1_destinations_share_a_group(self, make_frame):
        frames = [make_frame(0x18EA00FE, is_extended=True), make_frame(0x18EAFFFE, is_extended=True)]
        result = aggregate_frames(frames, group_by_pgn=True)
        assert len(result.entries) == 1
        assert result.entries[0].pgn == 0xEA00

    def test_dictionary_only_group_has_no_percentage(self, dictionary):
        result = aggregate_frames([], dictionary, group_by_pgn=True)
        group = [e for e in result.entries if e.is_group][0]
        assert group.percentage is None
        assert group.from_dictionary_only


class TestMetrics:

    def test_data_rate(self, make_frame):
        frames = [make_frame(0x100, timestamp=0.0), make_frame(0x100, timestamp=60.0)]
        metrics = session_metrics(frames, unique_entries=1, source_size_bytes=BYTES_PER_MB)
        assert metrics.duration_s == pytest.approx(60.0)
        assert metrics.frames_per_second == pytest.approx(2 / 60)
        assert metrics.mb_per_min == pytest.approx(1.0)
        assert metrics.mf4_mb_per_min == pytest.approx(0.33)
        assert metrics.mfc_mb_per_min == pytest.approx(0.165)

    def test_reduction_scales_size(self, make_frame):
        frames = [make_frame(0x100, timestamp=0.0), make_frame(0x100, timestamp=60.0)]
        metrics = session_metrics(frames, source_size_bytes=BYTES_PER_MB, reduction_percent=50.0)
        assert metrics.mb_per_min == pytest.approx(0.5)
        assert metrics.estimated_size_bytes == pytest.approx(BYTES_PER_MB / 2)

    def test_zero_duration(self, make_frame):
        metrics = session_metrics([make_frame(0x100)], source_size_bytes=100)
        assert metrics.frames_per_second == 0.0
        assert metrics.mb_per_min == 0.0

    @pytest.mark.parametrize("length,ratio", [(4, 0.33), (8, 0.33), (10, 0.405), (12, 0.48), (64, 0.48)])
    def test_mf4_ratio(self, length, ratio):
        assert mf4_ratio(length) == pytest.approx(ratio)


class TestSelection:

    @pytest.fixture
    def entries(self, make_frame, dictionary):
        frames = [make_frame(0x64, channel=2)] * 3 + [make_frame(0x300, channel=2)]
        return aggregate_frames(frames, dictionary).entries

    def test_search_by_name_and_signal(self, entries):
        assert [e.identifier for e in search_entries(entries, "enginedata")] == [0x64]
        assert [e.identifier for e in search_entries(entries, "EngineTemp")] == [0x64]

    def test_search_by_match_token(self, entries):
        assert [e.identifier for e in search_entries(entries, "match_false")] == [0x300]
        assert [e.name for e in search_entries(entries, "no_data")] == ["EEC1"]

    def test_empty_query_returns_all(self, entries):
        assert search_entries(entries, "  ") == entries

    def test_select_top_skips_dictionary_only(self, entries):
        assert [e.identifier for e in select_top(entries, 10)] == [0x64, 0x300]
        assert [e.identifier for e in select_top(entries, 1)] == [0x64]

    def test_select_matched(self, entries):
        assert [e.identifier for e in select_matched(entries)] == [0x64]
        assert [e.identifier for e in select_matched(entries, matched=False)] == [0x300]


class TestSettingsDefaults:

    def test_grouping_from_settings(self, make_frame):
        frames = [make_frame(0x18FEF100, is_extended=True), make_frame(0x18FEF1FE, is_extended=True)]
        assert len(aggregate_frames(frames, settings=Settings(group_by_pgn=True)).entries) == 1
        assert len(aggregate_frames(frames, group_by_pgn=False, settings=Settings(group_by_pgn=True)).entries) == 2

    def test_weight_scale_from_settings(self, make_frame):
        result = aggregate_frames([make_frame(0x100, data_length=12)], settings=Settings(frame_weight_scale=1.0))
        assert result.total_weight == pytest.approx(1.75)

"""
Tests for observation models and payload decoding.
"""

import copy
import json

import pytest

from nightflow.core.errors import DataError, ErrorCodes
from nightflow.data.loader import ROW_WIDTH, decode_payload, decode_row, load_payload
from nightflow.data.models import (
    AssetType,
    DatasetMeta,
    DisplayMode,
    FilterCriteria,
    GapDirection,
    apply_filters,
    list_sectors,
)


class TestObservation:
    """Tests for the Observation record."""

    def test_mode_accessors(self, make_observation):
        obs = make_observation(
            captured_alpha=120.0,
            captured_alpha_w=80.0,
            ref_gap=-60.0,
            ref_gap_w=-50.0,
            timing_diff=30.0,
            timing_diff_w=25.0,
        )
        assert obs.alpha(DisplayMode.WINSORIZED) == 80.0
        assert obs.alpha(DisplayMode.FULL_RANGE) == 120.0
        assert obs.gap(DisplayMode.WINSORIZED) == -50.0
        assert obs.timing(DisplayMode.FULL_RANGE) == 30.0

    def test_display_mode_from_flag(self):
        assert DisplayMode.from_flag(True) is DisplayMode.WINSORIZED
        assert DisplayMode.from_flag(False) is DisplayMode.FULL_RANGE

    def test_price_moves(self, make_observation):
        obs = make_observation(vwap=100.0, next_open=101.0, next_close=99.0)
        assert obs.vs_open_bps == pytest.approx(100.0)
        assert obs.vs_close_bps == pytest.approx(-100.0)
        assert make_observation().vs_open_bps is None

    def test_is_immutable(self, make_observation):
        obs = make_observation()
        with pytest.raises(AttributeError):
            obs.notional = 5.0

    def test_to_dict(self, make_observation):
        obs = make_observation(ca=12.0)
        data = obs.to_dict()
        assert data["asset_type"] == "Stock"
        assert "captured_alpha_bps" not in data
        assert obs.to_dict(DisplayMode.WINSORIZED)["captured_alpha_bps"] == 12.0

    def test_session_date(self, make_observation):
        assert make_observation(date="2024-01-10").session_date.weekday() == 2


class TestFilters:
    """Tests for filter criteria."""

    def test_no_criteria_keeps_everything(self, mixed_observations):
        assert apply_filters(mixed_observations) == tuple(mixed_observations)

    def test_asset_type_and_sector(self, mixed_observations):
        assert len(apply_filters(mixed_observations, FilterCriteria(asset_type="Stock"))) == 10
        assert len(apply_filters(mixed_observations, FilterCriteria(sector="Technology"))) == 5

    def test_min_notional(self, mixed_observations):
        view = apply_filters(mixed_observations, FilterCriteria(min_notional=2e6))
        assert {o.symbol for o in view} == {"ABC", "TQQQ"}
        assert len(view) == 6

    def test_symbol_search_is_case_insensitive(self, mixed_observations):
        view = apply_filters(mixed_observations, FilterCriteria(symbol_contains="qq"))
        assert {o.symbol for o in view} == {"TQQQ"}

    def test_gap_direction(self, mixed_observations):
        view = apply_filters(mixed_observations, FilterCriteria(gap_direction="DOWN"))
        assert all(o.gap_direction is GapDirection.DOWN for o in view)
        assert len(view) == 10

    def test_preserves_order(self, mixed_observations):
        view = apply_filters(mixed_observations, FilterCriteria(sector="Technology"))
        assert [o.date for o in view] == sorted(o.date for o in view)

    def test_list_sectors_skips_unknown(self, make_observation):
        observations = [
            make_observation(sector="Energy"),
            make_observation(sector="Unknown"),
            make_observation(sector=""),
            make_observation(sector="Energy"),
        ]
        assert list_sectors(observations) == ["Energy"]


class TestDatasetMeta:
    """Tests for the metadata model."""

    def test_aliases(self, sample_meta):
        assert sample_meta.trading_days == 5
        assert sample_meta.date_range == ("2024-01-08", "2024-01-12")
        assert sample_meta.winsor.ca == (-100.0, 100.0)
        assert sample_meta.daily_summary["2024-01-10"].avg_ca == 8.0

    def test_date_gaps(self):
        meta = DatasetMeta.model_validate(
            {
                "dateRange": ["2024-01-08", "2024-01-12"],
                "tradingDays": 4,
                "dateGaps": [{"from": "2024-01-09", "to": "2024-01-11"}],
            }
        )
        assert meta.date_gaps[0].from_date == "2024-01-09"
        assert meta.daily_summary is None


class TestDecodePayload:
    """Tests for payload decoding."""

    def test_decodes_rows(self, sample_payload):
        dataset, meta = decode_payload(sample_payload)
        assert len(dataset) == 2

        abc, spy = dataset
        assert abc.symbol == "ABC"
        assert abc.asset_type is AssetType.STOCK
        assert abc.gap_direction is GapDirection.UP
        assert abc.dir_consistency is True
        assert abc.is_outlier is False
        assert abc.notional == 1250000.0
        assert abc.captured_alpha_w == 38.0
        assert abc.leverage_mult is None
        assert abc.market_cap == 3.2e9

        assert spy.asset_type is AssetType.ETF
        assert spy.gap_direction is GapDirection.DOWN
        assert spy.sector == "ETF"
        assert spy.leverage_mult == "1x"
        assert spy.market_cap is None

    def test_dates_filled_from_lookup(self, sample_payload):
        _, meta = decode_payload(sample_payload)
        assert meta.dates == ["2024-01-08", "2024-01-09"]
        assert meta.daily_summary["2024-01-09"].std_td == 25.0

    def test_missing_block_raises(self, sample_payload):
        payload = dict(sample_payload)
        del payload["lookup"]
        with pytest.raises(DataError) as exc_info:
            decode_payload(payload)
        assert "lookup" in str(exc_info.value)

    def test_missing_lookup_table_raises(self, sample_payload):
        payload = copy.deepcopy(sample_payload)
        del payload["lookup"]["sectors"]
        with pytest.raises(DataError):
            decode_payload(payload)

    def test_invalid_meta_raises(self, sample_payload):
        payload = copy.deepcopy(sample_payload)
        del payload["meta"]["tradingDays"]
        with pytest.raises(DataError):
            decode_payload(payload)

    def test_short_row_raises(self, sample_payload):
        with pytest.raises(DataError) as exc_info:
            decode_row([0, 0, 0], sample_payload["lookup"])
        assert exc_info.value.error_code is ErrorCodes.DATA_INCOMPLETE

    def test_bad_lookup_index_raises(self, sample_payload):
        row = list(sample_payload["data"][0])
        row[0] = 99
        assert len(row) == ROW_WIDTH
        with pytest.raises(DataError):
            decode_row(row, sample_payload["lookup"])

    def test_empty_data(self, sample_payload):
        payload = copy.deepcopy(sample_payload)
        payload["data"] = []
        dataset, _ = decode_payload(payload)
        assert dataset == ()

    def test_load_payload(self, tmp_path, sample_payload):
        path = tmp_path / "data.json"
        path.write_text(json.dumps(sample_payload))
        dataset, meta = load_payload(path)
        assert len(dataset) == 2
        assert meta.trading_days == 2

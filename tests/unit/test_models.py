"""
Tests for game state and session models.
"""

import pytest

from tft_scout.models import (
    CaptureRecord,
    GameState,
    RecognizedUnit,
    SessionManifest,
    ShopInfo,
    SurfaceConfig,
)


class TestGameState:
    """Tests for GameState."""

    def test_empty_is_fully_shaped(self):
        state = GameState.empty()

        assert state.stage is None
        assert state.shop.units == [None] * 5
        assert state.shop.gold is None
        assert state.bench == [None] * 9
        assert state.timestamp > 0

    def test_slot_lists_not_shared(self):
        a = GameState()
        b = GameState()
        a.bench[0] = RecognizedUnit(name="Lux")
        assert b.bench[0] is None

    def test_to_dict(self):
        state = GameState(stage="3-2", timestamp=1700000000000)
        state.shop.gold = 45
        state.shop.units[1] = RecognizedUnit(name="Ahri")

        data = state.to_dict()

        assert data["stage"] == "3-2"
        assert data["timestamp"] == 1700000000000
        assert data["shop"]["gold"] == 45
        assert data["shop"]["units"][0] is None
        assert data["shop"]["units"][1] == {"name": "Ahri", "cost": None, "star_level": None}
        assert len(data["bench"]) == 9

    def test_from_dict_round_trip(self):
        state = GameState(
            stage="4-1",
            shop=ShopInfo(
                units=[RecognizedUnit(name="Jinx"), None, None, None, RecognizedUnit(name="Vi")],
                gold=12,
                level=7,
                xp="4/60",
            ),
            timestamp=123,
        )
        assert GameState.from_dict(state.to_dict()) == state

    def test_from_dict_wrong_slot_count(self):
        data = GameState().to_dict()
        data["bench"] = data["bench"][:8]
        with pytest.raises(ValueError):
            GameState.from_dict(data)

    @pytest.mark.parametrize("data", [[], "oops", 5, None])
    def test_from_dict_rejects_non_object(self, data):
        with pytest.raises(ValueError, match="game_state must be an object"):
            GameState.from_dict(data)

    def test_from_dict_rejects_non_object_slot(self):
        data = GameState().to_dict()
        data["bench"][2] = "Lux"
        with pytest.raises(ValueError, match="unit must be an object"):
            GameState.from_dict(data)

    def test_fields_excludes_timestamp(self):
        flat = GameState(stage="2-1", timestamp=5).fields()

        assert "timestamp" not in flat
        assert flat["stage"] == "2-1"
        assert "shop.units.4" in flat
        assert "bench.8" in flat
        assert len(flat) == 4 + 5 + 9


class TestSessionModels:
    """Tests for session manifest models."""

    def test_capture_record_rejects_zero_index(self):
        data = CaptureRecord(1, "capture-001.png", 0, GameState(timestamp=0)).to_dict()
        data["index"] = 0
        with pytest.raises(ValueError):
            CaptureRecord.from_dict(data)

    def test_manifest_round_trip(self):
        manifest = SessionManifest(
            session_id="session-2024-05-01T20-15-03",
            created_at=1,
            surface=SurfaceConfig(width=1280, height=960, x=0, y=0),
            captures=[CaptureRecord(1, "capture-001.png", 2, GameState(timestamp=2))],
        )
        assert SessionManifest.from_dict(manifest.to_dict()) == manifest

"""
Tests for session replay.
"""

import json

import pytest

from tft_scout.models import GameState, SurfaceConfig
from tft_scout.parser import GameStateParser
from tft_scout.perception.capture import ScreenCapture, encode_png
from tft_scout.recording import MANIFEST_FILE, RecorderConfig, SessionRecorder
from tft_scout.regions import Point
from tft_scout.replay import (
    ReplayError,
    ReplayResult,
    SessionCorruptError,
    SessionNotFoundError,
    SessionReplayer,
    load_manifest,
)

SURFACE = SurfaceConfig(width=1024, height=768, x=448, y=156)


@pytest.fixture
def session_dir(work_dir, frame, recognizer_factory):
    """A session with three captures recorded from the same frame."""
    recorder = SessionRecorder(RecorderConfig(enabled=True, output_dir=work_dir))
    path = recorder.start_session(SURFACE)
    parser = GameStateParser(recognizer=recognizer_factory(), capture=ScreenCapture())
    png = encode_png(frame)
    for _ in range(3):
        recorder.record_capture(png, parser.parse(frame))
    return path


@pytest.fixture
def replayer(session_dir, parser):
    replayer = SessionReplayer(session_dir, parser=parser)
    replayer.open()
    yield replayer
    replayer.close()


class TestLoadManifest:
    """Tests for load_manifest."""

    def test_round_trip(self, session_dir):
        manifest = load_manifest(session_dir)

        assert manifest.session_id == session_dir.name
        assert manifest.surface == SURFACE
        assert [c.index for c in manifest.captures] == [1, 2, 3]
        assert manifest.captures[0].game_state.stage == "3-2"

    def test_missing_manifest(self, work_dir):
        with pytest.raises(SessionNotFoundError):
            load_manifest(work_dir)

    def test_invalid_json(self, work_dir):
        (work_dir / MANIFEST_FILE).write_text("{broken")
        with pytest.raises(SessionCorruptError):
            load_manifest(work_dir)

    def test_wrong_shape(self, work_dir):
        (work_dir / MANIFEST_FILE).write_text(json.dumps({"session_id": "x"}))
        with pytest.raises(SessionCorruptError):
            load_manifest(work_dir)

    def test_bad_capture_index(self, session_dir):
        path = session_dir / MANIFEST_FILE
        data = json.loads(path.read_text(encoding="utf-8"))
        data["captures"][0]["index"] = 0
        path.write_text(json.dumps(data))

        with pytest.raises(SessionCorruptError):
            load_manifest(session_dir)

    @pytest.mark.parametrize("game_state", [[], "oops", 5])
    def test_non_object_game_state(self, session_dir, game_state):
        path = session_dir / MANIFEST_FILE
        data = json.loads(path.read_text(encoding="utf-8"))
        data["captures"][0]["game_state"] = game_state
        path.write_text(json.dumps(data))

        with pytest.raises(SessionCorruptError):
            load_manifest(session_dir)

    def test_errors_share_base_class(self):
        assert issubclass(SessionNotFoundError, ReplayError)
        assert issubclass(SessionCorruptError, ReplayError)


class TestSessionReplayer:
    """Tests for SessionReplayer."""

    def test_open_restores_geometry(self, session_dir, parser):
        replayer = SessionReplayer(session_dir, parser=parser)
        manifest = replayer.open()

        assert len(manifest.captures) == 3
        assert parser.capture.origin == Point(448, 156)
        assert (parser.window_width, parser.window_height) == (1024, 768)

    def test_manifest_requires_open(self, session_dir, parser):
        replayer = SessionReplayer(session_dir, parser=parser)
        with pytest.raises(ReplayError):
            replayer.manifest

    def test_open_missing_session(self, work_dir, parser):
        with pytest.raises(SessionNotFoundError):
            SessionReplayer(work_dir / "gone", parser=parser).open()

    def test_replay_all_in_order(self, replayer):
        results = replayer.replay_all()

        assert [r.index for r in results] == [1, 2, 3]
        assert all(r.matches for r in results)
        assert results[0].screenshot_path.name == "capture-001.png"

    def test_replay_by_index(self, replayer):
        result = replayer.replay_by_index(2)
        assert result.index == 2
        assert result.reparsed.stage == "3-2"

    def test_replay_unknown_index(self, replayer):
        with pytest.raises(SessionNotFoundError):
            replayer.replay_by_index(99)

    def test_replay_is_idempotent(self, replayer):
        record = replayer.manifest.captures[0]

        first = replayer.replay_one(record)
        second = replayer.replay_one(record)

        assert first.reparsed.fields() == second.reparsed.fields()

    def test_missing_frame(self, replayer, session_dir):
        (session_dir / "capture-002.png").unlink()

        with pytest.raises(SessionNotFoundError):
            replayer.replay_by_index(2)

    def test_unreadable_frame(self, replayer, session_dir):
        (session_dir / "capture-003.png").write_bytes(b"garbage")

        with pytest.raises(SessionCorruptError):
            replayer.replay_by_index(3)

    def test_changed_rules_show_in_diff(self, session_dir, recognizer_factory):
        script = ["3-3", "45", "Lv.6 12/24"] + [""] * 14
        parser = GameStateParser(recognizer=recognizer_factory(script), capture=ScreenCapture())
        replayer = SessionReplayer(session_dir, parser=parser)
        replayer.open()

        result = replayer.replay_by_index(1)

        assert not result.matches
        assert "stage" in result.diff()
        assert "shop.gold" not in result.diff()
        assert "shop.units.0" in result.diff()

    def test_injected_parser_not_destroyed(self, session_dir, parser, recognizer):
        replayer = SessionReplayer(session_dir, parser=parser)
        replayer.open()
        replayer.close()

        assert not recognizer.initialized
        assert not recognizer.terminated


class TestReplayResult:
    """Tests for ReplayResult."""

    def test_timestamp_ignored(self, work_dir):
        original = GameState(stage="2-1", timestamp=1)
        reparsed = GameState(stage="2-1", timestamp=2)
        result = ReplayResult(1, original, reparsed, work_dir / "capture-001.png")

        assert result.matches
        assert result.diff() == []

    def test_to_dict(self, work_dir):
        result = ReplayResult(
            1,
            GameState(stage="2-1"),
            GameState(stage="2-2"),
            work_dir / "capture-001.png",
        )
        data = result.to_dict()

        assert data["index"] == 1
        assert data["diff"] == ["stage"]
        assert data["reparsed"]["stage"] == "2-2"

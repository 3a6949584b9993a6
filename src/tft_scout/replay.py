"""
Replay of recorded debug sessions.

Reloads each stored frame and runs it through the current parser, so parser
changes can be checked against real captures without the game running.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Union

from tft_scout.config import OCRSettings
from tft_scout.logging import get_logger
from tft_scout.models import CaptureRecord, GameState, SessionManifest
from tft_scout.parser import GameStateParser
from tft_scout.perception.capture import ScreenCapture, load_frame
from tft_scout.recording import MANIFEST_FILE
from tft_scout.regions import Point

logger = get_logger(__name__)


class ReplayError(Exception):
    """Base class for replay failures."""
    pass


class SessionNotFoundError(ReplayError):
    """The session, its manifest, a frame or a capture index does not exist."""
    pass


class SessionCorruptError(ReplayError):
    """The manifest exists but cannot be parsed."""
    pass


@dataclass
class ReplayResult:
    """Recorded state next to the freshly reparsed one."""

    index: int
    original: GameState
    reparsed: GameState
    screenshot_path: Path

    def diff(self) -> List[str]:
        """Dotted paths of fields that differ (timestamps ignored)."""
        before = self.original.fields()
        after = self.reparsed.fields()
        return [key for key in before if before[key] != after.get(key)]

    @property
    def matches(self) -> bool:
        return not self.diff()

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "screenshot_path": str(self.screenshot_path),
            "original": self.original.to_dict(),
            "reparsed": self.reparsed.to_dict(),
            "diff": self.diff(),
        }


class SessionReplayer:
    """
    Replays captures from a recorded session.

    Usage:
        replayer = SessionReplayer(path)
        replayer.open()
        for result in replayer.replay_all():
            ...
        replayer.close()
    """

    def __init__(
        self,
        session_path: Union[str, Path],
        parser: Optional[GameStateParser] = None,
        ocr_settings: Optional[OCRSettings] = None,
    ):
        """
        Args:
            session_path: Session directory containing manifest.json
            parser: Ready-to-use parser; by default one is created (and
                initialized on open) from ocr_settings
            ocr_settings: Recognizer settings for the default parser
        """
        self.session_path = Path(session_path)
        self.parser = parser or GameStateParser(capture=ScreenCapture(), ocr_settings=ocr_settings)
        self._manifest: Optional[SessionManifest] = None
        self._owns_parser = parser is None
        self._parser_ready = parser is not None

    @property
    def manifest(self) -> SessionManifest:
        if self._manifest is None:
            raise ReplayError("Session not opened; call open() first")
        return self._manifest

    def open(self) -> SessionManifest:
        """
        Load the manifest and restore the recorded window geometry.

        Raises:
            SessionNotFoundError: If manifest.json is missing
            SessionCorruptError: If manifest.json is not a valid manifest
        """
        manifest = load_manifest(self.session_path)

        surface = manifest.surface
        self.parser.capture.set_origin(Point(surface.x, surface.y))
        self.parser.set_window_size(surface.width, surface.height)

        if not self._parser_ready:
            self.parser.init()
            self._parser_ready = True

        self._manifest = manifest
        logger.info(
            "Loaded session",
            session_id=manifest.session_id,
            captures=len(manifest.captures),
        )
        return manifest

    def replay_one(self, record: CaptureRecord) -> ReplayResult:
        """
        Reparse the frame stored for one capture.

        Raises:
            SessionNotFoundError: If the frame file is missing
        """
        screenshot_path = self.session_path / record.filename
        if not screenshot_path.exists():
            raise SessionNotFoundError(f"Frame not found for capture {record.index}: {screenshot_path}")

        try:
            frame = load_frame(screenshot_path)
        except OSError as e:
            raise SessionCorruptError(f"Unreadable frame for capture {record.index}: {e}") from e

        logger.info("Replaying capture", index=record.index)
        reparsed = self.parser.parse_from_buffer(frame)

        return ReplayResult(
            index=record.index,
            original=record.game_state,
            reparsed=reparsed,
            screenshot_path=screenshot_path,
        )

    def replay_all(self) -> List[ReplayResult]:
        """Replay every capture in manifest order."""
        return [self.replay_one(record) for record in self.manifest.captures]

    def replay_by_index(self, index: int) -> ReplayResult:
        """
        Replay the capture with the given 1-based index.

        Raises:
            SessionNotFoundError: If no capture has that index
        """
        for record in self.manifest.captures:
            if record.index == index:
                return self.replay_one(record)
        raise SessionNotFoundError(
            f"Capture {index} not found in session {self.manifest.session_id}"
        )

    def close(self) -> None:
        """Release the recognizer if this replayer created it."""
        if self._owns_parser and self._parser_ready:
            self.parser.destroy()


def load_manifest(session_path: Union[str, Path]) -> SessionManifest:
    """
    Read and validate a session manifest.

    Raises:
        SessionNotFoundError: If manifest.json is missing
        SessionCorruptError: If it cannot be parsed into a SessionManifest
    """
    manifest_path = Path(session_path) / MANIFEST_FILE
    if not manifest_path.is_file():
        raise SessionNotFoundError(f"Manifest not found: {manifest_path}")

    try:
        with open(manifest_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return SessionManifest.from_dict(data)
    except (ValueError, KeyError, TypeError) as e:
        raise SessionCorruptError(f"Corrupt manifest {manifest_path}: {e}") from e

"""
Debug session recording.

Each session is a directory holding every captured frame, the GameState
parsed from it, and a manifest tying them together. The manifest is
rewritten atomically after every capture so a crash loses at most the
capture being written.

Layout:
    <output_dir>/session-2024-05-01T20-15-03/
        manifest.json
        capture-001.png
        capture-001.json
        regions/capture-001-stage.png   (only with region crops enabled)
"""

import json
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Tuple

from filelock import FileLock, Timeout

from tft_scout.logging import get_logger
from tft_scout.models import CaptureRecord, GameState, SessionManifest, SurfaceConfig, now_ms

logger = get_logger(__name__)

MANIFEST_FILE = "manifest.json"
REGIONS_DIR = "regions"


class StorageError(Exception):
    """Raised when a session artifact cannot be written."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(f"{message}: {path}" if path else message)


def capture_stem(index: int) -> str:
    """File stem for a capture, e.g. capture-007."""
    return f"capture-{index:03d}"


def session_id_for(moment: datetime) -> str:
    """Filesystem-safe session id with second resolution."""
    return f"session-{moment.strftime('%Y-%m-%dT%H-%M-%S')}"


@dataclass
class RecorderConfig:
    """Recorder settings."""

    enabled: bool = False
    output_dir: Path = Path("./debug")
    save_region_crops: bool = False


class SessionRecorder:
    """
    Records captures into a debug session.

    Every operation is a no-op while recording is disabled. Write failures
    raise StorageError so the manifest never silently disagrees with disk.
    """

    LOCK_FILE = "manifest.lock"
    LOCK_TIMEOUT = 5.0  # seconds
    MAX_SESSION_SUFFIX = 100

    def __init__(self, config: Optional[RecorderConfig] = None):
        self.config = config or RecorderConfig()
        self._session_dir: Optional[Path] = None
        self._regions_dir: Optional[Path] = None
        self._manifest: Optional[SessionManifest] = None
        self._capture_index = 0

    @property
    def is_enabled(self) -> bool:
        return self.config.enabled

    @property
    def saves_regions(self) -> bool:
        return self.config.enabled and self.config.save_region_crops

    @property
    def session_dir(self) -> Optional[Path]:
        return self._session_dir

    @property
    def manifest(self) -> Optional[SessionManifest]:
        return self._manifest

    @property
    def capture_index(self) -> int:
        """Index of the last recorded capture (0 before the first)."""
        return self._capture_index

    @property
    def is_open(self) -> bool:
        return self._manifest is not None

    def start_session(self, surface: SurfaceConfig) -> Optional[Path]:
        """
        Start a new session. Any previous session is left as-is on disk.

        Returns:
            The session directory, or None when recording is disabled

        Raises:
            StorageError: If the session directory cannot be created
        """
        if not self.config.enabled:
            return None

        session_id, session_dir = self._create_session_dir(session_id_for(datetime.now()))
        regions_dir = session_dir / REGIONS_DIR

        if self.config.save_region_crops:
            try:
                regions_dir.mkdir()
            except OSError as e:
                raise StorageError("Could not create regions directory", regions_dir) from e

        self._session_dir = session_dir
        self._regions_dir = regions_dir if self.config.save_region_crops else None
        self._manifest = SessionManifest(
            session_id=session_id,
            created_at=now_ms(),
            surface=surface,
        )
        self._capture_index = 0
        self._write_manifest()

        logger.info("Session initialized", session_id=session_id, path=str(session_dir))
        return session_dir

    def _create_session_dir(self, base_id: str) -> Tuple[str, Path]:
        """
        Create a fresh session directory. A second session started within
        the same second gets a -2, -3, ... suffix instead of reusing the
        first one's directory.
        """
        output_dir = Path(self.config.output_dir)
        for attempt in range(1, self.MAX_SESSION_SUFFIX + 1):
            session_id = base_id if attempt == 1 else f"{base_id}-{attempt}"
            session_dir = output_dir / session_id
            try:
                session_dir.mkdir(parents=True, exist_ok=False)
            except FileExistsError:
                continue
            except OSError as e:
                raise StorageError("Could not create session directory", session_dir) from e
            return session_id, session_dir

        raise StorageError("Too many sessions started at once", output_dir / base_id)

    def record_capture(self, frame_png: bytes, game_state: GameState) -> Optional[CaptureRecord]:
        """
        Save a frame and its parsed state, then update the manifest.

        Returns:
            The new CaptureRecord, or None when disabled / no session is open

        Raises:
            StorageError: If any artifact cannot be written
        """
        if not self.config.enabled or self._session_dir is None or self._manifest is None:
            return None

        index = self._capture_index + 1
        stem = capture_stem(index)
        filename = f"{stem}.png"

        self._write_bytes(self._session_dir / filename, frame_png)
        self._write_json(self._session_dir / f"{stem}.json", game_state.to_dict())

        record = CaptureRecord(
            index=index,
            filename=filename,
            captured_at=game_state.timestamp,
            game_state=game_state,
        )
        self._manifest.captures.append(record)
        try:
            self._write_manifest()
        except StorageError:
            self._manifest.captures.pop()
            raise

        self._capture_index = index
        logger.info("Capture saved", index=index, filename=filename)
        return record

    def record_region_crop(self, label: str, png: bytes) -> Optional[Path]:
        """
        Save one preprocessed region crop for the current capture.

        The filename embeds the current capture index, so call this after
        record_capture for the frame the crop came from.
        """
        if not self.saves_regions or self._regions_dir is None:
            return None

        path = self._regions_dir / f"{capture_stem(self._capture_index)}-{label}.png"
        self._write_bytes(path, png)
        return path

    def close_session(self) -> Optional[Path]:
        """
        Close the current session. Later captures are ignored until
        start_session is called again.

        Returns:
            The closed session directory, or None if none was open
        """
        session_dir = self._session_dir
        if session_dir is None:
            return None

        logger.info("Session closed", path=str(session_dir), captures=self._capture_index)
        self._session_dir = None
        self._regions_dir = None
        self._manifest = None
        return session_dir

    def _write_manifest(self) -> None:
        """Atomically rewrite manifest.json."""
        assert self._session_dir is not None and self._manifest is not None

        manifest_path = self._session_dir / MANIFEST_FILE
        lock = FileLock(self._session_dir / self.LOCK_FILE, timeout=self.LOCK_TIMEOUT)

        try:
            with lock:
                fd, temp_path = tempfile.mkstemp(
                    suffix=".json",
                    prefix="manifest_",
                    dir=str(self._session_dir),
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(self._manifest.to_dict(), f, indent=2, ensure_ascii=False)
                        f.flush()
                        os.fsync(f.fileno())
                    shutil.move(temp_path, manifest_path)
                except BaseException:
                    if os.path.exists(temp_path):
                        os.unlink(temp_path)
                    raise
        except Timeout as e:
            raise StorageError("Timed out waiting for manifest lock", manifest_path) from e
        except OSError as e:
            raise StorageError("Failed to write manifest", manifest_path) from e

    @staticmethod
    def _write_bytes(path: Path, data: bytes) -> None:
        try:
            with open(path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise StorageError("Failed to write file", path) from e

    @classmethod
    def _write_json(cls, path: Path, data: Any) -> None:
        text = json.dumps(data, indent=2, ensure_ascii=False)
        cls._write_bytes(path, text.encode("utf-8"))


def list_sessions(output_dir: Path) -> list[dict[str, Any]]:
    """
    List recorded sessions under an output directory, newest first.

    Sessions whose manifest cannot be read are reported with an error
    instead of being skipped.
    """
    sessions: list[dict[str, Any]] = []
    output_dir = Path(output_dir)

    if not output_dir.exists():
        return sessions

    for session_dir in sorted(output_dir.iterdir(), reverse=True):
        manifest_path = session_dir / MANIFEST_FILE
        if not session_dir.is_dir() or not manifest_path.exists():
            continue

        try:
            with open(manifest_path, "r", encoding="utf-8") as f:
                manifest = SessionManifest.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            sessions.append({"path": str(session_dir), "error": str(e)})
            continue

        sessions.append({
            "path": str(session_dir),
            "session_id": manifest.session_id,
            "created_at": manifest.created_at,
            "captures": len(manifest.captures),
            "surface": manifest.surface.to_dict(),
        })

    return sessions

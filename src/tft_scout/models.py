"""
Game state and session data models.

A field set to None means "absent": the recognizer produced no text for it,
or no pattern matched. It is never used for "present but empty".
"""

import time
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Any

from tft_scout.regions import SHOP_SLOT_COUNT, BENCH_SLOT_COUNT


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def _require_mapping(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be an object, got {type(data).__name__}")
    return data


@dataclass
class RecognizedUnit:
    """
    Content of one shop or bench slot.

    cost and star_level need template matching, which the OCR pipeline
    does not do, so they are always None for now.
    """

    name: Optional[str]
    cost: Optional[int] = None
    star_level: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecognizedUnit":
        data = _require_mapping(data, "unit")
        return cls(
            name=data["name"],
            cost=data.get("cost"),
            star_level=data.get("star_level"),
        )


def _units_to_list(units: List[Optional[RecognizedUnit]]) -> list:
    return [u.to_dict() if u is not None else None for u in units]


def _units_from_list(data: list, expected: int, what: str) -> List[Optional[RecognizedUnit]]:
    if not isinstance(data, list) or len(data) != expected:
        raise ValueError(f"{what} must be a list of {expected} slots")
    return [RecognizedUnit.from_dict(u) if u is not None else None for u in data]


@dataclass
class ShopInfo:
    """Shop row plus the gold/level readouts beside it."""

    units: List[Optional[RecognizedUnit]] = field(
        default_factory=lambda: [None] * SHOP_SLOT_COUNT
    )
    gold: Optional[int] = None
    level: Optional[int] = None
    xp: Optional[str] = None  # "cur/max"

    def to_dict(self) -> dict[str, Any]:
        return {
            "units": _units_to_list(self.units),
            "gold": self.gold,
            "level": self.level,
            "xp": self.xp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShopInfo":
        data = _require_mapping(data, "shop")
        return cls(
            units=_units_from_list(data["units"], SHOP_SLOT_COUNT, "shop.units"),
            gold=data.get("gold"),
            level=data.get("level"),
            xp=data.get("xp"),
        )


@dataclass
class GameState:
    """One complete extraction pass over a frame."""

    stage: Optional[str] = None
    shop: ShopInfo = field(default_factory=ShopInfo)
    bench: List[Optional[RecognizedUnit]] = field(
        default_factory=lambda: [None] * BENCH_SLOT_COUNT
    )
    timestamp: int = field(default_factory=now_ms)

    @classmethod
    def empty(cls) -> "GameState":
        """Fully shaped state with every field absent."""
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "shop": self.shop.to_dict(),
            "bench": _units_to_list(self.bench),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameState":
        data = _require_mapping(data, "game_state")
        return cls(
            stage=data.get("stage"),
            shop=ShopInfo.from_dict(data["shop"]),
            bench=_units_from_list(data["bench"], BENCH_SLOT_COUNT, "bench"),
            timestamp=int(data["timestamp"]),
        )

    def fields(self) -> dict[str, Any]:
        """Flatten to dotted paths, timestamp excluded. Used for replay diffs."""
        flat: dict[str, Any] = {
            "stage": self.stage,
            "shop.gold": self.shop.gold,
            "shop.level": self.shop.level,
            "shop.xp": self.shop.xp,
        }
        for i, unit in enumerate(self.shop.units):
            flat[f"shop.units.{i}"] = unit.to_dict() if unit else None
        for i, unit in enumerate(self.bench):
            flat[f"bench.{i}"] = unit.to_dict() if unit else None
        return flat


@dataclass
class SurfaceConfig:
    """Resolved game window geometry on screen."""

    width: int
    height: int
    x: int
    y: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SurfaceConfig":
        data = _require_mapping(data, "surface")
        return cls(
            width=int(data["width"]),
            height=int(data["height"]),
            x=int(data["x"]),
            y=int(data["y"]),
        )


@dataclass
class CaptureRecord:
    """One recorded capture within a session."""

    index: int
    filename: str
    captured_at: int
    game_state: GameState

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "filename": self.filename,
            "captured_at": self.captured_at,
            "game_state": self.game_state.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CaptureRecord":
        data = _require_mapping(data, "capture")
        index = int(data["index"])
        if index < 1:
            raise ValueError(f"capture index must be positive, got {index}")
        return cls(
            index=index,
            filename=str(data["filename"]),
            captured_at=int(data["captured_at"]),
            game_state=GameState.from_dict(data["game_state"]),
        )


@dataclass
class SessionManifest:
    """Index of a recorded session."""

    session_id: str
    created_at: int
    surface: SurfaceConfig
    captures: List[CaptureRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "created_at": self.created_at,
            "surface": self.surface.to_dict(),
            "captures": [c.to_dict() for c in self.captures],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionManifest":
        data = _require_mapping(data, "manifest")
        return cls(
            session_id=str(data["session_id"]),
            created_at=int(data["created_at"]),
            surface=SurfaceConfig.from_dict(data["surface"]),
            captures=[CaptureRecord.from_dict(c) for c in data["captures"]],
        )

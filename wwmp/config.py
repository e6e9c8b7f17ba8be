# ========================= config.py =========================
import json, logging, os
from dataclasses import dataclass, field, replace
from typing import Optional
from wwmp.errors import ConfigError
from wwmp.input.keymap import KeyMapping, serialize_keymap, deserialize_keymap
from wwmp.utils.path import config_path

logger = logging.getLogger(__name__)

TRANSPOSE_RANGE = (-24, 24)
POLYPHONY_RANGE = (1, 3)

def _clamp(v: int, bounds) -> int:
    lo, hi = bounds
    return max(lo, min(hi, v))

@dataclass
class Hotkeys:
    play_pause: str = "F7"
    stop: str = "F8"

@dataclass
class AppConfig:
    reference_midi_note: int = 60      # 中音 1 = C4
    tempo_factor: float = 1.0
    transpose: int = 0                 # semitones, -24..24
    max_polyphony: int = 2             # 1..3
    start_delay_ms: int = 500
    key_mapping: KeyMapping = field(default_factory=KeyMapping)
    hotkeys: Hotkeys = field(default_factory=Hotkeys)

    def normalized(self) -> "AppConfig":
        tempo = self.tempo_factor if self.tempo_factor > 0 else 1.0
        return replace(
            self,
            reference_midi_note=_clamp(int(self.reference_midi_note), (0, 127)),
            tempo_factor=float(tempo),
            transpose=_clamp(int(self.transpose), TRANSPOSE_RANGE),
            max_polyphony=_clamp(int(self.max_polyphony), POLYPHONY_RANGE),
            start_delay_ms=max(0, int(self.start_delay_ms)),
        )

    def copy(self) -> "AppConfig":
        return AppConfig.from_dict(self.to_dict())

    def to_dict(self) -> dict:
        return {
            "reference_midi_note": self.reference_midi_note,
            "tempo_factor": self.tempo_factor,
            "transpose": self.transpose,
            "max_polyphony": self.max_polyphony,
            "start_delay_ms": self.start_delay_ms,
            "key_mapping": serialize_keymap(self.key_mapping),
            "hotkeys": {"play_pause": self.hotkeys.play_pause, "stop": self.hotkeys.stop},
        }

    @classmethod
    def from_dict(cls, obj: dict) -> "AppConfig":
        """Missing keys keep their defaults; out-of-range values are clamped."""
        d = cls()
        try:
            hk = obj.get("hotkeys") or {}
            cfg = cls(
                reference_midi_note=int(obj.get("reference_midi_note", d.reference_midi_note)),
                tempo_factor=float(obj.get("tempo_factor", d.tempo_factor)),
                transpose=int(obj.get("transpose", d.transpose)),
                max_polyphony=int(obj.get("max_polyphony", d.max_polyphony)),
                start_delay_ms=int(obj.get("start_delay_ms", d.start_delay_ms)),
                key_mapping=deserialize_keymap(obj.get("key_mapping") or {}),
                hotkeys=Hotkeys(
                    play_pause=str(hk.get("play_pause", d.hotkeys.play_pause)),
                    stop=str(hk.get("stop", d.hotkeys.stop)),
                ),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"Invalid config values: {e}") from e
        return cfg.normalized()

    @classmethod
    def load(cls, path: Optional[str] = None) -> "AppConfig":
        path = path or config_path()
        if not os.path.exists(path):
            return cls()
        try:
            with open(path, "r", encoding="utf-8") as f:
                obj = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read config {path}: {e}") from e
        if not isinstance(obj, dict):
            raise ConfigError(f"Config {path} is not a JSON object")
        logger.debug("Loaded config from %s", path)
        return cls.from_dict(obj)

    @classmethod
    def load_or_default(cls, path: Optional[str] = None) -> "AppConfig":
        try:
            return cls.load(path)
        except ConfigError as e:
            logger.warning("%s; using defaults", e)
            return cls()

    def save(self, path: Optional[str] = None) -> str:
        path = path or config_path()
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False, indent=2)
        logger.debug("Saved config to %s", path)
        return path

# ========================= input/keymap.py =========================
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

class Modifier(str, Enum):
    NONE = "none"
    SHIFT = "shift"   # 升半音
    CTRL = "ctrl"     # 降半音

    @classmethod
    def parse(cls, name) -> "Modifier":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            return cls.NONE

@dataclass(frozen=True)
class KeyStroke:
    key: str
    modifier: Modifier = Modifier.NONE

# 預設配置：每列 7 鍵，對應 1~7 級
DEFAULT_HIGH = ["Q", "W", "E", "R", "T", "Y", "U"]
DEFAULT_MEDIUM = ["A", "S", "D", "F", "G", "H", "J"]
DEFAULT_LOW = ["Z", "X", "C", "V", "B", "N", "M"]

@dataclass
class KeyMapping:
    high: List[str] = field(default_factory=lambda: list(DEFAULT_HIGH))
    medium: List[str] = field(default_factory=lambda: list(DEFAULT_MEDIUM))
    low: List[str] = field(default_factory=lambda: list(DEFAULT_LOW))

    def row(self, octave_name: str) -> List[str]:
        return {"high": self.high, "medium": self.medium, "low": self.low}[octave_name]

    def all_keys(self) -> List[str]:
        seen: List[str] = []
        for k in self.low + self.medium + self.high:
            if k not in seen:
                seen.append(k)
        return seen

def serialize_keymap(mapping: KeyMapping) -> Dict[str, List[str]]:
    return {"high": list(mapping.high), "medium": list(mapping.medium), "low": list(mapping.low)}

def deserialize_keymap(obj: dict) -> KeyMapping:
    """Rows missing from the JSON keep their defaults; entries are stored as strings."""
    m = KeyMapping()
    for name in ("high", "medium", "low"):
        row = obj.get(name) if isinstance(obj, dict) else None
        if isinstance(row, list):
            setattr(m, name, [str(k) for k in row])
    return m

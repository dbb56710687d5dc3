from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import json

from .entities import Battery, City

WORLD_WIDTH = 800.0
WORLD_HEIGHT = 600.0

BATTERY_SLOTS = ("left", "center", "right")


@dataclass(frozen=True, slots=True)
class BatteryDef:
    x: float
    y: float
    capacity: int


@dataclass(frozen=True, slots=True)
class CityDef:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Layout:
    name: str
    width: float
    height: float
    batteries: tuple[BatteryDef, ...]
    cities: tuple[CityDef, ...]

    def __post_init__(self) -> None:
        if len(self.batteries) != len(BATTERY_SLOTS):
            raise ValueError(
                f"Layout '{self.name}' needs exactly {len(BATTERY_SLOTS)} batteries, got {len(self.batteries)}"
            )
        for b in self.batteries:
            if b.capacity < 0:
                raise ValueError(f"Layout '{self.name}' has a battery with negative capacity: {b!r}")

    def build_batteries(self) -> list[Battery]:
        return [Battery(x=b.x, y=b.y, ammo=b.capacity, max_ammo=b.capacity) for b in self.batteries]

    def build_cities(self) -> list[City]:
        return [City(x=c.x, y=c.y) for c in self.cities]


def default_layout(width: float = WORLD_WIDTH, height: float = WORLD_HEIGHT) -> Layout:
    # Batteries sit on the ground line, cities 5 units lower.
    battery_y = height - 20
    city_y = height - 15
    return Layout(
        name="default",
        width=float(width),
        height=float(height),
        batteries=(
            BatteryDef(x=50.0, y=battery_y, capacity=20),
            BatteryDef(x=width / 2, y=battery_y, capacity=40),
            BatteryDef(x=width - 50, y=battery_y, capacity=20),
        ),
        cities=tuple(CityDef(x=float(x), y=city_y) for x in (150, 250, 350, 450, 550, 650)),
    )


DEFAULT_LAYOUT = default_layout()


def load_layout_json(path: str | Path) -> Layout:
    p = Path(path)
    data = json.loads(p.read_text(encoding="utf-8"))

    world = data.get("world", {}) or {}
    batteries: list[BatteryDef] = []
    for raw in data.get("batteries", []):
        try:
            batteries.append(BatteryDef(x=float(raw["x"]), y=float(raw["y"]), capacity=int(raw["capacity"])))
        except KeyError as e:
            raise KeyError(f"Missing battery field {e} in layout '{p}'") from e
    cities: list[CityDef] = []
    for raw in data.get("cities", []):
        try:
            cities.append(CityDef(x=float(raw["x"]), y=float(raw["y"])))
        except KeyError as e:
            raise KeyError(f"Missing city field {e} in layout '{p}'") from e

    return Layout(
        name=str(data.get("name", p.stem)),
        width=float(world.get("width", WORLD_WIDTH)),
        height=float(world.get("height", WORLD_HEIGHT)),
        batteries=tuple(batteries),
        cities=tuple(cities),
    )

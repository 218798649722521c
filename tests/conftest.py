import json
from collections.abc import Callable
from pathlib import Path

import pytest


def make_line(i: int, *, sim: str | None = None, ts: str | None = None, **payload: object) -> str:
    """One compact event line with the two ordering fields."""
    event = {
        "sim_time": sim or f"2026-01-01T00:00:{i:02d}Z",
        "timestamp": ts or f"2026-01-01T00:00:{i:02d}Z",
        "tick": i,
        "agent_id": "a",
        "agent_name": "a",
        "action": "x",
    }
    event.update(payload)
    return json.dumps(event, separators=(",", ":"))


@pytest.fixture
def event_line() -> Callable[..., str]:
    return make_line


@pytest.fixture
def write_log(tmp_path: Path) -> Callable[[str, list[str]], Path]:
    def _write(name: str, lines: list[str]) -> Path:
        path = tmp_path / name
        path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
        return path

    return _write

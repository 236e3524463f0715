from __future__ import annotations

import os
import subprocess
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

PNG_HEADER = bytes([0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A, 0x00, 0x00, 0x00, 0x0D])


@dataclass(slots=True)
class TreePair:
    """Fixture payload: an upstream tree, an edited copy, and an empty patch store."""

    original: Path
    target: Path
    patches: Path

    def write(self, side: str, relative: str, data: bytes | str) -> Path:
        """Write ``data`` below the ``original`` or ``target`` root."""
        root = self.original if side == "original" else self.target
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, str):
            path.write_bytes(data.encode("utf-8"))
        else:
            path.write_bytes(data)
        return path

    def snapshot(self, root: Path) -> dict[str, bytes]:
        """Map every file below ``root`` to its bytes."""
        return {
            path.relative_to(root).as_posix(): path.read_bytes()
            for path in sorted(root.rglob("*"))
            if path.is_file()
        }

    def run_cli(self, *args: str) -> subprocess.CompletedProcess[str]:
        """Invoke ``python -m treepatch.cli`` with the provided arguments."""

        env = os.environ.copy()
        pythonpath = str(SRC)
        if env.get("PYTHONPATH"):
            pythonpath = os.pathsep.join([pythonpath, env["PYTHONPATH"]])
        env["PYTHONPATH"] = pythonpath

        command = [sys.executable, "-m", "treepatch.cli", *args]
        return subprocess.run(  # noqa: S603 - command constructed from known values
            command,
            cwd=self.original.parent,
            env=env,
            capture_output=True,
            text=True,
            check=False,
        )


@pytest.fixture()
def tree_pair(tmp_path: Path) -> TreePair:
    """Create an upstream tree and an edited copy covering every change kind."""

    pair = TreePair(
        original=tmp_path / "upstream",
        target=tmp_path / "edited",
        patches=tmp_path / "patches",
    )
    pair.original.mkdir()
    pair.target.mkdir()

    module = textwrap.dedent(
        """
        def greet(name):
            return "hello " + name


        def farewell(name):
            return "bye " + name
        """
    ).lstrip()
    pair.write("original", "pkg/module.py", module)
    pair.write("target", "pkg/module.py", module.replace('"bye "', '"goodbye "'))

    pair.write("original", "README.txt", "unchanged\n")
    pair.write("target", "README.txt", "unchanged\n")

    pair.write("original", "docs/obsolete.txt", "remove me\n")

    pair.write("target", "pkg/added.py", "VALUE = 1\n")

    pair.write("original", "assets/logo.png", PNG_HEADER + bytes(range(256)))
    pair.write("target", "assets/logo.png", PNG_HEADER + bytes(reversed(range(256))))

    pair.write("original", "assets/old.bin", bytes([0x00, 0x01, 0x02]))
    pair.write("target", "assets/new.bin", bytes([0x00, 0x07]) * 16)

    return pair

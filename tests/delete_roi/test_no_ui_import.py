import os
import subprocess
import sys
from pathlib import Path

_CHECK = """
import sys
from niceroi.delete_roi import add_roi
from niceroi.roi_canvas import RoiCanvas

assert add_roi(RoiCanvas(10, 10), (1, 1, 2, 2)) is not None
loaded = sorted(k for k in sys.modules if k.split(".")[0] in ("nicegui", "matplotlib"))
print(",".join(loaded))
"""


def test_imports_without_nicegui_or_matplotlib():
    """Importing the ROI core must not pull in the UI stack.

    NiceGUI and matplotlib may be installed; only the view module needs them.
    Runs in a fresh interpreter so modules imported by other tests don't count.
    """
    src_dir = Path(__file__).resolve().parents[2] / "src"
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(p for p in (str(src_dir), env.get("PYTHONPATH", "")) if p)

    result = subprocess.run(
        [sys.executable, "-c", _CHECK],
        capture_output=True,
        text=True,
        env=env,
        check=True,
    )
    assert result.stdout.strip() == ""

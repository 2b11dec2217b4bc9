import sys
from pathlib import Path

# (1) Make the repository root (scripts/) and src/ (alchemist) importable
ROOT = Path(__file__).resolve().parents[1]
for path in (ROOT, ROOT / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

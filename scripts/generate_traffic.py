"""Run the traffic generator from a source checkout.

    python scripts/generate_traffic.py --workers 20 --interval 1
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from trafficgen.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())

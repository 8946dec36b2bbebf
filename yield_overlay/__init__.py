"""Live yield point overlay for calibrated SVG charts."""
from __future__ import annotations

__version__ = "0.3.0"

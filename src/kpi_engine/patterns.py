"""Learned KPI → text-fragment associations consumed by the local detector."""

from __future__ import annotations

import json
import threading
from collections import Counter
from pathlib import Path
from typing import Any

from .utils import get_logger

logger = get_logger("patterns")


class PatternStore:
    """Mutable learned state owned by one engine.

    Writers (training runs, :meth:`load`) hold :attr:`lock` for their whole
    duration. Readers never lock: :meth:`fragments_for` returns a tuple copy
    of the current list.

    Fragments are deduplicated per KPI across training runs.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.is_trained = False
        self.frequencies: Counter[str] = Counter()
        self._learned: dict[str, list[str]] = {}
        self._seen: dict[str, set[str]] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def fragments_for(self, kpi_name: str) -> tuple[str, ...]:
        """Fragments learned for this exact KPI name (empty if none)."""
        return tuple(self._learned.get(kpi_name, ()))

    @property
    def patterns_count(self) -> int:
        """Number of distinct fragments in the general frequency counter."""
        return len(self.frequencies)

    @property
    def learned_kpis(self) -> list[str]:
        return [kpi for kpi, fragments in self._learned.items() if fragments]

    def __len__(self) -> int:
        return sum(len(fragments) for fragments in self._learned.values())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_fragment(self, kpi_name: str, fragment: str) -> bool:
        """Append *fragment* to *kpi_name*'s list; ``False`` if already known."""
        with self.lock:
            seen = self._seen.setdefault(kpi_name, set())
            if fragment in seen:
                return False
            seen.add(fragment)
            self._learned.setdefault(kpi_name, []).append(fragment)
            return True

    def count_fragment(self, fragment: str) -> None:
        with self.lock:
            self.frequencies[fragment] += 1

    def mark_trained(self) -> None:
        with self.lock:
            self.is_trained = True

    def clear(self) -> None:
        """Forget everything learned so far."""
        with self.lock:
            self.is_trained = False
            self.frequencies.clear()
            self._learned.clear()
            self._seen.clear()

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        with self.lock:
            return {
                "is_trained": self.is_trained,
                "frequencies": dict(self.frequencies),
                "learned_patterns": {k: list(v) for k, v in self._learned.items()},
            }

    def update_from_dict(self, data: dict[str, Any]) -> None:
        """Replace the current state with a :meth:`to_dict` payload."""
        with self.lock:
            self.clear()
            self.frequencies.update(data.get("frequencies", {}))
            for kpi_name, fragments in data.get("learned_patterns", {}).items():
                for fragment in fragments:
                    self.add_fragment(kpi_name, fragment)
            self.is_trained = bool(data.get("is_trained", False))

    def save(self, path: str | Path) -> None:
        """Write the store as JSON to *path*."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(self.to_dict(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        logger.info("Saved patterns for %d KPIs to %s", len(self.learned_kpis), path)

    def load(self, path: str | Path) -> bool:
        """Load *path* if it exists. Returns whether anything was loaded."""
        path = Path(path)
        if not path.is_file():
            logger.debug("No pattern file at %s", path)
            return False
        self.update_from_dict(json.loads(path.read_text(encoding="utf-8")))
        logger.info("Loaded patterns for %d KPIs from %s", len(self.learned_kpis), path)
        return True

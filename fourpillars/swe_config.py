"""Swiss Ephemeris set-up shared by the astronomical modules.

The ephemeris directory defaults to ``<repo>/ephe`` and can be moved with the
``SWE_EPHE_PATH`` environment variable. When the binary ``.se1`` files are not
present Swiss Ephemeris silently falls back to the analytical Moshier theory,
which is still accurate to well under an arc-second for the Sun. Set
``SWE_REQUIRE_SWIEPH=1`` to refuse that fallback.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any

import swisseph as swe


DEFAULT_EPHE_PATH = Path(__file__).parent.parent / "ephe"

_init_lock = threading.Lock()
_status: dict[str, Any] | None = None


def _is_truthy(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def ephemeris_flags() -> int:
    """Flags used for every solar position request (ephemeris + speed)."""
    return swe.FLG_SWIEPH | swe.FLG_SPEED


def _probe_backend(log: logging.Logger) -> dict[str, Any]:
    """Ask for one solar position and report which backend answered."""
    jd = swe.julday(2000, 1, 1, 12.0)
    _, retflag = swe.calc_ut(jd, swe.SUN, ephemeris_flags())
    retflag = int(retflag)

    if retflag & swe.FLG_SWIEPH:
        backend = "swieph"
    elif retflag & swe.FLG_MOSEPH:
        backend = "moshier"
        log.warning("Swiss Ephemeris files not found, using Moshier fallback")
    else:
        backend = "unknown"

    return {
        "ephemeris_backend": backend,
        "ephemeris_verified": backend == "swieph",
        "ephemeris_retflag": retflag,
    }


def initialize_swe_context(logger: logging.Logger | None = None,
                           force: bool = False) -> dict[str, Any]:
    """Point Swiss Ephemeris at its data files and probe the backend.

    The result is cached; pass ``force=True`` to re-read the environment.
    Raises RuntimeError when ``SWE_REQUIRE_SWIEPH`` is set and only the
    Moshier fallback is available.
    """
    global _status
    log = logger or logging.getLogger(__name__)

    with _init_lock:
        if _status is not None and not force:
            return dict(_status)

        ephe_path = os.getenv("SWE_EPHE_PATH", str(DEFAULT_EPHE_PATH))
        require_swieph = _is_truthy(os.getenv("SWE_REQUIRE_SWIEPH", "0"))

        swe.set_ephe_path(ephe_path)
        status: dict[str, Any] = {
            "ephemeris_path": ephe_path,
            "require_swieph": require_swieph,
        }
        status.update(_probe_backend(log))
        log.debug("Swiss Ephemeris initialised: %s", status)

        if require_swieph and not status["ephemeris_verified"]:
            raise RuntimeError(
                "Swiss Ephemeris data files are not available. "
                f"Configured path: {ephe_path}. Backend: {status['ephemeris_backend']}."
            )

        _status = status
        return dict(status)

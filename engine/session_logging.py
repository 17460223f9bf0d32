"""Session output logging: persists the SessionLog and a run summary.

The output directory structure is::

    {output_dir}/{run_name}/
    ├── config.yaml
    ├── session_log.json
    ├── ledger.json
    └── summary.json
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any

from models.config import EngineConfig
from models.log import SessionLog

logger = logging.getLogger(__name__)


def run_name_from_config_path(config_path: str | Path) -> str:
    """Derive a run name from the configuration file path (stem without extension)."""
    return Path(config_path).stem


class SessionLogger:
    """Manages on-disk output for a simulated session.

    Call ``init_run`` once at the start and ``finalize`` at the very end; the
    runner fills ``session_log`` in between.
    """

    def __init__(
        self,
        output_dir: str | Path,
        config: EngineConfig,
        run_name: str,
    ) -> None:
        self._run_dir = _unique_run_dir(Path(output_dir), run_name)
        self._session_log = SessionLog(
            run_name=self._run_dir.name,
            config=config,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init_run(self, config_yaml_path: str | None = None) -> None:
        """Create the output directory and optionally copy the config."""
        self._run_dir.mkdir(parents=True, exist_ok=True)
        if config_yaml_path is not None:
            dest = self._run_dir / "config.yaml"
            shutil.copy2(config_yaml_path, dest)
            logger.info("Copied config to %s", dest)

    def record_error(self, message: str) -> None:
        """Append an error message to the session log."""
        self._session_log.errors.append(message)
        logger.error("Session error: %s", message)

    def finalize(self, summary: dict[str, Any] | None = None) -> None:
        """Write the session log, the ledger journal and optional summary."""
        _write_json(self._run_dir / "session_log.json", self._session_log.model_dump(mode="json"))
        if self._session_log.ledger_writes:
            _write_json(
                self._run_dir / "ledger.json",
                [w.model_dump(mode="json") for w in self._session_log.ledger_writes],
            )
        if summary is not None:
            _write_json(self._run_dir / "summary.json", summary)
        logger.info("Session log finalized at %s", self._run_dir)

    @property
    def session_log(self) -> SessionLog:
        return self._session_log

    @property
    def run_dir(self) -> Path:
        return self._run_dir


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _unique_run_dir(output_dir: Path, run_name: str) -> Path:
    """Return a run directory that does not already exist.

    If ``output_dir/run_name`` is free, use it directly.  Otherwise append an
    incrementing suffix: ``run_name_001``, ``run_name_002``, etc.
    """
    candidate = output_dir / run_name
    if not candidate.exists():
        return candidate

    idx = 1
    while True:
        candidate = output_dir / f"{run_name}_{idx:03d}"
        if not candidate.exists():
            return candidate
        idx += 1


def _write_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")

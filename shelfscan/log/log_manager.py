"""
Log management for the API process.

Each process run writes to its own file under logs/app (or ``logging.log_dir``)
and to the console. Old run files are removed by age, then oldest-first by
total size; the file of the running process is never removed.
"""
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

PROJECT_ROOT = Path(__file__).resolve().parents[2]
LOG_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)s | %(name)s | %(message)s"
MB = 1024 * 1024


class LogManager:
    def __init__(self, config: dict[str, Any] | None = None):
        config = config or {}
        log_dir = Path(config.get("log_dir") or PROJECT_ROOT / "logs" / "app")
        self.log_dir = log_dir if log_dir.is_absolute() else PROJECT_ROOT / log_dir
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.max_size_mb = int(config.get("max_size_mb", 100))
        self.max_age_days = int(config.get("max_age_days", 30))
        self.min_keep_mb = int(config.get("min_keep_mb", 20))
        self.console_output = bool(config.get("console_output", True))
        self.level = getattr(logging, str(config.get("level") or "INFO").upper(), logging.INFO)

        self.run_file = self.log_dir / datetime.now().strftime("%Y-%m-%d_%H-%M-%S.log")
        self._formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def _handler(self, handler: logging.Handler) -> logging.Handler:
        handler.setLevel(self.level)
        handler.setFormatter(self._formatter)
        return handler

    def get_logger(self, name: str) -> logging.Logger:
        logger = logging.getLogger(name)
        if logger.handlers:
            return logger
        logger.setLevel(self.level)
        # pytest caplog and uvicorn's root handlers still see records
        logger.propagate = True
        if self.console_output:
            logger.addHandler(self._handler(logging.StreamHandler()))
        logger.addHandler(self._handler(logging.FileHandler(self.run_file, encoding="utf-8")))
        return logger

    def _log_files(self) -> list[Path]:
        """Finished run files, oldest first."""
        files = [f for f in self.log_dir.glob("*.log") if f.is_file() and f != self.run_file]
        return sorted(files, key=lambda p: p.stat().st_mtime)

    def cleanup(self) -> dict[str, Any]:
        """Nothing is removed while the directory is under min_keep_mb."""
        report: dict[str, Any] = {"deleted_by_age": [], "deleted_by_size": [], "remaining_mb": 0.0}
        files = self._log_files()
        current = self.run_file.stat().st_size if self.run_file.exists() else 0
        total = current + sum(f.stat().st_size for f in files)
        if total >= self.min_keep_mb * MB:
            cutoff = (datetime.now() - timedelta(days=self.max_age_days)).timestamp()
            for f in files:
                size = f.stat().st_size
                if f.stat().st_mtime < cutoff:
                    report["deleted_by_age"].append(f.name)
                elif total > self.max_size_mb * MB:
                    report["deleted_by_size"].append(f.name)
                else:
                    continue
                f.unlink()
                total -= size
        report["remaining_mb"] = total / MB
        return report


_manager: LogManager | None = None


def init_logging(config: dict[str, Any] | None = None) -> LogManager:
    """(Re)build the process-wide manager; defaults to the ``logging`` config section."""
    global _manager
    if config is None:
        from config.settings import _section
        config = _section("logging")
    _manager = LogManager(config)
    return _manager


def get_logger(name: str) -> logging.Logger:
    return (_manager or init_logging()).get_logger(name)


def cleanup_logs() -> dict[str, Any]:
    return (_manager or init_logging()).cleanup()

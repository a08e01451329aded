import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Union

FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-16s | %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: Union[str, int] = "INFO", log_dir: Optional[Path] = None) -> logging.Logger:
    """Console logging for the ``civicgo`` logger tree, plus a rotating file when ``log_dir`` is set."""
    formatter = logging.Formatter(FORMAT, datefmt=DATEFMT)
    root = logging.getLogger("civicgo")
    root.setLevel(level)

    # setup can run once per app startup; don't stack handlers
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "civicgo.log", maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root

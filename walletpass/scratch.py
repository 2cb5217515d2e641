import logging, shutil, tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

@contextmanager
def scratch_area(base_dir: Optional[str] = None) -> Iterator[Path]:
    """Uniquely named directory for one build, removed on exit."""
    path = Path(tempfile.mkdtemp(prefix="walletpass-", dir=base_dir or None))
    logger.debug("scratch area %s", path)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.debug("scratch area %s removed", path)

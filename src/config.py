"""Settings from the environment and an optional project .env file.

Priority: real environment variable > .env entry > default. The .env file
lives at the project root and holds simple KEY=VALUE lines; blank lines and
'#' comments are skipped, unreadable files are ignored.
"""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_PATH = PROJECT_ROOT / '.env'


def load_dotenv(path: Path = ENV_PATH) -> Dict[str, str]:
    values: Dict[str, str] = {}
    if not path.exists():
        return values
    try:
        text = path.read_text()
    except OSError as exc:
        logger.warning("could not read %s: %s", path, exc)
        return values
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        k, v = line.split('=', 1)
        values[k.strip()] = v.strip().strip('"').strip("'")
    return values


_DOTENV = load_dotenv()


def setting(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name) or _DOTENV.get(name) or default


def int_setting(name: str, default: int) -> int:
    raw = setting(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; using %s", name, raw, default)
        return default
    return value if value > 0 else default


def truthy(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off", ""}


DATA_DIR = Path(setting('KANTRACK_DATA_DIR') or PROJECT_ROOT / 'data')
MAX_HISTORY = int_setting('KANTRACK_MAX_HISTORY', 50)
TRASH_MAX_ITEMS = int_setting('KANTRACK_TRASH_MAX', 20)
LOG_LEVEL = (setting('KANTRACK_LOG_LEVEL', 'WARNING') or 'WARNING').upper()
ALT_SCREEN = truthy(setting('KANBAN_ALT_SCREEN'), True)

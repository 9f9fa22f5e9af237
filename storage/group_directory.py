"""Loader for the bundled group directory ("<id> : <name>" lines)."""
import logging
from pathlib import Path
from typing import List, Tuple, Union

logger = logging.getLogger(__name__)

SEPARATOR = ' : '


def parse_group_directory(content: str) -> List[Tuple[int, str]]:
    """
    Parse group directory text.

    Args:
        content: Text with one "<id> : <name>" entry per line

    Returns:
        List of (group id, name) tuples in file order; malformed lines
        are skipped
    """
    groups = []
    for line in content.splitlines():
        parts = line.split(SEPARATOR)
        if len(parts) != 2:
            continue
        try:
            group_id = int(parts[0].strip())
        except ValueError:
            continue
        groups.append((group_id, parts[1].strip()))
    return groups


def load_group_directory(path: Union[str, Path]) -> List[Tuple[int, str]]:
    """
    Read and parse a group directory file.

    Raises:
        OSError: If the file cannot be read
    """
    content = Path(path).read_text(encoding='utf-8')
    groups = parse_group_directory(content)
    logger.info(f"Loaded {len(groups)} groups from {path}")
    return groups

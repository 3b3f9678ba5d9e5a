# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .load_utils import with_possible_ext


def read_from_file(path: str, extra_paths: Optional[Sequence[str]] = None) -> Tuple[bytes, str]:
    """
    Reads the content of a configuration file, searching the current directory first
    and then the additional paths if provided.

    Args:
        path (str): The path of the file, with or without its .xml extension.
        extra_paths (list, optional): Additional directories to search for the file.

    Returns:
        tuple: The raw content of the file and its resolved path.

    Raises:
        FileNotFoundError: If the file is not found in any of the specified paths.
    """
    all_paths = with_possible_ext(path)
    search_dirs = [Path('./')] + [Path(p) for p in (extra_paths or [])]

    for sd in search_dirs:
        for p in all_paths:
            p = (sd / p).expanduser()
            if p.is_file():
                resolved = p.resolve()
                with open(resolved, 'rb') as f:
                    return f.read(), resolved.as_posix()

    raise FileNotFoundError(f'File not found: {path}')

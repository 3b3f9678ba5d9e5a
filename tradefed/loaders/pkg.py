# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
from importlib.resources import as_file, files
from pathlib import Path
from typing import List, Tuple

from .load_utils import CONFIG_EXTENSION, with_possible_ext


def read_from_pkg(path: str) -> Tuple[bytes, str]:
    """reads `pkg:relative/path` from an installed package's resources."""
    pkg = None

    if ':' in path:
        pkg, path = path.split(':', maxsplit=1)

    if not pkg:
        raise ValueError('No package specified in path')

    all_paths = with_possible_ext(path)

    for fpath in all_paths:
        resource = files(pkg) / fpath.as_posix()
        if not resource.is_file():
            continue
        with as_file(resource) as p:
            with open(p, 'rb') as f:
                return f.read(), Path(p).resolve().as_posix()

    tried_str = ', '.join(str(files(pkg) / p.as_posix()) for p in all_paths)
    raise FileNotFoundError(f'File not found in package {pkg}: {path}. Tried: {tried_str}')


def list_pkg_configs(path: str) -> List[str]:
    """names (without extension) of the configuration files in `pkg:directory`."""
    pkg, _, directory = path.partition(':')
    root = files(pkg) / directory if directory else files(pkg)
    if not root.is_dir():
        return []
    return sorted(
        r.name[: -len(CONFIG_EXTENSION)]
        for r in root.iterdir()
        if r.is_file() and r.name.endswith(CONFIG_EXTENSION)
    )

# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
from pathlib import Path

CONFIG_EXTENSION = '.xml'


def with_possible_ext(path: str):
    # return: the original, then with .xml. in that order
    p = Path(path)
    if p.suffix == CONFIG_EXTENSION:
        return [p]
    return [p, Path(f"{p}{CONFIG_EXTENSION}")]

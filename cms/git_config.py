"""Git configuration files found in the repository."""

import re
from typing import Iterable, List

from common.types import FileDescriptor

LFS_PATTERN_REGEX = re.compile(r"^\*\.(?P<extension>[^\s/]+)\s+(?:.+\s+)?filter=lfs(?:\s|$)")


def get_lfs_file_extensions(config_files: Iterable[FileDescriptor]) -> List[str]:
    """
    Get the file extensions tracked by Git LFS in the root `.gitattributes` file.

    Args:
        config_files: Git config files with their text loaded

    Returns:
        Lower-cased extensions such as ['pdf', 'zip'], in declaration order
    """
    attributes = next((f for f in config_files if f.path == ".gitattributes"), None)

    if attributes is None or not attributes.text:
        return []

    extensions: List[str] = []

    for line in attributes.text.splitlines():
        match = LFS_PATTERN_REGEX.match(line.strip())
        if match:
            extension = match.group("extension").lower()
            if extension not in extensions:
                extensions.append(extension)

    return extensions

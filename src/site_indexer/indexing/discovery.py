"""
HTML file discovery for the built site.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List, Sequence, Union

from ..core.errors import DiscoveryError

PathLike = Union[str, Path]

_INDEX_SUFFIX = "index.html"


def _compile(patterns: Iterable[str]) -> List[re.Pattern]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise DiscoveryError(f"Invalid exclude pattern {pattern!r}: {exc}") from exc
    return compiled


def list_html_files(
    root_dir: PathLike,
    exclude: Sequence[str] = (),
) -> List[Path]:
    """
    Recursively list the HTML files under `root_dir`, in sorted order.

    Each exclude entry is a regular expression searched in the file's
    root-relative POSIX path ("blog/2020/index.html"); matches are dropped.

    Raises
    ------
    DiscoveryError
        If `root_dir` is not a directory or a pattern does not compile.
    """
    root = Path(root_dir)
    if not root.is_dir():
        raise DiscoveryError(f"Site root is not a directory: {root}")

    patterns = _compile(exclude)

    files = []
    for path in sorted(root.rglob("*.html")):
        if not path.is_file():
            continue
        relative = path.relative_to(root).as_posix()
        if any(p.search(relative) for p in patterns):
            continue
        files.append(path)
    return files


def to_page_path(file_path: PathLike, root_dir: PathLike) -> str:
    """
    Map a built file to its site URL path.

    public/docs/intro/index.html -> /docs/intro/
    public/404.html              -> /404.html
    """
    relative = Path(file_path).relative_to(Path(root_dir)).as_posix()
    if relative.endswith(_INDEX_SUFFIX):
        relative = relative[: -len(_INDEX_SUFFIX)]
    return "/" + relative

"""Redaction ruleset rendering and the transient ruleset file."""

import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

from envpurge.core.models import RedactionRule
from envpurge.utils.logger import get_logger

logger = get_logger(__name__)


def render_ruleset(rules: Iterable[RedactionRule]) -> str:
    """Render rules as git-filter-repo --replace-text content, one per line."""
    return "".join(f"{rule.to_line()}\n" for rule in rules)


@contextmanager
def ruleset_file(
    rules: Iterable[RedactionRule],
    directory: Optional[Path] = None,
) -> Iterator[Path]:
    """
    Write the ruleset to a temporary file and remove it on exit.

    The file is removed whether the body finishes or raises, so a failed
    rewrite never leaves the patterns lying around.

    Args:
        rules: Ordered redaction rules
        directory: Where to create the file (system temp dir by default)

    Yields:
        Path to the ruleset file
    """
    with tempfile.NamedTemporaryFile(
        mode="w",
        prefix="envpurge-rules-",
        suffix=".txt",
        dir=directory,
        delete=False,
    ) as f:
        f.write(render_ruleset(rules))
        path = Path(f.name)

    logger.debug("Wrote ruleset to %s", path)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.debug("Removed ruleset %s", path)

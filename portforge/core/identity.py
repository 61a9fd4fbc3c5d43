"""Project identity derived from a user's display name."""
import re
from dataclasses import dataclass

MAX_SLUG_LENGTH = 100
FALLBACK_SLUG = "portfolio"

_INVALID_CHARS = re.compile(r"[^a-z0-9._-]")
_DASH_RUNS = re.compile(r"-{3,}")


def slugify(display_name: str) -> str:
    """Turn a display name into a repository-, URL- and filesystem-safe slug.

    Lowercases, replaces anything outside ``[a-z0-9._-]`` with ``-``,
    collapses runs of three or more dashes and caps the length at 100.

    >>> slugify("Ada Lovelace")
    'ada-lovelace'
    """
    slug = _INVALID_CHARS.sub("-", (display_name or "").lower())
    slug = _DASH_RUNS.sub("-", slug)
    slug = slug[:MAX_SLUG_LENGTH]
    # "." and ".." are not valid directory or repository names
    slug = slug.strip("-.")
    return slug or FALLBACK_SLUG


@dataclass(frozen=True)
class ProjectIdentity:
    """Name of one portfolio project, computed once per run.

    The slug doubles as repository name, output directory name and the
    stem of the archive object in storage.
    """

    display_name: str
    slug: str

    @classmethod
    def from_display_name(cls, display_name: str) -> "ProjectIdentity":
        return cls(display_name=display_name, slug=slugify(display_name))

    @property
    def archive_name(self) -> str:
        return f"{self.slug}.zip"

    def repo_reference(self, owner: str) -> str:
        """Return the ``owner/name`` reference of the project's repository."""
        return f"{owner}/{self.slug}"

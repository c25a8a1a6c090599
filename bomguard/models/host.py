from pydantic import BaseModel
from pydantic import ConfigDict


def repo_key_of(path: str) -> str:
    """Repository key of a 'repo-key/relative/path' path."""
    return path.strip('/').split('/', 1)[0]


def relative_path_of(path: str) -> str:
    parts = path.strip('/').split('/', 1)
    return parts[1] if len(parts) > 1 else ''


def is_repository_root(path: str) -> bool:
    return relative_path_of(path) == ''


class ItemInfo(BaseModel):
    path: str
    name: str
    is_folder: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def repo_key(self) -> str:
        return repo_key_of(self.path)


class LayoutInfo(BaseModel):
    """Coordinates the host derives from an artifact's path layout."""
    organization: str | None = None
    module: str | None = None
    base_revision: str | None = None

    model_config = ConfigDict(frozen=True)

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import field_validator

from bomguard.models.package_type import Forge


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


class Coordinate(BaseModel):
    """A fully resolved component identifier. There are no partial coordinates."""
    forge: Forge
    name: str
    version: str
    group: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator('name', 'version')
    @classmethod
    def not_blank(cls, v: str) -> str:
        if _is_blank(v):
            raise ValueError('must not be blank')
        return v.strip()

    @field_validator('group')
    @classmethod
    def group_not_blank(cls, v: str | None) -> str | None:
        if v is not None and _is_blank(v):
            raise ValueError('must not be blank when present')
        return v.strip() if v is not None else None

    @classmethod
    def create(
        cls,
        forge: Forge,
        name: str | None,
        version: str | None,
        group: str | None = None,
        require_group: bool = False,
    ) -> 'Coordinate | None':
        """Build a coordinate, or return None if any required part is blank."""
        if _is_blank(name) or _is_blank(version):
            return None
        if require_group and _is_blank(group):
            return None
        return cls(forge=forge, name=name, version=version, group=group or None)

    @classmethod
    def from_origin_id(cls, forge: Forge, origin_id: str | None) -> 'Coordinate | None':
        """Rebuild a coordinate from a persisted origin id."""
        if _is_blank(origin_id):
            return None
        if forge == Forge.MAVEN:
            pieces = origin_id.split(forge.separator)
            if len(pieces) != 3:
                return None
            return cls.create(forge, pieces[1], pieces[2], group=pieces[0], require_group=True)
        # Names may contain the separator (scoped npm packages), versions never do
        pieces = origin_id.rsplit(forge.separator, 1)
        if len(pieces) != 2:
            return None
        return cls.create(forge, pieces[0], pieces[1])

    @property
    def origin_id(self) -> str:
        parts = [self.name, self.version]
        if self.group:
            parts.insert(0, self.group)
        return self.forge.separator.join(parts)

    @property
    def external_id(self) -> str:
        """Identifier used to search the BOM service's component catalog."""
        return f'{self.forge.value}:{self.origin_id}'

    def __str__(self) -> str:
        return self.external_id
